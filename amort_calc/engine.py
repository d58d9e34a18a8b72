"""Core calculation engine for the amortization calculator.

This module implements the financial logic required to build a monthly
annuity schedule and to reconcile it against known rows copied from a real
bank statement. A known row replaces the calculated values for its month and
the remaining balance it reports is re-amortized over the rest of the term.
Results are returned as a :class:`ScheduleResult` holding ``ScheduleRow``
objects or a :class:`CalculationError`.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, getcontext
from typing import Dict, Iterable, List, Optional, Tuple

from .data_models import (
    CalculationError,
    ErrorKind,
    LoanInputs,
    OverrideRow,
    ScheduleResult,
    ScheduleRow,
)
from .utils import (
    add_months,
    coerce_decimal,
    coerce_int,
    first_of_month,
    parse_date,
    round_money,
)

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
# Balances below half a cent are floating residue, not debt.
RESIDUAL = Decimal("0.005")


def _calculate_annuity_payment(principal: Decimal, rate_per_month: Decimal, term: int) -> Decimal:
    """Return the annuity (equal installment) monthly payment for a loan.

    The formula is:

        payment = P * i / (1 - (1 + i)^-n)

    where ``P`` is the principal, ``i`` is the monthly interest rate and
    ``n`` is the number of payments. When the interest rate is zero, the
    payment simplifies to ``P / n``. A rate too small to register at the
    context precision is treated as zero.
    """
    if term <= 0:
        raise ValueError("Term must be positive")
    denominator = 1 - (1 + rate_per_month) ** -term
    if rate_per_month == 0 or denominator == 0:
        return principal / Decimal(term)
    return principal * rate_per_month / denominator


def _check_payment(payment: Decimal, context: str) -> Decimal:
    if not payment.is_finite() or payment <= 0:
        raise CalculationError(
            ErrorKind.DEGENERATE_SCHEDULE,
            f"Cannot amortize {context}: monthly payment would be {payment}",
        )
    return payment


def _validate_inputs(inputs: LoanInputs) -> Tuple[Decimal, Decimal, int, Decimal]:
    """Return principal, monthly rate, term and monthly insurance rate."""
    principal = coerce_decimal(inputs.principal)
    annual_rate = coerce_decimal(inputs.annual_rate)
    term = coerce_int(inputs.term)
    if principal is None or principal <= 0:
        raise CalculationError(ErrorKind.INVALID_INPUTS, "Principal must be a positive number")
    if annual_rate is None or annual_rate <= 0:
        raise CalculationError(ErrorKind.INVALID_INPUTS, "Interest rate must be a positive number")
    if term is None or term <= 0:
        raise CalculationError(ErrorKind.INVALID_INPUTS, "Term must be a positive whole number of months")

    insurance_rate = coerce_decimal(inputs.insurance_rate)
    if insurance_rate is None or insurance_rate < 0:
        if inputs.insurance_rate not in (None, ""):
            logger.warning("Ignoring invalid insurance rate %r", inputs.insurance_rate)
        insurance_rate = ZERO

    rate_per_month = annual_rate / Decimal(100) / Decimal(12)
    insurance_per_month = insurance_rate / Decimal(100) / Decimal(12)
    return principal, rate_per_month, term, insurance_per_month


def _normalize_override(row: OverrideRow) -> Optional[ScheduleRow]:
    """Convert an override to a ``ScheduleRow`` or return None if unusable."""
    fields = (
        row.rank,
        row.due_date,
        row.payment,
        row.principal,
        row.interest,
        row.additional_costs,
        row.remaining_balance,
    )
    if any(value is None or value == "" for value in fields):
        return None
    rank = coerce_int(row.rank)
    amounts = [
        coerce_decimal(value)
        for value in (row.payment, row.principal, row.interest, row.additional_costs, row.remaining_balance)
    ]
    if rank is None or rank < 1 or any(amount is None for amount in amounts):
        return None
    try:
        due_date = parse_date(row.due_date)
    except ValueError:
        return None
    payment, principal, interest, additional_costs, remaining_balance = amounts
    return ScheduleRow(
        rank=rank,
        due_date=due_date,
        payment=payment,
        principal=principal,
        interest=interest,
        additional_costs=additional_costs,
        remaining_balance=remaining_balance,
        overridden=True,
    )


def _prepare_overrides(overrides: Iterable[OverrideRow]) -> Dict[int, ScheduleRow]:
    """Index valid overrides by rank; a later row replaces an earlier one."""
    mapping: Dict[int, ScheduleRow] = {}
    for row in overrides:
        known = _normalize_override(row)
        if known is None:
            logger.warning("Discarding incomplete override row %r", row)
            continue
        if known.rank in mapping:
            logger.debug("Override for rank %d replaces an earlier one", known.rank)
        mapping[known.rank] = known
    return mapping


def _rounded(row: ScheduleRow) -> ScheduleRow:
    return ScheduleRow(
        rank=row.rank,
        due_date=row.due_date,
        payment=round_money(row.payment),
        principal=round_money(row.principal),
        interest=round_money(row.interest),
        additional_costs=round_money(row.additional_costs),
        remaining_balance=round_money(max(row.remaining_balance, ZERO)),
        overridden=row.overridden,
    )


def build_schedule(
    inputs: LoanInputs,
    overrides: Iterable[OverrideRow] = (),
    today: Optional[date] = None,
) -> List[ScheduleRow]:
    """Compute the reconciled amortization schedule.

    Parameters
    ----------
    inputs: LoanInputs
        The loan parameters. ``start_date`` defaults to the first day of the
        month containing ``today``.
    overrides: Iterable[OverrideRow]
        Known rows. Incomplete rows are dropped; when two rows share a rank
        the last one wins.
    today: date, optional
        Reference date for the default start date (defaults to the current
        date).

    Returns
    -------
    List[ScheduleRow]
        One row per month, stopping early once the balance is paid off.

    Raises
    ------
    CalculationError
        ``INVALID_INPUTS`` for bad loan parameters, ``DEGENERATE_SCHEDULE``
        when no positive finite payment exists.
    """
    principal, rate_per_month, term, insurance_per_month = _validate_inputs(inputs)
    monthly_payment = _check_payment(
        _calculate_annuity_payment(principal, rate_per_month, term), "the loan"
    )
    override_map = _prepare_overrides(overrides)

    start_date = inputs.start_date or first_of_month(today)
    # Due dates are offsets from the latest known row, so clamped month ends
    # (Jan 31 -> Feb 28) do not drift.
    anchor_rank, anchor_date = 1, start_date

    balance = principal
    carried_costs = ZERO
    schedule: List[ScheduleRow] = []

    for rank in range(1, term + 1):
        known = override_map.get(rank)
        if known is not None:
            schedule.append(_rounded(known))
            balance = known.remaining_balance
            carried_costs = known.additional_costs
            anchor_rank, anchor_date = rank, known.due_date
            if balance <= 0:
                break
            remaining_term = term - rank
            if remaining_term > 0:
                monthly_payment = _check_payment(
                    _calculate_annuity_payment(balance, rate_per_month, remaining_term),
                    f"the balance after month {rank}",
                )
                logger.debug(
                    "Re-amortized %s over %d months after month %d: payment %s",
                    balance,
                    remaining_term,
                    rank,
                    monthly_payment,
                )
            else:
                monthly_payment = ZERO
            continue

        if balance <= 0:
            break

        interest_payment = balance * rate_per_month
        if insurance_per_month > 0:
            additional_costs = balance * insurance_per_month
        else:
            additional_costs = carried_costs
        principal_payment = monthly_payment - interest_payment
        # Final payment correction
        if principal_payment > balance:
            principal_payment = balance
        balance -= principal_payment
        if balance < RESIDUAL:
            balance = ZERO

        principal_out = round_money(principal_payment)
        interest_out = round_money(interest_payment)
        costs_out = round_money(additional_costs)
        schedule.append(
            ScheduleRow(
                rank=rank,
                due_date=add_months(anchor_date, rank - anchor_rank),
                payment=principal_out + interest_out + costs_out,
                principal=principal_out,
                interest=interest_out,
                additional_costs=costs_out,
                remaining_balance=round_money(balance),
            )
        )
        if balance <= 0:
            break

    return schedule


def compute_schedule(
    inputs: LoanInputs,
    overrides: Iterable[OverrideRow] = (),
    today: Optional[date] = None,
) -> ScheduleResult:
    """Compute the schedule, returning errors instead of raising them.

    See :func:`build_schedule` for the parameters.
    """
    try:
        return ScheduleResult(rows=build_schedule(inputs, overrides, today))
    except CalculationError as exc:
        return ScheduleResult(error=exc)
    except ArithmeticError as exc:
        return ScheduleResult(
            error=CalculationError(ErrorKind.DEGENERATE_SCHEDULE, f"Calculation failed: {exc}")
        )


def summarize_schedule(schedule: List[ScheduleRow]) -> Dict[str, object]:
    """Aggregate metrics for a schedule.

    Totals are sums of the rounded row values, overrides included.
    """
    total_paid = sum((row.payment for row in schedule), ZERO)
    total_principal = sum((row.principal for row in schedule), ZERO)
    total_interest = sum((row.interest for row in schedule), ZERO)
    total_costs = sum((row.additional_costs for row in schedule), ZERO)
    return {
        "total_paid": float(total_paid),
        "total_principal": float(total_principal),
        "total_interest": float(total_interest),
        "total_additional_costs": float(total_costs),
        "payments": len(schedule),
        "overrides_applied": sum(1 for row in schedule if row.overridden),
        "first_due_date": schedule[0].due_date.isoformat() if schedule else None,
        "last_due_date": schedule[-1].due_date.isoformat() if schedule else None,
        "final_balance": float(schedule[-1].remaining_balance) if schedule else 0.0,
    }
