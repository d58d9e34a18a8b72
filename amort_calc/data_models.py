"""Data models for the amortization calculator.

This module defines dataclasses representing the entities used by the
calculator: the loan inputs, the "known" override rows copied from a real bank
statement, individual schedule rows and the result returned by the engine.
Using dataclasses makes it easy to construct, inspect and serialize these
structures.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, List, Optional


class ErrorKind:
    """Kinds of calculation errors reported by the engine."""

    INVALID_INPUTS = "invalid_inputs"
    DEGENERATE_SCHEDULE = "degenerate_schedule"


class CalculationError(ValueError):
    """Raised inside the engine and returned on :class:`ScheduleResult`.

    Attributes
    ----------
    kind: str
        One of the :class:`ErrorKind` constants.
    message: str
        Human readable description; callers map ``kind`` to display text.
    """

    def __init__(self, kind: str, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


@dataclass(frozen=True)
class LoanInputs:
    """Loan parameters collected from the user.

    Values are accepted in raw form (``Decimal``, numbers or numeric strings)
    and validated by the engine, so a form can pass its fields straight
    through.

    Attributes
    ----------
    principal:
        The borrowed amount.
    annual_rate:
        Annual nominal interest rate in percent.
    term:
        Loan term in months.
    insurance_rate:
        Optional annual insurance rate in percent, charged on the outstanding
        balance. Missing or non-numeric values mean no insurance.
    start_date:
        Due date of the first payment. Defaults to the first day of the
        current month.
    """

    principal: Any
    annual_rate: Any
    term: Any
    insurance_rate: Any = None
    start_date: Optional[date] = None


@dataclass(frozen=True)
class OverrideRow:
    """A known row, usually taken from a bank statement.

    Every field must be present for the row to be used. ``rank`` is the
    1-based month index the row replaces.
    """

    rank: Any
    due_date: Any
    payment: Any
    principal: Any
    interest: Any
    additional_costs: Any
    remaining_balance: Any


@dataclass
class ScheduleRow:
    """An entry in the amortization schedule.

    When ``overridden`` is True the monetary values were copied from an
    override row and ``payment`` need not equal the sum of its parts.
    """

    rank: int
    due_date: date
    payment: Decimal
    principal: Decimal
    interest: Decimal
    additional_costs: Decimal
    remaining_balance: Decimal
    overridden: bool = False


@dataclass
class ScheduleResult:
    """Outcome of :func:`amort_calc.engine.compute_schedule`.

    Exactly one of ``rows`` (possibly empty only on error) and ``error`` is
    meaningful: ``error`` is None on success.
    """

    rows: List[ScheduleRow] = field(default_factory=list)
    error: Optional[CalculationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> List[ScheduleRow]:
        """Return the rows, raising the stored error if there is one."""
        if self.error is not None:
            raise self.error
        return self.rows
