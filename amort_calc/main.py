"""Command-line interface for the amortization calculator.

This module uses the ``click`` library to implement a multi-command
interface. Users can compute a full schedule reconciled against known rows
from a bank statement, or view only the summary. Results can be printed to
the terminal or exported to JSON/CSV files.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional, Tuple

import click

from .data_models import LoanInputs, OverrideRow, ScheduleRow
from .engine import compute_schedule, summarize_schedule
from .formatter import print_schedule, print_summary
from .serialization import export_to_csv, export_to_json
from .utils import parse_date

logger = logging.getLogger(__name__)

OVERRIDE_FORMAT = "RANK:YYYY-MM-DD:PAYMENT:PRINCIPAL:INTEREST:ADDITIONAL:BALANCE"


def parse_amount(value: str) -> float:
    """Parse a numeric string with optional suffixes.

    Accepts plain floats ("500000") and shorthand with ``k``/``m`` suffixes
    (e.g., "500k" meaning 500_000). Returns a float.
    """
    value = value.strip().lower()
    value = value.replace(",", "")
    factor = 1.0
    if value.endswith("k"):
        factor = 1_000.0
        value = value[:-1]
    elif value.endswith("m"):
        factor = 1_000_000.0
        value = value[:-1]
    try:
        return float(value) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def parse_override_strings(values: Tuple[str, ...]) -> List[OverrideRow]:
    """Parse ``--override`` values into override rows.

    Amounts are kept as strings; the engine validates them and discards
    rows it cannot use.
    """
    overrides: List[OverrideRow] = []
    for item in values:
        parts = item.split(":")
        if len(parts) != 7:
            raise click.BadParameter(f"Override must be in {OVERRIDE_FORMAT} format; got {item}")
        rank, due, payment, principal, interest, additional, balance = parts
        try:
            due_date = parse_date(due)
        except ValueError as exc:
            raise click.BadParameter(str(exc))
        overrides.append(
            OverrideRow(
                rank=rank,
                due_date=due_date,
                payment=payment,
                principal=principal,
                interest=interest,
                additional_costs=additional,
                remaining_balance=balance,
            )
        )
    return overrides


def build_inputs_from_options(
    principal: str,
    rate: float,
    term: int,
    insurance_rate: Optional[float] = None,
    start_date: Optional[str] = None,
) -> LoanInputs:
    start_dt = None
    if start_date:
        try:
            start_dt = parse_date(start_date)
        except ValueError as exc:
            raise click.BadParameter(str(exc))
    return LoanInputs(
        principal=parse_amount(principal),
        annual_rate=rate,
        term=term,
        insurance_rate=insurance_rate,
        start_date=start_dt,
    )


def _run(inputs: LoanInputs, overrides: List[OverrideRow]) -> List[ScheduleRow]:
    result = compute_schedule(inputs, overrides)
    if not result.ok:
        raise click.ClickException(result.error.message)
    return result.rows


def loan_options(func):
    """Attach the loan input options shared by all commands."""
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Loan amount"),
        click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)"),
        click.option("--term", "-t", "term", required=True, type=int, help="Loan term in months"),
        click.option(
            "--insurance-rate",
            "-i",
            "insurance_rate",
            type=float,
            help="Annual insurance rate (percent) charged on the outstanding balance",
        ),
        click.option("--start-date", "-s", "start_date", help="First due date (YYYY-MM-DD or YYYY-MM)"),
        click.option(
            "--override",
            "override",
            multiple=True,
            help=f"Known statement row in {OVERRIDE_FORMAT} format",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """An amortization calculator that reconciles against known statement rows."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(
    principal: str,
    rate: float,
    term: int,
    insurance_rate: Optional[float],
    start_date: Optional[str],
    override: Tuple[str, ...],
    output: Optional[str],
) -> None:
    """Compute and print the full amortization schedule."""
    inputs = build_inputs_from_options(principal, rate, term, insurance_rate, start_date)
    overrides = parse_override_strings(override)
    rows = _run(inputs, overrides)
    summary_data = summarize_schedule(rows)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, inputs, overrides, rows, summary_data)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, inputs, rows)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        logger.info("Exported %d rows to %s", len(rows), path)
        click.echo(f"Schedule exported to {path}")
    else:
        print_summary(summary_data)
        print_schedule(rows)


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
def summary(
    principal: str,
    rate: float,
    term: int,
    insurance_rate: Optional[float],
    start_date: Optional[str],
    override: Tuple[str, ...],
    output: Optional[str],
) -> None:
    """Compute and print only the summary metrics for a loan."""
    inputs = build_inputs_from_options(principal, rate, term, insurance_rate, start_date)
    rows = _run(inputs, parse_override_strings(override))
    summary_data = summarize_schedule(rows)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension")
        with path.open("w", encoding="utf-8") as f:
            json.dump({"summary": summary_data}, f, indent=2)
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(summary_data)


if __name__ == "__main__":
    cli()
