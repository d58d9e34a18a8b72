"""Output helpers for the amortization calculator.

This module provides simple functions to render schedules and summaries in a
tabular text format using ``click.echo``.
"""

from __future__ import annotations

from typing import Dict, Iterable

import click

from .data_models import ScheduleRow


def print_summary(summary: Dict[str, object]) -> None:
    """Print a summary of schedule metrics in a human-readable format."""
    click.echo("Summary")
    click.echo("-" * 72)
    click.echo(f"Total paid         : {summary['total_paid']:.2f}")
    click.echo(f"Total principal    : {summary['total_principal']:.2f}")
    click.echo(f"Total interest     : {summary['total_interest']:.2f}")
    if summary.get("total_additional_costs"):
        click.echo(f"Additional costs   : {summary['total_additional_costs']:.2f}")
    click.echo(f"Payments           : {summary['payments']}")
    if summary.get("overrides_applied"):
        click.echo(f"Known rows applied : {summary['overrides_applied']}")
    click.echo(f"First due date     : {summary['first_due_date']}")
    click.echo(f"Last due date      : {summary['last_due_date']}")
    click.echo("-" * 72)


def print_schedule(schedule: Iterable[ScheduleRow]) -> None:
    """Print the schedule as a tab separated table.

    Rows taken from known statement values are flagged in the last column.
    """
    headers = [
        "Rank",
        "DueDate",
        "Payment",
        "Principal",
        "Interest",
        "Costs",
        "Balance",
        "Known",
    ]
    click.echo("\t".join(headers))
    for row in schedule:
        cells = [
            str(row.rank),
            row.due_date.isoformat(),
            f"{row.payment:.2f}",
            f"{row.principal:.2f}",
            f"{row.interest:.2f}",
            f"{row.additional_costs:.2f}",
            f"{row.remaining_balance:.2f}",
            "Yes" if row.overridden else "No",
        ]
        click.echo("\t".join(cells))
