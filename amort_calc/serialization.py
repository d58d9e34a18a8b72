"""Conversion of calculator state to JSON and CSV.

The state blob bundles the loan inputs, the override rows and the computed
schedule. It is what the web app stores under a key and what the CLI writes
when exporting to JSON.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Dict, IO, Iterable, List, Optional, Tuple

from .data_models import LoanInputs, OverrideRow, ScheduleRow
from .utils import parse_date

CSV_HEADER = [
    "Rank",
    "Due_Date",
    "Payment",
    "Principal",
    "Interest",
    "Additional_Costs",
    "Remaining_Balance",
]


def _plain(value: Any) -> Any:
    """Return a JSON friendly version of a raw input value."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def inputs_to_dict(inputs: LoanInputs) -> Dict[str, Any]:
    return {
        "principal": _plain(inputs.principal),
        "annual_rate": _plain(inputs.annual_rate),
        "term": _plain(inputs.term),
        "insurance_rate": _plain(inputs.insurance_rate),
        "start_date": _plain(inputs.start_date),
    }


def override_to_dict(row: OverrideRow) -> Dict[str, Any]:
    return {
        "rank": _plain(row.rank),
        "due_date": _plain(row.due_date),
        "payment": _plain(row.payment),
        "principal": _plain(row.principal),
        "interest": _plain(row.interest),
        "additional_costs": _plain(row.additional_costs),
        "remaining_balance": _plain(row.remaining_balance),
    }


def row_to_dict(row: ScheduleRow) -> Dict[str, Any]:
    return {
        "rank": row.rank,
        "due_date": row.due_date.isoformat(),
        "payment": float(row.payment),
        "principal": float(row.principal),
        "interest": float(row.interest),
        "additional_costs": float(row.additional_costs),
        "remaining_balance": float(row.remaining_balance),
        "overridden": row.overridden,
    }


def state_to_dict(
    inputs: LoanInputs,
    overrides: Iterable[OverrideRow],
    schedule: Iterable[ScheduleRow] = (),
) -> Dict[str, Any]:
    """Build the serializable state blob."""
    return {
        "inputs": inputs_to_dict(inputs),
        "overrides": [override_to_dict(row) for row in overrides],
        "schedule": [row_to_dict(row) for row in schedule],
    }


def state_from_dict(data: Dict[str, Any]) -> Tuple[LoanInputs, List[OverrideRow]]:
    """Restore inputs and overrides from a state blob.

    The schedule is not restored; it is recomputed from the inputs.
    """
    raw_inputs = data.get("inputs") or {}
    start_date: Optional[str] = raw_inputs.get("start_date")
    inputs = LoanInputs(
        principal=raw_inputs.get("principal"),
        annual_rate=raw_inputs.get("annual_rate"),
        term=raw_inputs.get("term"),
        insurance_rate=raw_inputs.get("insurance_rate"),
        start_date=parse_date(start_date) if start_date else None,
    )
    overrides = [
        OverrideRow(
            rank=item.get("rank"),
            due_date=item.get("due_date"),
            payment=item.get("payment"),
            principal=item.get("principal"),
            interest=item.get("interest"),
            additional_costs=item.get("additional_costs"),
            remaining_balance=item.get("remaining_balance"),
        )
        for item in data.get("overrides") or []
    ]
    return inputs, overrides


def write_csv(stream: IO[str], inputs: LoanInputs, schedule: Iterable[ScheduleRow]) -> None:
    """Write the inputs preamble followed by one line per schedule row."""
    writer = csv.writer(stream)
    for name, value in inputs_to_dict(inputs).items():
        writer.writerow([name, "" if value is None else value])
    writer.writerow([])
    writer.writerow(CSV_HEADER)
    for row in schedule:
        writer.writerow(
            [
                row.rank,
                row.due_date.isoformat(),
                f"{row.payment:.2f}",
                f"{row.principal:.2f}",
                f"{row.interest:.2f}",
                f"{row.additional_costs:.2f}",
                f"{row.remaining_balance:.2f}",
            ]
        )


def export_to_csv(path: Path, inputs: LoanInputs, schedule: List[ScheduleRow]) -> None:
    """Export the schedule to a CSV file."""
    with path.open("w", newline="", encoding="utf-8") as f:
        write_csv(f, inputs, schedule)


def export_to_json(
    path: Path,
    inputs: LoanInputs,
    overrides: List[OverrideRow],
    schedule: List[ScheduleRow],
    summary: Dict[str, Any],
) -> None:
    """Export inputs, summary and schedule to a JSON file."""
    data = state_to_dict(inputs, overrides, schedule)
    data["summary"] = summary
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
