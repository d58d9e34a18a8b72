import csv
import io
import json
from datetime import date
from decimal import Decimal

from amort_calc.data_models import LoanInputs, OverrideRow
from amort_calc.engine import compute_schedule, summarize_schedule
from amort_calc.serialization import (
    CSV_HEADER,
    export_to_csv,
    export_to_json,
    state_from_dict,
    state_to_dict,
    write_csv,
)

INPUTS = LoanInputs(
    principal=Decimal("10000"),
    annual_rate="12",
    term=12,
    insurance_rate=None,
    start_date=date(2025, 1, 1),
)
OVERRIDES = [
    OverrideRow(
        rank=3,
        due_date=date(2025, 3, 1),
        payment="900",
        principal="800",
        interest="90",
        additional_costs="10",
        remaining_balance="8300",
    )
]


def test_state_blob_is_json_and_restores_inputs():
    rows = compute_schedule(INPUTS, OVERRIDES).rows
    state = json.loads(json.dumps(state_to_dict(INPUTS, OVERRIDES, rows)))

    assert state["inputs"]["principal"] == "10000"
    assert state["inputs"]["start_date"] == "2025-01-01"
    assert state["overrides"][0]["due_date"] == "2025-03-01"
    assert len(state["schedule"]) == 12
    assert state["schedule"][2]["overridden"] is True

    inputs, overrides = state_from_dict(state)
    assert inputs.start_date == date(2025, 1, 1)
    assert compute_schedule(inputs, overrides).rows == rows


def test_state_from_empty_blob():
    inputs, overrides = state_from_dict({})
    assert overrides == []
    assert not compute_schedule(inputs, overrides).ok


def test_write_csv_has_inputs_preamble_and_rows():
    rows = compute_schedule(INPUTS).rows
    buffer = io.StringIO()
    write_csv(buffer, INPUTS, rows)
    lines = list(csv.reader(io.StringIO(buffer.getvalue())))

    assert lines[0] == ["principal", "10000"]
    assert lines[3] == ["insurance_rate", ""]
    header_index = lines.index(CSV_HEADER)
    body = lines[header_index + 1:]
    assert len(body) == 12
    assert body[0] == ["1", "2025-01-01", "888.49", "788.49", "100.00", "0.00", "9211.51"]
    assert body[-1][-1] == "0.00"


def test_export_files(tmp_path):
    rows = compute_schedule(INPUTS, OVERRIDES).rows
    csv_path = tmp_path / "schedule.csv"
    json_path = tmp_path / "schedule.json"

    export_to_csv(csv_path, INPUTS, rows)
    export_to_json(json_path, INPUTS, OVERRIDES, rows, summarize_schedule(rows))

    assert "Rank,Due_Date,Payment" in csv_path.read_text(encoding="utf-8")
    data = json.loads(json_path.read_text(encoding="utf-8"))
    assert data["summary"]["payments"] == 12
    assert data["schedule"][0]["payment"] == 888.49
