import io
import logging
import os
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from flask import Flask, Response, render_template, request, session

from amort_calc.data_models import LoanInputs, OverrideRow, ScheduleResult
from amort_calc.engine import compute_schedule, summarize_schedule
from amort_calc.serialization import state_from_dict, state_to_dict, write_csv
from amort_calc.utils import parse_date
from amort_calc_web.state_store import create_store_from_env

logger = logging.getLogger(__name__)

MAX_OVERRIDE_ROWS = 3
OVERRIDE_FIELDS = (
    "rank",
    "due_date",
    "payment",
    "principal",
    "interest",
    "additional_costs",
    "remaining_balance",
)
INPUT_FIELDS = ("principal", "annual_rate", "term", "insurance_rate", "start_date")


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _storage_key(app: Flask) -> str:
    return f"{app.config['STATE_KEY']}:{_ensure_user_token()}"


def _blank_form() -> Dict[str, Any]:
    values: Dict[str, Any] = {name: "" for name in INPUT_FIELDS}
    values["overrides"] = [{name: "" for name in OVERRIDE_FIELDS} for _ in range(MAX_OVERRIDE_ROWS)]
    return values


def _form_values(form) -> Dict[str, Any]:
    """Collect the raw form fields so they can be echoed back to the page."""
    values = _blank_form()
    for name in INPUT_FIELDS:
        values[name] = form.get(name, "").strip()
    for index, row in enumerate(values["overrides"]):
        for name in OVERRIDE_FIELDS:
            row[name] = form.get(f"override-{index}-{name}", "").strip()
    return values


def _values_from_state(state: Dict[str, Any]) -> Dict[str, Any]:
    values = _blank_form()
    for name in INPUT_FIELDS:
        value = (state.get("inputs") or {}).get(name)
        values[name] = "" if value is None else str(value)
    for index, item in enumerate((state.get("overrides") or [])[:MAX_OVERRIDE_ROWS]):
        for name in OVERRIDE_FIELDS:
            value = item.get(name)
            values["overrides"][index][name] = "" if value is None else str(value)
    return values


def _values_to_request(values: Dict[str, Any]) -> Tuple[LoanInputs, List[OverrideRow]]:
    """Build engine inputs from form values.

    Numbers stay as strings for the engine to validate. Override rows left
    completely blank are skipped; partly filled ones are passed on and the
    engine discards them.
    """
    start_date = parse_date(values["start_date"]) if values["start_date"] else None
    inputs = LoanInputs(
        principal=values["principal"],
        annual_rate=values["annual_rate"],
        term=values["term"],
        insurance_rate=values["insurance_rate"] or None,
        start_date=start_date,
    )
    overrides = [
        OverrideRow(**{name: row[name] or None for name in OVERRIDE_FIELDS})
        for row in values["overrides"]
        if any(row.values())
    ]
    return inputs, overrides


def _csv_response(inputs: LoanInputs, result: ScheduleResult) -> Response:
    buffer = io.StringIO()
    write_csv(buffer, inputs, result.rows)
    return Response(
        buffer.getvalue(),
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=amortization_schedule.csv"},
    )


def create_app(database_url: Optional[str] = None) -> Flask:
    app = Flask(__name__)
    app.config["ASSET_VERSION"] = os.environ.get("ASSET_VERSION", "1")
    app.config["STATE_KEY"] = os.environ.get("AMORT_STATE_KEY", "amortization-state")
    app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    state_store = create_store_from_env(database_url or os.environ.get("AMORT_STATE_DATABASE_URL"))

    @app.route("/", methods=["GET", "POST"])
    def index():
        values = _blank_form()
        result: Optional[ScheduleResult] = None
        summary = None
        error = None
        message = None
        action = "calculate"

        if request.method == "POST":
            action = request.form.get("action", "calculate")
            values = _form_values(request.form)
            loaded = None
            if action == "load":
                state = state_store.load(_storage_key(app))
                if state is None:
                    error = "No saved calculation found."
                else:
                    values = _values_from_state(state)
                    loaded = state
                    message = "Saved calculation restored."
                    logger.info("Restored state for %s", _storage_key(app))
            if error is None:
                try:
                    inputs, overrides = state_from_dict(loaded) if loaded else _values_to_request(values)
                except ValueError as exc:
                    error = str(exc)
                else:
                    result = compute_schedule(inputs, overrides)
                    if not result.ok:
                        error = result.error.message
                    elif action == "download":
                        return _csv_response(inputs, result)
                    else:
                        summary = summarize_schedule(result.rows)
                        if action == "save":
                            state_store.save(
                                _storage_key(app), state_to_dict(inputs, overrides, result.rows)
                            )
                            message = "Calculation saved."

        return render_template(
            "index.html",
            values=values,
            schedule=result.rows if result is not None and result.ok else [],
            summary=summary,
            error=error,
            message=message,
            last_action=action,
            asset_version=app.config["ASSET_VERSION"],
        )

    @app.post("/state/clear")
    def clear_state():
        state_store.delete(_storage_key(app))
        return render_template(
            "index.html",
            values=_blank_form(),
            schedule=[],
            summary=None,
            error=None,
            message="Saved calculation removed.",
            last_action="clear",
            asset_version=app.config["ASSET_VERSION"],
        )

    app.extensions["state_store"] = state_store
    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print("Starting Amortization Calculator web app...")
    create_app().run(host="0.0.0.0", port=8710, debug=True)
