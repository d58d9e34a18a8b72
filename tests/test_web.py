import pytest

from amort_calc_web.app import create_app

LOAN_FORM = {
    "principal": "100000",
    "annual_rate": "6",
    "term": "360",
    "insurance_rate": "",
    "start_date": "2025-01-01",
}


@pytest.fixture
def client(tmp_path):
    app = create_app(f"sqlite:///{tmp_path / 'web_state.sqlite3'}")
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client
    app.extensions["state_store"].dispose()


def test_index_renders_empty_form(client):
    response = client.get("/")
    assert response.status_code == 200
    assert b"Amortization Calculator" in response.data
    assert b"override-2-remaining_balance" in response.data


def test_calculate(client):
    response = client.post("/", data={**LOAN_FORM, "action": "calculate"})
    assert response.status_code == 200
    assert b"599.55" in response.data
    assert b"99900.45" in response.data


def test_calculate_with_known_row(client):
    form = {
        **LOAN_FORM,
        "override-0-rank": "8",
        "override-0-due_date": "2025-08-01",
        "override-0-payment": "599.55",
        "override-0-principal": "100",
        "override-0-interest": "499.55",
        "override-0-additional_costs": "0",
        "override-0-remaining_balance": "0",
        "action": "calculate",
    }
    response = client.post("/", data=form)
    assert response.status_code == 200
    assert b'class="known"' in response.data
    assert b"<td>9</td>" not in response.data


def test_invalid_inputs_show_error(client):
    response = client.post("/", data={**LOAN_FORM, "principal": "-5", "action": "calculate"})
    assert response.status_code == 200
    assert b"Principal must be a positive number" in response.data


def test_download_csv(client):
    response = client.post("/", data={**LOAN_FORM, "action": "download"})
    assert response.status_code == 200
    assert response.mimetype == "text/csv"
    assert "attachment" in response.headers["Content-Disposition"]
    assert "Rank,Due_Date,Payment" in response.get_data(as_text=True)


def test_save_then_load(client):
    response = client.post("/", data={**LOAN_FORM, "term": "120", "action": "save"})
    assert b"Calculation saved." in response.data

    response = client.post("/", data={"action": "load"})
    assert b"Saved calculation restored." in response.data
    assert b'value="120"' in response.data


def test_load_without_saved_state(client):
    response = client.post("/", data={"action": "load"})
    assert b"No saved calculation found." in response.data


def test_clear_saved_state(client):
    client.post("/", data={**LOAN_FORM, "action": "save"})
    response = client.post("/state/clear")
    assert b"Saved calculation removed." in response.data
    response = client.post("/", data={"action": "load"})
    assert b"No saved calculation found." in response.data


def test_load_malformed_saved_state_shows_error(client):
    with client.session_transaction() as sess:
        sess["user_token"] = "broken"
    store = client.application.extensions["state_store"]
    store.save("amortization-state:broken", {"inputs": {"principal": "1000", "start_date": "not-a-date"}})

    response = client.post("/", data={"action": "load"})
    assert response.status_code == 200
    assert b"Invalid date string: not-a-date" in response.data
