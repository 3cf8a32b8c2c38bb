import pytest

from loan_sim_web.app import app, parse_form_list

LOAN_FORM = {"amount": "150.000.000", "rate": "10", "term": "180", "frequency": "monthly"}


@pytest.fixture
def client():
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


def test_index_renders_the_form(client) -> None:
    response = client.get("/")

    assert response.status_code == 200
    assert b"amortization-form" in response.data


def test_baseline_form_submission(client) -> None:
    form = dict(LOAN_FORM, insurance_name=["life"], insurance_value=["20.000"])
    response = client.post("/", data=form)

    body = response.get_data(as_text=True)
    assert response.status_code == 200
    assert "Installment summary" in body
    assert "banner-success" in body
    assert "banner-info" in body
    assert "20,000.00" in body
    assert "0.7974%" in body


def test_full_schedule_is_not_truncated(client) -> None:
    response = client.post("/", data=dict(LOAN_FORM, show_full_schedule="1"))

    body = response.get_data(as_text=True)
    assert "more rows" not in body
    assert "banner-info" not in body


def test_single_strategy_form(client) -> None:
    form = dict(LOAN_FORM, strategy="single", at_period="24", extra_amount="20.000.000")
    body = client.post("/", data=form).get_data(as_text=True)

    assert "Strategy result" in body
    assert "periods earlier" in body
    assert "Single extra payment" in body


def test_comparative_form(client) -> None:
    form = dict(LOAN_FORM, strategy="comparative", at_period="24", extra_amount="20.000.000")
    body = client.post("/", data=form).get_data(as_text=True)

    assert "Installment reduction" in body
    assert "New payment" in body


def test_invalid_input_shows_an_error_banner(client) -> None:
    body = client.post("/", data=dict(LOAN_FORM, rate="0")).get_data(as_text=True)

    assert "banner-error" in body
    assert "Interest rate must be positive" in body
    assert "Installment summary" not in body


def test_window_must_end_after_it_starts(client) -> None:
    form = dict(LOAN_FORM, strategy="windowed", from_period="10", to_period="5", extra_amount="1000")
    body = client.post("/", data=form).get_data(as_text=True)

    assert "banner-error" in body
    assert "last period must be after the first period" in body


def test_api_simulate(client) -> None:
    payload = {
        "loan": {"principal": 1_000_000, "rate": 12, "periods": 12, "insurance": [{"name": "life", "amount": 1000}]},
        "strategies": [
            {"kind": "recurring", "from_period": 1, "amount": 100_000},
            {"kind": "comparative", "at_period": 6, "amount": 200_000},
        ],
    }
    response = client.post("/api/simulate", json=payload)

    assert response.status_code == 200
    data = response.get_json()
    assert data["summary"]["insurance"] == 1000
    assert len(data["schedule"]) == 13
    assert [row["label"] for row in data["comparison"]] == [
        "Baseline",
        "Recurring extra payment",
        "Single extra payment",
        "Installment reduction",
    ]
    assert data["results"][0]["final_period"] < 12
    assert len(data["comparatives"]) == 1


def test_api_rejects_duplicate_periods(client) -> None:
    payload = {
        "loan": {"principal": 1_000_000, "rate": 12, "periods": 12},
        "strategies": [{"kind": "scheduledMultiple", "extras": [{"period": 5, "amount": 1}, {"period": 5, "amount": 2}]}],
    }
    response = client.post("/api/simulate", json=payload)

    assert response.status_code == 400
    assert response.get_json()["details"] == {"duplicate_periods": [5]}


@pytest.mark.parametrize(
    "loan, strategies",
    [
        ({"principal": 1_000_000, "rate": 12, "periods": 12, "insurance": [5000]}, []),
        ({"principal": 1_000_000, "rate": 12, "periods": 12, "insurance": {"life": 5000}}, []),
        ({"principal": 1_000_000, "rate": 12, "periods": 12, "frequency": 4}, []),
        ([1_000_000, 12, 12], []),
        (
            {"principal": 1_000_000, "rate": 12, "periods": 12},
            [{"kind": "scheduled_multiple", "extras": [[2, 1000, 3]]}],
        ),
        (
            {"principal": 1_000_000, "rate": 12, "periods": 12},
            [{"kind": "scheduled_multiple", "extras": 5}],
        ),
        ({"principal": 1_000_000, "rate": 12, "periods": 12}, {"kind": "single"}),
        ({"principal": 1_000_000, "rate": 12, "periods": 12}, ["single"]),
    ],
)
def test_api_reports_malformed_input_as_bad_request(client, loan, strategies) -> None:
    response = client.post("/api/simulate", json={"loan": loan, "strategies": strategies})

    assert response.status_code == 400
    assert "error" in response.get_json()


def test_api_accepts_scheduled_pairs(client) -> None:
    payload = {
        "loan": {"principal": 1_000_000, "rate": 12, "periods": 12},
        "strategies": [{"kind": "scheduled_multiple", "extras": [[2, 1000], [5, 2000]]}],
    }
    response = client.post("/api/simulate", json=payload)

    assert response.status_code == 200
    assert response.get_json()["results"][0]["totals"]["extra"] == 3000


def test_api_requires_a_json_object(client) -> None:
    response = client.post("/api/simulate", data="not json", content_type="text/plain")

    assert response.status_code == 400


def test_parse_form_list_keeps_thousands_separators() -> None:
    assert parse_form_list("5:1,000,000\n10:2.000.000; ;") == ["5:1,000,000", "10:2.000.000"]
