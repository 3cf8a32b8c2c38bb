import os

from flask import Flask, jsonify, render_template, request

from loan_sim import config
from loan_sim.comparison import compare_strategies
from loan_sim.data_models import ComparativeResult, InsuranceItem, LoanTerms, total_insurance
from loan_sim.engine import analyze_loan
from loan_sim.exceptions import InvalidInputError
from loan_sim.rates import FREQUENCY_LABELS
from loan_sim.strategies import normalize_kind, run_strategy
from loan_sim.utils import normalize_number, parse_amount, parse_extra, parse_rate

app = Flask(__name__)
app.config["ASSET_VERSION"] = os.environ.get("ASSET_VERSION", "1")


@app.template_filter("money")
def money_filter(value) -> str:
    return f"{value:,.2f}" if value is not None else "-"


STRATEGY_OPTIONS = {
    "none": "No extra payments",
    "single": "Single extra payment",
    "recurring": "Recurring extra payment",
    "windowed": "Extra payments over a window",
    "installment_reduction": "Lower the installment",
    "scheduled_multiple": "Several scheduled extra payments",
    "comparative": "Compare term vs installment reduction",
}


def parse_form_list(value: str) -> list[str]:
    """Parse a newline or semicolon separated list of entries from a form field.

    Commas are left alone because they are valid thousands separators.
    """
    if not value:
        return []
    parts = [p.strip() for p in value.replace("\n", ";").split(";")]
    return [p for p in parts if p]


def _parse_int(value: str, label: str) -> int:
    try:
        return int(normalize_number(value or ""))
    except ValueError as exc:
        raise InvalidInputError(f"{label} must be a whole number") from exc


def _form_to_terms(form) -> LoanTerms:
    try:
        principal = parse_amount(form.get("amount", "").strip())
    except ValueError as exc:
        raise InvalidInputError("Enter a valid loan amount") from exc
    try:
        rate = parse_rate(form.get("rate", "").strip())
    except ValueError as exc:
        raise InvalidInputError("Enter a valid interest rate") from exc
    term = _parse_int(form.get("term", ""), "Number of payments")
    if term > config.MAX_PERIODS:
        raise InvalidInputError(f"Number of payments cannot exceed {config.MAX_PERIODS}")

    items = []
    names = form.getlist("insurance_name")
    values = form.getlist("insurance_value")
    for name, value in zip(names, values):
        if not value.strip():
            continue
        try:
            amount = parse_amount(value)
        except ValueError as exc:
            raise InvalidInputError(f"Invalid insurance amount: {value}") from exc
        items.append(InsuranceItem(name=name.strip() or "Insurance", amount=amount))

    return LoanTerms(
        principal=principal,
        nominal_rate=rate,
        periods=term,
        frequency=form.get("frequency", config.DEFAULT_FREQUENCY),
        insurance=total_insurance(items),
    )


def _form_to_strategy(form):
    kind = form.get("strategy", "none")
    if kind == "none" or not kind:
        return None, None
    kind = normalize_kind(kind)

    def amount():
        try:
            return parse_amount(form.get("extra_amount", ""))
        except ValueError as exc:
            raise InvalidInputError("Enter a valid extra payment amount") from exc

    if kind in ("single", "installment_reduction", "comparative"):
        return kind, {"at_period": _parse_int(form.get("at_period"), "Period"), "amount": amount()}
    if kind == "recurring":
        return kind, {"from_period": _parse_int(form.get("from_period"), "From period"), "amount": amount()}
    if kind == "windowed":
        start = _parse_int(form.get("from_period"), "From period")
        end = _parse_int(form.get("to_period"), "To period")
        if end <= start:
            raise InvalidInputError("The last period must be after the first period")
        return kind, {"from_period": start, "to_period": end, "amount": amount()}
    entries = []
    for item in parse_form_list(form.get("extras", "")):
        try:
            period, value = parse_extra(item)
        except ValueError as exc:
            raise InvalidInputError(str(exc)) from exc
        entries.append({"period": period, "amount": value})
    if not entries:
        raise InvalidInputError("Add at least one extra payment as PERIOD:AMOUNT")
    return kind, {"extras": entries}


def _schedule_for_view(schedule, show_full_schedule: bool):
    rows = schedule.rows
    if show_full_schedule or len(rows) <= config.SCHEDULE_PREVIEW_ROWS:
        return rows, 0
    return rows[: config.SCHEDULE_PREVIEW_ROWS], len(rows) - config.SCHEDULE_PREVIEW_ROWS


def _run_analysis(form):
    """Compute the baseline and the selected strategy for a submitted form.

    Returns the template context and the banners to display.
    """
    terms = _form_to_terms(form)
    summary = analyze_loan(terms)
    messages = []
    context = {"summary": summary, "result": None, "comparison": None, "schedule": summary.schedule}

    kind, params = _form_to_strategy(form)
    if kind is not None:
        result = run_strategy(kind, params, terms)
        if isinstance(result, ComparativeResult):
            context["comparative"] = result
            context["comparison"] = result.table
            context["schedule"] = result.term_reduction.schedule
            result = result.term_reduction
        else:
            context["comparison"] = compare_strategies(summary, [result])
            context["schedule"] = result.schedule
        context["result"] = result
        if result.interest_saved <= 0:
            messages.append(("warning", "This strategy does not reduce the interest paid."))
        elif result.periods_saved > 0:
            messages.append(
                ("success", f"The loan is paid off {result.periods_saved} periods earlier.")
            )
        else:
            messages.append(("success", "Extra payments reduce the interest paid."))
    else:
        messages.append(("success", "Amortization schedule computed."))
    return context, messages


@app.route("/", methods=["GET", "POST"])
def index():
    context = {}
    messages = []
    show_full_schedule = False
    form = request.form if request.method == "POST" else {}

    if request.method == "POST":
        show_full_schedule = request.form.get("show_full_schedule") == "1"
        try:
            context, messages = _run_analysis(request.form)
        except InvalidInputError as exc:
            app.logger.info("Rejected loan input: %s", exc)
            messages.append(("error", exc.message))

    insurance_rows = []
    if request.method == "POST":
        insurance_rows = list(zip(request.form.getlist("insurance_name"), request.form.getlist("insurance_value")))

    rows, truncated = ([], 0)
    if context.get("schedule") is not None:
        rows, truncated = _schedule_for_view(context["schedule"], show_full_schedule)
        if truncated:
            messages.append(("info", f"Showing first {len(rows)} rows; {truncated} more rows hidden."))

    return render_template(
        "index.html",
        form=form,
        insurance_rows=insurance_rows,
        summary=context.get("summary"),
        result=context.get("result"),
        comparative=context.get("comparative"),
        comparison=context.get("comparison"),
        rows=rows,
        truncated=truncated,
        show_full_schedule=show_full_schedule,
        messages=messages,
        frequency_options=FREQUENCY_LABELS,
        strategy_options=STRATEGY_OPTIONS,
        asset_version=app.config["ASSET_VERSION"],
    )


def _json_to_terms(payload: dict) -> LoanTerms:
    loan = payload.get("loan") or {}
    if not isinstance(loan, dict):
        raise InvalidInputError("loan must be a JSON object")
    insurance = loan.get("insurance", [])
    if not isinstance(insurance, list) or not all(isinstance(item, dict) for item in insurance):
        raise InvalidInputError("insurance must be a list of {name, amount} objects")
    items = [
        InsuranceItem(name=item.get("name", "Insurance"), amount=item.get("amount", 0))
        for item in insurance
    ]
    periods = loan.get("periods")
    if not isinstance(periods, int) or isinstance(periods, bool):
        raise InvalidInputError("periods must be an integer")
    if periods > config.MAX_PERIODS:
        raise InvalidInputError(f"periods cannot exceed {config.MAX_PERIODS}")
    frequency = loan.get("frequency", config.DEFAULT_FREQUENCY)
    if not isinstance(frequency, str):
        raise InvalidInputError("frequency must be a string")
    return LoanTerms(
        principal=loan.get("principal", 0),
        nominal_rate=loan.get("rate", 0),
        periods=periods,
        frequency=frequency,
        insurance=total_insurance(items),
    )


@app.post("/api/simulate")
def simulate():
    """JSON endpoint: baseline plus any number of strategies.

    Body: ``{"loan": {...}, "strategies": [{"kind": "single", "at_period": 24, "amount": 20000000}]}``
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Request body must be a JSON object"}), 400
    try:
        terms = _json_to_terms(payload)
        summary = analyze_loan(terms)
        results = []
        comparatives = []
        strategies = payload.get("strategies", [])
        if not isinstance(strategies, list):
            raise InvalidInputError("strategies must be a list")
        for entry in strategies:
            if not isinstance(entry, dict):
                raise InvalidInputError("Each strategy must be a JSON object")
            params = {k: v for k, v in entry.items() if k != "kind"}
            result = run_strategy(entry.get("kind", ""), params, terms)
            if isinstance(result, ComparativeResult):
                comparatives.append(result.as_dict())
                results.extend([result.term_reduction, result.installment_reduction])
            else:
                results.append(result)
    except InvalidInputError as exc:
        return jsonify({"error": exc.message, "details": exc.details}), 400

    response = {
        "summary": summary.as_dict(),
        "schedule": summary.schedule.to_records(),
        "results": [
            dict(result.as_dict(), schedule=result.schedule.to_records()) for result in results
        ],
        "comparison": compare_strategies(summary, results).to_records(),
    }
    if comparatives:
        response["comparatives"] = comparatives
    return jsonify(response)


if __name__ == "__main__":
    print("Starting loan simulator web app...")
    app.run(host="0.0.0.0", port=config.WEB_PORT, debug=True)
