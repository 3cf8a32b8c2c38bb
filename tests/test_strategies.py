from decimal import Decimal

import pytest

from loan_sim.data_models import (
    ComparativeResult,
    InstallmentReduction,
    LoanTerms,
    Recurring,
    SingleShot,
    StrategyResult,
    Windowed,
)
from loan_sim.engine import analyze_loan
from loan_sim.exceptions import DuplicatePeriodError, InvalidInputError
from loan_sim.strategies import (
    normalize_kind,
    reduce_installment,
    run_strategy,
    scheduled_from_entries,
    simulate_extra_payments,
)


def test_single_lump_sum_shortens_the_mortgage(mortgage_terms: LoanTerms) -> None:
    result = run_strategy("single", {"at_period": 24, "amount": 20_000_000}, mortgage_terms)

    assert isinstance(result, StrategyResult)
    assert result.schedule.is_paid_off
    assert result.final_period < 180
    assert result.totals.interest < result.baseline_totals.interest
    assert result.interest_saved > 0
    assert result.periods_saved == 180 - result.final_period
    assert result.schedule.rows[24].extra == Decimal("20000000")
    assert all(row.extra == 0 for row in result.schedule.rows if row.period != 24)


def test_duplicate_scheduled_periods_are_rejected(mortgage_terms: LoanTerms) -> None:
    params = {"extras": [{"period": 5, "amount": 1_000_000}, {"period": 5, "amount": 2_000_000}]}

    with pytest.raises(DuplicatePeriodError) as excinfo:
        run_strategy("scheduledMultiple", params, mortgage_terms)

    assert isinstance(excinfo.value, InvalidInputError)
    assert excinfo.value.periods == [5]


def test_recurring_extra_pays_a_small_loan_off_early(small_terms: LoanTerms) -> None:
    result = run_strategy("recurring", {"from_period": 1, "amount": 100_000}, small_terms)

    assert result.final_period < 12
    assert result.schedule.is_paid_off
    assert all(row.extra > 0 for row in result.schedule.payment_rows)


@pytest.mark.parametrize("amounts", [[1_000_000, 5_000_000, 20_000_000, 80_000_000]])
def test_larger_single_amounts_never_cost_more(mortgage_terms: LoanTerms, amounts) -> None:
    baseline = analyze_loan(mortgage_terms)
    results = [
        simulate_extra_payments(mortgage_terms, SingleShot(at_period=12, amount=Decimal(a)), baseline)
        for a in amounts
    ]

    for smaller, larger in zip(results, results[1:]):
        assert larger.totals.interest <= smaller.totals.interest
        assert larger.final_period <= smaller.final_period


def test_larger_recurring_amounts_never_cost_more(small_terms: LoanTerms) -> None:
    results = [
        run_strategy("recurring", {"from_period": 3, "amount": amount}, small_terms)
        for amount in (10_000, 50_000, 100_000, 400_000)
    ]

    for smaller, larger in zip(results, results[1:]):
        assert larger.totals.interest <= smaller.totals.interest
        assert larger.final_period <= smaller.final_period


def test_windowed_extra_applies_only_inside_the_window(mortgage_terms: LoanTerms) -> None:
    result = run_strategy(
        "windowed", {"from_period": 10, "to_period": 15, "amount": 500_000}, mortgage_terms
    )

    with_extra = [row.period for row in result.schedule.rows if row.extra > 0]
    assert with_extra == list(range(10, 16))
    assert result.totals.extra == Decimal("3000000")


def test_one_period_window_matches_single_shot(mortgage_terms: LoanTerms) -> None:
    windowed = simulate_extra_payments(mortgage_terms, Windowed(from_period=24, to_period=24, amount=Decimal("20000000")))
    single = simulate_extra_payments(mortgage_terms, SingleShot(at_period=24, amount=Decimal("20000000")))

    assert windowed.schedule.rows == single.schedule.rows


def test_window_ending_before_it_starts_is_rejected(mortgage_terms: LoanTerms) -> None:
    with pytest.raises(InvalidInputError):
        run_strategy("windowed", {"from_period": 10, "to_period": 5, "amount": 1000}, mortgage_terms)


def test_installment_reduction_lowers_the_payment(mortgage_terms: LoanTerms) -> None:
    result = run_strategy("installmentReduction", {"at_period": 24, "amount": 20_000_000}, mortgage_terms)

    assert result.kind == "installment_reduction"
    assert result.new_payment < result.payment
    assert result.periodic_saving == result.payment - result.new_payment
    assert result.interest_saved > 0
    assert result.schedule.is_paid_off
    assert result.final_period == 180

    rows = result.schedule.rows
    assert all(row.base_payment == result.payment for row in rows[1:24])
    assert all(row.base_payment == result.new_payment for row in rows[24:-1])
    assert abs(rows[-1].base_payment - result.new_payment) < Decimal("0.01")
    assert rows[24].extra == Decimal("20000000")


@pytest.mark.parametrize("amount", [20_000_000, 140_000_000])
def test_new_installment_amortizes_the_reduced_balance(mortgage_terms: LoanTerms, amount) -> None:
    result = run_strategy("installment_reduction", {"at_period": 24, "amount": amount}, mortgage_terms)
    rows = result.schedule.rows

    assert result.final_period == 180
    assert all(row.capital >= 0 for row in rows)
    assert all(row.ending_balance <= row.initial_balance for row in rows)
    # The lump sum comes off before the period's interest is charged.
    assert rows[24].interest == (rows[24].initial_balance - rows[24].extra) * result.period_rate
    assert abs(rows[-1].base_payment - result.new_payment) < Decimal("0.01")


def test_installment_reduction_keeps_the_history_before_the_lump_sum(mortgage_terms: LoanTerms) -> None:
    baseline = analyze_loan(mortgage_terms)
    result = reduce_installment(
        mortgage_terms, InstallmentReduction(at_period=36, amount=Decimal("10000000")), baseline
    )

    assert result.schedule.rows[:36] == baseline.schedule.rows[:36]
    assert result.schedule.rows[36].initial_balance == baseline.schedule.rows[35].ending_balance


def test_installment_reduction_that_clears_the_loan(small_terms: LoanTerms) -> None:
    result = run_strategy("installment_reduction", {"at_period": 6, "amount": 5_000_000}, small_terms)

    assert result.new_payment == 0
    assert result.periodic_saving == result.payment
    assert result.final_period == 6
    assert result.schedule.is_paid_off


def test_scheduled_extras_are_applied_at_their_periods(mortgage_terms: LoanTerms) -> None:
    result = run_strategy(
        "scheduled_multiple",
        {"extras": [{"period": 5, "amount": 1_000_000}, (10, 2_000_000), {"period": 30, "amount": 0}]},
        mortgage_terms,
    )

    rows = result.schedule.rows
    assert rows[5].extra == Decimal("1000000")
    assert rows[10].extra == Decimal("2000000")
    assert rows[30].extra == 0
    assert result.totals.extra == Decimal("3000000")
    assert result.interest_saved > 0


def test_scheduled_extra_beyond_the_balance_only_pays_what_is_left(small_terms: LoanTerms) -> None:
    result = run_strategy(
        "scheduled_multiple",
        {"extras": [{"period": 2, "amount": 100_000}, {"period": 6, "amount": 10_000_000}, {"period": 9, "amount": 5}]},
        small_terms,
    )

    last = result.schedule.rows[-1]
    assert last.period == 6
    assert last.extra == last.initial_balance
    assert last.ending_balance == 0


def test_scheduled_period_outside_the_loan_is_rejected(small_terms: LoanTerms) -> None:
    with pytest.raises(InvalidInputError):
        run_strategy("scheduled_multiple", {"extras": [(13, 1000)]}, small_terms)


@pytest.mark.parametrize("entries", [[(2, 1000, 3)], [5], ["2:1000"], 7, "2:1000"])
def test_malformed_scheduled_entries_are_rejected(entries) -> None:
    with pytest.raises(InvalidInputError):
        scheduled_from_entries(entries)


def test_scheduled_from_mapping() -> None:
    policy = scheduled_from_entries({3: "1000", 7: 2500})

    assert policy.extras == {3: Decimal("1000"), 7: Decimal("2500")}


@pytest.mark.parametrize(
    "kind, params",
    [
        ("single", {"at_period": 0, "amount": 1000}),
        ("single", {"at_period": 181, "amount": 1000}),
        ("single", {"at_period": 12, "amount": 0}),
        ("single", {"at_period": 12, "amount": -10}),
        ("single", {"at_period": 12.5, "amount": 1000}),
        ("single", {"amount": 1000}),
        ("recurring", {"from_period": 0, "amount": 1000}),
        ("scheduled_multiple", {"extras": []}),
        ("bogus", {"at_period": 12, "amount": 1000}),
    ],
)
def test_invalid_strategy_parameters(mortgage_terms: LoanTerms, kind, params) -> None:
    with pytest.raises(InvalidInputError):
        run_strategy(kind, params, mortgage_terms)


def test_policy_values_are_accepted_directly(small_terms: LoanTerms) -> None:
    result = run_strategy("recurring", Recurring(from_period=2, amount=Decimal("20000")), small_terms)

    assert result.policy == Recurring(from_period=2, amount=Decimal("20000"))
    with pytest.raises(InvalidInputError):
        run_strategy("single", Recurring(from_period=2, amount=Decimal("20000")), small_terms)


def test_comparative_runs_both_lump_sum_strategies(mortgage_terms: LoanTerms) -> None:
    result = run_strategy("comparative", {"at_period": 24, "amount": 20_000_000}, mortgage_terms)

    assert isinstance(result, ComparativeResult)
    assert [row.label for row in result.table] == [
        "Baseline",
        "Single extra payment",
        "Installment reduction",
    ]
    baseline_row, term_row, installment_row = result.table.rows
    assert term_row.term_periods < baseline_row.term_periods
    assert installment_row.term_periods == baseline_row.term_periods
    assert installment_row.new_payment == result.installment_reduction.new_payment
    assert term_row.total_interest < baseline_row.total_interest
    assert installment_row.total_interest < baseline_row.total_interest
    # Keeping the installment retires the loan faster, so it pays less interest.
    assert term_row.total_interest < installment_row.total_interest


def test_kind_aliases() -> None:
    assert normalize_kind("installmentReduction") == "installment_reduction"
    assert normalize_kind("scheduledMultiple") == "scheduled_multiple"
    assert normalize_kind("scheduled") == "scheduled_multiple"
    assert normalize_kind("installment") == "installment_reduction"
    assert normalize_kind("Single") == "single"
