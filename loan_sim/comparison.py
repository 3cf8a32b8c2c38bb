"""Side-by-side comparison of a baseline schedule and strategy results.

The comparison is a projection of totals that have already been computed;
the only arithmetic performed here is the addition behind "total paid".
"""

from __future__ import annotations

from typing import Iterable, Union

from .data_models import ComparisonRow, ComparisonTable, LoanSummary, Schedule, StrategyResult

STRATEGY_LABELS = {
    "baseline": "Baseline",
    "single": "Single extra payment",
    "recurring": "Recurring extra payment",
    "windowed": "Extra payments over a window",
    "installment_reduction": "Installment reduction",
    "scheduled_multiple": "Scheduled extra payments",
}


def label_for(kind: str) -> str:
    """Return the comparison label for a strategy kind."""
    return STRATEGY_LABELS.get(kind, kind.replace("_", " ").capitalize())


def _row_for_schedule(label: str, schedule: Schedule, new_payment=None) -> ComparisonRow:
    totals = schedule.totals
    return ComparisonRow(
        label=label,
        term_periods=schedule.final_period,
        payment=schedule.first_payment,
        total_interest=totals.interest,
        total_paid=totals.total_paid,
        new_payment=new_payment,
    )


def compare_strategies(
    baseline: Union[Schedule, LoanSummary],
    results: Iterable[StrategyResult],
) -> ComparisonTable:
    """Build a comparison table: the baseline first, then one row per result.

    Parameters
    ----------
    baseline: Schedule or LoanSummary
        The schedule without extra payments.
    results: Iterable[StrategyResult]
        Strategy results, in the order they should appear.
    """
    if isinstance(baseline, LoanSummary):
        baseline = baseline.schedule
    table = ComparisonTable()
    table.rows.append(_row_for_schedule(label_for("baseline"), baseline))
    for result in results:
        table.rows.append(
            _row_for_schedule(label_for(result.kind), result.schedule, result.new_payment)
        )
    return table
