"""Output helpers for the loan simulator.

This module provides simple functions to render summaries, totals,
amortization schedules, strategy results and comparison tables in a tabular
text format using built-in printing and string formatting.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from .comparison import label_for
from .data_models import ComparisonTable, LoanSummary, ScheduleRow, StrategyResult, Totals


def money(value) -> str:
    return f"{Decimal(value):,.2f}"


def print_summary(summary: LoanSummary) -> None:
    """Print the installment panel: base payment, insurance and total installment."""
    print("Installment summary")
    print("-" * 72)
    print(f"Principal          : {money(summary.terms.principal)}")
    print(f"Base payment       : {money(summary.payment)}")
    print(f"Total insurance    : {money(summary.insurance)}")
    print(f"Total installment  : {money(summary.total_installment)}")
    print(f"Frequency          : {summary.frequency_label}")
    print(f"Period rate        : {summary.period_rate * 100:.4f}%")
    print(f"Number of payments : {summary.terms.periods}")
    print("-" * 72)


def print_totals(totals: Totals) -> None:
    print("Totals")
    print("-" * 72)
    print(f"Total interest     : {money(totals.interest)}")
    print(f"Total capital      : {money(totals.capital)}")
    if totals.extra:
        print(f"  of which extra   : {money(totals.extra)}")
    print(f"Total insurance    : {money(totals.insurance)}")
    print(f"Total paid         : {money(totals.total_paid)}")
    print("-" * 72)


def print_schedule(rows: Iterable[ScheduleRow]) -> None:
    """Print schedule rows as a tab-separated table, opening row included."""
    headers = [
        "Period",
        "StartBal",
        "Payment",
        "Interest",
        "Capital",
        "Insurance",
        "Extra",
        "Total",
        "EndBal",
    ]
    print("\t".join(headers))
    for row in rows:
        print(
            "\t".join(
                [
                    str(row.period),
                    money(row.initial_balance),
                    money(row.base_payment),
                    money(row.interest),
                    money(row.capital),
                    money(row.insurance),
                    money(row.extra),
                    money(row.total_payment),
                    money(row.ending_balance),
                ]
            )
        )


def print_strategy(result: StrategyResult) -> None:
    """Print what a strategy changes compared to the baseline."""
    print(f"Strategy: {label_for(result.kind)}")
    print("-" * 72)
    print(f"Original payment   : {money(result.payment)}")
    if result.new_payment is not None:
        print(f"New payment        : {money(result.new_payment)}")
        print(f"Saving per period  : {money(result.periodic_saving)}")
    print(f"Original term      : {result.baseline.final_period} periods")
    print(f"New term           : {result.final_period} periods")
    if result.periods_saved:
        print(f"Periods saved      : {result.periods_saved}")
    print(f"Baseline interest  : {money(result.baseline_totals.interest)}")
    print(f"Strategy interest  : {money(result.totals.interest)}")
    print(f"Interest saved     : {money(result.interest_saved)}")
    print("-" * 72)


def print_comparison(table: ComparisonTable) -> None:
    """Print the comparison table, one scenario per line.

    The cheapest scenario by total paid is marked with an asterisk.
    """
    print("Comparison")
    print("=" * 100)
    print(
        f"{'Scenario':32s} {'Periods':>8s} {'Payment':>16s} {'New payment':>16s}"
        f" {'Interest':>18s} {'Total paid':>18s}"
    )
    best = table.cheapest()
    for row in table:
        new_payment = money(row.new_payment) if row.new_payment is not None else "-"
        marker = "*" if row is best else " "
        print(
            f"{row.label[:31]:31s}{marker} {row.term_periods:8d} {money(row.payment):>16s}"
            f" {new_payment:>16s} {money(row.total_interest):>18s} {money(row.total_paid):>18s}"
        )
    print("=" * 100)
