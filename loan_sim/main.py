"""Command-line interface for the loan simulator.

This module uses the ``click`` library to implement a multi-command
interface. Users can print the installment summary and full amortization
schedule of a loan, run one extra-payment strategy, or compare several
strategies against the baseline. Results can be printed to the terminal or
exported to JSON/CSV files.

Everything typed on the command line is cleaned here (thousands separators,
decimal commas, ``k``/``m`` suffixes) before it reaches the engine.
"""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click

from . import config
from .comparison import compare_strategies
from .data_models import ComparativeResult, InsuranceItem, LoanTerms, Schedule, total_insurance
from .engine import analyze_loan
from .exceptions import InvalidInputError
from .formatter import print_comparison, print_schedule, print_strategy, print_summary, print_totals
from .rates import PERIODS_PER_YEAR
from .strategies import STRATEGY_KINDS, normalize_kind, run_strategy
from .utils import parse_amount, parse_extra, parse_insurance, parse_rate

logger = logging.getLogger(__name__)


def parse_insurance_strings(values: Tuple[str, ...]) -> List[InsuranceItem]:
    items: List[InsuranceItem] = []
    for item in values:
        try:
            name, amount = parse_insurance(item)
            items.append(InsuranceItem(name=name, amount=amount))
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="--insurance")
    return items


def build_terms_from_options(
    principal: str,
    rate: str,
    term: int,
    frequency: str,
    insurance: Tuple[str, ...] = (),
) -> LoanTerms:
    try:
        principal_value = parse_amount(principal)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--principal")
    try:
        rate_value = parse_rate(rate)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--rate")
    if term > config.MAX_PERIODS:
        raise click.BadParameter(
            f"Term cannot exceed {config.MAX_PERIODS} periods", param_hint="--term"
        )
    items = parse_insurance_strings(insurance) if insurance else []
    terms = LoanTerms(
        principal=principal_value,
        nominal_rate=rate_value,
        periods=term,
        frequency=frequency,
        insurance=total_insurance(items),
    )
    logger.debug("Parsed loan terms %s", terms)
    return terms


def build_strategy_params(
    kind: str,
    at_period: Optional[int],
    from_period: Optional[int],
    to_period: Optional[int],
    amount: Optional[str],
    extra: Tuple[str, ...],
) -> Dict[str, Any]:
    """Collect the options a strategy needs, reporting the first missing one."""

    def require(value, option):
        if value is None:
            raise click.UsageError(f"Strategy '{kind}' requires {option}")
        return value

    def parse_amount_option(value: str):
        try:
            return parse_amount(value)
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="--amount")

    if kind in ("single", "installment_reduction", "comparative"):
        return {
            "at_period": require(at_period, "--at-period"),
            "amount": parse_amount_option(require(amount, "--amount")),
        }
    if kind == "recurring":
        return {
            "from_period": require(from_period, "--from-period"),
            "amount": parse_amount_option(require(amount, "--amount")),
        }
    if kind == "windowed":
        start = require(from_period, "--from-period")
        end = require(to_period, "--to-period")
        if end <= start:
            raise click.BadParameter(
                "--to-period must be greater than --from-period", param_hint="--to-period"
            )
        return {
            "from_period": start,
            "to_period": end,
            "amount": parse_amount_option(require(amount, "--amount")),
        }
    if not extra:
        raise click.UsageError(f"Strategy '{kind}' requires at least one --extra PERIOD:AMOUNT")
    entries = []
    for item in extra:
        try:
            period, value = parse_extra(item)
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="--extra")
        entries.append({"period": period, "amount": value})
    return {"extras": entries}


def parse_scenario(scenario: str) -> Tuple[str, Dict[str, Any]]:
    """Parse a ``KIND:ARGS`` scenario string used by ``compare``.

    Examples: ``single:24:20m``, ``recurring:1:100k``, ``windowed:5:10:1m``,
    ``installment:24:20m``, ``scheduled:5=1m;10=2m``.
    """
    kind_str, _, args = scenario.partition(":")
    try:
        kind = normalize_kind(kind_str)
    except InvalidInputError as exc:
        raise click.BadParameter(str(exc), param_hint="--scenario")
    parts = args.split(":") if args else []
    try:
        if kind == "scheduled_multiple":
            entries = []
            for chunk in filter(None, args.split(";")):
                period_str, _, amount_str = chunk.partition("=")
                entries.append({"period": int(period_str), "amount": parse_amount(amount_str)})
            if entries:
                return kind, {"extras": entries}
        if kind == "windowed" and len(parts) == 3:
            return kind, build_strategy_params(kind, None, int(parts[0]), int(parts[1]), parts[2], ())
        if kind == "recurring" and len(parts) == 2:
            return kind, build_strategy_params(kind, None, int(parts[0]), None, parts[1], ())
        if len(parts) == 2 and kind in ("single", "installment_reduction", "comparative"):
            return kind, build_strategy_params(kind, int(parts[0]), None, None, parts[1], ())
    except ValueError as exc:
        raise click.BadParameter(f"Invalid scenario {scenario}: {exc}", param_hint="--scenario")
    raise click.BadParameter(f"Invalid scenario format: {scenario}", param_hint="--scenario")


def export_to_json(path: Path, data: Dict[str, Any]) -> None:
    """Export a summary/schedule payload to a JSON file."""
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, schedule: Schedule) -> None:
    """Export schedule rows to a CSV file."""
    header = [
        "Period",
        "Initial_Balance",
        "Payment",
        "Interest",
        "Capital",
        "Extra",
        "Insurance",
        "Total_Payment",
        "Ending_Balance",
    ]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for record in schedule.to_records():
            writer.writerow(
                [
                    record["period"],
                    record["initial_balance"],
                    record["payment"],
                    record["interest"],
                    record["capital"],
                    record["extra"],
                    record["insurance"],
                    record["total_payment"],
                    record["ending_balance"],
                ]
            )


def export_result(output: str, data: Dict[str, Any], schedule: Optional[Schedule]) -> None:
    path = Path(output)
    suffix = path.suffix.lower()
    if suffix == ".json":
        export_to_json(path, data)
    elif suffix == ".csv" and schedule is not None:
        export_to_csv(path, schedule)
    else:
        raise click.BadParameter("Unsupported output format; use .json or .csv", param_hint="--output")
    click.echo(f"Results exported to {path}")


def print_preview(schedule: Schedule) -> None:
    """Print the schedule, limited to avoid flooding the terminal."""
    max_rows = config.SCHEDULE_PREVIEW_ROWS
    if len(schedule) > max_rows:
        click.echo(f"Schedule has {len(schedule)} rows; showing first {max_rows} rows.")
        print_schedule(schedule.rows[:max_rows])
    else:
        print_schedule(schedule)


def loan_options(func):
    """Attach the options describing the loan itself to a command."""
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Loan amount (150.000.000, 150m, ...)"),
        click.option("--rate", "-r", "rate", required=True, help="Nominal annual interest rate in percent (10 or 10,5)"),
        click.option("--term", "-t", "term", required=True, type=int, help="Number of payments"),
        click.option(
            "--frequency",
            "-f",
            "frequency",
            type=click.Choice(list(PERIODS_PER_YEAR)),
            default=config.DEFAULT_FREQUENCY,
            show_default=True,
            help="Payment frequency",
        ),
        click.option("--insurance", "insurance", multiple=True, help="Insurance line item in NAME:AMOUNT format"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """A loan amortization calculator with extra-payment strategies."""
    level = logging.DEBUG if verbose else getattr(logging, config.LOG_LEVEL, logging.WARNING)
    logging.basicConfig(level=level, format=config.LOG_FORMAT)


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(
    principal: str,
    rate: str,
    term: int,
    frequency: str,
    insurance: Tuple[str, ...],
    output: Optional[str],
) -> None:
    """Compute and print the installment summary and amortization schedule."""
    terms = build_terms_from_options(principal, rate, term, frequency, insurance)
    try:
        summary_data = analyze_loan(terms)
    except InvalidInputError as exc:
        raise click.ClickException(str(exc))
    if output:
        data = {"summary": summary_data.as_dict(), "schedule": summary_data.schedule.to_records()}
        export_result(output, data, summary_data.schedule)
        return
    print_summary(summary_data)
    print_totals(summary_data.totals)
    print_preview(summary_data.schedule)


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
def summary(
    principal: str,
    rate: str,
    term: int,
    frequency: str,
    insurance: Tuple[str, ...],
    output: Optional[str],
) -> None:
    """Compute and print only the installment summary and totals."""
    terms = build_terms_from_options(principal, rate, term, frequency, insurance)
    try:
        summary_data = analyze_loan(terms)
    except InvalidInputError as exc:
        raise click.ClickException(str(exc))
    if output:
        if Path(output).suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension", param_hint="--output")
        export_result(output, {"summary": summary_data.as_dict()}, None)
        return
    print_summary(summary_data)
    print_totals(summary_data.totals)


@cli.command()
@click.argument("kind", type=click.Choice(list(STRATEGY_KINDS) + ["installmentReduction", "scheduledMultiple"]))
@loan_options
@click.option("--at-period", "at_period", type=int, help="Period of the lump sum (single, installment_reduction, comparative)")
@click.option("--from-period", "from_period", type=int, help="First period with an extra payment (recurring, windowed)")
@click.option("--to-period", "to_period", type=int, help="Last period with an extra payment (windowed)")
@click.option("--amount", "amount", help="Extra payment amount")
@click.option("--extra", "extra", multiple=True, help="Scheduled extra payment in PERIOD:AMOUNT format")
@click.option("--show-schedule/--no-schedule", "show_schedule", default=True, help="Print the strategy schedule")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def strategy(
    kind: str,
    principal: str,
    rate: str,
    term: int,
    frequency: str,
    insurance: Tuple[str, ...],
    at_period: Optional[int],
    from_period: Optional[int],
    to_period: Optional[int],
    amount: Optional[str],
    extra: Tuple[str, ...],
    show_schedule: bool,
    output: Optional[str],
) -> None:
    """Run one extra-payment strategy and compare it with the baseline.

    KIND is one of single, recurring, windowed, installment_reduction,
    scheduled_multiple or comparative. For example:

        loan-sim strategy single -p 150.000.000 -r 10 -t 180 --at-period 24 --amount 20.000.000
    """
    kind = normalize_kind(kind)
    terms = build_terms_from_options(principal, rate, term, frequency, insurance)
    params = build_strategy_params(kind, at_period, from_period, to_period, amount, extra)
    try:
        result = run_strategy(kind, params, terms)
    except InvalidInputError as exc:
        raise click.ClickException(str(exc))

    if isinstance(result, ComparativeResult):
        if output:
            export_result(output, result.as_dict(), result.term_reduction.schedule)
            return
        print_summary(result.baseline)
        print_strategy(result.term_reduction)
        print_strategy(result.installment_reduction)
        print_comparison(result.table)
        return

    if output:
        data = {"result": result.as_dict(), "schedule": result.schedule.to_records()}
        export_result(output, data, result.schedule)
        return
    print_strategy(result)
    print_comparison(compare_strategies(result.baseline, [result]))
    print_totals(result.totals)
    if show_schedule:
        print_preview(result.schedule)


@cli.command()
@loan_options
@click.option(
    "--scenario",
    "scenario",
    multiple=True,
    required=True,
    help="Strategy in KIND:ARGS format, e.g. single:24:20m, recurring:1:100k, windowed:5:10:1m, "
    "installment:24:20m, scheduled:5=1m;10=2m, comparative:24:20m",
)
@click.option("--output", "output", type=str, help="Output file path (.json)")
def compare(
    principal: str,
    rate: str,
    term: int,
    frequency: str,
    insurance: Tuple[str, ...],
    scenario: Tuple[str, ...],
    output: Optional[str],
) -> None:
    """Compare several strategies side by side against the baseline.

        loan-sim compare -p 150m -r 10 -t 180 --scenario single:24:20m --scenario installment:24:20m
    """
    terms = build_terms_from_options(principal, rate, term, frequency, insurance)
    parsed = [parse_scenario(item) for item in scenario]
    try:
        baseline = analyze_loan(terms)
        results = []
        for kind, params in parsed:
            result = run_strategy(kind, params, terms)
            if isinstance(result, ComparativeResult):
                results.extend([result.term_reduction, result.installment_reduction])
            else:
                results.append(result)
    except InvalidInputError as exc:
        raise click.ClickException(str(exc))
    table = compare_strategies(baseline, results)
    if output:
        if Path(output).suffix.lower() != ".json":
            raise click.BadParameter("Comparison export must use .json extension", param_hint="--output")
        export_result(output, {"summary": baseline.as_dict(), "comparison": table.to_records()}, None)
        return
    print_summary(baseline)
    print_comparison(table)


if __name__ == "__main__":
    cli()
