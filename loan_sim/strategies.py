"""Extra-payment strategies built on the schedule generator.

Every strategy generates the plain baseline for the same loan and a second
schedule with its policy applied, so the result can report what the strategy
saves. Installment reduction is the odd one out: it keeps the term and lowers
the payment from the period of the lump sum onwards.

``run_strategy`` is the single entry point used by the front ends. It takes
the strategy kind, a mapping of parameters (or a ready-made policy value) and
the loan terms.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from .comparison import compare_strategies
from .data_models import (
    ZERO,
    ComparativeResult,
    InstallmentReduction,
    LoanSummary,
    LoanTerms,
    Recurring,
    Scheduled,
    SingleShot,
    StrategyResult,
    Windowed,
)
from .engine import analyze_loan, compute_payment, generate_schedule
from .exceptions import DuplicatePeriodError, InvalidInputError
from .utils import to_decimal

logger = logging.getLogger(__name__)

STRATEGY_KINDS = (
    "single",
    "recurring",
    "windowed",
    "installment_reduction",
    "scheduled_multiple",
    "comparative",
)

_KIND_ALIASES = {
    "installmentreduction": "installment_reduction",
    "installment": "installment_reduction",
    "scheduledmultiple": "scheduled_multiple",
    "scheduled": "scheduled_multiple",
    "multiple": "scheduled_multiple",
}

_POLICY_KINDS = {
    SingleShot: "single",
    Recurring: "recurring",
    Windowed: "windowed",
    InstallmentReduction: "installment_reduction",
    Scheduled: "scheduled_multiple",
}


def normalize_kind(kind: str) -> str:
    """Map a strategy name (snake_case, camelCase or a short alias) to its kind."""
    key = (kind or "").strip()
    if key in STRATEGY_KINDS:
        return key
    folded = key.replace("-", "").replace("_", "").lower()
    for known in STRATEGY_KINDS:
        if known.replace("_", "") == folded:
            return known
    if folded in _KIND_ALIASES:
        return _KIND_ALIASES[folded]
    raise InvalidInputError(f"Unknown strategy kind: {kind}", {"known": list(STRATEGY_KINDS)})


def _param(params: Mapping[str, Any], name: str) -> Any:
    if name in params:
        return params[name]
    head, *rest = name.split("_")
    camel = head + "".join(part.capitalize() for part in rest)
    if camel in params:
        return params[camel]
    raise InvalidInputError(f"Missing strategy parameter: {name}")


def _as_period(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise InvalidInputError(f"{name} must be an integer period", {name: value})
    try:
        period = int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"{name} must be an integer period", {name: value}) from exc
    if period != value and not isinstance(value, str):
        raise InvalidInputError(f"{name} must be an integer period", {name: value})
    return period


def scheduled_from_entries(entries: Union[Mapping[int, Any], Iterable[Any]]) -> Scheduled:
    """Build a ``Scheduled`` policy from ``{period, amount}`` entries.

    Entries may be mappings with ``period`` and ``amount`` keys or
    ``(period, amount)`` pairs. A period that appears twice is rejected
    rather than merged.
    """
    if isinstance(entries, Mapping):
        entries = list(entries.items())
    elif isinstance(entries, (str, bytes)) or not isinstance(entries, Iterable):
        raise InvalidInputError("Scheduled extra payments must be a list of entries", {"extras": repr(entries)})
    extras: Dict[int, Decimal] = {}
    duplicates = []
    for entry in entries:
        if isinstance(entry, Mapping):
            period, amount = _param(entry, "period"), _param(entry, "amount")
        elif isinstance(entry, (list, tuple)) and len(entry) == 2:
            period, amount = entry
        else:
            raise InvalidInputError(
                "Scheduled extra payments must be {period, amount} entries", {"entry": repr(entry)}
            )
        period = _as_period(period, "period")
        if period in extras:
            duplicates.append(period)
            continue
        extras[period] = to_decimal(amount, "amount")
    if duplicates:
        raise DuplicatePeriodError(duplicates)
    return Scheduled(extras=extras)


def build_policy(kind: str, params: Mapping[str, Any]):
    """Turn a parameter mapping into the policy value for ``kind``."""
    kind = normalize_kind(kind)
    if kind in ("single", "installment_reduction", "comparative"):
        at_period = _as_period(_param(params, "at_period"), "at_period")
        amount = to_decimal(_param(params, "amount"), "amount")
        if kind == "installment_reduction":
            return InstallmentReduction(at_period=at_period, amount=amount)
        return SingleShot(at_period=at_period, amount=amount)
    if kind == "recurring":
        return Recurring(
            from_period=_as_period(_param(params, "from_period"), "from_period"),
            amount=to_decimal(_param(params, "amount"), "amount"),
        )
    if kind == "windowed":
        return Windowed(
            from_period=_as_period(_param(params, "from_period"), "from_period"),
            to_period=_as_period(_param(params, "to_period"), "to_period"),
            amount=to_decimal(_param(params, "amount"), "amount"),
        )
    return scheduled_from_entries(_param(params, "extras"))


def _check_period(name: str, period: int, periods: int) -> None:
    if not 1 <= period <= periods:
        raise InvalidInputError(
            f"{name} must be between 1 and {periods}", {name: period, "periods": periods}
        )


def _check_amount(amount, allow_zero: bool = False) -> Decimal:
    amount = to_decimal(amount, "amount")
    if amount < 0 or (amount == 0 and not allow_zero):
        raise InvalidInputError("Extra payment amount must be positive", {"amount": str(amount)})
    return amount


def validate_policy(policy, periods: int) -> None:
    """Reject a policy whose periods fall outside the loan or whose amounts are not positive."""
    if isinstance(policy, (SingleShot, InstallmentReduction)):
        _check_period("at_period", policy.at_period, periods)
        _check_amount(policy.amount)
    elif isinstance(policy, Recurring):
        _check_period("from_period", policy.from_period, periods)
        _check_amount(policy.amount)
    elif isinstance(policy, Windowed):
        _check_period("from_period", policy.from_period, periods)
        _check_period("to_period", policy.to_period, periods)
        if policy.to_period < policy.from_period:
            raise InvalidInputError(
                "to_period must not precede from_period",
                {"from_period": policy.from_period, "to_period": policy.to_period},
            )
        _check_amount(policy.amount)
    elif isinstance(policy, Scheduled):
        if not policy.extras:
            raise InvalidInputError("At least one scheduled extra payment is required")
        for period, amount in policy.extras.items():
            _check_period("period", period, periods)
            _check_amount(amount, allow_zero=True)
    else:
        raise InvalidInputError(f"Unsupported extra-payment policy: {policy!r}")


def simulate_extra_payments(terms: LoanTerms, policy, baseline: Optional[LoanSummary] = None) -> StrategyResult:
    """Apply a term-reducing policy: same installment, fewer periods."""
    if baseline is None:
        baseline = analyze_loan(terms)
    validate_policy(policy, terms.periods)
    schedule = generate_schedule(
        terms.principal,
        baseline.period_rate,
        baseline.payment,
        terms.periods,
        terms.insurance,
        policy=policy,
    )
    return StrategyResult(
        kind=_POLICY_KINDS[type(policy)],
        terms=terms,
        period_rate=baseline.period_rate,
        payment=baseline.payment,
        schedule=schedule,
        baseline=baseline.schedule,
        policy=policy,
    )


def reduce_installment(
    terms: LoanTerms, policy: InstallmentReduction, baseline: Optional[LoanSummary] = None
) -> StrategyResult:
    """Apply a lump sum that keeps the term and lowers the remaining payments.

    The balance just before ``at_period`` is read from the original schedule,
    the lump sum is taken off it and a new installment is computed over the
    periods left (``at_period`` included). Periods before ``at_period`` keep
    the original installment. The lump sum is paid at the start of
    ``at_period``, so that period's interest is charged on the reduced balance
    and the new installment retires the loan on the last period.
    """
    if baseline is None:
        baseline = analyze_loan(terms)
    validate_policy(policy, terms.periods)

    rows = baseline.schedule.rows
    prior = min(policy.at_period - 1, len(rows) - 1)
    balance_before = rows[prior].ending_balance
    reduced_balance = balance_before - policy.amount
    remaining_periods = terms.periods - policy.at_period + 1
    if reduced_balance > 0:
        new_payment = compute_payment(reduced_balance, baseline.period_rate, remaining_periods)
    else:
        new_payment = ZERO

    schedule = generate_schedule(
        terms.principal,
        baseline.period_rate,
        baseline.payment,
        terms.periods,
        terms.insurance,
        policy=policy,
        payment_change=(policy.at_period, new_payment),
    )
    return StrategyResult(
        kind="installment_reduction",
        terms=terms,
        period_rate=baseline.period_rate,
        payment=baseline.payment,
        schedule=schedule,
        baseline=baseline.schedule,
        policy=policy,
        new_payment=new_payment,
        periodic_saving=max(baseline.payment - new_payment, ZERO),
    )


def compare_lump_sum(terms: LoanTerms, at_period: int, amount) -> ComparativeResult:
    """Compare paying a lump sum to shorten the term against lowering the installment."""
    baseline = analyze_loan(terms)
    amount = to_decimal(amount, "amount")
    term_reduction = simulate_extra_payments(
        terms, SingleShot(at_period=at_period, amount=amount), baseline
    )
    installment = reduce_installment(
        terms, InstallmentReduction(at_period=at_period, amount=amount), baseline
    )
    table = compare_strategies(baseline.schedule, [term_reduction, installment])
    return ComparativeResult(
        baseline=baseline,
        term_reduction=term_reduction,
        installment_reduction=installment,
        table=table,
    )


def run_strategy(kind: str, params, terms: LoanTerms) -> Union[StrategyResult, ComparativeResult]:
    """Run one strategy for ``terms``.

    Parameters
    ----------
    kind: str
        One of ``STRATEGY_KINDS`` (camelCase spellings are accepted).
    params:
        A mapping with the strategy parameters (``at_period``,
        ``from_period``, ``to_period``, ``amount`` or ``extras``) or an
        already-built policy value.
    terms: LoanTerms
        The loan the strategy applies to.
    """
    kind = normalize_kind(kind)
    policy = params if not isinstance(params, Mapping) else build_policy(kind, params)
    logger.info("Running %s strategy on %s over %s periods", kind, terms.principal, terms.periods)

    if kind == "comparative":
        if not isinstance(policy, (SingleShot, InstallmentReduction)):
            raise InvalidInputError("Comparative strategy needs an at_period and an amount")
        return compare_lump_sum(terms, policy.at_period, policy.amount)

    expected = [k for cls, k in _POLICY_KINDS.items() if isinstance(policy, cls)]
    if expected != [kind]:
        raise InvalidInputError(f"Parameters do not match strategy kind {kind}", {"policy": repr(policy)})
    if kind == "installment_reduction":
        return reduce_installment(terms, policy)
    return simulate_extra_payments(terms, policy)
