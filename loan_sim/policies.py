"""Extra-payment policies as functions of (period, balance).

The policy objects in ``data_models`` are plain values. ``extra_for`` answers
how much extra principal a policy pays in a given period; the schedule
generator also accepts any callable with the same signature.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Callable, Optional, Union

from .data_models import (
    ZERO,
    InstallmentReduction,
    Recurring,
    Scheduled,
    SingleShot,
    Windowed,
)

ExtraFunction = Callable[[int, Decimal], Decimal]
Policy = Union[SingleShot, Recurring, Windowed, Scheduled, InstallmentReduction, ExtraFunction]


def extra_for(policy, period: int, balance: Decimal) -> Decimal:
    """Return the extra amount ``policy`` pays in ``period``.

    The amount is not clamped here; the generator caps it to the balance.
    """
    if isinstance(policy, (SingleShot, InstallmentReduction)):
        return policy.amount if period == policy.at_period else ZERO
    if isinstance(policy, Recurring):
        return policy.amount if period >= policy.from_period else ZERO
    if isinstance(policy, Windowed):
        return policy.amount if policy.from_period <= period <= policy.to_period else ZERO
    if isinstance(policy, Scheduled):
        return policy.extras.get(period, ZERO)
    raise TypeError(f"Unsupported extra-payment policy: {policy!r}")


def as_extra_function(policy: Optional[Policy]) -> Optional[ExtraFunction]:
    """Turn a policy value or a callable into a ``(period, balance)`` function."""
    if policy is None:
        return None
    if isinstance(policy, (SingleShot, Recurring, Windowed, Scheduled, InstallmentReduction)):
        return lambda period, balance: extra_for(policy, period, balance)
    if callable(policy):
        return policy
    raise TypeError(f"Unsupported extra-payment policy: {policy!r}")
