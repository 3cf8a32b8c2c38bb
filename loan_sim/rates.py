"""Conversion of a nominal annual rate into an effective period rate."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, getcontext
from typing import Optional, Union

getcontext().prec = 28  # increase precision for financial calculations

PERIODS_PER_YEAR = {
    "monthly": 12,
    "bimonthly": 6,
    "quarterly": 4,
    "semiannual": 2,
}

FREQUENCY_LABELS = {
    "monthly": "Monthly",
    "bimonthly": "Bimonthly",
    "quarterly": "Quarterly",
    "semiannual": "Semiannual",
}

DEFAULT_PERIODS_PER_YEAR = 12


def periods_per_year(frequency: Optional[str]) -> int:
    """Return the number of payments per year; unknown frequencies are monthly."""
    if not frequency:
        return DEFAULT_PERIODS_PER_YEAR
    return PERIODS_PER_YEAR.get(frequency.lower(), DEFAULT_PERIODS_PER_YEAR)


def frequency_label(frequency: Optional[str]) -> str:
    """Return the display label for a frequency; unknown frequencies are monthly."""
    return FREQUENCY_LABELS.get((frequency or "").lower(), FREQUENCY_LABELS["monthly"])


def _normalize_rate(value: Union[str, int, float, Decimal, None]) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
    try:
        rate = Decimal(str(value))
    except InvalidOperation:
        return Decimal("0")
    if not rate.is_finite() or rate <= 0:
        return Decimal("0")
    return rate


def compute_period_rate(nominal_rate, frequency: Optional[str] = "monthly") -> Decimal:
    """Return the effective rate per payment period.

    The conversion is a true effective-rate conversion rather than a plain
    division of the annual rate:

        r = (1 + rate / 100) ** (1 / periods_per_year) - 1

    A rate that is missing, not a number or not positive yields ``0``;
    callers must treat that as "no valid rate" instead of computing a
    payment from it.
    """
    rate = _normalize_rate(nominal_rate)
    if rate == 0:
        return rate
    exponent = Decimal(1) / Decimal(periods_per_year(frequency))
    return (1 + rate / Decimal(100)) ** exponent - 1
