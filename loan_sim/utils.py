"""Utility functions for the loan simulator.

``to_decimal`` is used by the engine to accept plain numbers. The remaining
helpers belong to the presentation side: they turn what a person types
(``150.000.000``, ``1,250,000``, ``10,5``, ``500k``) into clean values before
anything reaches the engine, which never parses text itself.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation, getcontext
from typing import Tuple, Union

from .exceptions import InvalidInputError

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

Number = Union[int, float, str, Decimal]

# 1.234.567 or 1,234,567: every group after the first has exactly 3 digits.
_GROUPED = re.compile(r"^-?\d{1,3}(?:([.,])\d{3})(?:\1\d{3})*$")


def to_decimal(value: Number, name: str = "value") -> Decimal:
    """Convert a clean numeric value into a ``Decimal``.

    Floats go through ``str`` so that binary noise such as
    ``0.1 + 0.2 == 0.30000000000000004`` is not carried into the engine.
    """
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise InvalidInputError(f"Invalid numeric value for {name}: {value!r}") from exc
    if not result.is_finite():
        raise InvalidInputError(f"Invalid numeric value for {name}: {value!r}")
    return result


def normalize_number(text: str) -> str:
    """Strip thousands separators and turn a decimal comma into a dot.

    When both ``.`` and ``,`` appear, the right-most one is the decimal
    separator. A single kind of separator splitting the digits into groups of
    three (``150.000.000``) is read as thousands grouping; otherwise it is a
    decimal separator (``10,5``).
    """
    cleaned = text.strip().replace(" ", "").replace("\u00a0", "").replace("_", "")
    cleaned = cleaned.lstrip("$")
    has_dot = "." in cleaned
    has_comma = "," in cleaned
    if has_dot and has_comma:
        decimal_sep = "." if cleaned.rfind(".") > cleaned.rfind(",") else ","
        group_sep = "," if decimal_sep == "." else "."
        return cleaned.replace(group_sep, "").replace(decimal_sep, ".")
    if has_dot or has_comma:
        if _GROUPED.match(cleaned):
            return cleaned.replace(".", "").replace(",", "")
        return cleaned.replace(",", ".")
    return cleaned


def parse_amount(value: str) -> Decimal:
    """Parse a money amount with optional ``k``/``m`` suffixes.

    Accepts ``"150000000"``, ``"150.000.000"``, ``"150,000,000"`` and
    shorthand such as ``"500k"`` or ``"1.5m"``.
    """
    text = str(value).strip().lower()
    factor = Decimal(1)
    if text.endswith("k"):
        factor = Decimal(1_000)
        text = text[:-1]
    elif text.endswith("m"):
        factor = Decimal(1_000_000)
        text = text[:-1]
    try:
        return Decimal(normalize_number(text)) * factor
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {value}") from exc


def parse_rate(value: str) -> Decimal:
    """Parse an annual rate in percent; a comma is always a decimal separator."""
    text = str(value).strip()
    if text.endswith("%"):
        text = text[:-1]
    text = text.strip().replace(",", ".")
    try:
        return Decimal(text)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid rate: {value}") from exc


def parse_extra(value: str) -> Tuple[int, Decimal]:
    """Parse a ``PERIOD:AMOUNT`` pair such as ``"24:20.000.000"``."""
    parts = value.split(":")
    if len(parts) != 2:
        raise ValueError(f"Extra payment must be in PERIOD:AMOUNT format; got {value}")
    period_str, amount_str = parts
    try:
        period = int(period_str.strip())
    except ValueError as exc:
        raise ValueError(f"Invalid period in extra payment: {value}") from exc
    return period, parse_amount(amount_str)


def parse_insurance(value: str) -> Tuple[str, Decimal]:
    """Parse a ``NAME:AMOUNT`` insurance line item such as ``"life:20.000"``."""
    name, sep, amount_str = value.rpartition(":")
    if not sep or not name.strip():
        raise ValueError(f"Insurance must be in NAME:AMOUNT format; got {value}")
    return name.strip(), parse_amount(amount_str)
