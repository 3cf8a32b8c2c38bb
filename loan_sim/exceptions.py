"""Exceptions raised by the loan simulator.

Every error raised by the engine derives from ``LoanSimError``. Input problems
are ``InvalidInputError`` (which is also a ``ValueError`` so callers that only
know about the built-in type still catch it). ``ScheduleIntegrityError``
signals an internal defect and is never expected in normal operation.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class LoanSimError(Exception):
    """Base exception for all loan simulator errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class InvalidInputError(LoanSimError, ValueError):
    """Raised when loan terms or strategy parameters are rejected."""


class DuplicatePeriodError(InvalidInputError):
    """Raised when a scheduled set of extra payments repeats a period."""

    def __init__(self, periods) -> None:
        periods = sorted(set(periods))
        super().__init__(
            "Extra payments must use distinct periods",
            {"duplicate_periods": periods},
        )
        self.periods = periods


class DegenerateRateError(InvalidInputError):
    """Raised when the period rate is zero and no payment can be derived."""


class ScheduleIntegrityError(LoanSimError):
    """Raised when a generated schedule breaks a balance invariant."""
