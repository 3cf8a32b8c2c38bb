"""Data models for the loan simulator.

This module defines dataclasses representing the entities used by the engine:
the loan terms supplied by the caller, the extra-payment policies, schedule
rows and totals, and the results produced by the strategies and the
comparison table. Inputs and policies are frozen so they can be shared
freely; results are plain dataclasses built once and never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional

from .exceptions import InvalidInputError
from .utils import to_decimal


ZERO = Decimal("0")


@dataclass(frozen=True)
class InsuranceItem:
    """A named optional insurance or fee charged every period."""

    name: str
    amount: Decimal

    def __post_init__(self) -> None:
        amount = to_decimal(self.amount, "insurance amount")
        if amount < 0:
            raise InvalidInputError("Insurance amounts cannot be negative", {"name": self.name})
        object.__setattr__(self, "amount", amount)


def total_insurance(items: Iterable[InsuranceItem]) -> Decimal:
    """Return the per-period add-on of all active insurance line items."""
    return sum((item.amount for item in items), ZERO)


@dataclass(frozen=True)
class LoanTerms:
    """Terms of a loan as supplied by the caller.

    Attributes
    ----------
    principal: Decimal
        The financed amount.
    nominal_rate: Decimal
        Nominal annual interest rate in percent (``10`` means 10 %).
    periods: int
        Number of payments.
    frequency: str
        ``"monthly"``, ``"bimonthly"``, ``"quarterly"`` or ``"semiannual"``.
    insurance: Decimal
        Constant add-on charged every period, the sum of all active
        insurance line items. It never reduces the balance.
    """

    principal: Decimal
    nominal_rate: Decimal
    periods: int
    frequency: str = "monthly"
    insurance: Decimal = ZERO

    def __post_init__(self) -> None:
        object.__setattr__(self, "principal", to_decimal(self.principal, "principal"))
        object.__setattr__(self, "nominal_rate", to_decimal(self.nominal_rate, "nominal_rate"))
        object.__setattr__(self, "insurance", to_decimal(self.insurance, "insurance"))
        object.__setattr__(self, "frequency", (self.frequency or "monthly").lower())


# Extra-payment policies. Each is a plain value; ``policies.extra_for`` turns
# one into the amount to apply for a given period.


@dataclass(frozen=True)
class SingleShot:
    at_period: int
    amount: Decimal


@dataclass(frozen=True)
class Recurring:
    from_period: int
    amount: Decimal


@dataclass(frozen=True)
class Windowed:
    from_period: int
    to_period: int
    amount: Decimal


@dataclass(frozen=True)
class Scheduled:
    """Extra payments at an arbitrary set of periods (period -> amount)."""

    extras: Mapping[int, Decimal]


@dataclass(frozen=True)
class InstallmentReduction:
    """Lump sum at ``at_period`` that lowers the payment instead of the term."""

    at_period: int
    amount: Decimal


@dataclass
class ScheduleRow:
    """One period of an amortization schedule.

    Period 0 is a synthetic opening row whose balances equal the principal and
    whose flows are all zero. ``base_payment`` is the regular installment, or
    the amount actually due when the final row retires less than a full
    installment.
    """

    period: int
    initial_balance: Decimal
    base_payment: Decimal
    interest: Decimal
    capital: Decimal
    extra: Decimal
    insurance: Decimal
    total_payment: Decimal
    ending_balance: Decimal


@dataclass
class Totals:
    """Sums over the rows of a schedule. ``capital`` includes extra payments."""

    interest: Decimal = ZERO
    capital: Decimal = ZERO
    insurance: Decimal = ZERO
    extra: Decimal = ZERO

    @property
    def total_paid(self) -> Decimal:
        return self.interest + self.capital + self.insurance

    def as_dict(self) -> Dict[str, float]:
        return {
            "interest": float(self.interest),
            "capital": float(self.capital),
            "insurance": float(self.insurance),
            "extra": float(self.extra),
            "total_paid": float(self.total_paid),
        }


@dataclass
class Schedule:
    """An ordered list of schedule rows, opening row first."""

    rows: List[ScheduleRow] = field(default_factory=list)

    def __iter__(self):
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def payment_rows(self) -> List[ScheduleRow]:
        return self.rows[1:]

    @property
    def final_period(self) -> int:
        return self.rows[-1].period if self.rows else 0

    @property
    def final_balance(self) -> Decimal:
        return self.rows[-1].ending_balance if self.rows else ZERO

    @property
    def is_paid_off(self) -> bool:
        return self.final_balance == 0

    @property
    def first_payment(self) -> Decimal:
        rows = self.payment_rows
        return rows[0].base_payment if rows else ZERO

    @property
    def totals(self) -> Totals:
        totals = Totals()
        for row in self.payment_rows:
            totals.interest += row.interest
            totals.capital += row.capital + row.extra
            totals.insurance += row.insurance
            totals.extra += row.extra
        return totals

    def to_records(self) -> List[Dict[str, float]]:
        """Convert the rows into JSON-serialisable dictionaries."""
        return [
            {
                "period": row.period,
                "initial_balance": float(row.initial_balance),
                "payment": float(row.base_payment),
                "interest": float(row.interest),
                "capital": float(row.capital),
                "extra": float(row.extra),
                "insurance": float(row.insurance),
                "total_payment": float(row.total_payment),
                "ending_balance": float(row.ending_balance),
            }
            for row in self.rows
        ]


@dataclass
class LoanSummary:
    """The baseline picture of a loan: rate, installment and full schedule."""

    terms: LoanTerms
    period_rate: Decimal
    payment: Decimal
    schedule: Schedule
    frequency_label: str

    @property
    def insurance(self) -> Decimal:
        return self.terms.insurance

    @property
    def total_installment(self) -> Decimal:
        return self.payment + self.terms.insurance

    @property
    def totals(self) -> Totals:
        return self.schedule.totals

    def as_dict(self) -> Dict[str, object]:
        return {
            "principal": float(self.terms.principal),
            "nominal_rate": float(self.terms.nominal_rate),
            "periods": self.terms.periods,
            "frequency": self.terms.frequency,
            "frequency_label": self.frequency_label,
            "period_rate": float(self.period_rate),
            "payment": float(self.payment),
            "insurance": float(self.insurance),
            "total_installment": float(self.total_installment),
            "final_period": self.schedule.final_period,
            "totals": self.totals.as_dict(),
        }


@dataclass
class StrategyResult:
    """A strategy schedule together with its savings against the baseline.

    ``new_payment`` and ``periodic_saving`` are only set by installment
    reduction; the other strategies keep the original payment.
    """

    kind: str
    terms: LoanTerms
    period_rate: Decimal
    payment: Decimal
    schedule: Schedule
    baseline: Schedule
    policy: object = None
    new_payment: Optional[Decimal] = None
    periodic_saving: Optional[Decimal] = None

    @property
    def totals(self) -> Totals:
        return self.schedule.totals

    @property
    def baseline_totals(self) -> Totals:
        return self.baseline.totals

    @property
    def interest_saved(self) -> Decimal:
        return self.baseline_totals.interest - self.totals.interest

    @property
    def periods_saved(self) -> int:
        return self.baseline.final_period - self.schedule.final_period

    @property
    def final_period(self) -> int:
        return self.schedule.final_period

    def as_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            "kind": self.kind,
            "payment": float(self.payment),
            "final_period": self.final_period,
            "baseline_final_period": self.baseline.final_period,
            "periods_saved": self.periods_saved,
            "interest_saved": float(self.interest_saved),
            "totals": self.totals.as_dict(),
            "baseline_totals": self.baseline_totals.as_dict(),
        }
        if self.new_payment is not None:
            data["new_payment"] = float(self.new_payment)
            data["periodic_saving"] = float(self.periodic_saving or ZERO)
        return data


@dataclass
class ComparisonRow:
    label: str
    term_periods: int
    payment: Decimal
    total_interest: Decimal
    total_paid: Decimal
    new_payment: Optional[Decimal] = None

    def as_dict(self) -> Dict[str, object]:
        return {
            "label": self.label,
            "term_periods": self.term_periods,
            "payment": float(self.payment),
            "new_payment": float(self.new_payment) if self.new_payment is not None else None,
            "total_interest": float(self.total_interest),
            "total_paid": float(self.total_paid),
        }


@dataclass
class ComparisonTable:
    """Side-by-side view of the baseline and one or more strategies."""

    rows: List[ComparisonRow] = field(default_factory=list)

    def __iter__(self):
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    def cheapest(self) -> Optional[ComparisonRow]:
        """Return the scenario with the lowest total paid (first wins ties)."""
        if not self.rows:
            return None
        return min(self.rows, key=lambda row: row.total_paid)

    def to_records(self) -> List[Dict[str, object]]:
        return [row.as_dict() for row in self.rows]


@dataclass
class ComparativeResult:
    """Term reduction and installment reduction of the same lump sum."""

    baseline: LoanSummary
    term_reduction: StrategyResult
    installment_reduction: StrategyResult
    table: ComparisonTable

    kind: str = "comparative"

    def as_dict(self) -> Dict[str, object]:
        return {
            "kind": self.kind,
            "baseline": self.baseline.as_dict(),
            "term_reduction": self.term_reduction.as_dict(),
            "installment_reduction": self.installment_reduction.as_dict(),
            "comparison": self.table.to_records(),
        }

