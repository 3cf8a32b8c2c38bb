"""Core calculation engine for the loan simulator.

This module implements the fixed-installment (annuity) payment formula and
the period-by-period schedule generator. The generator optionally applies an
extra-payment policy, which reduces the balance ahead of the period's regular
capital portion, and can switch to a different installment from a given
period on (used by installment reduction). Results are returned as a
``Schedule`` whose rows always end at exactly zero balance.
"""

from __future__ import annotations

import logging
from decimal import Decimal, getcontext
from typing import Optional, Tuple

from .data_models import ZERO, LoanSummary, LoanTerms, Schedule, ScheduleRow
from .exceptions import DegenerateRateError, InvalidInputError, ScheduleIntegrityError
from .policies import Policy, as_extra_function
from .rates import compute_period_rate, frequency_label
from .utils import to_decimal

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

# Balances below one currency unit are rounding noise.
BALANCE_EPSILON = Decimal("1")


def compute_payment(principal, period_rate, periods: int) -> Decimal:
    """Return the fixed installment that retires ``principal`` in ``periods``.

    The formula is:

        payment = P * r * (1 + r)^n / ((1 + r)^n - 1)

    where ``P`` is the principal, ``r`` the period rate and ``n`` the number
    of payments. A zero rate would divide by zero, so it is rejected: callers
    are expected to validate the rate before asking for a payment.
    """
    principal = to_decimal(principal, "principal")
    period_rate = to_decimal(period_rate, "period_rate")
    if periods <= 0:
        raise InvalidInputError("Number of periods must be positive", {"periods": periods})
    if period_rate <= 0:
        raise DegenerateRateError("Period rate must be positive", {"period_rate": str(period_rate)})
    factor = (1 + period_rate) ** periods
    return principal * period_rate * factor / (factor - 1)


def generate_schedule(
    principal,
    period_rate,
    payment,
    periods: int,
    insurance=ZERO,
    policy: Optional[Policy] = None,
    payment_change: Optional[Tuple[int, Decimal]] = None,
) -> Schedule:
    """Build the amortization schedule for a loan.

    Parameters
    ----------
    principal, period_rate, payment:
        Opening balance, effective rate per period and regular installment.
    periods: int
        Maximum number of payments. The final one always retires whatever
        balance is left.
    insurance:
        Constant add-on included in each row's cashflow; it never reduces
        the balance.
    policy:
        Optional extra-payment policy (a policy value or a callable taking
        ``(period, balance)``). Extras are capped at the balance.
    payment_change: (period, payment)
        From ``period`` on, ``payment`` replaces the regular installment. In
        that period the extra is taken off before interest is charged, so
        ``payment`` amortizes the reduced balance exactly.

    Returns
    -------
    Schedule
        Row 0 is the opening balance; one row per period follows until the
        balance reaches zero.
    """
    principal = to_decimal(principal, "principal")
    period_rate = to_decimal(period_rate, "period_rate")
    payment = to_decimal(payment, "payment")
    insurance = to_decimal(insurance, "insurance")
    extra_fn = as_extra_function(policy)

    balance = principal
    rows = [
        ScheduleRow(
            period=0,
            initial_balance=principal,
            base_payment=ZERO,
            interest=ZERO,
            capital=ZERO,
            extra=ZERO,
            insurance=ZERO,
            total_payment=ZERO,
            ending_balance=principal,
        )
    ]

    for period in range(1, periods + 1):
        repriced = payment_change is not None and period == payment_change[0]
        if repriced:
            payment = to_decimal(payment_change[1], "payment")

        initial_balance = balance
        interest = balance * period_rate

        extra = ZERO
        if extra_fn is not None:
            extra = to_decimal(extra_fn(period, balance), "extra")
            if extra < 0:
                raise InvalidInputError(
                    "Extra payments cannot be negative", {"period": period, "extra": str(extra)}
                )
            if extra > balance:
                logger.debug("Extra payment %s in period %s capped at balance %s", extra, period, balance)
                extra = balance
            balance -= extra
            if repriced:
                # The new installment is priced on the balance after the lump sum.
                interest = balance * period_rate

        # The final period, an overpaying installment or a balance that is
        # only rounding noise all retire exactly what is left.
        capital = payment - interest
        clamped = period == periods or capital >= balance or balance < BALANCE_EPSILON
        if clamped:
            capital = balance
        ending_balance = balance - capital
        if ZERO < ending_balance < BALANCE_EPSILON:
            capital += ending_balance
            ending_balance = ZERO
            clamped = True
        if ending_balance < 0:
            raise ScheduleIntegrityError(
                "Schedule produced a negative balance",
                {"period": period, "ending_balance": str(ending_balance)},
            )

        base_payment = interest + capital if clamped else payment
        rows.append(
            ScheduleRow(
                period=period,
                initial_balance=initial_balance,
                base_payment=base_payment,
                interest=interest,
                capital=capital,
                extra=extra,
                insurance=insurance,
                total_payment=base_payment + insurance + extra,
                ending_balance=ending_balance,
            )
        )
        balance = ending_balance
        if balance == 0:
            break

    if balance != 0:
        raise ScheduleIntegrityError(
            "Schedule ran out of periods with a balance left",
            {"periods": periods, "balance": str(balance)},
        )

    logger.debug("Generated schedule of %d periods for principal %s", len(rows) - 1, principal)
    return Schedule(rows=rows)


def validate_terms(terms: LoanTerms) -> Decimal:
    """Check ``terms`` and return the period rate derived from them."""
    if to_decimal(terms.principal, "principal") <= 0:
        raise InvalidInputError("Principal must be positive", {"principal": str(terms.principal)})
    if to_decimal(terms.nominal_rate, "nominal_rate") <= 0:
        raise InvalidInputError("Interest rate must be positive", {"nominal_rate": str(terms.nominal_rate)})
    if not isinstance(terms.periods, int) or terms.periods <= 0:
        raise InvalidInputError("Number of periods must be a positive integer", {"periods": terms.periods})
    if to_decimal(terms.insurance, "insurance") < 0:
        raise InvalidInputError("Insurance cannot be negative", {"insurance": str(terms.insurance)})
    period_rate = compute_period_rate(terms.nominal_rate, terms.frequency)
    if period_rate <= 0:
        raise DegenerateRateError(
            "Interest rate does not yield a positive period rate",
            {"nominal_rate": str(terms.nominal_rate), "frequency": terms.frequency},
        )
    return period_rate


def analyze_loan(terms: LoanTerms) -> LoanSummary:
    """Compute the period rate, installment and baseline schedule for ``terms``."""
    period_rate = validate_terms(terms)
    payment = compute_payment(terms.principal, period_rate, terms.periods)
    schedule = generate_schedule(
        terms.principal, period_rate, payment, terms.periods, terms.insurance
    )
    return LoanSummary(
        terms=terms,
        period_rate=period_rate,
        payment=payment,
        schedule=schedule,
        frequency_label=frequency_label(terms.frequency),
    )
