from decimal import Decimal

import pytest

from loan_sim.data_models import LoanTerms


@pytest.fixture
def mortgage_terms() -> LoanTerms:
    """150,000,000 at 10 % a year over 180 monthly payments."""
    return LoanTerms(
        principal=Decimal("150000000"),
        nominal_rate=Decimal("10"),
        periods=180,
        frequency="monthly",
    )


@pytest.fixture
def small_terms() -> LoanTerms:
    return LoanTerms(
        principal=Decimal("1000000"),
        nominal_rate=Decimal("12"),
        periods=12,
        frequency="monthly",
    )


@pytest.fixture
def insured_terms() -> LoanTerms:
    return LoanTerms(
        principal=Decimal("50000000"),
        nominal_rate=Decimal("14.5"),
        periods=60,
        frequency="quarterly",
        insurance=Decimal("35000"),
    )
