"""Shared fixtures: the canonical loans used across the tests.

Repayment: £200,000 at 5% over 25 years.
Interest only: £100,000 at 4% over 10 years.
"""

import os
from decimal import Decimal

import pytest

# The web app opens its store at import time; keep it off the working directory.
os.environ.setdefault("MORTGAGE_INPUTS_DATABASE_URL", "sqlite://")

from mortgage_calc.data_models import LoanInput, RepaymentType  # noqa: E402


@pytest.fixture
def repayment_loan() -> LoanInput:
    return LoanInput(
        amount=Decimal("200000"),
        rate=Decimal("5"),
        years=25,
        repayment_type=RepaymentType.REPAYMENT,
    )


@pytest.fixture
def interest_only_loan() -> LoanInput:
    return LoanInput(
        amount=Decimal("100000"),
        rate=Decimal("4"),
        years=10,
        repayment_type=RepaymentType.INTEREST_ONLY,
    )
