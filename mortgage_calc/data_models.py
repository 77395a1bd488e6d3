"""Data models for the mortgage calculator.

This module defines the dataclasses passed between the calculation engine and
its adapters: the loan inputs, one row of the first-year breakdown, the totals
over the whole term and a row of a bulk (spreadsheet) calculation. The
calculation types are frozen so a ``LoanInput`` can be shared freely between
the payment, schedule and totals functions.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import List, Optional


class RepaymentType(str, Enum):
    """How the monthly payment treats the principal."""

    REPAYMENT = "repayment"
    INTEREST_ONLY = "interest-only"

    @classmethod
    def parse(cls, value: object) -> "RepaymentType":
        """Parse a user supplied label such as ``"Interest only"``.

        Raises ``ValueError`` for unknown labels.
        """
        if isinstance(value, cls):
            return value
        label = str(value or "").strip().lower().replace("_", "-").replace(" ", "-")
        for member in cls:
            if member.value == label:
                return member
        raise ValueError(f"Unknown repayment type: {value}")


@dataclass(frozen=True)
class LoanInput:
    """Validated inputs for a single calculation.

    Attributes
    ----------
    amount: Decimal
        The amount borrowed, in currency units.
    rate: Decimal
        The annual nominal interest rate in percent (``5`` means 5 %).
    years: int
        The term of the loan in whole years.
    repayment_type: RepaymentType
        Whether the payment amortizes the loan or only covers interest.
    """

    amount: Decimal
    rate: Decimal
    years: int
    repayment_type: RepaymentType = RepaymentType.REPAYMENT

    @property
    def term_months(self) -> int:
        return self.years * 12

    @property
    def monthly_rate(self) -> Decimal:
        return self.rate / Decimal(100) / Decimal(12)


@dataclass(frozen=True)
class MonthRow:
    """One month of the first-year breakdown.

    All amounts are rounded to two decimal places. ``balance`` is the balance
    remaining after the month's payment and is never negative.
    """

    month: int
    principal: Decimal
    interest: Decimal
    balance: Decimal


PaymentSchedule = List[MonthRow]


@dataclass(frozen=True)
class LoanTotals:
    """Totals over the whole term, derived from the monthly payment."""

    total_repayment: Decimal
    total_interest: Decimal
    # For interest-only loans this includes the principal due at the end.
    total_payable: Decimal


@dataclass(frozen=True)
class CalculationResult:
    loan: LoanInput
    monthly_payment: Decimal
    totals: LoanTotals
    schedule: PaymentSchedule


@dataclass
class BulkRow:
    """The outcome of one spreadsheet row in a bulk calculation.

    The parsed values are ``None`` when the cell could not be read as a
    number. ``monthly_payment`` is ``None`` exactly when ``error`` is set.
    """

    row_number: int
    amount: Optional[Decimal]
    rate: Optional[Decimal]
    years: Optional[int]
    repayment_type: str
    monthly_payment: Optional[Decimal] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
