"""Core calculation engine for the mortgage calculator.

This module implements the financial logic: the fixed monthly payment for a
repayment (annuity) or interest-only mortgage, the month-by-month breakdown of
the first year and the totals over the whole term. Every function is pure;
inputs are a ``LoanInput`` and results are ``Decimal`` values or the
dataclasses from ``data_models``.

Amounts in the breakdown are rounded to pence at every step, before being
carried into the next month, so that the table adds up the way it is
displayed. Over twelve months the drift this causes stays within a few pence.
"""

from __future__ import annotations

from decimal import Decimal, DecimalException
from typing import Dict

from .data_models import (
    CalculationResult,
    LoanInput,
    LoanTotals,
    MonthRow,
    PaymentSchedule,
    RepaymentType,
)
from .utils import round2

SCHEDULE_MONTHS = 12
# Keeps every amount and total well inside the 28 digit context when rounded to pence.
MAX_AMOUNT = Decimal("1000000000000")
MAX_RATE_PERCENT = Decimal(100)


class CalculationError(ValueError):
    """Base class for errors raised while calculating a mortgage."""


class InvalidTerm(CalculationError):
    """The term resolves to zero or a negative number of months."""


class InvalidInput(CalculationError):
    """The amount, rate or term is missing, not finite or out of range.

    ``errors`` maps the offending field name to a user facing message.
    """

    def __init__(self, errors: Dict[str, str]) -> None:
        self.errors = dict(errors)
        super().__init__("; ".join(self.errors.values()) or "Invalid input")


def _check_loan(loan: LoanInput) -> None:
    if loan.term_months <= 0:
        raise InvalidTerm(f"Term must be positive; got {loan.years} years")
    errors: Dict[str, str] = {}
    if not loan.amount.is_finite() or loan.amount < 0 or loan.amount > MAX_AMOUNT:
        errors["amount"] = f"Invalid loan amount: {loan.amount}"
    if not loan.rate.is_finite() or loan.rate < 0 or loan.rate > MAX_RATE_PERCENT:
        errors["rate"] = f"Invalid interest rate: {loan.rate}"
    if errors:
        raise InvalidInput(errors)


def _out_of_range(loan: LoanInput) -> InvalidInput:
    return InvalidInput({"amount": f"Cannot calculate a loan of {loan.amount} at {loan.rate}%"})


def _calculate_annuity_payment(principal: Decimal, rate_per_month: Decimal, term: int) -> Decimal:
    """Return the annuity (equal installment) monthly payment for a loan.

    The formula is:

        payment = P * i / (1 - (1 + i)^-n)

    where ``P`` is the principal, ``i`` is the monthly interest rate and
    ``n`` is the number of payments. It is evaluated in the equivalent form
    ``P * i * f / (f - 1)`` with ``f = (1 + i)^n``. When the interest rate is
    zero, the payment simplifies to ``P / n``.
    """
    if term <= 0:
        raise InvalidTerm("Term must be positive")
    if rate_per_month == 0:
        return principal / Decimal(term)
    factor = (1 + rate_per_month) ** term
    if factor == 1:
        # The rate is too small to register at the context precision.
        return principal / Decimal(term)
    return principal * (rate_per_month * factor) / (factor - 1)


def compute_monthly_payment(loan: LoanInput) -> Decimal:
    """Return the unrounded fixed monthly payment for ``loan``.

    Interest-only loans pay ``amount * i`` every month and never reduce the
    principal; repayment loans use the annuity formula.

    Raises
    ------
    InvalidTerm
        If the term is zero or negative.
    InvalidInput
        If the amount or rate is not finite or outside the supported range.
    """
    _check_loan(loan)
    try:
        if loan.repayment_type is RepaymentType.INTEREST_ONLY:
            return loan.amount * loan.monthly_rate
        return _calculate_annuity_payment(loan.amount, loan.monthly_rate, loan.term_months)
    except DecimalException as exc:
        raise _out_of_range(loan) from exc


def compute_first_year_schedule(loan: LoanInput) -> PaymentSchedule:
    """Return the breakdown of the first ``min(12, n)`` months of ``loan``.

    Each month's interest is charged on the balance carried from the previous
    month. For repayment loans the rest of the fixed payment goes to the
    principal; the displayed balance is clamped at zero although the carried
    balance is not. Interest-only rows always show a principal of zero and the
    original balance.
    """
    _check_loan(loan)
    try:
        return _build_schedule(loan)
    except DecimalException as exc:
        raise _out_of_range(loan) from exc


def _build_schedule(loan: LoanInput) -> PaymentSchedule:
    rate_per_month = loan.monthly_rate
    months = min(SCHEDULE_MONTHS, loan.term_months)
    balance = loan.amount
    rows: PaymentSchedule = []

    if loan.repayment_type is RepaymentType.INTEREST_ONLY:
        for month in range(1, months + 1):
            interest = round2(balance * rate_per_month)
            rows.append(
                MonthRow(month=month, principal=Decimal("0.00"), interest=interest, balance=round2(balance))
            )
        return rows

    payment = compute_monthly_payment(loan)
    for month in range(1, months + 1):
        interest = round2(balance * rate_per_month)
        principal = round2(max(payment - interest, Decimal(0)))
        balance = round2(balance - principal)
        rows.append(
            MonthRow(
                month=month,
                principal=principal,
                interest=interest,
                balance=max(balance, Decimal("0.00")),
            )
        )
    return rows


def compute_totals(loan: LoanInput, monthly_payment: Decimal) -> LoanTotals:
    """Derive the whole-term totals from the monthly payment.

    For an interest-only loan every payment is interest and the principal is
    still owed as a lump sum at the end of the term, so it is added to the
    total payable. For a repayment loan the interest is whatever the payments
    exceed the amount borrowed by.
    """
    total_repayment = monthly_payment * loan.term_months
    if loan.repayment_type is RepaymentType.INTEREST_ONLY:
        return LoanTotals(
            total_repayment=total_repayment,
            total_interest=total_repayment,
            total_payable=total_repayment + loan.amount,
        )
    return LoanTotals(
        total_repayment=total_repayment,
        total_interest=total_repayment - loan.amount,
        total_payable=total_repayment,
    )


def calculate(loan: LoanInput) -> CalculationResult:
    """Compute the monthly payment, totals and first-year breakdown at once."""
    monthly_payment = compute_monthly_payment(loan)
    return CalculationResult(
        loan=loan,
        monthly_payment=monthly_payment,
        totals=compute_totals(loan, monthly_payment),
        schedule=compute_first_year_schedule(loan),
    )


def summarize(result: CalculationResult) -> Dict[str, object]:
    """Return a JSON-serialisable summary rounded for display."""
    return {
        "amount": float(round2(result.loan.amount)),
        "rate": float(result.loan.rate),
        "years": result.loan.years,
        "term_months": result.loan.term_months,
        "repayment_type": result.loan.repayment_type.value,
        "monthly_payment": float(round2(result.monthly_payment)),
        "total_repayment": float(round2(result.totals.total_repayment)),
        "total_interest": float(round2(result.totals.total_interest)),
        "total_payable": float(round2(result.totals.total_payable)),
    }
