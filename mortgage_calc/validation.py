"""Input validation for the mortgage calculator.

The engine expects a ``LoanInput`` with a positive amount of at most one
trillion, a rate between 0 and 100 percent and a term between 1 and 60 years. The functions here check
raw values coming from the web form, the command line or a spreadsheet row
and report problems per field, using the messages shown next to the form
fields.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, Optional

from .data_models import LoanInput, RepaymentType
from .engine import MAX_AMOUNT, MAX_RATE_PERCENT, InvalidInput
from .utils import to_decimal, to_whole_number

MAX_TERM_YEARS = 60

AMOUNT_MESSAGE = "Enter a positive loan amount."
AMOUNT_LIMIT_MESSAGE = "Enter a loan amount up to £1,000,000,000,000."
RATE_MESSAGE = "Enter a rate between 0 and 100%."
YEARS_MESSAGE = f"Enter a term between 1 and {MAX_TERM_YEARS} years."
TYPE_MESSAGE = "Choose repayment or interest-only."


def validate_inputs(amount: Optional[Decimal], rate: Optional[Decimal], years: Optional[int]) -> Dict[str, str]:
    """Return a mapping of field name to error message; empty when valid.

    ``None`` stands for a value that was blank or could not be parsed.
    """
    errors: Dict[str, str] = {}
    if amount is None or not amount.is_finite() or amount <= 0:
        errors["amount"] = AMOUNT_MESSAGE
    elif amount > MAX_AMOUNT:
        errors["amount"] = AMOUNT_LIMIT_MESSAGE
    if rate is None or not rate.is_finite() or rate < 0 or rate > MAX_RATE_PERCENT:
        errors["rate"] = RATE_MESSAGE
    if years is None or years <= 0 or years > MAX_TERM_YEARS:
        errors["years"] = YEARS_MESSAGE
    return errors


def build_loan_input(amount: object, rate: object, years: object, repayment_type: object = None) -> LoanInput:
    """Parse and validate raw values into a ``LoanInput``.

    Values may be strings (as typed into a form, ``"250k"`` and ``"250,000"``
    are accepted for the amount), numbers or ``None``. A missing repayment
    type means a repayment loan.

    Raises
    ------
    InvalidInput
        With every failing field, so a form can show all messages at once.
    """
    amount_value = to_decimal(amount)
    rate_value = to_decimal(rate)
    years_value = to_whole_number(years)
    errors = validate_inputs(amount_value, rate_value, years_value)

    loan_type = RepaymentType.REPAYMENT
    if repayment_type not in (None, ""):
        try:
            loan_type = RepaymentType.parse(repayment_type)
        except ValueError:
            errors["type"] = TYPE_MESSAGE

    if errors:
        raise InvalidInput(errors)
    return LoanInput(amount=amount_value, rate=rate_value, years=years_value, repayment_type=loan_type)
