"""Utility functions for the mortgage calculator.

Helpers for turning user input (form fields, command-line options and
spreadsheet cells) into ``Decimal`` values and for rounding currency amounts
to whole pence.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, DecimalException, InvalidOperation, getcontext
from typing import Optional

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

TWO_PLACES = Decimal("0.01")


def round2(value: Decimal) -> Decimal:
    """Round a currency amount to two places, halves away from zero."""
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a finite ``Decimal``.

    The function strips thousands separators, surrounding whitespace and a
    leading pound sign. It raises ``ValueError`` if conversion fails or the
    value is not finite (``"nan"``, ``"inf"``).
    """
    try:
        cleaned = value.strip().replace(",", "").lstrip("£")
        result = Decimal(cleaned)
    except (InvalidOperation, AttributeError) as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def parse_amount(value: str) -> Decimal:
    """Parse a money amount with optional ``k``/``m`` suffixes.

    Accepts plain numbers ("250000"), thousands separators ("250,000") and
    shorthand ("250k" meaning 250 000).
    """
    text = value.strip().lower()
    factor = Decimal(1)
    if text.endswith("k"):
        factor = Decimal(1_000)
        text = text[:-1]
    elif text.endswith("m"):
        factor = Decimal(1_000_000)
        text = text[:-1]
    try:
        return decimal_from_str(text) * factor
    except DecimalException as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc


def to_decimal(value: object) -> Optional[Decimal]:
    """Convert a form field or spreadsheet cell into a ``Decimal``.

    Returns ``None`` for blank or unparsable values instead of raising, so
    callers can report the offending field themselves.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, (int, float)):
        # str() keeps floats such as 4.1 from turning into 4.0999999...
        result = Decimal(str(value))
        return result if result.is_finite() else None
    text = str(value).strip()
    if not text:
        return None
    try:
        return parse_amount(text)
    except ValueError:
        return None


def to_whole_number(value: object) -> Optional[int]:
    """Convert a value into an ``int`` only if it is a whole number."""
    number = to_decimal(value)
    if number is None or number != number.to_integral_value():
        return None
    return int(number)
