"""
Input Validation Helpers

Boundary coercion for amounts, dates and free-text fields. Monetary values
are Decimal with two fractional digits and NEVER float.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from datetime import date, datetime
from typing import Any, Optional

from .errors import InvalidAmount, ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
MAX_TEXT_LENGTH = 255


def quantize_amount(value: Decimal) -> Decimal:
    """Round to two decimal places"""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(value: Any, field: str = "amount") -> Decimal:
    """
    Convert a raw amount to a positive two-decimal Decimal

    Args:
        value: Decimal, int or numeric string (floats go through str())
        field: Field name reported on failure

    Returns:
        Amount rounded to cents

    Raises:
        InvalidAmount: If the value is not numeric or not at least 0.01
    """
    if value is None or isinstance(value, bool):
        raise InvalidAmount("The amount is required.", field=field)

    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidAmount(f"The amount '{value}' is not a number.", field=field)

    if not amount.is_finite():
        raise InvalidAmount(f"The amount '{value}' is not a number.", field=field)

    amount = quantize_amount(amount)
    if amount < CENT:
        raise InvalidAmount("The amount must be at least 0.01.", field=field)
    return amount


def parse_date(value: Any, field: str) -> date:
    """Accept a date, a datetime or an ISO-8601 string (YYYY-MM-DD)"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            pass
    raise ValidationError.for_field(field, f"The {field.replace('_', ' ')} must be a valid date.")


def clean_text(value: Optional[str], field: str, required: bool = True,
               max_length: int = MAX_TEXT_LENGTH) -> Optional[str]:
    """Strip a free-text field and enforce presence and length"""
    if value is not None:
        value = value.strip()
    if not value:
        if required:
            raise ValidationError.for_field(field, f"The {field.replace('_', ' ')} is required.")
        return None
    if len(value) > max_length:
        raise ValidationError.for_field(
            field, f"The {field.replace('_', ' ')} may not be greater than {max_length} characters."
        )
    return value
