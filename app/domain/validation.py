"""
Input shape validation shared by the ledger and the investment lifecycle.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any

from app.domain.errors import ValidationError

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
SIMPLE_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,50}$")

MONEY_EXPONENT = -2
MONEY_STEP = Decimal("0.01")
# NUMERIC(15, 2)
MAX_MONEY = Decimal("9999999999999.99")


def validate_identifier(value: Any, field_name: str = "id") -> str:
    """
    Accept UUIDs or short alphanumeric ids.

    Returns the stripped id; raises ValidationError otherwise.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field_name} is required", field=field_name)
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string", field=field_name)

    candidate = value.strip()
    if UUID_PATTERN.match(candidate) or SIMPLE_ID_PATTERN.match(candidate):
        return candidate
    raise ValidationError(f"Invalid {field_name} format", field=field_name)


def parse_money(value: Any, field_name: str = "amount") -> Decimal:
    """
    Parse a strictly positive money amount with at most 2 decimal places.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"Valid {field_name} is required", field=field_name)
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"Valid {field_name} is required", field=field_name)

    if not amount.is_finite():
        raise ValidationError(f"{field_name} must be finite", field=field_name)
    if amount <= 0:
        raise ValidationError(f"{field_name} must be positive", field=field_name)
    if amount > MAX_MONEY:
        raise ValidationError(f"{field_name} cannot exceed {MAX_MONEY}", field=field_name)
    try:
        quantized = amount.quantize(MONEY_STEP)
    except InvalidOperation:
        raise ValidationError(f"Valid {field_name} is required", field=field_name)
    if amount.as_tuple().exponent < MONEY_EXPONENT and amount != quantized:
        raise ValidationError(
            f"{field_name} cannot have more than 2 decimal places", field=field_name
        )
    return quantized
