"""Validation utilities for the expense tracker application."""

import re
from typing import Any, Dict, List, Optional
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .exceptions import ValidationError


# Characters kept when parsing a user typed amount ("$ 1500.50" -> "1500.50")
AMOUNT_CHARS_PATTERN = re.compile(r'[^0-9.]')

MAX_DESCRIPTION_LENGTH = 500

MAX_AMOUNT = Decimal('999999999999.99')
CENT = Decimal('0.01')


def validate_amount(amount: Any) -> Decimal:
    """
    Validate monetary amount.

    Anything that is not a digit or a dot is stripped before parsing, so
    currency symbols and spaces typed by the user are accepted. The result
    is rounded to cents.

    Args:
        amount: Amount to validate

    Returns:
        Validated amount as Decimal

    Raises:
        ValidationError: If amount is invalid
    """
    if amount is None:
        raise ValidationError("Amount is required")

    if isinstance(amount, bool):
        raise ValidationError("Invalid amount format")

    if isinstance(amount, (int, float, Decimal)):
        cleaned = str(amount)
    else:
        cleaned = AMOUNT_CHARS_PATTERN.sub('', str(amount))
    if not cleaned:
        raise ValidationError("Invalid amount format")

    try:
        decimal_amount = Decimal(cleaned)
    except (InvalidOperation, ValueError):
        raise ValidationError("Invalid amount format")

    if not decimal_amount.is_finite():
        raise ValidationError("Invalid amount format")

    if decimal_amount > MAX_AMOUNT:
        raise ValidationError(f"Amount must not exceed {MAX_AMOUNT}")

    decimal_amount = decimal_amount.quantize(CENT, rounding=ROUND_HALF_UP)

    if decimal_amount <= 0:
        raise ValidationError("Amount must be greater than 0")

    return decimal_amount


def validate_description(description: Any) -> str:
    """
    Validate expense description.

    Args:
        description: Free text description

    Returns:
        Stripped description

    Raises:
        ValidationError: If description is missing or empty
    """
    if description is None:
        raise ValidationError("Description is required")

    description = sanitize_string(description, max_length=MAX_DESCRIPTION_LENGTH)

    if not description:
        raise ValidationError("Description cannot be empty")

    return description


def validate_required_fields(data: Dict[str, Any], required_fields: List[str]) -> None:
    """
    Validate that required fields are present in data.

    Args:
        data: Data dictionary to validate
        required_fields: List of required field names

    Raises:
        ValidationError: If any required field is missing
    """
    missing_fields = [field for field in required_fields if field not in data or data[field] is None]

    if missing_fields:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing_fields)}"
        )


def sanitize_string(value: str, max_length: Optional[int] = None) -> str:
    """
    Sanitize string input.

    Args:
        value: String to sanitize
        max_length: Optional maximum length

    Returns:
        Sanitized string

    Raises:
        ValidationError: If string is invalid
    """
    if not isinstance(value, str):
        raise ValidationError("Value must be a string")

    # Remove leading/trailing whitespace
    value = value.strip()

    if max_length and len(value) > max_length:
        raise ValidationError(f"Value exceeds maximum length of {max_length}")

    return value
