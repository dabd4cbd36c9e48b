"""
Value-level validators used by the built-in rules.

Each function answers one question about a single value and returns a
bool; message formatting and rule parsing live in the evaluator.
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from collections.abc import Sized
from typing import Any, Optional, Union

import phonenumbers
from email_validator import validate_email as email_validate, EmailNotValidError

URL_PATTERN = re.compile(
    r'^https?:\/\/(www\.)?[-a-zA-Z0-9@:%._\+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b([-a-zA-Z0-9()@:%_\+.~#?&//=]*)$'
)
SLUG_PATTERN = re.compile(r'^[a-z0-9]+(?:-[a-z0-9]+)*$')
INTEGER_PATTERN = re.compile(r'^[+-]?\d+$')
ALPHA_DASH_PATTERN = re.compile(r'^[\w-]+$')


def is_empty(value: Any) -> bool:
    """
    Check whether a value counts as missing.

    None, blank strings and empty collections are empty; zero and False
    are not.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, dict, set, frozenset)):
        return len(value) == 0
    return False


def to_decimal(value: Any) -> Optional[Decimal]:
    """Convert a numeric value or numeric string to Decimal, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, (int, float, str)):
        try:
            number = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return None
        return number if number.is_finite() else None
    return None


def is_numeric(value: Any) -> bool:
    return to_decimal(value) is not None


def is_integer(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, str) and bool(INTEGER_PATTERN.match(value.strip()))


def is_boolean(value: Any) -> bool:
    """True, False, 0, 1, "0" and "1" are accepted."""
    if isinstance(value, bool):
        return True
    if isinstance(value, int):
        return value in (0, 1)
    return isinstance(value, str) and value in ("0", "1")


def validate_email(email: Any) -> bool:
    """
    Validate email address format.

    Args:
        email: Email address to validate

    Returns:
        True if valid, False otherwise
    """
    if not isinstance(email, str) or not email:
        return False

    try:
        email_validate(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def validate_phone(phone: Any, region: Optional[str] = None) -> bool:
    """
    Validate phone number.

    Args:
        phone: Phone number to validate
        region: ISO country code used when the number has no ``+`` prefix

    Returns:
        True if valid, False otherwise
    """
    if not isinstance(phone, str) or not phone:
        return False

    try:
        parsed = phonenumbers.parse(phone, region.upper() if region else None)
    except phonenumbers.NumberParseException:
        return False
    return phonenumbers.is_valid_number(parsed)


def validate_url(url: Any) -> bool:
    if not isinstance(url, str) or not url:
        return False
    return bool(URL_PATTERN.match(url))


def validate_slug(slug: Any) -> bool:
    """Only lowercase letters, numbers, and single hyphens."""
    if not isinstance(slug, str) or not slug:
        return False
    return bool(SLUG_PATTERN.match(slug))


def validate_alpha(value: Any) -> bool:
    return isinstance(value, str) and value.isalpha()


def validate_alpha_num(value: Any) -> bool:
    return isinstance(value, str) and value.isalnum()


def validate_alpha_dash(value: Any) -> bool:
    return isinstance(value, str) and bool(ALPHA_DASH_PATTERN.match(value))


def validate_digits(value: Any, length: int) -> bool:
    """Value is made of exactly ``length`` digits."""
    if isinstance(value, bool):
        return False
    text = str(value) if isinstance(value, int) else value
    return isinstance(text, str) and text.isdigit() and len(text) == length


def validate_date(value: Any) -> bool:
    """Accept date/datetime objects and ISO-8601 strings."""
    if isinstance(value, (date, datetime)):
        return True
    if not isinstance(value, str):
        return False
    try:
        datetime.fromisoformat(value.strip())
    except ValueError:
        return False
    return True


def size_of(value: Any, numeric: bool = False) -> Optional[Union[Decimal, int]]:
    """
    Measure a value for the size rules.

    Numbers (or numeric strings when ``numeric`` is set) are measured by
    value; strings and collections by length.

    Returns:
        The size, or None when the value cannot be measured
    """
    if numeric or (isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)):
        number = to_decimal(value)
        if number is not None:
            return number
        if numeric:
            return None
    if isinstance(value, Sized):
        return len(value)
    return None
