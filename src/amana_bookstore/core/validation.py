"""
Validation helpers for untrusted payload fields.

Every helper takes the raw value and the field name used in the error
message, and either returns the normalized value or raises ValidationError.
They are pure and have no side effects beyond reading the clock in
`ensure_iso_timestamp`.
"""

import math
import re
from datetime import datetime, timezone
from typing import Any, List

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError

_TRUE_LITERALS = {"true", "1"}
_FALSE_LITERALS = {"false", "0"}
_ISO_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
_DATETIME_ADAPTER = TypeAdapter(datetime)


def format_timestamp(value: datetime) -> str:
    """
    Renders a datetime as UTC `YYYY-MM-DDTHH:MM:SS.mmmZ`.

    Naive datetimes are taken to be UTC already.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return f"{value:%Y-%m-%dT%H:%M:%S}.{value.microsecond // 1000:03d}Z"


def utc_now_iso() -> str:
    return format_timestamp(datetime.now(timezone.utc))


def ensure_non_empty_string(value: Any, field: str) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    trimmed = value.strip()
    if not trimmed:
        raise ValidationError(f"{field} must not be empty")
    return trimmed


def ensure_string_array(value: Any, field: str) -> List[str]:
    """
    Validates a non-empty list of non-empty strings, trimming each element.

    Args:
        value (Any): Raw value, expected to be a list or tuple.
        field (str): Field name for error messages.

    Returns:
        List[str]: New list with trimmed elements, original order kept.

    Raises:
        ValidationError: If the value is not a non-empty sequence, or an element
            is not a string or is blank (the message names the index).
    """
    if not isinstance(value, (list, tuple)) or len(value) == 0:
        raise ValidationError(f"{field} must be a non-empty array of strings")
    normalized = []
    for index, item in enumerate(value):
        if not isinstance(item, str):
            raise ValidationError(f"{field}[{index}] must be a string")
        trimmed = item.strip()
        if not trimmed:
            raise ValidationError(f"{field}[{index}] must not be empty")
        normalized.append(trimmed)
    return normalized


def ensure_number(value: Any, field: str) -> float:
    """
    Accepts ints, floats and numeric strings. Booleans and non-finite values are rejected.

    Integral results are returned as int so that `pages=384` stays `384`.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a valid number")
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            number = int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                raise ValidationError(f"{field} must be a valid number") from None
    else:
        raise ValidationError(f"{field} must be a valid number")

    if isinstance(number, float) and not math.isfinite(number):
        raise ValidationError(f"{field} must be a valid number")
    return number


def ensure_integer(value: Any, field: str) -> int:
    number = ensure_number(value, field)
    if isinstance(number, float):
        if not number.is_integer():
            raise ValidationError(f"{field} must be an integer")
        number = int(number)
    return number


def ensure_non_negative(value: Any, field: str) -> float:
    number = ensure_number(value, field)
    if number < 0:
        raise ValidationError(f"{field} must not be negative")
    return number


def ensure_boolean(value: Any, field: str) -> bool:
    """
    Accepts a bool, the strings "true"/"1"/"false"/"0" or the integers 1/0.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        literal = value.strip().lower()
        if literal in _TRUE_LITERALS:
            return True
        if literal in _FALSE_LITERALS:
            return False
    raise ValidationError(f"{field} must be a boolean")


def ensure_rating(value: Any, field: str, low: float = 0, high: float = 5) -> float:
    rating = ensure_number(value, field)
    if rating < low or rating > high:
        raise ValidationError(f"{field} must be between {low} and {high}")
    return rating


def ensure_iso_timestamp(value: Any, field: str) -> str:
    """
    Normalizes an ISO-8601 timestamp to the canonical UTC rendering.

    Args:
        value (Any): None or "" (defaults to now), a datetime, or an ISO-8601 string.
            A trailing "Z", fractional seconds of any precision and
            date-only values are accepted; offsets are converted to UTC.
        field (str): Field name for error messages.

    Returns:
        str: Timestamp as `YYYY-MM-DDTHH:MM:SS.mmmZ`.

    Raises:
        ValidationError: If a non-empty value cannot be parsed.
    """
    if value is None or value == "":
        return utc_now_iso()
    if isinstance(value, datetime):
        return format_timestamp(value)
    # Pydantic also reads bare numbers as Unix times; only ISO-8601 text is accepted here.
    if isinstance(value, str) and _ISO_DATE_PREFIX.match(value.strip()):
        try:
            return format_timestamp(_DATETIME_ADAPTER.validate_python(value.strip()))
        except PydanticValidationError:
            pass
    raise ValidationError(f"{field} must be a valid ISO timestamp")


def ensure_quantity(value: Any, field: str = "quantity") -> int:
    """Finite number >= 1, floored to an int."""
    try:
        numeric = ensure_number(value, field)
    except ValidationError:
        raise ValidationError(f"{field} must be a positive number") from None
    if numeric < 1:
        raise ValidationError(f"{field} must be a positive number")
    return math.floor(numeric)
