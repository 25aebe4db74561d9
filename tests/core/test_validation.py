# tests/core/test_validation.py
import re
from datetime import datetime, timedelta, timezone

import pytest

from amana_bookstore.core.errors import ValidationError
from amana_bookstore.core.validation import (
    ensure_boolean,
    ensure_integer,
    ensure_iso_timestamp,
    ensure_non_empty_string,
    ensure_non_negative,
    ensure_number,
    ensure_quantity,
    ensure_rating,
    ensure_string_array,
)

CANONICAL_TIMESTAMP = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


def test_non_empty_string_trims():
    assert ensure_non_empty_string("  Dune  ", "title") == "Dune"


@pytest.mark.parametrize("value, message", [
    (None, "title must be a string"),
    (42, "title must be a string"),
    ("   ", "title must not be empty"),
])
def test_non_empty_string_rejects(value, message):
    with pytest.raises(ValidationError) as exc_info:
        ensure_non_empty_string(value, "title")
    assert exc_info.value.message == message


def test_string_array_trims_and_keeps_order():
    assert ensure_string_array([" Fantasy ", "Adventure"], "genre") == ["Fantasy", "Adventure"]


def test_string_array_error_names_the_index():
    with pytest.raises(ValidationError, match=r"genre\[1\] must not be empty"):
        ensure_string_array(["Fantasy", "  "], "genre")
    with pytest.raises(ValidationError, match=r"tags\[0\] must be a string"):
        ensure_string_array([3], "tags")


@pytest.mark.parametrize("value", [[], "Fantasy", None])
def test_string_array_requires_non_empty_list(value):
    with pytest.raises(ValidationError, match="genre must be a non-empty array of strings"):
        ensure_string_array(value, "genre")


def test_number_coerces_numeric_strings():
    assert ensure_number("21.95", "price") == pytest.approx(21.95)
    assert ensure_number(" 384 ", "pages") == 384
    assert isinstance(ensure_number("384", "pages"), int)
    assert ensure_number(7, "pages") == 7


@pytest.mark.parametrize("value", ["abc", "", float("nan"), float("inf"), "inf", True, None, [1]])
def test_number_rejects_non_finite_and_non_numeric(value):
    with pytest.raises(ValidationError, match="price must be a valid number"):
        ensure_number(value, "price")


def test_integer_and_non_negative():
    assert ensure_integer("12", "pages") == 12
    assert ensure_integer(12.0, "pages") == 12
    with pytest.raises(ValidationError, match="pages must be an integer"):
        ensure_integer(12.5, "pages")
    assert ensure_non_negative(0, "price") == 0
    with pytest.raises(ValidationError, match="price must not be negative"):
        ensure_non_negative(-0.01, "price")


@pytest.mark.parametrize("value, expected", [
    (True, True), (False, False),
    ("true", True), ("1", True), ("false", False), ("0", False),
    (1, True), (0, False),
])
def test_boolean_literals(value, expected):
    assert ensure_boolean(value, "inStock") is expected


@pytest.mark.parametrize("value", ["yes", "", None, 2])
def test_boolean_rejects_other_values(value):
    with pytest.raises(ValidationError, match="inStock must be a boolean"):
        ensure_boolean(value, "inStock")


def test_rating_range_is_inclusive():
    assert ensure_rating(0, "rating") == 0
    assert ensure_rating("5", "rating") == 5
    assert ensure_rating(4.5, "rating") == 4.5
    with pytest.raises(ValidationError, match="rating must be between 0 and 5"):
        ensure_rating(5.1, "rating")
    with pytest.raises(ValidationError):
        ensure_rating(-1, "rating")


def test_timestamp_defaults_to_now():
    before = datetime.now(timezone.utc) - timedelta(seconds=1)
    value = ensure_iso_timestamp(None, "timestamp")
    assert CANONICAL_TIMESTAMP.match(value)
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    assert parsed >= before
    assert CANONICAL_TIMESTAMP.match(ensure_iso_timestamp("", "timestamp"))


@pytest.mark.parametrize("value, expected", [
    ("2024-01-12T10:15:00.000Z", "2024-01-12T10:15:00.000Z"),
    ("2024-01-12T10:15:00Z", "2024-01-12T10:15:00.000Z"),
    ("2024-01-12T12:15:00+02:00", "2024-01-12T10:15:00.000Z"),
    ("2024-01-12", "2024-01-12T00:00:00.000Z"),
    ("2024-01-12T10:15:00.5Z", "2024-01-12T10:15:00.500Z"),
    ("2024-01-12T10:15:00.1234Z", "2024-01-12T10:15:00.123Z"),
    (" 2024-01-12T10:15Z ", "2024-01-12T10:15:00.000Z"),
    (datetime(2024, 1, 12, 10, 15, tzinfo=timezone.utc), "2024-01-12T10:15:00.000Z"),
])
def test_timestamp_is_normalized_to_utc(value, expected):
    assert ensure_iso_timestamp(value, "timestamp") == expected


@pytest.mark.parametrize("value", ["yesterday", "2024-13-45", 12345, "1705054500", "2024-01-12T25:00:00Z"])
def test_timestamp_rejects_unparsable_input(value):
    with pytest.raises(ValidationError, match="timestamp must be a valid ISO timestamp"):
        ensure_iso_timestamp(value, "timestamp")


def test_quantity_floors_and_requires_at_least_one():
    assert ensure_quantity(3) == 3
    assert ensure_quantity("2.7") == 2
    for bad in (0, -1, 0.5, "abc", None):
        with pytest.raises(ValidationError, match="quantity must be a positive number"):
            ensure_quantity(bad)
