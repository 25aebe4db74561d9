"""
Identifier normalization.

Book ids have been stored as numeric literals, as strings and as native
ObjectIds over the life of the store. Everything that compares ids goes
through `to_canonical_id`, and every Mongo lookup goes through
`build_id_match_predicate` so that a lookup by one representation finds
documents stored under another.
"""

import math
import re
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId

from ..core.errors import InvalidIdentifier

_PLACEHOLDERS = {"undefined", "null", "none", "nan"}
_INTEGER_LITERAL = re.compile(r"^[+-]?\d+$")
_DECIMAL_LITERAL = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


def to_canonical_id(value: Any) -> str:
    """
    Converts an identifier in any supported representation to its canonical string.

    Args:
        value (Any): int, float, str or ObjectId.

    Returns:
        str: Canonical id. Integers, integral floats and numeric literals with an
            integral value become their plain decimal form
            (`7`, `7.0`, `" 007 "`, `"7.0"`, `"7e0"` -> `"7"`).

    Raises:
        InvalidIdentifier: For None, booleans, blank or placeholder strings,
            non-finite floats and unsupported types.
    """
    if value is None or isinstance(value, bool):
        raise InvalidIdentifier(value)
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidIdentifier(value)
        return str(int(value)) if value.is_integer() else repr(value)
    if isinstance(value, str):
        text = value.strip()
        if not text or text.lower() in _PLACEHOLDERS:
            raise InvalidIdentifier(value)
        if _INTEGER_LITERAL.match(text):
            return str(int(text))
        if _DECIMAL_LITERAL.match(text) and not ObjectId.is_valid(text):
            number = float(text)
            if math.isfinite(number) and number.is_integer():
                return str(int(number))
        return text
    raise InvalidIdentifier(value)


def _numeric_form(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        if not math.isfinite(number):
            return None
        return int(number) if number.is_integer() else number
    return None


def id_candidates(value: Any) -> List[Any]:
    """
    Every stored representation that should match `value`.

    Includes the raw value, its string and canonical forms, its numeric form when
    finite, and its ObjectId form when the string is a valid ObjectId. Values that
    cannot be canonicalized only contribute themselves.
    """
    candidates: List[Any] = []

    def add(candidate: Any) -> None:
        if candidate is None:
            return
        for existing in candidates:
            if type(existing) is type(candidate) and existing == candidate:
                return
        candidates.append(candidate)

    add(value)
    try:
        canonical = to_canonical_id(value)
    except InvalidIdentifier:
        return candidates

    add(str(value).strip() if not isinstance(value, ObjectId) else str(value))
    add(canonical)
    add(_numeric_form(canonical))
    if ObjectId.is_valid(canonical):
        add(ObjectId(canonical))
    return candidates


def build_id_match_predicate(
    ids: Iterable[Any],
    field: str = "id",
    native_field: Optional[str] = "_id",
) -> Optional[Dict[str, Any]]:
    """
    Builds a Mongo filter matching any historical representation of the given ids.

    Args:
        ids (Iterable[Any]): Identifiers to match.
        field (str): Application-level id field.
        native_field (Optional[str]): Store-native id field, also matched unless None.

    Returns:
        Optional[Dict[str, Any]]: The filter, or None when `ids` is empty.
    """
    candidates: List[Any] = []
    for value in ids:
        for candidate in id_candidates(value):
            if not any(type(c) is type(candidate) and c == candidate for c in candidates):
                candidates.append(candidate)
    if not candidates:
        return None

    if native_field is None:
        return {field: {"$in": candidates}}
    return {"$or": [{field: {"$in": candidates}}, {native_field: {"$in": candidates}}]}
