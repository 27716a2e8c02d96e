# tradebook/parsing.py

import json
from datetime import date, datetime
from typing import Any, List, Optional

from dateutil.parser import isoparse


def parse_date(value: Any) -> Optional[date]:
    """
    Reads a calendar date from a stored or submitted value.

    Strings must be ISO 8601. Missing parts are never filled in from the
    current date, so "12" or "June" are unreadable rather than this year.

    Args:
        value: A date, datetime, ISO 8601 string, or None.

    Returns:
        Optional[date]: The date, or None when the value is empty or cannot be parsed.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            return isoparse(value.strip()).date()
        except (ValueError, OverflowError):
            return None
    return None


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_string_list(value: Any) -> List[str]:
    """
    Decodes a stored list column (reference images, image references).

    A malformed value never fails the read: JSON arrays are decoded, other
    strings are treated as comma separated, and anything else is empty.

    Args:
        value: Raw column value.

    Returns:
        List[str]: The decoded items.
    """
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return _split_csv(value)
        if isinstance(parsed, list):
            return [str(item) for item in parsed]
        return []
    return []


def normalize_string_list(value: Any) -> Optional[List[str]]:
    """
    Normalizes list input from a request body before it is stored.

    None means "leave the column null"; a list keeps its non-empty items and
    a string is split on commas.
    """
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if str(item)]
    if isinstance(value, str):
        return _split_csv(value)
    raise ValueError("Expected a list of strings or a comma separated string")


def dump_string_list(value: Optional[List[str]]) -> Optional[str]:
    """Serializes a normalized list for storage."""
    if value is None:
        return None
    return json.dumps(value)
