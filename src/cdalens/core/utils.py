"""Shared utility functions for numeric parsing, dates, deduplication, etc."""

from __future__ import annotations

import math
import re
from datetime import date
from typing import Any, Callable, Iterable

MAX_PLAUSIBLE_AGE = 150


def try_parse_numeric(value: str | None) -> float | None:
    """Try to parse a value string as a float.

    Handles leading operators like '<', '>', '<=', '>='.
    Returns None if not parseable, including NaN and infinities.
    """
    if not value:
        return None
    cleaned = re.sub(r"^[<>=]+\s*", "", value.strip())
    try:
        number = float(cleaned)
    except (ValueError, TypeError):
        return None
    return number if math.isfinite(number) else None


def parse_float_or_zero(value: str | None) -> float:
    """Lenient float parse: anything unparseable becomes 0.0."""
    parsed = try_parse_numeric(value)
    return parsed if parsed is not None else 0.0


def calculate_age(hl7_date: str | None, current_year: int | None = None) -> int | None:
    """Age in whole years from an HL7 date (YYYYMMDD...), using the year only.

    Returns None for short/unparseable dates and for ages outside 0..150.
    """
    if not hl7_date or len(hl7_date) < 8:
        return None
    year_str = hl7_date[:4]
    if not year_str.isdigit():
        return None
    if current_year is None:
        current_year = date.today().year
    age = current_year - int(year_str)
    if 0 <= age <= MAX_PLAUSIBLE_AGE:
        return age
    return None


def deduplicate_by_key(
    items: Iterable[Any],
    key_func: Callable[[Any], Any],
) -> list[Any]:
    """Deduplicate items using a key function, keeping the first occurrence."""
    seen = set()
    result = []
    for item in items:
        k = key_func(item)
        if k in seen:
            continue
        seen.add(k)
        result.append(item)
    return result
