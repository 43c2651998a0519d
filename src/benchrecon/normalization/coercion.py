"""Numeric coercion for vendor-formatted cells. Never raises."""

from __future__ import annotations

import math
from typing import Any

SENTINELS = frozenset({
    "", "***", "**", "*", "-", "--", "n/a", "na", "null", "none", "isd", "nan",
    "#n/a", "n<5", "suppressed",
})


def to_number(value: Any) -> float | None:
    """Parse ``"1,200"``, ``"$250,000"``, ``"(1,500)"``, ``"45%"``.

    Sentinels, blanks, booleans and anything unparseable return None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return None if math.isnan(number) or math.isinf(number) else number

    text = str(value).strip()
    if text.lower() in SENTINELS:
        return None

    negative = text.startswith("(") and text.endswith(")")
    if negative:
        text = text[1:-1]
    text = text.replace(",", "").replace("$", "").replace("%", "").strip()
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return -number if negative else number


def to_count(value: Any) -> tuple[float, bool]:
    """Coerce an org/incumbent count; returns ``(value, missing)`` with 0 for missing."""
    number = to_number(value)
    if number is None:
        return 0.0, True
    return number, False
