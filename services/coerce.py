"""
services.coerce - Tolerant scalar conversion shared by the store,
the filter builder and the spreadsheet mapper.

None of these raise: anything that cannot be converted becomes None
(or the supplied default).
"""

from __future__ import annotations

import math
from typing import Any

_TRUE_WORDS = frozenset({"1", "true", "yes", "on", "y"})


def clean_str(value: Any) -> str | None:
    """Trimmed string, or None for missing / blank values."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def to_float(value: Any) -> float | None:
    """Parse a float; accepts decimal commas.  NaN/inf and junk → None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        num = float(value)
    else:
        text = str(value).strip().replace(",", ".")
        if not text:
            return None
        try:
            num = float(text)
        except ValueError:
            return None
    if math.isnan(num) or math.isinf(num):
        return None
    return num


def to_int(value: Any, default: int | None = None) -> int | None:
    """Parse an integer ("50", 50.0, " 7 ").  Non-integral or junk → default."""
    num = to_float(value)
    if num is None or not num.is_integer():
        return default
    return int(num)


def to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if value is None:
        return False
    return str(value).strip().lower() in _TRUE_WORDS
