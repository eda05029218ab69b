"""
Core Utility Functions.

Small, dependency-free helpers for coercing loosely typed rows coming
back from the data store.
"""

import math
from datetime import datetime, timezone
from typing import Any, Optional


# =============================================================================
# Numbers
# =============================================================================

def coerce_optional_float(value: Any) -> Optional[float]:
    """
    Convert a store value to float, or None when it is missing or malformed.

    Examples:
        >>> coerce_optional_float("12.50")
        12.5
        >>> coerce_optional_float(None) is None
        True
        >>> coerce_optional_float("n/a") is None
        True
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


def coerce_optional_int(value: Any) -> Optional[int]:
    """Convert a store value to int, or None when missing/malformed/fractional."""
    result = coerce_optional_float(value)
    if result is None or not result.is_integer():
        return None
    return int(result)


def number_text(value: Optional[float]) -> Optional[str]:
    """
    Decimal string form of a number, without a trailing ".0" for integers.

    Used for substring search over prices and quantities, so 250.0 must read
    "250" and 12.5 must read "12.5".

    Examples:
        >>> number_text(250.0)
        '250'
        >>> number_text(12.5)
        '12.5'
    """
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


# =============================================================================
# Timestamps
# =============================================================================

def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into an aware datetime (UTC when naive).

    Returns None for missing or unparsable values instead of raising.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# =============================================================================
# Strings
# =============================================================================

def blank_to_none(value: Optional[str]) -> Optional[str]:
    """Strip a string; empty results become None."""
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def contains_text(haystack: Optional[str], needle: str) -> bool:
    """Case-insensitive containment; None never matches."""
    if haystack is None:
        return False
    return needle in str(haystack).casefold()
