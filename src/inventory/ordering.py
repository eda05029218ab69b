"""
Variant ordering.

Siblings come back from the store in no useful order ("100g" sorts before
"50g" as text), so the views impose one:

1. variants whose value carries a number come first, ascending by that
   number ("50g" < "100g" < "1kg"; mass and volume units are scaled to
   grams / millilitres before comparing);
2. variants without a number follow, cheapest first;
3. remaining ties fall back to a case-insensitive comparison of the value,
   then the raw value, then the variant id, so the order is total.

The ordering is computed from a sort key, so each variant is parsed once
per sort and the input sequence is never mutated.
"""

import re
from typing import Iterable, List, Optional, Tuple

from inventory.models import Variant


_NUMBER_WITH_UNIT = re.compile(r"(\d+(?:\.\d+)?)\s*([a-zA-Z]+)?")

# Scale factors to a common base unit (grams, millilitres)
_UNIT_SCALE = {
    "mg": 0.001,
    "g": 1.0,
    "gm": 1.0,
    "gms": 1.0,
    "gram": 1.0,
    "grams": 1.0,
    "kg": 1000.0,
    "kgs": 1000.0,
    "ml": 1.0,
    "l": 1000.0,
    "ltr": 1000.0,
    "litre": 1000.0,
    "liter": 1000.0,
}

_INF = float("inf")


def parse_numeric_value(value: Optional[str]) -> Optional[float]:
    """
    First number found in a variant value, or None.

    Examples:
        >>> parse_numeric_value("250g")
        250.0
        >>> parse_numeric_value("Pack of 12.5")
        12.5
        >>> parse_numeric_value("Family Pack") is None
        True
    """
    if not value:
        return None
    match = _NUMBER_WITH_UNIT.search(value)
    if match is None:
        return None
    return float(match.group(1))


def variant_magnitude(value: Optional[str]) -> Optional[float]:
    """
    Numeric value of a variant label, scaled by its unit when recognised.

    "1kg" -> 1000.0, "500 g" -> 500.0, "12 pcs" -> 12.0, "Family Pack" -> None
    """
    if not value:
        return None
    match = _NUMBER_WITH_UNIT.search(value)
    if match is None:
        return None
    number = float(match.group(1))
    unit = (match.group(2) or "").lower()
    return number * _UNIT_SCALE.get(unit, 1.0)


def variant_sort_key(variant: Variant) -> Tuple:
    value = variant.variant_value or ""
    tail = (value.casefold(), value, variant.id)
    magnitude = variant_magnitude(value)
    if magnitude is not None:
        return (0, magnitude) + tail
    price = variant.price if variant.price is not None else _INF
    return (1, price) + tail


def compare_variants(a: Variant, b: Variant) -> int:
    """Three-way comparison consistent with sort_variants()."""
    key_a, key_b = variant_sort_key(a), variant_sort_key(b)
    return (key_a > key_b) - (key_a < key_b)


def sort_variants(variants: Iterable[Variant]) -> List[Variant]:
    """Return a new list of sibling variants in display order."""
    return sorted(variants, key=variant_sort_key)
