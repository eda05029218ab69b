"""
Free-text search over items and their variants.

An item matches when the (case-insensitive) query is a substring of any of:
- the item's name, category or description;
- any variant's value, SKU or type, or its price/quantity in decimal form;
- for items without variants, the item's own price, quantity or SKU.

Missing fields never match. A blank query returns the input unchanged.
"""

from typing import Callable, Sequence, Tuple

from core.utils import contains_text, number_text
from inventory.models import Item, Variant


def normalize_query(query: str) -> str:
    return (query or "").strip().casefold()


def _variant_matches(variant: Variant, needle: str) -> bool:
    variant_type = variant.variant_type.value if variant.variant_type else None
    return (
        contains_text(variant.variant_value, needle)
        or contains_text(variant.sku, needle)
        or contains_text(variant_type, needle)
        or contains_text(number_text(variant.price), needle)
        or contains_text(number_text(variant.quantity), needle)
    )


def _item_fields_match(item: Item, needle: str) -> bool:
    return (
        contains_text(item.name, needle)
        or contains_text(item.category, needle)
        or contains_text(item.description, needle)
    )


def _single_item_matches(item: Item, needle: str) -> bool:
    if item.has_variants:
        return False
    return (
        contains_text(number_text(item.price), needle)
        or contains_text(number_text(item.quantity), needle)
        or contains_text(item.sku, needle)
    )


def make_predicate(query: str) -> Callable[[Item], bool]:
    """Closure over a normalized query, for repeated use over one list."""
    needle = normalize_query(query)
    if not needle:
        return lambda item: True

    def predicate(item: Item) -> bool:
        return (
            _item_fields_match(item, needle)
            or any(_variant_matches(variant, needle) for variant in item.variants)
            or _single_item_matches(item, needle)
        )

    return predicate


def item_matches(item: Item, query: str) -> bool:
    """True when the item satisfies the query (blank queries match everything)."""
    return make_predicate(query)(item)


def filter_items(items: Sequence[Item], query: str) -> Tuple[Item, ...]:
    """
    Items matching the query, in input order.

    The source sequence is never mutated; a blank query returns all items.
    """
    if not normalize_query(query):
        return tuple(items)
    return tuple(filter(make_predicate(query), items))
