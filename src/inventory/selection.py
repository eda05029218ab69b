"""
Active-variant selection.

Each variant-bearing item shown in a view has one "active" variant whose
price, quantity and SKU are displayed. The selection map (item id ->
variant id) is client-only state and must never point at an item or
variant that is no longer in the snapshot.

reconcile_selection() repairs the map after every snapshot change:
- entries for items that disappeared are dropped;
- entries for items without variants are dropped;
- a valid existing choice is kept;
- anything else is reset to the item's first variant in display order.

When nothing changes the *same* mapping object is returned, so callers can
use identity to skip downstream work after a no-op background sync.
"""

from types import MappingProxyType
from typing import Dict, List, Mapping, NamedTuple, Optional, Sequence

from core.logging import LoggerMixin
from inventory.models import Item, Variant
from inventory.ordering import sort_variants


class VariantSelection(NamedTuple):
    """Display order of an item's variants plus the one currently shown."""
    ordered: List[Variant]
    active: Optional[Variant]


def reconcile_selection(
    items: Sequence[Item],
    current: Mapping[str, str],
) -> Mapping[str, str]:
    """
    Return a selection map that is valid for `items`.

    Returns `current` itself when it is already valid.
    """
    item_ids = {item.id for item in items}
    changed = False
    next_map: Dict[str, str] = dict(current)

    for item_id in list(next_map):
        if item_id not in item_ids:
            del next_map[item_id]
            changed = True

    for item in items:
        ordered = sort_variants(item.variants) if item.has_variants else []
        if not ordered:
            if item.id in next_map:
                del next_map[item.id]
                changed = True
            continue

        chosen = next_map.get(item.id)
        if chosen is None or all(variant.id != chosen for variant in ordered):
            next_map[item.id] = ordered[0].id
            changed = True

    return next_map if changed else current


def resolve_variants(item: Item, selection: Mapping[str, str]) -> VariantSelection:
    """
    Ordered variants of an item and its active variant.

    The active variant is the selected one when it is still valid, else the
    first in display order, else None (no variants, or variants disabled).
    """
    if not item.has_variants:
        return VariantSelection([], None)

    ordered = sort_variants(item.variants)
    chosen = selection.get(item.id)
    active = None
    if chosen is not None:
        active = next((variant for variant in ordered if variant.id == chosen), None)
    if active is None and ordered:
        active = ordered[0]
    return VariantSelection(ordered, active)


class SelectionReconciler(LoggerMixin):
    """
    Owner of one view's selection map.

    `select()` records a choice without validating it; the next
    `reconcile()` re-asserts validity against the latest snapshot.
    """

    def __init__(self):
        self._selection: Dict[str, str] = {}

    @property
    def selection(self) -> Mapping[str, str]:
        """Read-only view of the current map."""
        return MappingProxyType(self._selection)

    def reconcile(self, items: Sequence[Item]) -> bool:
        """Repair the map for `items`. Returns True if it changed."""
        result = reconcile_selection(items, self._selection)
        if result is self._selection:
            return False
        self.logger.debug(
            "Selection reconciled",
            before=len(self._selection),
            after=len(result),
        )
        self._selection = dict(result)
        return True

    def select(self, item_id: str, variant_id: str) -> None:
        self._selection[item_id] = variant_id

    def resolve(self, item: Item) -> VariantSelection:
        return resolve_variants(item, self._selection)

    def clear(self) -> None:
        self._selection = {}
