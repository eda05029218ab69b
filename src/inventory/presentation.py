"""
Display projections for the catalog cards and the admin table.

Pure functions from the snapshot (plus the selection map) to flat,
JSON-ready models. Missing values render as "—"; prices are shown in
rupees with Indian digit grouping and timestamps in IST.
"""

from datetime import timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from pydantic import BaseModel

from config.constants import (
    NO_VARIANT,
    NO_VARIANTS_YET,
    PLACEHOLDER,
    VARIANTS_DISABLED,
)
from core.utils import coerce_optional_float, parse_timestamp
from inventory.models import Item, Variant, VariantType
from inventory.ordering import sort_variants
from inventory.selection import resolve_variants

SKU_UNAVAILABLE = "SKU unavailable"

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


# =============================================================================
# Formatting
# =============================================================================

def _group_indian(digits: str) -> str:
    # last three digits, then pairs: 12,34,567
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_currency(value: Any, symbol: str = "₹") -> str:
    """
    Format an amount as rupees with two decimals and Indian grouping.

    Missing or malformed amounts format as zero.

    Examples:
        >>> format_currency(1234567.5)
        '₹12,34,567.50'
        >>> format_currency(None)
        '₹0.00'
    """
    amount = coerce_optional_float(value) or 0.0
    quantized = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if quantized < 0 else ""
    whole, fraction = f"{abs(quantized):.2f}".split(".")
    return f"{sign}{symbol}{_group_indian(whole)}.{fraction}"


def format_timestamp(value: Any, utc_offset_minutes: int = 330) -> str:
    """
    "MMM d, yyyy • h:mm a" in the display timezone (IST by default).

    Examples:
        >>> format_timestamp("2024-03-05T08:15:00Z")
        'Mar 5, 2024 • 1:45 PM'
        >>> format_timestamp(None)
        '—'
    """
    parsed = parse_timestamp(value)
    if parsed is None:
        return PLACEHOLDER
    local = parsed.astimezone(timezone(timedelta(minutes=utc_offset_minutes)))
    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    return f"{_MONTHS[local.month - 1]} {local.day}, {local.year} • {hour}:{local.minute:02d} {meridiem}"


def variant_option_label(variant: Variant) -> str:
    """Option text such as "250g • Weight"; the bare value when the type is unknown."""
    if variant.variant_type is None:
        return variant.variant_value
    return f"{variant.variant_value} • {variant.variant_type.label}"


def _quantity_text(quantity: Optional[int]) -> str:
    return PLACEHOLDER if quantity is None else str(quantity)


# =============================================================================
# Catalog cards
# =============================================================================

class VariantOption(BaseModel):
    id: str
    value: str
    label: str
    variant_type: Optional[VariantType] = None


class ItemCard(BaseModel):
    """One catalog card, with display fields taken from the active variant."""
    id: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    is_visible: bool
    has_variants: bool
    options: List[VariantOption] = []
    active_variant_id: Optional[str] = None
    badge: Optional[str] = None
    variant_type_label: Optional[str] = None
    sku: Optional[str] = None
    sku_text: str
    price: Optional[float] = None
    price_text: str
    quantity: Optional[int] = None
    quantity_text: str
    out_of_stock: bool = False
    last_updated_text: str


def build_item_card(
    item: Item,
    selection: Mapping[str, str],
    currency_symbol: str = "₹",
    utc_offset_minutes: int = 330,
) -> ItemCard:
    resolved = resolve_variants(item, selection)
    active = resolved.active

    if item.has_variants:
        price = active.price if active else None
        quantity = active.quantity if active else None
        sku = active.sku if active else None
        last_updated = active.last_updated if active else None
        badge = None if resolved.ordered else NO_VARIANTS_YET
    else:
        price, quantity, sku, last_updated = item.price, item.quantity, item.sku, item.last_updated
        badge = NO_VARIANT

    # "Price" variants already say what they are
    type_label = None
    if active is not None and active.variant_type not in (None, VariantType.PRICE):
        type_label = active.variant_type.label

    return ItemCard(
        id=item.id,
        name=item.name,
        description=item.description,
        category=item.category,
        is_visible=item.is_visible,
        has_variants=item.has_variants,
        options=[
            VariantOption(
                id=variant.id,
                value=variant.variant_value,
                label=variant_option_label(variant),
                variant_type=variant.variant_type,
            )
            for variant in resolved.ordered
        ],
        active_variant_id=active.id if active else None,
        badge=badge,
        variant_type_label=type_label,
        sku=sku,
        sku_text=sku or SKU_UNAVAILABLE,
        price=price,
        price_text=PLACEHOLDER if price is None else format_currency(price, currency_symbol),
        quantity=quantity,
        quantity_text=_quantity_text(quantity),
        out_of_stock=quantity == 0,
        last_updated_text=format_timestamp(last_updated, utc_offset_minutes),
    )


# =============================================================================
# Admin table
# =============================================================================

class AdminRow(BaseModel):
    """One admin table row. Variant items show their first ordered variant."""
    id: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    category_text: str
    has_variants: bool
    default_variant_id: Optional[str] = None
    default_variant_value: Optional[str] = None
    default_variant_type_label: Optional[str] = None
    variant_badge: Optional[str] = None
    variant_count: Optional[int] = None
    variant_count_text: str
    variants: List[VariantOption] = []
    price: Optional[float] = None
    price_text: str
    quantity: Optional[int] = None
    quantity_text: str
    out_of_stock: bool = False
    is_visible: bool
    visibility_label: str
    last_updated_text: str


def build_admin_row(
    item: Item,
    currency_symbol: str = "₹",
    utc_offset_minutes: int = 330,
) -> AdminRow:
    ordered = sort_variants(item.variants) if item.has_variants else []
    default = ordered[0] if ordered else None

    if item.has_variants:
        price = default.price if default else None
        quantity = default.quantity if default else None
        badge = None if default else NO_VARIANTS_YET
        count: Optional[int] = len(ordered)
        last_updated_text = format_timestamp(default.last_updated, utc_offset_minutes) if default else PLACEHOLDER
    else:
        price, quantity = item.price, item.quantity
        badge = VARIANTS_DISABLED
        count = None
        last_updated_text = PLACEHOLDER

    return AdminRow(
        id=item.id,
        name=item.name,
        description=item.description,
        category=item.category,
        category_text=item.category or PLACEHOLDER,
        has_variants=item.has_variants,
        default_variant_id=default.id if default else None,
        default_variant_value=default.variant_value if default else None,
        default_variant_type_label=default.variant_type.label if default and default.variant_type else None,
        variant_badge=badge,
        variant_count=count,
        variant_count_text=PLACEHOLDER if count is None else str(count),
        variants=[
            VariantOption(
                id=variant.id,
                value=variant.variant_value,
                label=variant_option_label(variant),
                variant_type=variant.variant_type,
            )
            for variant in ordered
        ],
        price=price,
        price_text=PLACEHOLDER if price is None else format_currency(price, currency_symbol),
        quantity=quantity,
        quantity_text=_quantity_text(quantity),
        out_of_stock=quantity == 0,
        is_visible=item.is_visible,
        visibility_label="Visible" if item.is_visible else "Hidden",
        last_updated_text=last_updated_text,
    )


# =============================================================================
# Summary
# =============================================================================

class InventoryStats(BaseModel):
    total_items: int = 0
    total_quantity: int = 0
    category_count: int = 0


def categories(items: Iterable[Item]) -> List[str]:
    """Distinct non-empty categories in first-seen order."""
    seen: List[str] = []
    for item in items:
        if item.category and item.category not in seen:
            seen.append(item.category)
    return seen


def compute_stats(items: Sequence[Item]) -> InventoryStats:
    """
    Dashboard counters.

    Variant items contribute the sum of their variants' quantities; missing
    quantities count as zero.
    """
    total_quantity = 0
    for item in items:
        if item.has_variants:
            total_quantity += sum(variant.quantity or 0 for variant in item.variants)
        else:
            total_quantity += item.quantity or 0
    return InventoryStats(
        total_items=len(items),
        total_quantity=total_quantity,
        category_count=len(categories(items)),
    )
