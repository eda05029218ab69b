"""
Inventory view-state engine.

Keeps a local copy of the item/variant dataset consistent with the backing
store, derives the active variant of every item, filters by free-text
search and applies optimistic toggles with rollback.

Usage:
    from inventory import InventoryViewEngine, ViewAudience, InMemoryInventoryStore

    async with InventoryViewEngine(InMemoryInventoryStore(), ViewAudience.PUBLIC) as engine:
        engine.set_query("cashew")
        cards = engine.cards()
"""

from inventory.engine import InventoryViewEngine, ViewAudience
from inventory.errors import (
    InventoryError,
    ItemNotFoundError,
    SnapshotFetchError,
    StoreRequestError,
    StoreWriteError,
    SubscriptionError,
    VariantNotFoundError,
    VariantsDisabledError,
)
from inventory.memory_store import InMemoryInventoryStore
from inventory.models import Item, ItemDraft, StoreStatus, Variant, VariantDraft, VariantType
from inventory.store import ChangeEvent, InventoryStore, SupabaseInventoryStore
from inventory.toggles import Notification, NotificationLevel, NotificationLog, ToggleOutcome

__all__ = [
    "InventoryViewEngine",
    "ViewAudience",
    "InventoryError",
    "ItemNotFoundError",
    "SnapshotFetchError",
    "StoreRequestError",
    "StoreWriteError",
    "SubscriptionError",
    "VariantNotFoundError",
    "VariantsDisabledError",
    "InMemoryInventoryStore",
    "Item",
    "ItemDraft",
    "StoreStatus",
    "Variant",
    "VariantDraft",
    "VariantType",
    "ChangeEvent",
    "InventoryStore",
    "SupabaseInventoryStore",
    "Notification",
    "NotificationLevel",
    "NotificationLog",
    "ToggleOutcome",
]
