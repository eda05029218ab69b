"""
Inventory view engine.

One InventoryViewEngine backs one view (the public catalog or the admin
dashboard). It owns the only mutable copies of the snapshot, the search
query and the selection map, and composes:

- SnapshotFetcher: sequence-guarded loads of items and store status
- SelectionReconciler: active variant per item, repaired on every snapshot
- search.filter_items: derived view, memoized on (revision, query)
- RealtimeChangeListener: re-fetch on item/variant changes, direct
  store-status updates
- OptimisticToggleController: visibility and store-open toggles

Failures never escape as crashes of the view: fetch errors keep the
last good snapshot and set `error`, write errors roll back and notify.

Usage:
    engine = InventoryViewEngine.from_settings(store, ViewAudience.ADMIN, settings)
    async with engine:
        engine.set_query("250")
        for card in engine.cards():
            ...
"""

import asyncio
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from config.constants import (
    ITEMS_TABLE,
    STORE_STATUS_TABLE,
    TITLE_DELETE_FAILED,
    TITLE_DELETED,
    TITLE_FETCH_FAILED,
    TITLE_SAVE_FAILED,
    TITLE_SAVED,
    TITLE_STATUS_FETCH_FAILED,
    TITLE_STORE_STATUS_UPDATED,
    TITLE_UPDATE_FAILED,
    TITLE_VISIBILITY_UPDATED,
    VARIANTS_TABLE,
)
from config.settings import Settings
from core.logging import LoggerMixin
from inventory.errors import (
    ItemNotFoundError,
    SnapshotFetchError,
    StoreRequestError,
    StoreWriteError,
    SubscriptionError,
    VariantNotFoundError,
    VariantsDisabledError,
)
from inventory.fetcher import SnapshotFetcher
from inventory.models import Item, ItemDraft, StoreStatus, VariantDraft
from inventory.presentation import (
    AdminRow,
    InventoryStats,
    ItemCard,
    build_admin_row,
    build_item_card,
    categories,
    compute_stats,
)
from inventory.realtime import RealtimeChangeListener
from inventory.search import filter_items, normalize_query
from inventory.selection import SelectionReconciler, VariantSelection, reconcile_selection
from inventory.store import InventoryStore
from inventory.toggles import NotificationLog, OptimisticToggleController, ToggleOutcome


class ViewAudience(str, Enum):
    """Who the view is for. The public catalog only ever holds visible items."""
    PUBLIC = "public"
    ADMIN = "admin"


STORE_STATUS_TARGET = "store_status"


class InventoryViewEngine(LoggerMixin):
    """View-state owner for one inventory view."""

    def __init__(
        self,
        store: InventoryStore,
        audience: ViewAudience = ViewAudience.ADMIN,
        actor_id: Optional[str] = None,
        notifications: Optional[NotificationLog] = None,
        realtime_enabled: bool = True,
        items_table: str = ITEMS_TABLE,
        variants_table: str = VARIANTS_TABLE,
        store_status_table: str = STORE_STATUS_TABLE,
        currency_symbol: str = "₹",
        utc_offset_minutes: int = 330,
    ):
        self._store = store
        self.audience = ViewAudience(audience)
        self.actor_id = actor_id
        self.realtime_enabled = realtime_enabled
        self.currency_symbol = currency_symbol
        self.utc_offset_minutes = utc_offset_minutes
        self.notifications = notifications if notifications is not None else NotificationLog()

        is_public = self.audience == ViewAudience.PUBLIC
        self._fetcher = SnapshotFetcher(
            store,
            visible_only=is_public,
            actor_id=actor_id,
            create_missing_status=not is_public,
        )
        self._selection = SelectionReconciler()
        self._toggles = OptimisticToggleController(self.notifications)
        self._listener = RealtimeChangeListener(
            store,
            on_change=self.refresh,
            on_store_status=self.apply_store_status,
            items_table=items_table,
            variants_table=variants_table,
            store_status_table=store_status_table,
            channel_suffix=f"_{self.audience.value}",
        )

        self._items: Tuple[Item, ...] = ()
        self._revision = 0
        self._query = ""
        self._filtered: Optional[Tuple[int, str, Tuple[Item, ...]]] = None
        self._loading = True
        self._error: Optional[str] = None

        self._store_status: Optional[StoreStatus] = None
        self._store_status_loading = True
        self._store_status_error: Optional[str] = None

        self._active = False
        self._realtime_error: Optional[str] = None

    @classmethod
    def from_settings(
        cls,
        store: InventoryStore,
        audience: ViewAudience,
        settings: Settings,
    ) -> "InventoryViewEngine":
        return cls(
            store,
            audience=audience,
            actor_id=settings.admin_actor_id,
            notifications=NotificationLog(maxlen=settings.notification_history),
            realtime_enabled=settings.realtime_enabled,
            items_table=settings.items_table,
            variants_table=settings.variants_table,
            store_status_table=settings.store_status_table,
            currency_symbol=settings.currency_symbol,
            utc_offset_minutes=settings.display_utc_offset_minutes,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def active(self) -> bool:
        return self._active

    @property
    def realtime_active(self) -> bool:
        return self._listener.active

    @property
    def realtime_error(self) -> Optional[str]:
        return self._realtime_error

    async def activate(self) -> None:
        """Initial fetch of items and store status, then open realtime."""
        if self._active:
            return
        self._active = True
        self.logger.info("Activating view", audience=self.audience.value)
        try:
            await asyncio.gather(self.refresh(), self.refresh_store_status())
            if self.realtime_enabled:
                try:
                    await self._listener.start()
                    self._realtime_error = None
                except SubscriptionError as e:
                    # view stays usable; manual refresh still works
                    self._realtime_error = e.detail
                    self.logger.warning("Realtime unavailable", audience=self.audience.value, error=e.detail)
        except BaseException:
            await self.deactivate()
            raise

    async def deactivate(self) -> None:
        """Release realtime subscriptions. Safe to call more than once."""
        await self._listener.stop()
        if self._active:
            self.logger.info("View deactivated", audience=self.audience.value)
        self._active = False

    async def idle(self) -> None:
        """Wait for change-triggered re-fetches to finish."""
        await self._listener.idle()

    async def __aenter__(self) -> "InventoryViewEngine":
        await self.activate()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.deactivate()

    # =========================================================================
    # Snapshot
    # =========================================================================

    @property
    def items(self) -> Tuple[Item, ...]:
        return self._items

    @property
    def revision(self) -> int:
        """Incremented whenever the local snapshot changes."""
        return self._revision

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> Optional[str]:
        return self._error

    async def refresh(self, raise_on_error: bool = False) -> bool:
        """
        Re-fetch the snapshot.

        Returns True when a new snapshot was applied. On failure the previous
        snapshot stays in place, `error` is set and an error notification is
        pushed; with `raise_on_error` the SnapshotFetchError is re-raised.
        """
        try:
            items = await self._fetcher.load()
        except SnapshotFetchError as e:
            self._loading = False
            self._error = e.detail
            self.logger.warning("Snapshot fetch failed", audience=self.audience.value, error=e.detail)
            self.notifications.error(TITLE_FETCH_FAILED, e.detail)
            if raise_on_error:
                raise
            return False

        if items is None:
            return False
        self._loading = False
        self._error = None
        self._apply_snapshot(items)
        return True

    def _apply_snapshot(self, items: Tuple[Item, ...]) -> None:
        if items != self._items:
            self._items = items
            self._revision += 1
            self.logger.debug("Snapshot applied", revision=self._revision, items=len(items))
        self._selection.reconcile(self._items)

    def _replace_item(self, item_id: str, **changes: Any) -> None:
        replaced = False
        updated = []
        for item in self._items:
            if item.id == item_id:
                item = item.model_copy(update=changes)
                replaced = True
            updated.append(item)
        if replaced:
            self._items = tuple(updated)
            self._revision += 1

    def get_item(self, item_id: str) -> Item:
        for item in self._items:
            if item.id == item_id:
                return item
        raise ItemNotFoundError(item_id)

    # =========================================================================
    # Search
    # =========================================================================

    @property
    def query(self) -> str:
        return self._query

    def set_query(self, query: Optional[str]) -> None:
        self._query = query or ""

    @property
    def filtered_items(self) -> Tuple[Item, ...]:
        """Items matching the current query, recomputed only when an input changed."""
        needle = normalize_query(self._query)
        cached = self._filtered
        if cached is not None and cached[0] == self._revision and cached[1] == needle:
            return cached[2]
        result = filter_items(self._items, needle)
        self._filtered = (self._revision, needle, result)
        return result

    # =========================================================================
    # Selection
    # =========================================================================

    @property
    def selection(self) -> Mapping[str, str]:
        return self._selection.selection

    def variants_for(self, item: Any) -> VariantSelection:
        """Ordered variants and the active one, for an Item or an item id."""
        if not isinstance(item, Item):
            item = self.get_item(item)
        return self._selection.resolve(item)

    def select_variant(self, item_id: str, variant_id: str, validate: bool = False) -> None:
        """
        Make `variant_id` the active variant of `item_id`.

        Unvalidated by default; the next reconciliation repairs stale choices.
        With `validate`, unknown ids raise instead.
        """
        if validate:
            item = self.get_item(item_id)
            if all(variant.id != variant_id for variant in item.variants):
                raise VariantNotFoundError(item_id, variant_id)
        self._selection.select(item_id, variant_id)

    def reconcile_choices(self, choices: Mapping[str, str]) -> Mapping[str, str]:
        """
        A caller-owned selection made valid for the current snapshot.

        Stale or unknown choices fall back to the default variant; the
        engine's own selection is not touched.
        """
        return reconcile_selection(self._items, choices)

    # =========================================================================
    # Store status
    # =========================================================================

    @property
    def store_status(self) -> Optional[StoreStatus]:
        return self._store_status

    @property
    def store_status_loading(self) -> bool:
        return self._store_status_loading

    @property
    def store_status_error(self) -> Optional[str]:
        return self._store_status_error

    @property
    def is_store_open(self) -> bool:
        return self._store_status.is_open if self._store_status is not None else True

    async def refresh_store_status(self) -> bool:
        """Re-fetch the store-open singleton. Keeps the last value (or open) on failure."""
        try:
            status = await self._fetcher.load_store_status()
        except StoreRequestError as e:
            self._store_status_loading = False
            self._store_status_error = e.detail
            if self._store_status is None:
                self._store_status = StoreStatus(is_open=True)
            self.logger.warning("Store status fetch failed", error=e.detail)
            self.notifications.error(TITLE_STATUS_FETCH_FAILED, e.detail)
            return False

        if status is None:
            return False
        self._store_status_loading = False
        self._store_status_error = None
        self._store_status = status
        return True

    def apply_store_status(self, status: StoreStatus) -> None:
        """Apply a store-status row pushed by the realtime channel."""
        self._store_status = status
        self._store_status_loading = False
        self._store_status_error = None

    def _set_local_store_open(self, is_open: bool) -> None:
        current = self._store_status or StoreStatus()
        self._store_status = current.model_copy(update={"is_open": is_open})

    async def _write_store_open(self, is_open: bool) -> None:
        status_id = self._store_status.id if self._store_status is not None else None
        if not status_id:
            # The local value may be a placeholder left by a failed read.
            # Only create the singleton once the store confirms it is absent.
            existing = await self._store.fetch_store_status()
            if existing and existing.get("id"):
                status_id = str(existing["id"])

        if status_id:
            await self._store.update_store_status(status_id, is_open, self.actor_id)
        else:
            row = await self._store.create_store_status(is_open, self.actor_id)
            created_id = row.get("id") if isinstance(row, dict) else None
            status_id = str(created_id) if created_id else None

        if status_id and self._store_status is not None and not self._store_status.id:
            self._store_status = self._store_status.model_copy(update={"id": status_id})

    async def set_store_open(self, is_open: bool) -> ToggleOutcome:
        """Optimistically open/close the store."""
        return await self._toggles.toggle(
            STORE_STATUS_TARGET,
            is_open,
            read=lambda: self.is_store_open,
            apply=self._set_local_store_open,
            write=self._write_store_open,
            success=(TITLE_STORE_STATUS_UPDATED, f"Store is now {'open' if is_open else 'closed'}."),
            failure_title=TITLE_UPDATE_FAILED,
        )

    # =========================================================================
    # Visibility
    # =========================================================================

    def _local_visibility(self, item_id: str, default: bool) -> bool:
        for item in self._items:
            if item.id == item_id:
                return item.is_visible
        return default

    async def set_visibility(self, item_id: str, is_visible: bool) -> ToggleOutcome:
        """
        Optimistically show/hide an item on the storefront.

        Raises:
            ItemNotFoundError: The item is not in the current snapshot.
        """
        item = self.get_item(item_id)

        async def write(value: bool) -> None:
            await self._store.update_item_visibility(item_id, value, self.actor_id)

        return await self._toggles.toggle(
            ("visibility", item_id),
            is_visible,
            read=lambda: self._local_visibility(item_id, item.is_visible),
            apply=lambda value: self._replace_item(item_id, is_visible=value),
            write=write,
            success=(
                TITLE_VISIBILITY_UPDATED,
                f"{item.name} is now {'visible' if is_visible else 'hidden'} to customers.",
            ),
            failure_title=TITLE_UPDATE_FAILED,
        )

    # =========================================================================
    # Admin writes
    # =========================================================================

    async def _run_write(self, coro, success: Tuple[str, str], failure_title: str, **log_context: Any):
        try:
            result = await coro
        except StoreWriteError as e:
            self.logger.warning("Write failed", error=e.detail, **log_context)
            self.notifications.error(failure_title, e.detail)
            raise
        self.logger.info(success[1], **log_context)
        self.notifications.success(*success)
        await self.refresh()
        return result

    async def save_item(self, draft: ItemDraft, item_id: Optional[str] = None) -> Dict[str, Any]:
        """Create an item, or replace an existing one's fields."""
        record = draft.to_record(self.actor_id)
        if item_id is None:
            return await self._run_write(
                self._store.insert_item(record),
                (TITLE_SAVED, "Item created successfully"),
                TITLE_SAVE_FAILED,
                name=draft.name,
            )

        self.get_item(item_id)
        await self._run_write(
            self._store.update_item(item_id, record),
            (TITLE_SAVED, "Item updated successfully"),
            TITLE_SAVE_FAILED,
            item_id=item_id,
        )
        return {"id": item_id, **record}

    async def delete_item(self, item_id: str) -> None:
        self.get_item(item_id)
        await self._run_write(
            self._store.delete_item(item_id),
            (TITLE_DELETED, "Item deleted successfully"),
            TITLE_DELETE_FAILED,
            item_id=item_id,
        )

    async def save_variant(
        self,
        item_id: str,
        draft: VariantDraft,
        variant_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Create a variant on a variant-bearing item, or replace an existing one.

        Raises:
            ItemNotFoundError, VariantNotFoundError, VariantsDisabledError
        """
        item = self.get_item(item_id)
        if not item.has_variants:
            raise VariantsDisabledError(item_id)
        record = draft.to_record(self.actor_id)

        if variant_id is None:
            return await self._run_write(
                self._store.insert_variant(item_id, record),
                (TITLE_SAVED, "A new variant has been added."),
                TITLE_SAVE_FAILED,
                item_id=item_id,
            )

        if all(variant.id != variant_id for variant in item.variants):
            raise VariantNotFoundError(item_id, variant_id)
        await self._run_write(
            self._store.update_variant(variant_id, record),
            (TITLE_SAVED, "The variant has been updated successfully."),
            TITLE_SAVE_FAILED,
            item_id=item_id,
            variant_id=variant_id,
        )
        return {"id": variant_id, "item_id": item_id, **record}

    async def delete_variant(self, item_id: str, variant_id: str) -> None:
        item = self.get_item(item_id)
        if all(variant.id != variant_id for variant in item.variants):
            raise VariantNotFoundError(item_id, variant_id)
        await self._run_write(
            self._store.delete_variant(variant_id),
            (TITLE_DELETED, "Variant deleted successfully"),
            TITLE_DELETE_FAILED,
            item_id=item_id,
            variant_id=variant_id,
        )

    # =========================================================================
    # Projections
    # =========================================================================

    def card_for(self, item: Item, selection: Optional[Mapping[str, str]] = None) -> ItemCard:
        if selection is None:
            selection = self.selection
        return build_item_card(item, selection, self.currency_symbol, self.utc_offset_minutes)

    def cards(
        self,
        query: Optional[str] = None,
        selection: Optional[Mapping[str, str]] = None,
    ) -> List[ItemCard]:
        """
        Catalog cards for the filtered items.

        Callers that keep their own query or selection (one per HTTP client)
        pass them in; the engine's shared query and selection stay untouched.
        """
        items = self.filtered_items if query is None else filter_items(self._items, query)
        return [self.card_for(item, selection) for item in items]

    def admin_rows(self, query: Optional[str] = None) -> List[AdminRow]:
        items = self.filtered_items if query is None else filter_items(self._items, query)
        return [build_admin_row(item, self.currency_symbol, self.utc_offset_minutes) for item in items]

    def stats(self) -> InventoryStats:
        """Counters over the whole snapshot, not just the filtered view."""
        return compute_stats(self._items)

    def categories(self) -> List[str]:
        return categories(self._items)
