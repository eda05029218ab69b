"""
Realtime Change Listener.

Two subscriptions per view:
- items + variants: any insert/update/delete schedules a full re-fetch;
- store status: the new row carried by the event is applied directly.

Re-fetches are coalesced. While one is running, further events only mark
the snapshot dirty, and a single follow-up re-fetch runs once the current
one finishes. Every observed change is therefore followed by at least one
re-fetch that started after it, but a burst of N events costs far fewer
than N round trips.

Delivery is best-effort: a dropped channel is not retried. The next event
or a manual refresh re-synchronizes the view in full.

Callbacks from the Supabase client may arrive on another thread, so they
are marshalled onto the loop the listener was started on.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional

from pydantic import ValidationError

from config.constants import (
    INVENTORY_CHANNEL,
    ITEMS_TABLE,
    STORE_STATUS_CHANNEL,
    STORE_STATUS_TABLE,
    VARIANTS_TABLE,
)
from core.logging import LoggerMixin
from inventory.models import StoreStatus
from inventory.store import ChangeEvent, InventoryStore, Subscription


class RealtimeChangeListener(LoggerMixin):
    """
    Scoped realtime subscription for one view.

    Usage:
        async with RealtimeChangeListener(store, on_change=engine.refresh,
                                          on_store_status=engine.apply_store_status):
            ...
    """

    def __init__(
        self,
        store: InventoryStore,
        on_change: Callable[[], Awaitable[object]],
        on_store_status: Callable[[StoreStatus], None],
        items_table: str = ITEMS_TABLE,
        variants_table: str = VARIANTS_TABLE,
        store_status_table: str = STORE_STATUS_TABLE,
        channel_suffix: str = "",
    ):
        self._store = store
        self._on_change = on_change
        self._on_store_status = on_store_status
        self._inventory_tables = (items_table, variants_table)
        self._status_table = store_status_table
        self._channel_suffix = channel_suffix

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._subscriptions: List[Subscription] = []
        self._active = False
        self._dirty = False
        self._drain_task: Optional[asyncio.Task] = None

        self.events_received = 0
        self.refetch_count = 0

    @property
    def active(self) -> bool:
        return self._active

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Open both subscriptions. On failure nothing is left open."""
        if self._active:
            return
        self._loop = asyncio.get_running_loop()
        self._active = True
        try:
            self._subscriptions.append(
                await self._store.subscribe(
                    INVENTORY_CHANNEL + self._channel_suffix,
                    self._inventory_tables,
                    self._on_inventory_event,
                )
            )
            self._subscriptions.append(
                await self._store.subscribe(
                    STORE_STATUS_CHANNEL + self._channel_suffix,
                    (self._status_table,),
                    self._on_status_event,
                )
            )
        except BaseException:
            await self.stop()
            raise
        self.logger.info("Realtime listener started", channels=len(self._subscriptions))

    async def stop(self) -> None:
        """Close every subscription and cancel any pending re-fetch."""
        self._active = False
        self._dirty = False

        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            try:
                await subscription.close()
            except Exception as e:
                self.logger.warning("Failed to close subscription", error=str(e))

        task, self._drain_task = self._drain_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if subscriptions:
            self.logger.info("Realtime listener stopped", events=self.events_received, refetches=self.refetch_count)

    async def idle(self) -> None:
        """Wait until no re-fetch is pending or running."""
        while self._drain_task is not None and not self._drain_task.done():
            await asyncio.wait({self._drain_task})

    async def __aenter__(self) -> "RealtimeChangeListener":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    # =========================================================================
    # Event handling
    # =========================================================================

    def _on_inventory_event(self, event: ChangeEvent) -> None:
        self._call_on_loop(self._mark_dirty, event)

    def _on_status_event(self, event: ChangeEvent) -> None:
        self._call_on_loop(self._apply_status, event)

    def _call_on_loop(self, callback, event: ChangeEvent) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            callback(event)
        else:
            loop.call_soon_threadsafe(callback, event)

    def _mark_dirty(self, event: ChangeEvent) -> None:
        if not self._active:
            return
        self.events_received += 1
        self.logger.debug("Change received", table=event.table, event_type=event.event_type)
        self._dirty = True
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = self._loop.create_task(self._drain())

    async def _drain(self) -> None:
        while self._dirty and self._active:
            self._dirty = False
            self.refetch_count += 1
            try:
                await self._on_change()
            except Exception:
                self.logger.exception("Re-fetch after change failed")

    def _apply_status(self, event: ChangeEvent) -> None:
        if not self._active:
            return
        self.events_received += 1
        record = event.new_record
        if event.event_type == "DELETE" or not isinstance(record.get("is_open"), bool):
            self.logger.debug("Ignoring store status event without a row", event_type=event.event_type)
            return
        try:
            status = StoreStatus.model_validate(record)
        except ValidationError as e:
            self.logger.warning("Malformed store status event", error=str(e))
            return
        self.logger.info("Store status changed", is_open=status.is_open)
        self._on_store_status(status)
