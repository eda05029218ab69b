"""
Backing data store for the inventory views.

The views only need a handful of operations from the store:
- a query returning every item with its variants embedded, ordered by item
  name then variant value;
- point writes (insert/update/delete) keyed by id on items, variants and
  the store-status singleton;
- a subscription primitive delivering change notifications per table.

InventoryStore describes that surface; SupabaseInventoryStore implements it
over the async Supabase client (PostgREST for queries/writes, the realtime
channel for notifications). InMemoryInventoryStore (inventory.memory_store)
implements it for development and tests.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, runtime_checkable

from supabase import AsyncClient

from config.constants import (
    ITEM_COLUMNS,
    ITEMS_TABLE,
    STORE_STATUS_COLUMNS,
    STORE_STATUS_TABLE,
    VARIANTS_TABLE,
)
from core.logging import get_logger
from inventory.errors import SnapshotFetchError, StoreWriteError, SubscriptionError

logger = get_logger(__name__)


# =============================================================================
# Change notifications
# =============================================================================

@dataclass(frozen=True)
class ChangeEvent:
    """One insert/update/delete observed on a table."""
    table: str
    event_type: str
    new_record: Dict[str, Any] = field(default_factory=dict)
    old_record: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any, table: Optional[str] = None) -> "ChangeEvent":
        """
        Normalize a realtime payload.

        Accepts both the realtime-py shape ({"data": {"type", "table",
        "record", "old_record"}}) and the flat JS-client shape
        ({"eventType", "table", "new", "old"}).
        """
        if not isinstance(payload, dict):
            return cls(table=table or "", event_type="UNKNOWN")
        data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
        new = data.get("record", data.get("new")) or {}
        old = data.get("old_record", data.get("old")) or {}
        event_type = data.get("type") or data.get("eventType") or "UNKNOWN"
        return cls(
            table=data.get("table") or table or "",
            event_type=str(event_type).upper(),
            new_record=new if isinstance(new, dict) else {},
            old_record=old if isinstance(old, dict) else {},
        )


ChangeCallback = Callable[[ChangeEvent], None]


@runtime_checkable
class Subscription(Protocol):
    """Handle for an open realtime channel."""

    async def close(self) -> None: ...


class InventoryStore(Protocol):
    """Operations the inventory views need from the backing store."""

    async def fetch_items(self) -> List[Dict[str, Any]]: ...

    async def fetch_store_status(self) -> Optional[Dict[str, Any]]: ...

    async def create_store_status(self, is_open: bool, actor_id: Optional[str] = None) -> Dict[str, Any]: ...

    async def update_store_status(
        self, status_id: str, is_open: bool, actor_id: Optional[str] = None
    ) -> Dict[str, Any]: ...

    async def update_item_visibility(
        self, item_id: str, is_visible: bool, actor_id: Optional[str] = None
    ) -> None: ...

    async def insert_item(self, record: Dict[str, Any]) -> Dict[str, Any]: ...

    async def update_item(self, item_id: str, record: Dict[str, Any]) -> None: ...

    async def delete_item(self, item_id: str) -> None: ...

    async def insert_variant(self, item_id: str, record: Dict[str, Any]) -> Dict[str, Any]: ...

    async def update_variant(self, variant_id: str, record: Dict[str, Any]) -> None: ...

    async def delete_variant(self, variant_id: str) -> None: ...

    async def subscribe(
        self, channel: str, tables: Sequence[str], callback: ChangeCallback
    ) -> Subscription: ...


# =============================================================================
# Supabase
# =============================================================================

class _SupabaseSubscription:
    def __init__(self, channel):
        self._channel = channel
        self._closed = False

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._channel.unsubscribe()


class SupabaseInventoryStore:
    """
    InventoryStore over `supabase.AsyncClient`.

    Tables (names overridable for staging schemas):
    - inventory_items: one row per item
    - item_variants: rows keyed by item_id, embedded via `item_variants(*)`
    - store_status: singleton, latest row by updated_at wins
    """

    def __init__(
        self,
        client: AsyncClient,
        items_table: str = ITEMS_TABLE,
        variants_table: str = VARIANTS_TABLE,
        store_status_table: str = STORE_STATUS_TABLE,
    ):
        self._client = client
        self.items_table = items_table
        self.variants_table = variants_table
        self.store_status_table = store_status_table

    # =========================================================================
    # Queries
    # =========================================================================

    async def fetch_items(self) -> List[Dict[str, Any]]:
        try:
            response = await (
                self._client.table(self.items_table)
                .select(f"{ITEM_COLUMNS}, {self.variants_table}(*)")
                .order("name")
                .order("variant_value", foreign_table=self.variants_table)
                .execute()
            )
        except Exception as e:
            raise SnapshotFetchError("fetch items", e) from e

        rows = response.data or []
        if self.variants_table != VARIANTS_TABLE:
            for row in rows:
                row["item_variants"] = row.pop(self.variants_table, None)
        return rows

    async def fetch_store_status(self) -> Optional[Dict[str, Any]]:
        try:
            response = await (
                self._client.table(self.store_status_table)
                .select(STORE_STATUS_COLUMNS)
                .order("updated_at", desc=True)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise SnapshotFetchError("fetch store status", e) from e
        rows = response.data or []
        return rows[0] if rows else None

    # =========================================================================
    # Store status writes
    # =========================================================================

    async def create_store_status(self, is_open: bool, actor_id: Optional[str] = None) -> Dict[str, Any]:
        record = {"is_open": is_open, "updated_by": actor_id}
        rows = await self._write(
            "create store status",
            self._client.table(self.store_status_table).insert(record),
        )
        return rows[0] if rows else record

    async def update_store_status(
        self, status_id: str, is_open: bool, actor_id: Optional[str] = None
    ) -> Dict[str, Any]:
        record = {"is_open": is_open, "updated_by": actor_id}
        rows = await self._write(
            "update store status",
            self._client.table(self.store_status_table).update(record).eq("id", status_id),
        )
        return rows[0] if rows else {"id": status_id, **record}

    # =========================================================================
    # Item / variant writes
    # =========================================================================

    async def update_item_visibility(
        self, item_id: str, is_visible: bool, actor_id: Optional[str] = None
    ) -> None:
        await self._write(
            "update visibility",
            self._client.table(self.items_table)
            .update({"is_visible": is_visible, "updated_by": actor_id})
            .eq("id", item_id),
        )

    async def insert_item(self, record: Dict[str, Any]) -> Dict[str, Any]:
        rows = await self._write("create item", self._client.table(self.items_table).insert(record))
        return rows[0] if rows else dict(record)

    async def update_item(self, item_id: str, record: Dict[str, Any]) -> None:
        await self._write(
            "update item",
            self._client.table(self.items_table).update(record).eq("id", item_id),
        )

    async def delete_item(self, item_id: str) -> None:
        await self._write(
            "delete item",
            self._client.table(self.items_table).delete().eq("id", item_id),
        )

    async def insert_variant(self, item_id: str, record: Dict[str, Any]) -> Dict[str, Any]:
        row = {**record, "item_id": item_id}
        rows = await self._write("create variant", self._client.table(self.variants_table).insert(row))
        return rows[0] if rows else row

    async def update_variant(self, variant_id: str, record: Dict[str, Any]) -> None:
        await self._write(
            "update variant",
            self._client.table(self.variants_table).update(record).eq("id", variant_id),
        )

    async def delete_variant(self, variant_id: str) -> None:
        await self._write(
            "delete variant",
            self._client.table(self.variants_table).delete().eq("id", variant_id),
        )

    async def _write(self, operation: str, query) -> List[Dict[str, Any]]:
        try:
            response = await query.execute()
        except Exception as e:
            raise StoreWriteError(operation, e) from e
        return response.data or []

    # =========================================================================
    # Realtime
    # =========================================================================

    async def subscribe(
        self, channel: str, tables: Sequence[str], callback: ChangeCallback
    ) -> Subscription:
        realtime_channel = self._client.channel(channel)

        for table in tables:
            realtime_channel.on_postgres_changes(
                "*",
                schema="public",
                table=table,
                callback=_forward(table, callback),
            )

        try:
            await realtime_channel.subscribe()
        except Exception as e:
            raise SubscriptionError(f"subscribe {channel}", e) from e

        logger.info("Realtime channel subscribed", channel=channel, tables=list(tables))
        return _SupabaseSubscription(realtime_channel)


def _forward(table: str, callback: ChangeCallback) -> Callable[[Any], None]:
    def handler(payload: Any) -> None:
        callback(ChangeEvent.from_payload(payload, table=table))
    return handler
