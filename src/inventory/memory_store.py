"""
In-memory InventoryStore for development and testing.

Note: Data is lost on restart. Use the Supabase backend for production.

Rows are kept as plain dicts shaped like the Supabase tables, reads return
deep copies, and every write notifies subscribers of the affected table the
way the realtime channel would.
"""

import copy
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from config.constants import ITEMS_TABLE, STORE_STATUS_TABLE, VARIANTS_TABLE
from core.logging import LoggerMixin
from inventory.errors import SnapshotFetchError, StoreRequestError, StoreWriteError, SubscriptionError
from inventory.store import ChangeCallback, ChangeEvent


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class _MemorySubscription:
    def __init__(self, store: "InMemoryInventoryStore", key: int):
        self._store = store
        self._key = key

    async def close(self) -> None:
        self._store._subscribers.pop(self._key, None)


class InMemoryInventoryStore(LoggerMixin):
    """
    Dict-backed store.

    Usage:
        store = InMemoryInventoryStore()
        item = store.add_item(name="Cashews", has_variants=True)
        store.add_variant(item["id"], variant_value="250g", price=320)

        store.fail_next("update_item_visibility", RuntimeError("offline"))
    """

    def __init__(
        self,
        items: Iterable[Dict[str, Any]] = (),
        store_status: Optional[Dict[str, Any]] = None,
        items_table: str = ITEMS_TABLE,
        variants_table: str = VARIANTS_TABLE,
        store_status_table: str = STORE_STATUS_TABLE,
    ):
        self.items_table = items_table
        self.variants_table = variants_table
        self.store_status_table = store_status_table
        self._items: Dict[str, Dict[str, Any]] = {}
        self._variants: Dict[str, Dict[str, Any]] = {}
        self._status_rows: List[Dict[str, Any]] = []
        self._subscribers: Dict[int, Tuple[Tuple[str, ...], ChangeCallback]] = {}
        self._next_key = 0
        self._failures: Dict[str, BaseException] = {}
        self.calls: List[str] = []

        for row in items:
            row = copy.deepcopy(row)
            variants = row.pop("item_variants", None) or []
            created = self.add_item(**row)
            for variant in variants:
                self.add_variant(created["id"], **variant)
        if store_status is not None:
            self._status_rows.append({"id": str(uuid.uuid4()), "updated_at": _now(), **store_status})

    # =========================================================================
    # Seeding (no notifications)
    # =========================================================================

    def add_item(self, **fields: Any) -> Dict[str, Any]:
        row = {
            "id": str(uuid.uuid4()),
            "name": "",
            "description": None,
            "category": None,
            "is_visible": True,
            "has_variants": False,
            "price": 0,
            "quantity": 0,
            "sku": None,
            "last_updated": _now(),
            "updated_by": None,
        }
        row.update(fields)
        row["id"] = str(row["id"])
        self._items[row["id"]] = row
        return copy.deepcopy(row)

    def add_variant(self, item_id: str, **fields: Any) -> Dict[str, Any]:
        row = {
            "id": str(uuid.uuid4()),
            "item_id": item_id,
            "sku": "",
            "variant_type": "weight",
            "variant_value": "",
            "price": 0,
            "quantity": 0,
            "last_updated": _now(),
            "updated_by": None,
        }
        row.update(fields)
        row["id"] = str(row["id"])
        row["item_id"] = item_id
        self._variants[row["id"]] = row
        return copy.deepcopy(row)

    # =========================================================================
    # Failure injection
    # =========================================================================

    def fail_next(self, operation: str, error: Optional[BaseException] = None) -> None:
        """Make the next call of `operation` raise `error`."""
        self._failures[operation] = error or RuntimeError(f"{operation} unavailable")

    def _check(self, operation: str, wrapper=StoreRequestError) -> None:
        self.calls.append(operation)
        error = self._failures.pop(operation, None)
        if error is not None:
            raise wrapper(operation.replace("_", " "), error)

    # =========================================================================
    # InventoryStore
    # =========================================================================

    async def fetch_items(self) -> List[Dict[str, Any]]:
        self._check("fetch_items", SnapshotFetchError)
        rows = []
        for item in sorted(self._items.values(), key=lambda r: str(r.get("name") or "")):
            row = copy.deepcopy(item)
            variants = [v for v in self._variants.values() if v["item_id"] == item["id"]]
            row["item_variants"] = copy.deepcopy(
                sorted(variants, key=lambda v: str(v.get("variant_value") or ""))
            )
            rows.append(row)
        return rows

    async def fetch_store_status(self) -> Optional[Dict[str, Any]]:
        self._check("fetch_store_status", SnapshotFetchError)
        if not self._status_rows:
            return None
        latest = max(self._status_rows, key=lambda r: r.get("updated_at") or "")
        return copy.deepcopy(latest)

    async def create_store_status(self, is_open: bool, actor_id: Optional[str] = None) -> Dict[str, Any]:
        self._check("create_store_status", StoreWriteError)
        row = {"id": str(uuid.uuid4()), "is_open": is_open, "updated_at": _now(), "updated_by": actor_id}
        self._status_rows.append(row)
        self._emit(self.store_status_table, "INSERT", row)
        return copy.deepcopy(row)

    async def update_store_status(
        self, status_id: str, is_open: bool, actor_id: Optional[str] = None
    ) -> Dict[str, Any]:
        self._check("update_store_status", StoreWriteError)
        row = next((r for r in self._status_rows if r["id"] == status_id), None)
        if row is None:
            raise StoreWriteError("update store status", message=f"no store status {status_id!r}")
        old = copy.deepcopy(row)
        row.update(is_open=is_open, updated_at=_now(), updated_by=actor_id)
        self._emit(self.store_status_table, "UPDATE", row, old)
        return copy.deepcopy(row)

    async def update_item_visibility(
        self, item_id: str, is_visible: bool, actor_id: Optional[str] = None
    ) -> None:
        self._check("update_item_visibility", StoreWriteError)
        await self._update(self.items_table, self._items, item_id, {"is_visible": is_visible, "updated_by": actor_id})

    async def insert_item(self, record: Dict[str, Any]) -> Dict[str, Any]:
        self._check("insert_item", StoreWriteError)
        row = self.add_item(**record)
        self._emit(self.items_table, "INSERT", row)
        return row

    async def update_item(self, item_id: str, record: Dict[str, Any]) -> None:
        self._check("update_item", StoreWriteError)
        await self._update(self.items_table, self._items, item_id, record)

    async def delete_item(self, item_id: str) -> None:
        self._check("delete_item", StoreWriteError)
        row = self._items.pop(item_id, None)
        if row is None:
            return
        # variants cascade with their item
        for variant_id in [v["id"] for v in self._variants.values() if v["item_id"] == item_id]:
            self._emit(self.variants_table, "DELETE", {}, self._variants.pop(variant_id))
        self._emit(self.items_table, "DELETE", {}, row)

    async def insert_variant(self, item_id: str, record: Dict[str, Any]) -> Dict[str, Any]:
        self._check("insert_variant", StoreWriteError)
        if item_id not in self._items:
            raise StoreWriteError("create variant", message=f"no item {item_id!r}")
        fields = {k: v for k, v in record.items() if k != "item_id"}
        row = self.add_variant(item_id, **fields)
        self._emit(self.variants_table, "INSERT", row)
        return row

    async def update_variant(self, variant_id: str, record: Dict[str, Any]) -> None:
        self._check("update_variant", StoreWriteError)
        await self._update(self.variants_table, self._variants, variant_id, record)

    async def delete_variant(self, variant_id: str) -> None:
        self._check("delete_variant", StoreWriteError)
        row = self._variants.pop(variant_id, None)
        if row is not None:
            self._emit(self.variants_table, "DELETE", {}, row)

    async def subscribe(
        self, channel: str, tables: Sequence[str], callback: ChangeCallback
    ) -> _MemorySubscription:
        self._check("subscribe", SubscriptionError)
        key = self._next_key
        self._next_key += 1
        self._subscribers[key] = (tuple(tables), callback)
        self.logger.debug("Subscribed", channel=channel, tables=list(tables))
        return _MemorySubscription(self, key)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def status_row_count(self) -> int:
        return len(self._status_rows)

    # =========================================================================
    # Internals
    # =========================================================================

    async def _update(self, table: str, rows: Dict[str, Dict[str, Any]], row_id: str, record: Dict[str, Any]) -> None:
        row = rows.get(row_id)
        if row is None:
            # PostgREST updates matching no row succeed silently
            return
        old = copy.deepcopy(row)
        row.update({k: v for k, v in record.items() if k not in ("id", "item_id")})
        row["last_updated"] = _now()
        self._emit(table, "UPDATE", row, old)

    def _emit(self, table: str, event_type: str, new: Dict[str, Any], old: Optional[Dict[str, Any]] = None) -> None:
        event = ChangeEvent(
            table=table,
            event_type=event_type,
            new_record=copy.deepcopy(new),
            old_record=copy.deepcopy(old or {}),
        )
        for tables, callback in list(self._subscribers.values()):
            if table in tables:
                callback(event)
