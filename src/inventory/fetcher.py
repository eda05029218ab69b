"""
Snapshot Fetcher.

Pulls the full item set (variants embedded) and the store-status singleton
from the InventoryStore and normalizes them into models.

Every request is tagged with a monotonically increasing sequence number.
Only the latest issued request may deliver a result: a response (or
failure) that arrives after a newer request was issued is discarded, so
overlapping fetches can never roll the view back to older data.
"""

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from core.logging import LoggerMixin
from inventory.errors import SnapshotFetchError, StoreRequestError
from inventory.models import Item, StoreStatus
from inventory.store import InventoryStore


@dataclass(frozen=True)
class NormalizedRows:
    items: Tuple[Item, ...]
    dropped: int = 0
    hidden: int = 0


def normalize_items(rows: Iterable[Any], visible_only: bool = False) -> NormalizedRows:
    """
    Build Items from raw store rows.

    Rows that cannot be read as an item at all (not a mapping, no id) are
    dropped and counted. With `visible_only`, hidden items are filtered out.
    """
    items: List[Item] = []
    dropped = 0
    hidden = 0
    for row in rows or ():
        if not isinstance(row, dict):
            dropped += 1
            continue
        try:
            item = Item.model_validate(row)
        except ValidationError:
            dropped += 1
            continue
        if visible_only and not item.is_visible:
            hidden += 1
            continue
        items.append(item)
    return NormalizedRows(items=tuple(items), dropped=dropped, hidden=hidden)


class SnapshotFetcher(LoggerMixin):
    """
    Sequence-guarded loader for one view.

    Usage:
        fetcher = SnapshotFetcher(store, visible_only=True)
        items = await fetcher.load()
        if items is not None:
            ...  # latest result, apply it
    """

    def __init__(
        self,
        store: InventoryStore,
        visible_only: bool = False,
        actor_id: Optional[str] = None,
        create_missing_status: bool = True,
    ):
        self._store = store
        self.visible_only = visible_only
        self.create_missing_status = create_missing_status
        self.actor_id = actor_id
        self._items_sequence = 0
        self._status_sequence = 0

    @property
    def items_sequence(self) -> int:
        """Sequence number of the most recently issued item fetch."""
        return self._items_sequence

    @property
    def status_sequence(self) -> int:
        return self._status_sequence

    async def load(self) -> Optional[Tuple[Item, ...]]:
        """
        Fetch and normalize the item set.

        Returns:
            The items, or None when a newer load() was issued meanwhile.

        Raises:
            SnapshotFetchError: The fetch failed and it is still the latest.
        """
        self._items_sequence += 1
        sequence = self._items_sequence

        try:
            rows = await self._store.fetch_items()
        except StoreRequestError as e:
            if sequence != self._items_sequence:
                self.logger.debug("Discarding superseded fetch failure", sequence=sequence, error=str(e))
                return None
            if isinstance(e, SnapshotFetchError):
                raise
            raise SnapshotFetchError("fetch items", e) from e

        if sequence != self._items_sequence:
            self.logger.debug(
                "Discarding superseded snapshot",
                sequence=sequence,
                latest=self._items_sequence,
            )
            return None

        normalized = normalize_items(rows, visible_only=self.visible_only)
        if normalized.dropped:
            self.logger.warning("Dropped malformed item rows", count=normalized.dropped, sequence=sequence)
        self.logger.debug(
            "Snapshot fetched",
            sequence=sequence,
            items=len(normalized.items),
            hidden=normalized.hidden,
        )
        return normalized.items

    async def load_store_status(self) -> Optional[StoreStatus]:
        """
        Fetch the store-status singleton, creating it (open) if absent.

        Returns None when superseded by a newer call.

        Raises:
            SnapshotFetchError: The read failed.
            StoreWriteError: The row was missing and creating it failed.
        """
        self._status_sequence += 1
        sequence = self._status_sequence

        try:
            row = await self._store.fetch_store_status()
        except StoreRequestError as e:
            if sequence != self._status_sequence:
                return None
            if isinstance(e, SnapshotFetchError):
                raise
            raise SnapshotFetchError("fetch store status", e) from e

        if row is None:
            if not self.create_missing_status:
                return StoreStatus() if sequence == self._status_sequence else None
            self.logger.info("No store status row, creating default", is_open=True)
            row = await self._store.create_store_status(True, self.actor_id)

        if sequence != self._status_sequence:
            return None
        try:
            return StoreStatus.model_validate(row)
        except ValidationError as e:
            raise SnapshotFetchError("fetch store status", e, message="malformed store status row") from e
