"""
Exceptions raised by the inventory views.

Store adapters wrap whatever their client library raises in a
StoreRequestError subclass, so callers only ever handle this hierarchy.
"""

from typing import Optional


class InventoryError(Exception):
    """Base class for inventory view errors."""


class StoreRequestError(InventoryError):
    """A call to the backing data store failed."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None, message: Optional[str] = None):
        self.operation = operation
        self.cause = cause
        if message is None:
            if cause is None:
                message = "unknown error"
            else:
                message = str(cause) or type(cause).__name__
        super().__init__(f"{operation} failed: {message}")

    @property
    def detail(self) -> str:
        """Underlying cause, for user-facing messages."""
        if self.cause is not None and str(self.cause):
            return str(self.cause)
        return str(self)


class SnapshotFetchError(StoreRequestError):
    """Loading items or the store status failed."""


class StoreWriteError(StoreRequestError):
    """An update/insert/delete was rejected or could not be sent."""


class SubscriptionError(StoreRequestError):
    """Opening a realtime channel failed."""


class ItemNotFoundError(InventoryError, LookupError):
    """No item with the given id in the current snapshot."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Item {item_id!r} not found")


class VariantNotFoundError(InventoryError, LookupError):
    """No variant with the given id on the item."""

    def __init__(self, item_id: str, variant_id: str):
        self.item_id = item_id
        self.variant_id = variant_id
        super().__init__(f"Variant {variant_id!r} not found on item {item_id!r}")


class VariantsDisabledError(InventoryError):
    """Variant writes on an item whose has_variants flag is off."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Item {item_id!r} does not use variants")
