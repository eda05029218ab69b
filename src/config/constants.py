"""
Application constants.

Values that don't change based on environment but are referenced across
the inventory views.
"""

from typing import Dict


# =============================================================================
# Remote tables / realtime channels
# =============================================================================

ITEMS_TABLE = "inventory_items"
VARIANTS_TABLE = "item_variants"
STORE_STATUS_TABLE = "store_status"

ITEM_COLUMNS = (
    "id, name, description, category, is_visible, has_variants, price, "
    "quantity, sku, last_updated, updated_by"
)
STORE_STATUS_COLUMNS = "id, is_open, updated_at, updated_by"

INVENTORY_CHANNEL = "inventory_changes"
STORE_STATUS_CHANNEL = "store_status_changes"


# =============================================================================
# Display
# =============================================================================

VARIANT_TYPE_LABELS: Dict[str, str] = {
    "weight": "Weight",
    "pcs": "Pieces",
    "price": "Price",
    "flavor": "Flavor",
    "size": "Size",
}

PLACEHOLDER = "—"

NO_VARIANTS_YET = "No variants yet"
NO_VARIANT = "No Variant"
VARIANTS_DISABLED = "Variants disabled"


# =============================================================================
# Draft limits (admin forms)
# =============================================================================

MAX_DESCRIPTION_LENGTH = 1000
MAX_CATEGORY_LENGTH = 120


# =============================================================================
# Notification titles
# =============================================================================

TITLE_VISIBILITY_UPDATED = "Visibility updated"
TITLE_STORE_STATUS_UPDATED = "Store status updated"
TITLE_UPDATE_FAILED = "Update failed"
TITLE_FETCH_FAILED = "Failed to fetch inventory"
TITLE_STATUS_FETCH_FAILED = "Failed to fetch store status"
TITLE_SAVED = "Saved"
TITLE_DELETED = "Deleted"
TITLE_SAVE_FAILED = "Save failed"
TITLE_DELETE_FAILED = "Delete failed"
