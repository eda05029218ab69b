"""
Pydantic models for the inventory views.

Models cover:
- Store rows (Item with embedded Variants, StoreStatus)
- Admin drafts validated before a write is sent

Store rows are ingested leniently: a malformed field is replaced by its
"unknown" value instead of failing the whole snapshot. Drafts are strict.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from config.constants import MAX_CATEGORY_LENGTH, MAX_DESCRIPTION_LENGTH, VARIANT_TYPE_LABELS
from core.utils import blank_to_none, coerce_optional_float, coerce_optional_int, parse_timestamp


# =============================================================================
# Enums
# =============================================================================

class VariantType(str, Enum):
    """What a variant's value measures."""
    WEIGHT = "weight"
    PCS = "pcs"
    PRICE = "price"
    FLAVOR = "flavor"
    SIZE = "size"

    @property
    def label(self) -> str:
        return VARIANT_TYPE_LABELS[self.value]


def _text_or_none(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _variant_type_or_none(value: Any) -> Optional[VariantType]:
    if isinstance(value, VariantType):
        return value
    if isinstance(value, str):
        try:
            return VariantType(value.strip().lower())
        except ValueError:
            return None
    return None


# =============================================================================
# Store rows
# =============================================================================

class Variant(BaseModel):
    """One sellable option of an item (a specific weight, size, flavor...)."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    item_id: Optional[str] = None
    sku: Optional[str] = None
    variant_type: Optional[VariantType] = None
    variant_value: str = ""
    price: Optional[float] = None
    quantity: Optional[int] = None
    last_updated: Optional[datetime] = None
    updated_by: Optional[str] = None

    @field_validator("id", "item_id", "sku", "updated_by", mode="before")
    @classmethod
    def _as_text(cls, v):
        return _text_or_none(v)

    @field_validator("variant_type", mode="before")
    @classmethod
    def _known_type(cls, v):
        return _variant_type_or_none(v)

    @field_validator("variant_value", mode="before")
    @classmethod
    def _value_text(cls, v):
        return "" if v is None else str(v)

    @field_validator("price", mode="before")
    @classmethod
    def _price(cls, v):
        return coerce_optional_float(v)

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity(cls, v):
        return coerce_optional_int(v)

    @field_validator("last_updated", mode="before")
    @classmethod
    def _timestamp(cls, v):
        return parse_timestamp(v)


class Item(BaseModel):
    """
    A catalog product.

    When has_variants is true the item's own price/quantity/sku are not
    displayed; the active variant supplies them.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: str
    name: str = ""
    description: Optional[str] = None
    category: Optional[str] = None
    has_variants: bool = False
    is_visible: bool = True
    price: Optional[float] = None
    quantity: Optional[int] = None
    sku: Optional[str] = None
    last_updated: Optional[datetime] = None
    updated_by: Optional[str] = None
    variants: Tuple[Variant, ...] = Field(
        default=(),
        validation_alias=AliasChoices("item_variants", "variants"),
    )

    @field_validator("id", "sku", "updated_by", "description", "category", mode="before")
    @classmethod
    def _as_text(cls, v):
        return _text_or_none(v)

    @field_validator("name", mode="before")
    @classmethod
    def _name_text(cls, v):
        return "" if v is None else str(v)

    @field_validator("has_variants", mode="before")
    @classmethod
    def _has_variants(cls, v):
        return False if v is None else v

    @field_validator("is_visible", mode="before")
    @classmethod
    def _is_visible(cls, v):
        return True if v is None else v

    @field_validator("price", mode="before")
    @classmethod
    def _price(cls, v):
        return coerce_optional_float(v)

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity(cls, v):
        return coerce_optional_int(v)

    @field_validator("last_updated", mode="before")
    @classmethod
    def _timestamp(cls, v):
        return parse_timestamp(v)

    @field_validator("variants", mode="before")
    @classmethod
    def _variants(cls, v):
        # null / non-list collections become empty; rows without an id are dropped
        if not isinstance(v, (list, tuple)):
            return ()
        variants = []
        for row in v:
            if isinstance(row, Variant):
                variants.append(row)
                continue
            if not isinstance(row, dict):
                continue
            try:
                variants.append(Variant.model_validate(row))
            except ValidationError:
                continue
        return tuple(variants)


class StoreStatus(BaseModel):
    """The store-open singleton."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: Optional[str] = None
    is_open: bool = True
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None

    @field_validator("id", "updated_by", mode="before")
    @classmethod
    def _as_text(cls, v):
        return _text_or_none(v)

    @field_validator("is_open", mode="before")
    @classmethod
    def _is_open(cls, v):
        return True if v is None else v

    @field_validator("updated_at", mode="before")
    @classmethod
    def _timestamp(cls, v):
        return parse_timestamp(v)


# =============================================================================
# Admin drafts
# =============================================================================

class ItemDraft(BaseModel):
    """Validated contents of the add/edit item form."""

    name: str = Field(..., min_length=1)
    description: Optional[str] = Field(default=None, max_length=MAX_DESCRIPTION_LENGTH)
    category: Optional[str] = Field(default=None, max_length=MAX_CATEGORY_LENGTH)
    is_visible: bool = True
    has_variants: bool = False
    price: float = Field(default=0, ge=0)
    quantity: int = Field(default=0, ge=0)
    sku: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("description", "category", "sku", mode="before")
    @classmethod
    def _blank_is_null(cls, v):
        return blank_to_none(v) if isinstance(v, str) else v

    def to_record(self, actor_id: Optional[str] = None) -> Dict[str, Any]:
        """Row written to the items table. Variant items store 0 price/quantity."""
        record: Dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "is_visible": self.is_visible,
            "has_variants": self.has_variants,
            "price": 0 if self.has_variants else self.price,
            "quantity": 0 if self.has_variants else self.quantity,
            "sku": self.sku,
        }
        if actor_id:
            record["updated_by"] = actor_id
        return record


class VariantDraft(BaseModel):
    """Validated contents of the add/edit variant form."""

    variant_type: VariantType = VariantType.WEIGHT
    variant_value: str = Field(..., min_length=1)
    sku: str = Field(..., min_length=1)
    price: float = Field(default=0, ge=0)
    quantity: int = Field(default=0, ge=0)

    @field_validator("variant_value", "sku", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    def to_record(self, actor_id: Optional[str] = None) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "variant_type": self.variant_type.value,
            "variant_value": self.variant_value,
            "sku": self.sku,
            "price": self.price,
            "quantity": self.quantity,
        }
        if actor_id:
            record["updated_by"] = actor_id
        return record
