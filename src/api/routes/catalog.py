"""
Public catalog endpoints (visible items only).

The public engine is shared by every visitor, so its query and selection
are never written here. Each request carries its own search text and
variant choices (`variant=<item_id>:<variant_id>`, repeatable), and the
response echoes the reconciled choices for the client to send back.
"""

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from api.dependencies import get_public_engine, to_http_exception
from core.logging import get_logger
from inventory.engine import InventoryViewEngine
from inventory.errors import InventoryError, VariantNotFoundError
from inventory.presentation import InventoryStats, ItemCard

logger = get_logger(__name__)

router = APIRouter(prefix="/api/catalog", tags=["Catalog"])


class CatalogResponse(BaseModel):
    store_open: bool
    store_status_loading: bool
    loading: bool
    error: Optional[str] = None
    query: str = ""
    selection: Dict[str, str] = Field(default_factory=dict)
    stats: InventoryStats
    categories: List[str] = Field(default_factory=list)
    cards: List[ItemCard]


def parse_variant_choices(values: List[str]) -> Dict[str, str]:
    """Parse repeated `item_id:variant_id` parameters; the last choice per item wins."""
    choices: Dict[str, str] = {}
    for value in values:
        item_id, _, variant_id = value.partition(":")
        if not item_id or not variant_id:
            raise HTTPException(
                status_code=422,
                detail=f"variant must look like item_id:variant_id, got {value!r}",
            )
        choices[item_id] = variant_id
    return choices


@router.get("", response_model=CatalogResponse, summary="Catalog cards matching an optional search")
async def get_catalog(
    q: str = Query("", description="Free-text search over items and variants"),
    variant: List[str] = Query([], description="Chosen variant as item_id:variant_id"),
    engine: InventoryViewEngine = Depends(get_public_engine),
) -> CatalogResponse:
    selection = engine.reconcile_choices(parse_variant_choices(variant))
    return CatalogResponse(
        store_open=engine.is_store_open,
        store_status_loading=engine.store_status_loading,
        loading=engine.loading,
        error=engine.error,
        query=q,
        selection=dict(selection),
        stats=engine.stats(),
        categories=engine.categories(),
        cards=engine.cards(query=q, selection=selection),
    )


@router.get(
    "/items/{item_id}",
    response_model=ItemCard,
    summary="One item's card, optionally with a chosen variant active",
)
async def get_item_card(
    item_id: str,
    variant: Optional[str] = Query(None, description="Variant to show as active"),
    engine: InventoryViewEngine = Depends(get_public_engine),
) -> ItemCard:
    try:
        item = engine.get_item(item_id)
        if variant is not None and all(v.id != variant for v in item.variants):
            raise VariantNotFoundError(item_id, variant)
    except InventoryError as exc:
        raise to_http_exception(exc) from exc

    selection = engine.reconcile_choices({item_id: variant} if variant else {})
    logger.debug("Item card requested", item_id=item_id, variant_id=variant)
    return engine.card_for(item, selection)
