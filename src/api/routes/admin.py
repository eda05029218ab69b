"""
Admin dashboard endpoints.

Inventory table, manual refresh, optimistic visibility / store-status
toggles and item/variant writes. Access control is left to the deployment
(reverse proxy or Supabase row-level security).
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field

from api.dependencies import get_admin_engine, get_public_engine, to_http_exception
from core.logging import get_logger
from inventory.engine import InventoryViewEngine
from inventory.errors import InventoryError, SnapshotFetchError
from inventory.models import ItemDraft, VariantDraft
from inventory.presentation import AdminRow, InventoryStats
from inventory.toggles import Notification, ToggleOutcome

logger = get_logger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])


# =============================================================================
# Request / response models
# =============================================================================

class NotificationResponse(BaseModel):
    level: str
    title: str
    description: str = ""
    created_at: datetime

    @classmethod
    def from_notification(cls, notification: Notification) -> "NotificationResponse":
        return cls(
            level=notification.level.value,
            title=notification.title,
            description=notification.description,
            created_at=notification.created_at,
        )


class AdminInventoryResponse(BaseModel):
    loading: bool
    error: Optional[str] = None
    query: str = ""
    revision: int
    store_open: bool
    store_status_error: Optional[str] = None
    realtime_active: bool
    stats: InventoryStats
    categories: List[str] = Field(default_factory=list)
    rows: List[AdminRow]


class RefreshResponse(BaseModel):
    revision: int
    items: int
    store_open: bool


class VisibilityRequest(BaseModel):
    is_visible: bool


class StoreStatusRequest(BaseModel):
    is_open: bool


class ToggleResponse(BaseModel):
    value: bool
    notification: Optional[NotificationResponse] = None


# =============================================================================
# Helpers
# =============================================================================

def _latest_notification(engine: InventoryViewEngine) -> Optional[NotificationResponse]:
    latest = engine.notifications.latest
    return NotificationResponse.from_notification(latest) if latest else None


def _toggle_response(engine: InventoryViewEngine, outcome: ToggleOutcome) -> ToggleResponse:
    if not outcome.ok:
        raise to_http_exception(outcome.error)
    return ToggleResponse(value=outcome.value, notification=_latest_notification(engine))


async def _sync_public(public: InventoryViewEngine) -> None:
    # the public view picks writes up over realtime; without it, refresh directly
    if not public.realtime_active:
        await public.refresh()


# =============================================================================
# Reads
# =============================================================================

@router.get("/inventory", response_model=AdminInventoryResponse, summary="Admin inventory table")
async def get_inventory(
    q: str = Query("", description="Search by item, variant, SKU, or description"),
    engine: InventoryViewEngine = Depends(get_admin_engine),
) -> AdminInventoryResponse:
    return AdminInventoryResponse(
        loading=engine.loading,
        error=engine.error,
        query=q,
        revision=engine.revision,
        store_open=engine.is_store_open,
        store_status_error=engine.store_status_error,
        realtime_active=engine.realtime_active,
        stats=engine.stats(),
        categories=engine.categories(),
        rows=engine.admin_rows(query=q),
    )


@router.get("/notifications", response_model=List[NotificationResponse])
async def get_notifications(
    limit: int = Query(20, ge=1, le=200),
    engine: InventoryViewEngine = Depends(get_admin_engine),
) -> List[NotificationResponse]:
    entries = list(engine.notifications)[-limit:]
    return [NotificationResponse.from_notification(n) for n in reversed(entries)]


@router.post("/refresh", response_model=RefreshResponse, summary="Re-fetch items and store status")
async def refresh(
    engine: InventoryViewEngine = Depends(get_admin_engine),
) -> RefreshResponse:
    try:
        await engine.refresh(raise_on_error=True)
    except SnapshotFetchError as exc:
        raise to_http_exception(exc) from exc
    await engine.refresh_store_status()
    return RefreshResponse(
        revision=engine.revision,
        items=len(engine.items),
        store_open=engine.is_store_open,
    )


# =============================================================================
# Toggles
# =============================================================================

@router.put("/items/{item_id}/visibility", response_model=ToggleResponse)
async def set_visibility(
    item_id: str,
    request: VisibilityRequest,
    engine: InventoryViewEngine = Depends(get_admin_engine),
    public: InventoryViewEngine = Depends(get_public_engine),
) -> ToggleResponse:
    try:
        outcome = await engine.set_visibility(item_id, request.is_visible)
    except InventoryError as exc:
        raise to_http_exception(exc) from exc
    response = _toggle_response(engine, outcome)
    await _sync_public(public)
    return response


@router.put("/store-status", response_model=ToggleResponse)
async def set_store_status(
    request: StoreStatusRequest,
    engine: InventoryViewEngine = Depends(get_admin_engine),
    public: InventoryViewEngine = Depends(get_public_engine),
) -> ToggleResponse:
    outcome = await engine.set_store_open(request.is_open)
    response = _toggle_response(engine, outcome)
    if not public.realtime_active:
        await public.refresh_store_status()
    return response


# =============================================================================
# Item / variant writes
# =============================================================================

@router.post("/items", status_code=status.HTTP_201_CREATED)
async def create_item(
    draft: ItemDraft,
    engine: InventoryViewEngine = Depends(get_admin_engine),
    public: InventoryViewEngine = Depends(get_public_engine),
) -> Dict[str, Any]:
    try:
        row = await engine.save_item(draft)
    except InventoryError as exc:
        raise to_http_exception(exc) from exc
    await _sync_public(public)
    return row


@router.put("/items/{item_id}")
async def update_item(
    item_id: str,
    draft: ItemDraft,
    engine: InventoryViewEngine = Depends(get_admin_engine),
    public: InventoryViewEngine = Depends(get_public_engine),
) -> Dict[str, Any]:
    try:
        row = await engine.save_item(draft, item_id=item_id)
    except InventoryError as exc:
        raise to_http_exception(exc) from exc
    await _sync_public(public)
    return row


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(
    item_id: str,
    engine: InventoryViewEngine = Depends(get_admin_engine),
    public: InventoryViewEngine = Depends(get_public_engine),
) -> Response:
    try:
        await engine.delete_item(item_id)
    except InventoryError as exc:
        raise to_http_exception(exc) from exc
    await _sync_public(public)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/items/{item_id}/variants", status_code=status.HTTP_201_CREATED)
async def create_variant(
    item_id: str,
    draft: VariantDraft,
    engine: InventoryViewEngine = Depends(get_admin_engine),
    public: InventoryViewEngine = Depends(get_public_engine),
) -> Dict[str, Any]:
    try:
        row = await engine.save_variant(item_id, draft)
    except InventoryError as exc:
        raise to_http_exception(exc) from exc
    await _sync_public(public)
    return row


@router.put("/items/{item_id}/variants/{variant_id}")
async def update_variant(
    item_id: str,
    variant_id: str,
    draft: VariantDraft,
    engine: InventoryViewEngine = Depends(get_admin_engine),
    public: InventoryViewEngine = Depends(get_public_engine),
) -> Dict[str, Any]:
    try:
        row = await engine.save_variant(item_id, draft, variant_id=variant_id)
    except InventoryError as exc:
        raise to_http_exception(exc) from exc
    await _sync_public(public)
    return row


@router.delete("/items/{item_id}/variants/{variant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_variant(
    item_id: str,
    variant_id: str,
    engine: InventoryViewEngine = Depends(get_admin_engine),
    public: InventoryViewEngine = Depends(get_public_engine),
) -> Response:
    try:
        await engine.delete_variant(item_id, variant_id)
    except InventoryError as exc:
        raise to_http_exception(exc) from exc
    await _sync_public(public)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
