"""
Shared route dependencies.

The engines and settings live on `app.state` (created by the lifespan), so
routes receive them through `Depends` instead of importing globals.
"""

from fastapi import HTTPException, Request, status

from config.settings import Settings
from inventory.engine import InventoryViewEngine
from inventory.errors import InventoryError, StoreRequestError, VariantsDisabledError


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_public_engine(request: Request) -> InventoryViewEngine:
    return request.app.state.public_engine


def get_admin_engine(request: Request) -> InventoryViewEngine:
    return request.app.state.admin_engine


def to_http_exception(exc: InventoryError) -> HTTPException:
    """Map an inventory error onto the HTTP status the routes report."""
    if isinstance(exc, LookupError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, VariantsDisabledError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, StoreRequestError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.detail)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
