"""
API module for FastAPI routes.

Routes are organized by view (public catalog, admin dashboard) plus health
probes. Each route module defines an APIRouter mounted by api.app.create_app.
"""

from api.routes import admin, catalog, health

__all__ = ["admin", "catalog", "health"]
