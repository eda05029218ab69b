"""
Route modules for the API.

Each module exports a FastAPI APIRouter with endpoints
for a specific view.
"""

from api.routes import admin
from api.routes import catalog
from api.routes import health

__all__ = ["admin", "catalog", "health"]
