"""
FastAPI Application Factory.

Serves the public catalog and the admin dashboard from two inventory view
engines sharing one store.

Usage:
    # Development
    uvicorn api.app:create_app --factory --reload

    # Tests / embedding
    from api.app import create_app
    app = create_app(store=InMemoryInventoryStore(...))
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.database import create_async_supabase_client
from config.settings import Settings, get_settings
from core.logging import configure_logging, get_logger
from core.middleware import RequestTracingMiddleware
from inventory.engine import InventoryViewEngine, ViewAudience
from inventory.memory_store import InMemoryInventoryStore
from inventory.store import InventoryStore, SupabaseInventoryStore


logger = get_logger(__name__)


async def build_store(settings: Settings) -> InventoryStore:
    """Store backend selected by STORE_BACKEND."""
    if settings.store_backend == "memory":
        logger.warning("Using in-memory store, data is lost on restart")
        return InMemoryInventoryStore(
            items_table=settings.items_table,
            variants_table=settings.variants_table,
            store_status_table=settings.store_status_table,
        )

    client = await create_async_supabase_client(settings)
    return SupabaseInventoryStore(
        client,
        items_table=settings.items_table,
        variants_table=settings.variants_table,
        store_status_table=settings.store_status_table,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.

    Startup: configure logging, build the store, activate both views
    (initial fetch + realtime subscriptions).
    Shutdown: deactivate both views, releasing their subscriptions.
    """
    settings: Settings = app.state.settings

    configure_logging(
        json_logs=settings.is_production,
        log_level="DEBUG" if settings.debug else "INFO",
    )
    logger.info(
        "Starting inventory API",
        environment=settings.environment,
        store_backend=settings.store_backend,
        realtime=settings.realtime_enabled,
    )

    store = app.state.store_override
    if store is None:
        store = await build_store(settings)
    public_engine = InventoryViewEngine.from_settings(store, ViewAudience.PUBLIC, settings)
    admin_engine = InventoryViewEngine.from_settings(store, ViewAudience.ADMIN, settings)

    app.state.store = store
    app.state.public_engine = public_engine
    app.state.admin_engine = admin_engine

    try:
        await public_engine.activate()
        await admin_engine.activate()
        yield
    finally:
        await admin_engine.deactivate()
        await public_engine.deactivate()
        logger.info("Shutting down inventory API")


def create_app(
    store: Optional[InventoryStore] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        store: Use this store instead of building one from settings
        settings: Settings override (defaults to get_settings())

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Inventory Dashboard API",
        description="""
        Live inventory views over the product/variant dataset.

        ## Main Endpoints

        - `/api/catalog` - Public catalog (visible items only)
        - `/api/admin/*` - Inventory management, visibility and store status

        ## Health Checks

        - `/health` - Basic health check
        - `/health/detailed` - View state and realtime status
        - `/ready` - Readiness probe
        - `/live` - Liveness probe
        """,
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )
    app.state.settings = settings
    app.state.store_override = store

    # =========================================================================
    # Middleware (order matters - first added = outermost)
    # =========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTracingMiddleware)

    # =========================================================================
    # Routes
    # =========================================================================

    from api.routes.health import router as health_router
    from api.routes.catalog import router as catalog_router
    from api.routes.admin import router as admin_router

    app.include_router(health_router, tags=["Health"])
    app.include_router(catalog_router)
    app.include_router(admin_router)

    return app


def get_app() -> FastAPI:
    """Application instance for ASGI servers (uvicorn api.app:get_app --factory)."""
    return create_app()


def main() -> None:
    """Run the API with uvicorn using HOST/PORT from settings."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "api.app:get_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
    )


if __name__ == "__main__":
    main()
