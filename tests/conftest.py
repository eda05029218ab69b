"""
Pytest configuration and shared fixtures for the inventory dashboard tests.
"""
import copy
import os
import sys
from typing import AsyncGenerator, Generator
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), "src"))

# Load environment variables
from dotenv import load_dotenv
load_dotenv(os.path.join(os.path.dirname(os.path.dirname(__file__)), ".env"))


# ============================================================================
# Fixtures: Test Data Factories
# ============================================================================

SAMPLE_ROWS = [
    {
        "id": "item-cashews",
        "name": "Cashews",
        "description": "Whole W320 cashews",
        "category": "Dry Fruits",
        "is_visible": True,
        "has_variants": True,
        "price": 0,
        "quantity": 0,
        "sku": None,
        "last_updated": "2024-03-01T10:00:00Z",
        "item_variants": [
            {"id": "v-cashew-100g", "sku": "CSH-100", "variant_type": "weight",
             "variant_value": "100g", "price": 180, "quantity": 10,
             "last_updated": "2024-03-05T08:15:00Z"},
            {"id": "v-cashew-50g", "sku": "CSH-050", "variant_type": "weight",
             "variant_value": "50g", "price": 95, "quantity": 0,
             "last_updated": "2024-03-04T08:15:00Z"},
            {"id": "v-cashew-family", "sku": "CSH-FAM", "variant_type": "size",
             "variant_value": "Family Pack", "price": 900, "quantity": 2},
            {"id": "v-cashew-1kg", "sku": "CSH-1KG", "variant_type": "weight",
             "variant_value": "1kg", "price": 1600, "quantity": 5},
        ],
    },
    {
        "id": "item-almonds",
        "name": "Almonds",
        "description": None,
        "category": "Dry Fruits",
        "is_visible": True,
        "has_variants": True,
        "price": 0,
        "quantity": 0,
        "item_variants": [
            {"id": "v-almond-250g", "sku": "ALM-250", "variant_type": "weight",
             "variant_value": "250g", "price": 320, "quantity": 12},
        ],
    },
    {
        "id": "item-khakhra",
        "name": "Khakhra",
        "description": "Roasted wheat crisps",
        "category": "Snacks",
        "is_visible": True,
        "has_variants": False,
        "price": 60,
        "quantity": 25,
        "sku": "KHK-001",
        "last_updated": "2024-02-20T04:30:00Z",
        "item_variants": [],
    },
    {
        "id": "item-hidden",
        "name": "Hidden Mix",
        "description": "Seasonal trail mix",
        "category": "Snacks",
        "is_visible": False,
        "has_variants": False,
        "price": 120,
        "quantity": 0,
        "sku": "MIX-001",
        "item_variants": None,
    },
    {
        "id": "item-new",
        "name": "New Arrival",
        "description": None,
        "category": None,
        "is_visible": True,
        "has_variants": True,
        "price": 0,
        "quantity": 0,
        "item_variants": None,
    },
]


@pytest.fixture
def sample_rows() -> list[dict]:
    """Item rows as the store returns them (variants embedded)."""
    return copy.deepcopy(SAMPLE_ROWS)


@pytest.fixture
def sample_items(sample_rows):
    """Sample rows parsed into Item models."""
    from inventory.models import Item
    return [Item.model_validate(row) for row in sample_rows]


@pytest.fixture
def make_variant():
    """Factory for Variant models with sensible defaults."""
    from inventory.models import Variant

    def _make(variant_id: str, value: str, price=None, **fields):
        return Variant(id=variant_id, variant_value=value, price=price, **fields)

    return _make


@pytest.fixture
def test_settings():
    """Settings for tests: in-memory backend, realtime off."""
    from config.settings import get_settings_for_testing
    return get_settings_for_testing(realtime_enabled=False, admin_actor_id="admin-1")


# ============================================================================
# Fixtures: Stores and engines
# ============================================================================

@pytest.fixture
def memory_store(sample_rows):
    """In-memory store seeded with the sample rows and an open store."""
    from inventory.memory_store import InMemoryInventoryStore
    return InMemoryInventoryStore(sample_rows, store_status={"id": "status-1", "is_open": True})


@pytest.fixture
async def admin_engine(memory_store) -> AsyncGenerator:
    """Active admin view over the memory store, realtime on."""
    from inventory.engine import InventoryViewEngine, ViewAudience
    engine = InventoryViewEngine(memory_store, ViewAudience.ADMIN, actor_id="admin-1")
    async with engine:
        yield engine


@pytest.fixture
async def public_engine(memory_store) -> AsyncGenerator:
    """Active public view over the memory store, realtime on."""
    from inventory.engine import InventoryViewEngine, ViewAudience
    engine = InventoryViewEngine(memory_store, ViewAudience.PUBLIC)
    async with engine:
        yield engine


# ============================================================================
# Fixtures: Mock Services
# ============================================================================

@pytest.fixture
def mock_async_supabase_client(sample_rows):
    """Mock async Supabase client for store adapter tests."""
    mock_client = MagicMock()
    table = mock_client.table.return_value

    # items: select().order().order().execute()
    table.select.return_value.order.return_value.order.return_value.execute = AsyncMock(
        return_value=MagicMock(data=sample_rows)
    )
    # store status: select().order().limit().execute()
    table.select.return_value.order.return_value.limit.return_value.execute = AsyncMock(
        return_value=MagicMock(data=[{"id": "status-1", "is_open": True, "updated_at": "2024-03-01T00:00:00Z"}])
    )
    table.insert.return_value.execute = AsyncMock(return_value=MagicMock(data=[{"id": "new-1"}]))
    table.update.return_value.eq.return_value.execute = AsyncMock(return_value=MagicMock(data=[]))
    table.delete.return_value.eq.return_value.execute = AsyncMock(return_value=MagicMock(data=[]))

    channel = mock_client.channel.return_value
    channel.on_postgres_changes.return_value = channel
    channel.subscribe = AsyncMock(return_value=channel)
    channel.unsubscribe = AsyncMock()

    return mock_client


# ============================================================================
# Fixtures: FastAPI Test Client
# ============================================================================

@pytest.fixture
def app(memory_store, test_settings):
    """FastAPI application over the seeded memory store."""
    from api.app import create_app
    return create_app(store=memory_store, settings=test_settings)


@pytest.fixture
def client(app) -> Generator:
    """TestClient with the lifespan running (views activated)."""
    from fastapi.testclient import TestClient
    with TestClient(app) as test_client:
        yield test_client


# ============================================================================
# Markers
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "supabase: marks tests that require Supabase")


# ============================================================================
# Skip conditions
# ============================================================================

def pytest_collection_modifyitems(config, items):
    """Auto-skip Supabase tests if no project is configured."""
    skip_supabase = pytest.mark.skip(reason="Supabase tests require credentials")
    supabase_url = os.getenv("SUPABASE_URL")

    for item in items:
        if "supabase" in item.keywords and not supabase_url:
            item.add_marker(skip_supabase)
