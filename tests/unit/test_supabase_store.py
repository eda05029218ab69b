"""
Tests for the Supabase store adapter, against a mocked async client.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from inventory.errors import SnapshotFetchError, StoreWriteError, SubscriptionError
from inventory.store import ChangeEvent, SupabaseInventoryStore


pytestmark = pytest.mark.unit


@pytest.fixture
def store(mock_async_supabase_client):
    return SupabaseInventoryStore(mock_async_supabase_client)


def _table(client):
    return client.table.return_value


class TestQueries:
    """Tests for fetch_items / fetch_store_status."""

    async def test_fetch_items_embeds_and_orders(self, store, mock_async_supabase_client, sample_rows):
        rows = await store.fetch_items()

        assert rows == sample_rows
        mock_async_supabase_client.table.assert_called_with("inventory_items")
        select_arg = _table(mock_async_supabase_client).select.call_args.args[0]
        assert select_arg.endswith("item_variants(*)")
        query = _table(mock_async_supabase_client).select.return_value
        query.order.assert_called_with("name")
        query.order.return_value.order.assert_called_with("variant_value", foreign_table="item_variants")

    async def test_custom_variants_table_renamed(self, mock_async_supabase_client):
        execute = _table(mock_async_supabase_client).select.return_value.order.return_value.order.return_value.execute
        execute.return_value = MagicMock(data=[{"id": "1", "staging_variants": [{"id": "v"}]}])
        store = SupabaseInventoryStore(mock_async_supabase_client, variants_table="staging_variants")

        rows = await store.fetch_items()

        assert rows == [{"id": "1", "item_variants": [{"id": "v"}]}]

    async def test_fetch_items_error_wrapped(self, store, mock_async_supabase_client):
        execute = _table(mock_async_supabase_client).select.return_value.order.return_value.order.return_value.execute
        execute.side_effect = ConnectionError("timed out")

        with pytest.raises(SnapshotFetchError) as exc_info:
            await store.fetch_items()

        assert exc_info.value.detail == "timed out"
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    async def test_fetch_items_null_data(self, store, mock_async_supabase_client):
        execute = _table(mock_async_supabase_client).select.return_value.order.return_value.order.return_value.execute
        execute.return_value = MagicMock(data=None)

        assert await store.fetch_items() == []

    async def test_fetch_store_status_latest(self, store, mock_async_supabase_client):
        row = await store.fetch_store_status()

        assert row["id"] == "status-1"
        query = _table(mock_async_supabase_client).select.return_value
        query.order.assert_called_with("updated_at", desc=True)
        query.order.return_value.limit.assert_called_with(1)

    async def test_fetch_store_status_empty(self, store, mock_async_supabase_client):
        execute = _table(mock_async_supabase_client).select.return_value.order.return_value.limit.return_value.execute
        execute.return_value = MagicMock(data=[])

        assert await store.fetch_store_status() is None


class TestWrites:
    """Tests for point writes."""

    async def test_visibility_update(self, store, mock_async_supabase_client):
        await store.update_item_visibility("item-1", False, "admin-1")

        table = _table(mock_async_supabase_client)
        table.update.assert_called_with({"is_visible": False, "updated_by": "admin-1"})
        table.update.return_value.eq.assert_called_with("id", "item-1")

    async def test_write_error_wrapped(self, store, mock_async_supabase_client):
        _table(mock_async_supabase_client).update.return_value.eq.return_value.execute.side_effect = (
            RuntimeError("new row violates row-level security policy")
        )

        with pytest.raises(StoreWriteError) as exc_info:
            await store.update_store_status("status-1", False)

        assert "row-level security" in exc_info.value.detail

    async def test_insert_returns_row(self, store):
        row = await store.insert_item({"name": "Jaggery"})

        assert row == {"id": "new-1"}

    async def test_insert_variant_sets_item_id(self, store, mock_async_supabase_client):
        await store.insert_variant("item-1", {"variant_value": "1kg", "sku": "J-1"})

        inserted = _table(mock_async_supabase_client).insert.call_args.args[0]
        assert inserted["item_id"] == "item-1"

    async def test_create_status_without_returned_row(self, store, mock_async_supabase_client):
        _table(mock_async_supabase_client).insert.return_value.execute.return_value = MagicMock(data=[])

        row = await store.create_store_status(True, "admin-1")

        assert row == {"is_open": True, "updated_by": "admin-1"}

    async def test_delete_variant(self, store, mock_async_supabase_client):
        await store.delete_variant("v-1")

        mock_async_supabase_client.table.assert_called_with("item_variants")
        _table(mock_async_supabase_client).delete.return_value.eq.assert_called_with("id", "v-1")


class TestSubscribe:
    """Tests for realtime subscriptions."""

    async def test_registers_each_table(self, store, mock_async_supabase_client):
        subscription = await store.subscribe("inventory_changes_admin", ("inventory_items", "item_variants"), print)

        mock_async_supabase_client.channel.assert_called_once_with("inventory_changes_admin")
        channel = mock_async_supabase_client.channel.return_value
        tables = [call.kwargs["table"] for call in channel.on_postgres_changes.call_args_list]
        assert tables == ["inventory_items", "item_variants"]
        channel.subscribe.assert_awaited_once()

        await subscription.close()
        await subscription.close()
        channel.unsubscribe.assert_awaited_once()

    async def test_payload_forwarded_as_change_event(self, store, mock_async_supabase_client):
        received = []
        await store.subscribe("store_status_changes", ("store_status",), received.append)
        channel = mock_async_supabase_client.channel.return_value
        handler = channel.on_postgres_changes.call_args.kwargs["callback"]

        handler({"data": {"type": "UPDATE", "record": {"is_open": False}}})

        assert received == [ChangeEvent(table="store_status", event_type="UPDATE", new_record={"is_open": False})]

    async def test_subscribe_error_wrapped(self, store, mock_async_supabase_client):
        mock_async_supabase_client.channel.return_value.subscribe = AsyncMock(side_effect=RuntimeError("closed"))

        with pytest.raises(SubscriptionError):
            await store.subscribe("inventory_changes", ("inventory_items",), print)
