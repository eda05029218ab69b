"""
Tests for the FastAPI server, over the seeded in-memory store.
"""
import pytest


pytestmark = pytest.mark.integration


def _card_ids(response):
    return [card["id"] for card in response.json()["cards"]]


class TestHealthEndpoints:
    """Tests for health and probe endpoints"""

    def test_health_check(self, client):
        """Test health endpoint returns 200"""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_detailed_health(self, client):
        """Test detailed health reports both views"""
        data = client.get("/health/detailed").json()

        assert data["status"] == "healthy"
        assert data["store_backend"] == "memory"
        assert set(data["checks"]["views"]) == {"public", "admin"}
        assert data["checks"]["views"]["admin"]["items"] == 5
        assert data["checks"]["views"]["public"]["realtime"] == "off"

    def test_ready_and_live(self, client):
        """Test probes once the views are active"""
        assert client.get("/ready").json() == {"status": "ready"}
        assert client.get("/live").json() == {"status": "alive"}

    def test_request_id_echoed(self, client):
        """Test that a caller's request id is returned"""
        response = client.get("/health", headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Request-ID"] == "req-42"

    def test_degraded_when_fetch_fails(self, memory_store, test_settings):
        """Test that a failed initial fetch marks the service degraded"""
        from fastapi.testclient import TestClient
        from api.app import create_app

        memory_store.fail_next("fetch_items", ConnectionError("offline"))
        with TestClient(create_app(store=memory_store, settings=test_settings)) as client:
            data = client.get("/health/detailed").json()

        assert data["status"] == "degraded"


class TestCatalogEndpoint:
    """Tests for the public catalog"""

    def test_only_visible_items(self, client):
        """Test that hidden items never reach the catalog"""
        response = client.get("/api/catalog")

        assert response.status_code == 200
        assert _card_ids(response) == ["item-almonds", "item-cashews", "item-khakhra", "item-new"]
        assert response.json()["store_open"] is True

    def test_search(self, client):
        """Test the q parameter filters cards"""
        response = client.get("/api/catalog", params={"q": "CSH-1kg"})

        assert _card_ids(response) == ["item-cashews"]
        assert response.json()["query"] == "CSH-1kg"

    def test_search_does_not_match_hidden(self, client):
        """Test that a hidden item's SKU finds nothing"""
        assert _card_ids(client.get("/api/catalog", params={"q": "MIX-001"})) == []

    def test_card_structure(self, client):
        """Test the default card for a variant item"""
        cards = {card["id"]: card for card in client.get("/api/catalog").json()["cards"]}
        cashews = cards["item-cashews"]

        assert cashews["active_variant_id"] == "v-cashew-50g"
        assert cashews["price_text"] == "₹95.00"
        assert [option["value"] for option in cashews["options"]] == ["50g", "100g", "1kg", "Family Pack"]
        assert cards["item-khakhra"]["badge"] == "No Variant"

    def test_select_variant(self, client):
        """Test that a chosen variant is shown on the card"""
        response = client.get("/api/catalog/items/item-cashews", params={"variant": "v-cashew-1kg"})

        assert response.status_code == 200
        assert response.json()["active_variant_id"] == "v-cashew-1kg"
        assert response.json()["price_text"] == "₹1,600.00"

    def test_variant_choice_in_catalog(self, client):
        """Test that choices sent with the catalog read are applied and echoed"""
        data = client.get("/api/catalog", params={"variant": "item-cashews:v-cashew-1kg"}).json()

        cards = {card["id"]: card for card in data["cards"]}
        assert cards["item-cashews"]["active_variant_id"] == "v-cashew-1kg"
        assert cards["item-almonds"]["active_variant_id"] == "v-almond-250g"
        assert data["selection"] == {"item-cashews": "v-cashew-1kg", "item-almonds": "v-almond-250g"}

    def test_visitors_do_not_share_selection(self, client):
        """Test that one visitor's variant choice leaves another visitor's cards alone"""
        first = client.get("/api/catalog", params={"variant": "item-cashews:v-cashew-1kg"}).json()
        client.get("/api/catalog/items/item-cashews", params={"variant": "v-cashew-1kg"})

        second = client.get("/api/catalog").json()

        first_cards = {card["id"]: card for card in first["cards"]}
        second_cards = {card["id"]: card for card in second["cards"]}
        assert first_cards["item-cashews"]["active_variant_id"] == "v-cashew-1kg"
        assert second_cards["item-cashews"]["active_variant_id"] == "v-cashew-50g"
        assert second["selection"]["item-cashews"] == "v-cashew-50g"

    def test_visitors_do_not_share_query(self, client):
        """Test that a search does not filter the next visitor's catalog"""
        client.get("/api/catalog", params={"q": "khakhra"})

        assert len(_card_ids(client.get("/api/catalog"))) == 4

    def test_stale_choice_falls_back_to_default(self, client):
        """Test that a choice for a removed variant is repaired, not rejected"""
        data = client.get(
            "/api/catalog",
            params=[("variant", "item-cashews:v-gone"), ("variant", "item-ghost:v-1")],
        ).json()

        assert data["selection"]["item-cashews"] == "v-cashew-50g"
        assert "item-ghost" not in data["selection"]

    def test_malformed_choice(self, client):
        """Test that a choice without an item id is rejected"""
        response = client.get("/api/catalog", params={"variant": "v-cashew-1kg"})

        assert response.status_code == 422

    def test_select_unknown_variant(self, client):
        """Test that a variant of another item is rejected"""
        response = client.get("/api/catalog/items/item-cashews", params={"variant": "v-almond-250g"})

        assert response.status_code == 404

    def test_select_on_hidden_item(self, client):
        """Test that hidden items are not addressable publicly"""
        response = client.get("/api/catalog/items/item-hidden", params={"variant": "x"})

        assert response.status_code == 404


class TestAdminReads:
    """Tests for the admin inventory table"""

    def test_inventory_includes_hidden(self, client):
        """Test that the admin view lists every item"""
        data = client.get("/api/admin/inventory").json()

        assert [row["id"] for row in data["rows"]] == [
            "item-almonds", "item-cashews", "item-hidden", "item-khakhra", "item-new",
        ]
        assert data["stats"]["total_items"] == 5
        assert data["realtime_active"] is False

    def test_refresh(self, client, memory_store):
        """Test manual refresh picks up out-of-band rows"""
        memory_store.add_item(name="Jaggery")

        response = client.post("/api/admin/refresh")

        assert response.status_code == 200
        assert response.json()["items"] == 6

    def test_refresh_failure(self, client, memory_store):
        """Test that a failed refresh reports a bad gateway"""
        memory_store.fail_next("fetch_items", ConnectionError("offline"))

        response = client.post("/api/admin/refresh")

        assert response.status_code == 502
        assert response.json()["detail"] == "offline"


class TestAdminToggles:
    """Tests for visibility and store-status toggles"""

    def test_hide_item(self, client):
        """Test hiding an item removes it from the catalog"""
        response = client.put("/api/admin/items/item-khakhra/visibility", json={"is_visible": False})

        assert response.status_code == 200
        assert response.json()["value"] is False
        assert response.json()["notification"]["level"] == "success"
        assert "item-khakhra" not in _card_ids(client.get("/api/catalog"))

    def test_failed_toggle_reverts(self, client, memory_store):
        """Test that a rejected write leaves the item as it was"""
        memory_store.fail_next("update_item_visibility", RuntimeError("permission denied"))

        response = client.put("/api/admin/items/item-khakhra/visibility", json={"is_visible": False})

        assert response.status_code == 502
        assert response.json()["detail"] == "permission denied"
        rows = {row["id"]: row for row in client.get("/api/admin/inventory").json()["rows"]}
        assert rows["item-khakhra"]["is_visible"] is True

        notifications = client.get("/api/admin/notifications").json()
        assert notifications[0]["level"] == "error"

    def test_toggle_unknown_item(self, client):
        """Test toggling an unknown item"""
        response = client.put("/api/admin/items/ghost/visibility", json={"is_visible": True})

        assert response.status_code == 404

    def test_close_store(self, client):
        """Test closing the store reaches the catalog"""
        response = client.put("/api/admin/store-status", json={"is_open": False})

        assert response.status_code == 200
        assert client.get("/api/catalog").json()["store_open"] is False


class TestAdminWrites:
    """Tests for item and variant writes"""

    def test_create_item(self, client):
        """Test creating a visible item"""
        response = client.post("/api/admin/items", json={"name": "Jaggery", "price": 80, "quantity": 4})

        assert response.status_code == 201
        names = [card["name"] for card in client.get("/api/catalog").json()["cards"]]
        assert "Jaggery" in names

    def test_create_item_validation(self, client):
        """Test that invalid drafts are rejected before any write"""
        response = client.post("/api/admin/items", json={"name": "", "price": -1})

        assert response.status_code == 422

    def test_update_unknown_item(self, client):
        response = client.put("/api/admin/items/ghost", json={"name": "Ghost"})

        assert response.status_code == 404

    def test_variant_on_single_item(self, client):
        """Test that variant writes need has_variants"""
        response = client.post(
            "/api/admin/items/item-khakhra/variants",
            json={"variant_value": "500g", "sku": "KHK-500"},
        )

        assert response.status_code == 409

    def test_add_and_delete_variant(self, client):
        """Test adding then removing a variant"""
        created = client.post(
            "/api/admin/items/item-almonds/variants",
            json={"variant_value": "100g", "sku": "ALM-100", "price": 140, "quantity": 8},
        )
        assert created.status_code == 201
        variant_id = created.json()["id"]

        deleted = client.delete(f"/api/admin/items/item-almonds/variants/{variant_id}")

        assert deleted.status_code == 204
        rows = {row["id"]: row for row in client.get("/api/admin/inventory").json()["rows"]}
        assert rows["item-almonds"]["variant_count"] == 1

    def test_write_failure(self, client, memory_store):
        """Test that a rejected write maps to 502"""
        memory_store.fail_next("delete_item", RuntimeError("foreign key violation"))

        response = client.delete("/api/admin/items/item-cashews")

        assert response.status_code == 502
        assert "item-cashews" in _card_ids(client.get("/api/catalog"))
