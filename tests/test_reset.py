# Data reset tests
#
# Tests for:
# - Scope aliases (dashboard tab names)
# - Id counters restarting after a clear
# - data_reset broadcast

import pytest


def _sell(client, product, quantity=1):
    return client.post("/api/sales", json={"items": [{
        "product_id": product["id"],
        "name": product["name"],
        "quantity": quantity,
        "price": product["price"],
    }]}).json()


class TestResetData:

    def test_inventory_reset_restarts_ids(self, client, make_product, published):
        """
        SCENARIO: Clear the inventory tab, then add a new product
        EXPECTED: Products gone, new product gets id 1, data_reset broadcast
        """
        make_product()
        make_product(name="Ibuprofen")

        response = client.post("/api/reset-data", json={"tabType": "inventory"})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "inventory data has been cleared successfully",
            "type": "inventory",
        }
        assert client.get("/api/products").json() == []
        assert published[-1] == (
            "data_reset", {"message": "Inventory data has been cleared", "type": "inventory"}
        )

        assert make_product(name="Cetirizine")["id"] == 1

    def test_sales_reset_keeps_products(self, client, make_product):
        product = make_product()
        _sell(client, product)
        _sell(client, product)

        response = client.post("/api/reset-data", json={"scope": "sales"})

        assert response.json()["type"] == "sales"
        assert client.get("/api/sales").json() == []
        assert len(client.get("/api/products").json()) == 1
        assert _sell(client, product)["id"] == 1

    def test_all_clears_everything(self, client, make_product):
        product = make_product()
        _sell(client, product)

        response = client.post("/api/reset-data", json={"tabType": "all"})

        assert response.json()["message"] == "All data has been cleared successfully"
        assert client.get("/api/sales").json() == []
        assert client.get("/api/products").json() == []

    @pytest.mark.parametrize("scope, target", [
        ("overview", "all"),
        ("stock", "inventory"),
        ("alerts", "inventory"),
    ])
    def test_scope_aliases(self, client, scope, target):
        response = client.post("/api/reset-data", json={"tabType": scope})
        assert response.status_code == 200
        assert response.json()["type"] == target

    def test_reports_reset_keeps_sales_and_products(self, client, make_product, published):
        """
        SCENARIO: Cashier confirms "clear reports" on the dashboard
        EXPECTED: HTTP 200; sales history and products untouched, no reset broadcast
        """
        product = make_product()
        sale = _sell(client, product, quantity=2)
        published.clear()

        response = client.post("/api/reset-data", json={"tabType": "reports"})

        assert response.status_code == 200
        assert response.json()["type"] == "reports"
        assert [s["id"] for s in client.get("/api/sales").json()] == [sale["id"]]
        assert len(client.get("/api/products").json()) == 1
        assert published == []

    def test_inventory_reset_keeps_sale_snapshots(self, client, make_product):
        product = make_product()
        sale = _sell(client, product, quantity=4)

        client.post("/api/reset-data", json={"tabType": "inventory"})

        item = client.get(f"/api/sales/{sale['id']}").json()["items"][0]
        assert item["product_id"] is None
        assert item["name"] == "Paracetamol"
        assert item["quantity"] == 4

    @pytest.mark.parametrize("payload", [{"tabType": "everything"}, {}])
    def test_invalid_scope(self, client, make_product, published, payload):
        make_product()
        published.clear()

        response = client.post("/api/reset-data", json=payload)

        assert response.status_code == 400
        assert response.json()["detail"].startswith("Invalid tab type. Must be one of:")
        assert len(client.get("/api/products").json()) == 1
        assert published == []
