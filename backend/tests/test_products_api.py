"""
Product catalog API tests.
"""

import pytest

from pos.services import products_service


def _create(client, headers, **overrides):
    payload = {"sku": "NEW-1", "name": "New Product", "price": "12.50", "stock_quantity": 4}
    payload.update(overrides)
    return client.post("/api/products", json=payload, headers=headers)


class TestProductWrites:

    def test_create(self, client, manager_headers):
        resp = _create(client, manager_headers)

        assert resp.status_code == 201
        product = resp.get_json()["product"]
        assert product["sku"] == "NEW-1"
        assert product["price"] == "12.50"
        assert product["stock_quantity"] == 4
        assert product["is_active"] is True

    def test_duplicate_sku_is_rejected(self, client, manager_headers, product_a):
        resp = _create(client, manager_headers, sku="SKU-A")

        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Product with SKU 'SKU-A' already exists"

    def test_duplicate_sku_lost_race_is_rejected(self, client, monkeypatch, manager_headers, product_a):
        # The pre-check passes, as it would for a writer racing another insert
        monkeypatch.setattr(products_service, "_require_unique_sku", lambda sku, exclude_id=None: None)

        resp = _create(client, manager_headers, sku="SKU-A")

        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Product with SKU 'SKU-A' already exists"

    def test_update_lost_race_is_rejected(self, client, monkeypatch, manager_headers, product_a, product_b):
        monkeypatch.setattr(products_service, "_require_unique_sku", lambda sku, exclude_id=None: None)

        resp = client.put(f"/api/products/{product_a.id}", json={"sku": "SKU-B"}, headers=manager_headers)

        assert resp.status_code == 400
        assert product_a.sku == "SKU-A"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"price": "-1.00"},
            {"price": "1.005"},
            {"price": "abc"},
            {"stock_quantity": -3},
            {"stock_quantity": 1.5},
            {"name": None},
        ],
    )
    def test_invalid_payload(self, client, manager_headers, overrides):
        resp = _create(client, manager_headers, **overrides)
        assert resp.status_code == 400

    def test_missing_required_fields(self, client, admin_headers):
        resp = client.post("/api/products", json={"name": "No SKU"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_update(self, client, manager_headers, product_a):
        resp = client.put(
            f"/api/products/{product_a.id}",
            json={"price": "11.00", "name": "Product A+"},
            headers=manager_headers,
        )

        assert resp.status_code == 200
        product = resp.get_json()["product"]
        assert product["price"] == "11.00"
        assert product["name"] == "Product A+"
        assert product["sku"] == "SKU-A"

    def test_update_to_taken_sku(self, client, manager_headers, product_a, product_b):
        resp = client.put(f"/api/products/{product_a.id}", json={"sku": "SKU-B"}, headers=manager_headers)
        assert resp.status_code == 400

    def test_soft_delete_hides_product(self, client, manager_headers, product_a):
        resp = client.delete(f"/api/products/{product_a.id}", headers=manager_headers)
        assert resp.status_code == 200

        assert client.get(f"/api/products/{product_a.id}", headers=manager_headers).status_code == 404
        listing = client.get("/api/products", headers=manager_headers).get_json()
        assert listing["pagination"]["total"] == 0


class TestProductReads:

    def test_get_missing(self, client, cashier_headers):
        resp = client.get("/api/products/999999", headers=cashier_headers)

        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Product not found with id: 999999"

    def test_list_sorted_and_paginated(self, client, cashier_headers, product_factory):
        for i, price in enumerate(["3.00", "1.00", "2.00"]):
            product_factory(f"SKU-{i}", f"Item {i}", price=price)

        resp = client.get(
            "/api/products",
            query_string={"sort_by": "price", "sort_dir": "desc", "per_page": 2},
            headers=cashier_headers,
        )
        body = resp.get_json()

        assert resp.status_code == 200
        assert [p["price"] for p in body["items"]] == ["3.00", "2.00"]
        assert body["pagination"]["total"] == 3
        assert body["pagination"]["has_next"] is True

    def test_search(self, client, cashier_headers, product_a, product_b):
        resp = client.get("/api/products/search", query_string={"query": "sku-b"}, headers=cashier_headers)

        assert [p["sku"] for p in resp.get_json()["items"]] == ["SKU-B"]

    def test_low_stock(self, client, manager_headers, product_a, product_b):
        resp = client.get("/api/products/low-stock", query_string={"threshold": 5}, headers=manager_headers)

        assert [p["sku"] for p in resp.get_json()["items"]] == ["SKU-B"]
