"""
Product and inventory tests.

Every stock change must leave exactly one InventoryMovement behind.
"""

from hydropak.models import InventoryMovement, Product


def _movements(db_session, product_id):
    return (
        db_session.query(InventoryMovement)
        .filter_by(product_id=product_id)
        .order_by(InventoryMovement.id.asc())
        .all()
    )


class TestProductCrud:

    def test_create_logs_opening_stock(self, client, auth_headers, db_session):
        resp = client.post("/api/products", json={
            "sku": "HP-5L",
            "name": "5L Bottle",
            "size_liters": 5,
            "sale_price_cents": 9000,
            "stock": 40,
        }, headers=auth_headers)
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["stock"] == 40
        assert body["size_liters"] == 5.0

        moves = _movements(db_session, body["id"])
        assert [(m.change, m.reason) for m in moves] == [(40, "restock")]

    def test_create_without_stock_logs_nothing(self, client, auth_headers, db_session):
        resp = client.post("/api/products", json={"sku": "HP-CAP", "name": "Cap"}, headers=auth_headers)
        assert resp.status_code == 201
        assert _movements(db_session, resp.get_json()["id"]) == []

    def test_duplicate_sku_conflicts(self, client, auth_headers, product):
        resp = client.post("/api/products", json={"sku": "HP-19L", "name": "Dup"}, headers=auth_headers)
        assert resp.status_code == 409

    def test_required_fields(self, client, auth_headers):
        resp = client.post("/api/products", json={"sale_price_cents": -5}, headers=auth_headers)
        assert resp.status_code == 400
        assert set(resp.get_json()["fields"]) == {"sku", "name", "sale_price_cents"}

    def test_update_stock_logs_adjustment(self, client, auth_headers, db_session, product):
        resp = client.put(f"/api/products/{product.id}", json={"stock": 45, "name": "19 Litre"}, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.get_json()["stock"] == 45
        assert resp.get_json()["name"] == "19 Litre"

        moves = _movements(db_session, product.id)
        assert [(m.change, m.reason) for m in moves] == [(-5, "adjustment")]

    def test_update_to_same_stock_logs_nothing(self, client, auth_headers, db_session, product):
        client.put(f"/api/products/{product.id}", json={"stock": 50}, headers=auth_headers)
        assert _movements(db_session, product.id) == []

    def test_delete(self, client, auth_headers, db_session, product):
        product_id = product.id
        client.post(f"/api/products/{product_id}/stock", json={"change": 3, "reason": "restock"}, headers=auth_headers)
        resp = client.delete(f"/api/products/{product_id}", headers=auth_headers)
        assert resp.status_code == 200
        assert db_session.get(Product, product_id) is None
        assert _movements(db_session, product_id) == []

    def test_delete_ordered_product_conflicts(self, client, auth_headers, customer, product, place_order):
        place_order(customer.id, [(product.id, 1)])
        resp = client.delete(f"/api/products/{product.id}", headers=auth_headers)
        assert resp.status_code == 409

    def test_missing_product(self, client, auth_headers):
        assert client.get("/api/products/424242", headers=auth_headers).status_code == 404
        assert client.put("/api/products/424242", json={"name": "X"}, headers=auth_headers).status_code == 404


class TestProductList:

    def test_filters(self, client, auth_headers, product, small_product):
        low = client.get("/api/products?low=1", headers=auth_headers).get_json()
        assert [p["sku"] for p in low] == ["HP-1.5L"]
        assert low[0]["is_low_stock"] is True

        by_q = client.get("/api/products?q=19l", headers=auth_headers).get_json()
        assert [p["sku"] for p in by_q] == ["HP-19L"]

        by_category = client.get("/api/products?category=bottles", headers=auth_headers).get_json()
        assert len(by_category) == 2


class TestStockAdjustments:

    def test_adjust_appends_one_movement(self, client, auth_headers, db_session, product):
        resp = client.post(f"/api/products/{product.id}/stock", json={
            "change": -7,
            "reason": "damaged",
            "note": "  cracked in transit ",
        }, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.get_json()["stock"] == 43

        moves = _movements(db_session, product.id)
        assert len(moves) == 1
        assert (moves[0].change, moves[0].reason, moves[0].note) == (-7, "damaged", "cracked in transit")

    def test_stock_may_go_negative(self, client, auth_headers, small_product):
        resp = client.post(f"/api/products/{small_product.id}/stock", json={"change": -8, "reason": "correction"}, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.get_json()["stock"] == -3

    def test_invalid_adjustments(self, client, auth_headers, product):
        zero = client.post(f"/api/products/{product.id}/stock", json={"change": 0, "reason": "x"}, headers=auth_headers)
        assert zero.status_code == 400
        assert zero.get_json()["fields"] == {"change": ["must not be zero"]}

        missing = client.post(f"/api/products/{product.id}/stock", json={}, headers=auth_headers)
        assert set(missing.get_json()["fields"]) == {"change", "reason"}

        fractional = client.post(f"/api/products/{product.id}/stock", json={"change": 1.5, "reason": "x"}, headers=auth_headers)
        assert fractional.status_code == 400

    def test_adjust_unknown_product(self, client, auth_headers):
        resp = client.post("/api/products/424242/stock", json={"change": 1, "reason": "restock"}, headers=auth_headers)
        assert resp.status_code == 404

    def test_movements_newest_first(self, client, auth_headers, product):
        for change in (5, -2, 1):
            client.post(f"/api/products/{product.id}/stock", json={"change": change, "reason": "restock"}, headers=auth_headers)

        resp = client.get(f"/api/products/{product.id}/movements", headers=auth_headers)
        assert resp.status_code == 200
        assert [m["change"] for m in resp.get_json()] == [1, -2, 5]
