"""Health, CORS, error envelopes and the report endpoints."""

from datetime import timedelta

from hydropak.time_utils import utcnow


class TestHealth:

    def test_health_is_public(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["ok"] is True
        assert body["database"]["status"] == "healthy"
        assert body["pdf_storage"] == "local"


class TestErrorEnvelopes:

    def test_unknown_route(self, client, db_session):
        resp = client.get("/api/nope")
        assert resp.status_code == 404
        assert resp.get_json() == {"error": "Not Found"}

    def test_non_object_body(self, client, auth_headers):
        resp = client.post("/api/orders", json=[1, 2, 3], headers=auth_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid request"


class TestCors:

    def test_allowed_origin_is_echoed(self, client, db_session):
        resp = client.get("/health", headers={"Origin": "http://localhost:3000"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"
        assert "X-Debug-User" in resp.headers["Access-Control-Allow-Headers"]

    def test_unknown_origin_gets_nothing(self, client, db_session):
        resp = client.get("/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in resp.headers


class TestAnalyticsEndpoint:

    def test_get_with_preset(self, client, auth_headers, customer, product, place_order):
        place_order(customer.id, [(product.id, 2)])

        resp = client.get("/api/analytics?preset=last_7", headers=auth_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["kpis"]["orders"] == 1
        assert len(body["timeseries"]) == 7
        assert body["top_products"][0]["quantity"] == 2

    def test_post_with_custom_window(self, client, auth_headers, db_session):
        end = utcnow().date()
        start = end - timedelta(days=13)
        resp = client.post("/api/analytics", json={
            "preset": "custom",
            "start": start.isoformat(),
            "end": end.isoformat(),
        }, headers=auth_headers)
        assert resp.status_code == 200
        assert len(resp.get_json()["timeseries"]) == 14

    def test_garbage_dates_fall_back(self, client, auth_headers):
        resp = client.get("/api/analytics?from=yesterday&to=soon", headers=auth_headers)
        assert resp.status_code == 200
        assert len(resp.get_json()["timeseries"]) == 31


class TestDashboardEndpoint:

    def test_metrics(self, client, auth_headers, customer, product, place_order):
        place_order(customer.id, [(product.id, 1)])
        resp = client.get("/api/dashboard/metrics", headers=auth_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["orders"] == 1
        assert body["pending_deliveries"] == 1
        assert len(body["monthly"]) == 12
