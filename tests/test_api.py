"""
API Endpoint Tests
End-to-end through FastAPI with an in-memory store and a temp mirror file.
"""

import json
from unittest.mock import MagicMock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from api_server import create_app, register_core_endpoints, LIVENESS_TEXT
from browserscan.config import Settings
from browserscan.telemetry import (
    LogRecord,
    StoreUnavailableError,
    get_store,
    get_mirror,
)


def failing_store():
    store = MagicMock()
    for name in ("insert", "count", "browser_counts", "geo_hotspots", "ip_distribution", "fetch_all"):
        getattr(store, name).side_effect = StoreUnavailableError("Database connection failed")
    return store


class TestRoot:

    def test_liveness_text(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.text == LIVENESS_TEXT
        assert response.headers["content-type"].startswith("text/plain")

    def test_health_reports_backend(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["store"] == "memory"


class TestReceive:

    def test_captured_response(self, client):
        response = client.post("/receive", json={"browser": "Chrome"})
        assert response.status_code == 200
        assert response.json() == {"status": "captured", "message": "Logged to DB and local storage."}

    def test_stores_and_mirrors(self, client, store, mirror):
        client.post("/receive", json={"browser": "Firefox", "cores": 8},
                    headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})

        assert store.count() == 1
        record = store.fetch_all()[0]
        assert record.ip == "203.0.113.9"
        assert record.browser == "Firefox"

        entries = mirror.read()
        assert entries[0]["ip"] == "203.0.113.9"
        assert entries[0]["cores"] == 8

    def test_peer_address_without_proxy_header(self, client, store):
        client.post("/receive", json={"browser": "Edge"})
        assert store.fetch_all()[0].ip == "testclient"

    def test_missing_browser_stored_as_unknown(self, client, store):
        client.post("/receive", json={"cores": 4})
        assert store.fetch_all()[0].browser == "Unknown"

    def test_empty_body_accepted(self, client, store):
        response = client.post("/receive", content=b"")
        assert response.status_code == 200
        assert store.fetch_all()[0].browser == "Unknown"

    def test_invalid_json_rejected(self, client, store):
        response = client.post("/receive", content=b"{nope", headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid JSON body"}
        assert store.count() == 0

    def test_non_object_json_rejected(self, client):
        response = client.post("/receive", json=[1, 2, 3])
        assert response.status_code == 400

    def test_store_failure_is_500(self, app, client):
        app.dependency_overrides[get_store] = failing_store
        response = client.post("/receive", json={"browser": "Chrome"})
        assert response.status_code == 500
        assert response.json() == {"error": "Logging Failure"}

    def test_mirror_failure_is_500_but_store_kept(self, app, client, store):
        broken = MagicMock()
        broken.append.side_effect = OSError("disk full")
        app.dependency_overrides[get_mirror] = lambda: broken

        response = client.post("/receive", json={"browser": "Chrome"})

        assert response.status_code == 500
        assert response.json() == {"error": "Logging Failure"}
        assert store.count() == 1


class TestUnusualBodies:
    """Bodies at the edges of JSON must never break later listings"""

    def test_non_finite_constant_rejected_and_listing_still_renders(self, client, store):
        response = client.post("/receive", content=b'{"browser":"X","battery":NaN}',
                               headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid JSON body"}
        assert store.count() == 0

        client.post("/receive", json={"browser": "Chrome"})
        listing = client.get("/api/admin/logs")
        assert listing.status_code == 200
        assert [item["browser"] for item in listing.json()] == ["Chrome"]

    def test_infinity_rejected(self, client):
        response = client.post("/receive", content=b'{"lat":-Infinity}',
                               headers={"Content-Type": "application/json"})
        assert response.status_code == 400

    def test_lone_surrogate_accepted_and_listed(self, client, store, mirror):
        response = client.post("/receive", content=b'{"browser":"\\ud800","cores":2}',
                               headers={"Content-Type": "application/json"})
        assert response.status_code == 200
        assert store.fetch_all()[0].browser == "?"
        assert mirror.read()[0]["browser"] == "\ud800"

        listing = client.get("/api/admin/logs")
        assert listing.status_code == 200
        assert listing.json()[0]["browser"] == "\ud800"
        assert listing.json()[0]["cores"] == 2

        stats = client.get("/api/admin/stats")
        assert stats.status_code == 200
        assert stats.json()["browsers"] == [{"_id": "?", "count": 1}]

    def test_long_free_form_values_accepted(self, client, store):
        latitude = "x" * 100
        response = client.post("/receive", json={"latitude": latitude},
                               headers={"X-Forwarded-For": "h" * 300})
        assert response.status_code == 200
        record = store.fetch_all()[0]
        assert record.latitude == latitude
        assert record.ip == "h" * 300


class TestRoundTrip:

    def test_listing_returns_submitted_fields(self, client):
        body = {
            "browser": "Chrome",
            "cores": 8,
            "memory": "8 GB",
            "latitude": "37.7749",
            "longitude": "-122.4194",
            "battery": "87%",
            "connection": "4g",
            "timestamp": "2025-06-01T10:00:00.000Z",
        }
        client.post("/receive", json=body)

        listing = client.get("/api/admin/logs").json()

        assert len(listing) == 1
        merged = listing[0]
        for key, value in body.items():
            assert merged[key] == value
        assert set(merged) == set(body) | {"id", "ip", "receivedAt"}

    def test_listing_newest_first(self, client):
        for name in ["first", "second", "third"]:
            client.post("/receive", json={"browser": name})
        names = [item["browser"] for item in client.get("/api/admin/logs").json()]
        assert names == ["third", "second", "first"]


class TestStats:

    def test_totals_and_distribution(self, client):
        for name in ["Chrome", "Chrome", "Firefox"]:
            client.post("/receive", json={"browser": name})
        client.post("/receive", json={})

        stats = client.get("/api/admin/stats").json()

        assert stats["totalRequests"] == 4
        assert stats["browsers"][0] == {"_id": "Chrome", "count": 2}
        assert sum(b["count"] for b in stats["browsers"]) == stats["totalRequests"]
        assert {"_id": "Unknown", "count": 1} in stats["browsers"]

    def test_empty_store(self, client):
        assert client.get("/api/admin/stats").json() == {"totalRequests": 0, "browsers": []}

    def test_total_never_decreases(self, client):
        seen = []
        for i in range(3):
            client.post("/receive", json={"n": i})
            seen.append(client.get("/api/admin/stats").json()["totalRequests"])
        assert seen == [1, 2, 3]

    def test_store_failure_is_500(self, app, client):
        app.dependency_overrides[get_store] = failing_store
        response = client.get("/api/admin/stats")
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch stats"}


class TestAnalytics:

    def test_geo_hotspots_and_ips(self, client):
        for _ in range(5):
            client.post("/receive", json={"latitude": "37.77", "longitude": "-122.41"},
                        headers={"X-Forwarded-For": "1.1.1.1"})
        for _ in range(3):
            client.post("/receive", json={"latitude": "40.71", "longitude": "-74.00"},
                        headers={"X-Forwarded-For": "2.2.2.2"})

        analytics = client.get("/api/admin/analytics").json()

        assert analytics["geoHotspots"][0] == {"_id": {"lat": "37.77", "lng": "-122."}, "count": 5}
        assert analytics["geoHotspots"][1]["count"] == 3
        assert analytics["ipDistribution"] == [
            {"_id": "1.1.1.1", "count": 5},
            {"_id": "2.2.2.2", "count": 3},
        ]

    def test_store_failure_is_500(self, app, client):
        app.dependency_overrides[get_store] = failing_store
        response = client.get("/api/admin/analytics")
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch analytics"}


class TestLogsListing:

    def test_corrupt_record_isolated(self, client, store):
        client.post("/receive", json={"browser": "Chrome"})
        store.insert(LogRecord(payload=b"not compressed", ip="6.6.6.6", browser="Safari"))
        client.post("/receive", json={"browser": "Firefox"})

        response = client.get("/api/admin/logs")

        assert response.status_code == 200
        listing = response.json()
        assert len(listing) == 3
        stubs = [item for item in listing if "error" in item]
        assert len(stubs) == 1
        assert stubs[0]["error"] == "Decompression failed"
        assert stubs[0]["raw"] == "6.6.6.6"
        assert {item.get("browser") for item in listing if "error" not in item} == {"Chrome", "Firefox"}

    def test_store_failure_is_500(self, app, client):
        app.dependency_overrides[get_store] = failing_store
        response = client.get("/api/admin/logs")
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch logs"}

    def test_app_level_handler_matches_router(self, store, mirror):
        """The app-level /api/admin/logs gives the same listing as the router's."""
        bare = FastAPI()
        register_core_endpoints(bare)
        bare.dependency_overrides[get_store] = lambda: store
        bare.dependency_overrides[get_mirror] = lambda: mirror

        full = create_app(Settings(log_file=mirror.path, rate_limit_enabled=False))
        full.dependency_overrides[get_store] = lambda: store
        full.dependency_overrides[get_mirror] = lambda: mirror

        TestClient(bare).post("/receive", json={"browser": "Chrome"})
        store.insert(LogRecord(payload=b"junk", ip="7.7.7.7"))

        inline = TestClient(bare).get("/api/admin/logs").json()
        routed = TestClient(full).get("/api/admin/logs").json()
        assert inline == routed
        assert len(inline) == 2


class TestCors:

    def test_wildcard_outside_production(self, client):
        response = client.get("/", headers={"Origin": "https://anywhere.example"})
        assert response.headers["access-control-allow-origin"] == "*"

    def test_fixed_origin_in_production(self, tmp_path, store, mirror):
        settings = Settings(
            environment="production",
            production_origin="https://scan.example",
            log_file=str(tmp_path / "logs.json"),
            rate_limit_enabled=False,
        )
        app = create_app(settings)
        app.dependency_overrides[get_store] = lambda: store
        client = TestClient(app)

        allowed = client.get("/", headers={"Origin": "https://scan.example"})
        other = client.get("/", headers={"Origin": "https://evil.example"})

        assert allowed.headers["access-control-allow-origin"] == "https://scan.example"
        assert "access-control-allow-origin" not in other.headers


class TestRateLimit:

    def test_excess_requests_rejected(self, tmp_path, store, mirror):
        settings = Settings(
            log_file=str(tmp_path / "logs.json"),
            rate_limit_max_requests=3,
            rate_limit_window_seconds=600,
        )
        app = create_app(settings)
        app.dependency_overrides[get_store] = lambda: store
        app.dependency_overrides[get_mirror] = lambda: mirror
        client = TestClient(app)

        statuses = [client.get("/").status_code for _ in range(3)]
        blocked = client.post("/receive", json={"browser": "Chrome"})

        assert statuses == [200, 200, 200]
        assert blocked.status_code == 429
        assert "error" in blocked.json()
        assert blocked.headers["RateLimit-Remaining"] == "0"
        assert store.count() == 0

    def test_headers_on_allowed_response(self, tmp_path):
        settings = Settings(log_file=str(tmp_path / "logs.json"), rate_limit_max_requests=100)
        response = TestClient(create_app(settings)).get("/")
        assert response.headers["RateLimit-Limit"] == "100"
        assert response.headers["RateLimit-Remaining"] == "99"
