"""
==============================================================================
API Integration Tests
==============================================================================

Tests for REST API endpoints and the browse WebSocket.

==============================================================================
"""

import json
from pathlib import Path

from fastapi.testclient import TestClient

from shipscores.config import Settings
from shipscores.main import Application
from shipscores.sources import LocalJsonSource

from conftest import FakeSource


def _liner(tree: dict, liner_id: str) -> dict:
    return next(l for l in tree["liners"] if l["id"] == liner_id)


def _ship(tree: dict, ship_id: str) -> dict:
    for liner in tree["liners"]:
        for ship in liner["ships"]:
            if ship["id"] == ship_id:
                return ship
    raise KeyError(ship_id)


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_health_check(self, client: TestClient):
        """Loaded catalog reports healthy with cache statistics."""
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["details"]["ships"] == 6
        assert data["details"]["cache"]["fetches"] == 0

    def test_health_before_load(self, unloaded_client: TestClient):
        data = unloaded_client.get("/api/v1/health").json()
        assert data["status"] == "degraded"
        assert data["components"]["catalog"] == "not_loaded"

    def test_readiness_probe(self, client: TestClient, unloaded_client: TestClient):
        assert client.get("/api/v1/health/ready").json()["ready"] is True
        assert unloaded_client.get("/api/v1/health/ready").json()["ready"] is False

    def test_liveness_probe(self, client: TestClient):
        response = client.get("/api/v1/health/live")
        assert response.status_code == 200
        assert response.json()["alive"] is True


class TestTreeEndpoints:
    """Tests for the tree snapshot and toggles."""

    def test_snapshot_starts_collapsed(self, client: TestClient):
        response = client.get("/api/v1/catalog")
        assert response.status_code == 200
        data = response.json()

        assert [l["id"] for l in data["liners"]] == ["groupx", "groupy", "northern-coast"]
        assert all(not l["open"] and l["visible"] for l in data["liners"])
        assert _ship(data, "shipa")["detail_state"] == "idle"
        assert data["filter"]["status"] == "cleared"
        assert data["report"]["ships"] == 6

    def test_toggle_liner(self, client: TestClient):
        response = client.post("/api/v1/catalog/liners/groupx/toggle")
        assert response.status_code == 200
        assert response.json()["open"] is True

        response = client.post("/api/v1/catalog/liners/groupx/toggle", json={"open": True})
        assert response.json()["open"] is True

    def test_toggle_ship_starts_detail_fetch(self, client: TestClient, fake_source: FakeSource):
        client.post("/api/v1/catalog/liners/groupy/toggle")

        response = client.post("/api/v1/catalog/ships/shipa/toggle")

        assert response.status_code == 200
        data = response.json()
        assert data["open"] is True
        assert data["detail_state"] in ("loading", "loaded")

        details = client.get("/api/v1/catalog/ships/shipa/details").json()
        assert details["state"] == "loaded"
        assert fake_source.calls == ["shipa"]

    def test_ship_in_closed_liner_is_rejected(self, client: TestClient):
        response = client.post("/api/v1/catalog/ships/ship1/toggle")

        assert response.status_code == 409
        data = response.json()
        assert data["success"] is False
        assert data["error"]["code"] == "NODE_HIDDEN"

    def test_unknown_nodes_are_404(self, client: TestClient):
        for path in ("/api/v1/catalog/liners/nope/toggle", "/api/v1/catalog/ships/nope/toggle"):
            response = client.post(path)
            assert response.status_code == 404
            assert response.json()["error"]["code"] == "NODE_NOT_FOUND"

    def test_closing_liner_collapses_ships(self, client: TestClient):
        client.post("/api/v1/catalog/liners/groupx/toggle")
        client.post("/api/v1/catalog/ships/ship1/toggle")
        client.post("/api/v1/catalog/liners/groupx/toggle")

        tree = client.get("/api/v1/catalog").json()

        assert not _liner(tree, "groupx")["open"]
        assert not _ship(tree, "ship1")["open"]

    def test_collapse_all(self, client: TestClient):
        client.post("/api/v1/catalog/liners/groupx/toggle")
        response = client.post("/api/v1/catalog/collapse")
        assert response.status_code == 200

        tree = client.get("/api/v1/catalog").json()
        assert not any(l["open"] for l in tree["liners"])


class TestDetailEndpoints:
    """Tests for inspection score loading."""

    def test_details_are_fetched_once(self, client: TestClient, fake_source: FakeSource):
        first = client.get("/api/v1/catalog/ships/shipa/details")
        second = client.get("/api/v1/catalog/ships/shipa/details")

        assert first.status_code == 200
        data = first.json()
        assert data["rows"] == [{"date": "2025-03-15", "score": "98/100"}]
        assert data["error"] is False
        assert data["state"] == "loaded"
        assert second.json() == data
        assert fake_source.calls == ["shipa"]

    def test_failed_fetch_is_reported_not_raised(self, client: TestClient, fake_source: FakeSource):
        response = client.get("/api/v1/catalog/ships/shipb/details")

        assert response.status_code == 200
        data = response.json()
        assert data["rows"] == []
        assert data["error"] is True
        assert data["state"] == "failed"

        client.get("/api/v1/catalog/ships/shipb/details")
        assert fake_source.calls == ["shipb", "shipb"]

    def test_empty_rows(self, client: TestClient):
        data = client.get("/api/v1/catalog/ships/polaris/details").json()
        assert data["rows"] == []
        assert data["error"] is False

    def test_unknown_ship(self, client: TestClient):
        response = client.get("/api/v1/catalog/ships/ghost/details")
        assert response.status_code == 404


class TestFilterEndpoints:
    """Tests for search."""

    def test_filter(self, client: TestClient):
        response = client.post("/api/v1/catalog/filter", json={"query": "Ship1"})

        assert response.status_code == 200
        assert response.json()["filter"] == {
            "query": "ship1",
            "matched_liners": 1,
            "matched_ships": 1,
            "status": "matched",
        }

        tree = client.get("/api/v1/catalog").json()
        assert _liner(tree, "groupx")["open"]
        assert _ship(tree, "ship1")["visible"]
        assert not _ship(tree, "ship2")["visible"]
        assert not _liner(tree, "groupy")["visible"]

    def test_hidden_ship_cannot_be_toggled(self, client: TestClient):
        client.post("/api/v1/catalog/filter", json={"query": "ship1"})
        response = client.post("/api/v1/catalog/ships/ship2/toggle")
        assert response.status_code == 409

    def test_no_match(self, client: TestClient):
        data = client.post("/api/v1/catalog/filter", json={"query": "zeppelin"}).json()
        assert data["filter"]["status"] == "none"
        assert data["filter"]["matched_ships"] == 0

    def test_clear_filter(self, client: TestClient):
        client.post("/api/v1/catalog/filter", json={"query": "groupy"})

        response = client.delete("/api/v1/catalog/filter")

        assert response.json()["filter"]["status"] == "cleared"
        tree = client.get("/api/v1/catalog").json()
        assert all(l["visible"] and not l["open"] for l in tree["liners"])

    def test_query_too_long(self, client: TestClient):
        response = client.post("/api/v1/catalog/filter", json={"query": "x" * 201})
        assert response.status_code == 422


class TestReloadEndpoint:

    def test_reload_keeps_query(self, client: TestClient, fake_source: FakeSource):
        client.post("/api/v1/catalog/filter", json={"query": "polaris"})

        response = client.post("/api/v1/catalog/reload")

        assert response.status_code == 200
        data = response.json()
        assert data["report"]["liners"] == 3
        assert data["filter"]["query"] == "polaris"
        assert fake_source.catalog_calls == 2

    def test_reload_failure(self, client: TestClient, fake_source: FakeSource):
        fake_source.fail_catalog = True

        response = client.post("/api/v1/catalog/reload")

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "CATALOG_LOAD_FAILED"
        assert client.get("/api/v1/catalog").status_code == 200

    def test_unloaded_catalog(self, unloaded_client: TestClient):
        response = unloaded_client.get("/api/v1/catalog")
        assert response.status_code == 503
        assert response.json()["error"]["code"] == "CATALOG_NOT_LOADED"

        assert unloaded_client.post("/api/v1/catalog/reload").status_code == 200
        assert unloaded_client.get("/api/v1/catalog").status_code == 200


class TestBrowseWebSocket:
    """Tests for the browse WebSocket."""

    def test_init_and_toggle_with_pushed_details(self, client: TestClient):
        with client.websocket_connect("/ws/browse") as ws:
            init = ws.receive_json()
            assert init["type"] == "init"
            assert len(init["tree"]["liners"]) == 3

            ws.send_json({"type": "toggle_liner", "liner_id": "groupy"})
            assert _liner(ws.receive_json()["tree"], "groupy")["open"]

            ws.send_json({"type": "toggle_ship", "ship_id": "shipa"})
            assert _ship(ws.receive_json()["tree"], "shipa")["open"]

            details = ws.receive_json()
            assert details["type"] == "details"
            assert details["ship_id"] == "shipa"
            assert details["rows"][0]["score"] == "98/100"

            ws.send_json({"type": "stop"})

    def test_cached_details_are_sent_immediately(self, client: TestClient, fake_source: FakeSource):
        client.get("/api/v1/catalog/ships/ship1/details")

        with client.websocket_connect("/ws/browse") as ws:
            ws.receive_json()
            ws.send_json({"type": "toggle_liner", "liner_id": "groupx", "open": True})
            ws.receive_json()
            ws.send_json({"type": "toggle_ship", "ship_id": "ship1"})
            ws.receive_json()

            details = ws.receive_json()
            assert details["type"] == "details"
            assert len(details["rows"]) == 2
            ws.send_json({"type": "stop"})

        assert fake_source.calls == ["ship1"]

    def test_filter_and_clear(self, client: TestClient):
        with client.websocket_connect("/ws/browse") as ws:
            ws.receive_json()

            ws.send_json({"type": "filter", "query": "groupx"})
            message = ws.receive_json()
            assert message["type"] == "filter"
            assert message["filter"]["matched_ships"] == 2

            ws.send_json({"type": "clear_filter"})
            message = ws.receive_json()
            assert message["filter"]["status"] == "cleared"
            ws.send_json({"type": "stop"})

    def test_errors_are_reported(self, client: TestClient):
        with client.websocket_connect("/ws/browse") as ws:
            ws.receive_json()

            ws.send_json({"type": "toggle_ship", "ship_id": "ship1"})
            assert ws.receive_json()["code"] == "NODE_HIDDEN"

            ws.send_json({"type": "toggle_liner", "liner_id": "nope"})
            assert ws.receive_json()["code"] == "NODE_NOT_FOUND"

            ws.send_json({"type": "bogus"})
            assert ws.receive_json()["code"] == "UNKNOWN_TYPE"

            ws.send_json(["not", "an", "object"])
            assert ws.receive_json()["code"] == "INVALID_MESSAGE"
            ws.send_json({"type": "stop"})

    def test_unloaded_catalog(self, unloaded_client: TestClient):
        with unloaded_client.websocket_connect("/ws/browse") as ws:
            message = ws.receive_json()
            assert message["type"] == "error"
            assert message["code"] == "CATALOG_NOT_LOADED"


class TestUnreadableLocalCatalog:
    """Startup and reload with a catalog file that cannot be read."""

    def _app(self, catalog_path: Path, details_path: Path):
        settings = Settings(load_on_startup=True)
        source = LocalJsonSource(catalog_path, details_path)
        return Application(settings=settings, source=source).app

    def test_startup_survives_and_reload_reports_502(self, tmp_path: Path):
        catalog = tmp_path / "catalog.json"
        catalog.write_bytes(b"\xff\xfe not utf-8")

        with TestClient(self._app(catalog, tmp_path / "details.json")) as test_client:
            assert test_client.get("/api/v1/health/ready").json()["ready"] is False

            response = test_client.post("/api/v1/catalog/reload")
            assert response.status_code == 502
            assert response.json()["error"]["code"] == "CATALOG_LOAD_FAILED"

            catalog.write_text(json.dumps({"liners": [{"name": "Solo", "ships": []}]}), encoding="utf-8")
            assert test_client.post("/api/v1/catalog/reload").status_code == 200

    def test_directory_as_catalog(self, tmp_path: Path):
        with TestClient(self._app(tmp_path, tmp_path)) as test_client:
            assert test_client.get("/api/v1/health").json()["status"] == "degraded"
            assert test_client.post("/api/v1/catalog/reload").status_code == 502
