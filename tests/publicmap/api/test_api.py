"""
Tests for the HTTP API.

Dependencies are overridden with the in-memory database, a pinned clock, a
seeded jitter engine and a mock geocoding provider.
"""
import base64
import json
import random
import time
import uuid
from unittest.mock import Mock, patch

import pytest
from fastapi.testclient import TestClient

from src.publicmap.api.dependencies import (
    get_clock,
    get_geocoding_provider,
    get_jitter_engine,
    get_refresh_task,
    get_session_factory,
)
from src.publicmap.api.main import app
from src.publicmap.errors import UpstreamFailure
from src.publicmap.geocoding.client import GeocodeResult, GoogleGeocodingClient
from src.publicmap.privacy.jitter import JitterEngine
from src.publicmap.services.refresh_task import COMPLETED, STARTED, RefreshTask
from src.publicmap.services.snapshot_builder import SnapshotBuilder


@pytest.fixture
def provider():
    provider = Mock()
    provider.name = "google"
    provider.geocode.return_value = GeocodeResult(lat=10.5, lng=-20.25, formatted_address="Main St")
    return provider


@pytest.fixture
def client(session_factory, clock, provider):
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_geocoding_provider] = lambda: provider
    app.dependency_overrides[get_jitter_engine] = lambda: JitterEngine(random.Random(3))

    yield TestClient(app)

    app.dependency_overrides.clear()


def create_point(client, lat, lng, **extra):
    body = {"lat": lat, "lng": lng, "precision": "exact", "status": "active"}
    body.update(extra)
    response = client.post("/points", json=body)
    assert response.status_code == 200, response.text
    return response.json()["id"]


def sync(client):
    response = client.post("/admin/sync/public-map")
    assert response.status_code == 200, response.text
    assert response.json() == {"ok": True}


def assert_error(response, status_code, code):
    assert response.status_code == status_code, response.text
    body = response.json()
    assert set(body) == {"error"}
    assert body["error"]["code"] == code
    assert body["error"]["message"]
    return body["error"]["message"]


class TestMapPoints:
    """Tests for /map/points."""

    def test_bbox_round_trip(self, client):
        inside = create_point(client, 0.0, 0.0, public_note="near")
        create_point(client, 20.0, 20.0)
        sync(client)

        response = client.get("/map/points", params={"bbox": "-10,-10,10,10"})

        assert response.status_code == 200
        body = response.json()
        assert [item["id"] for item in body["items"]] == [inside]
        assert body["items"][0]["public_note"] == "near"
        assert body["items"][0]["residents"] == 0
        assert body["next_cursor"] is None
        assert body["last_sync_at"] is not None

    def test_follow_cursor_to_the_end(self, client):
        created = {create_point(client, float(i), float(i)) for i in range(5)}
        sync(client)

        seen = []
        params = {"bbox": "-180,-90,180,90", "limit": "2"}
        while True:
            body = client.get("/map/points", params=params).json()
            seen.extend(item["id"] for item in body["items"])
            if body["next_cursor"] is None:
                break
            params["cursor"] = body["next_cursor"]

        assert len(seen) == 5
        assert set(seen) == created

    def test_oversized_cursor_returns_first_page(self, client):
        created = create_point(client, 0.0, 0.0)
        sync(client)
        cursor = base64.urlsafe_b64encode(b"1" + b"0" * 30).decode()

        response = client.get("/map/points", params={"bbox": "-1,-1,1,1", "cursor": cursor})

        assert response.status_code == 200
        assert [item["id"] for item in response.json()["items"]] == [created]

    def test_non_numeric_limit_uses_default(self, client):
        create_point(client, 0.0, 0.0)
        sync(client)

        response = client.get("/map/points", params={"bbox": "-1,-1,1,1", "limit": "lots"})

        assert response.status_code == 200
        assert len(response.json()["items"]) == 1

    def test_missing_bbox(self, client):
        message = assert_error(client.get("/map/points"), 400, "VALIDATION_ERROR")
        assert message == "bbox is required"

    def test_malformed_bbox(self, client):
        assert_error(client.get("/map/points", params={"bbox": "1,2,3"}), 400, "VALIDATION_ERROR")

    def test_bad_updated_since(self, client):
        response = client.get("/map/points", params={"bbox": "-1,-1,1,1", "updated_since": "soon"})

        assert_error(response, 400, "VALIDATION_ERROR")

    def test_point_detail(self, client):
        point = create_point(client, 3.0, 4.0, region="Centro")
        sync(client)

        response = client.get(f"/map/points/{point}")

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == point
        assert body["region"] == "Centro"
        assert body["snapshot_date"] == "2026-03-01"

    def test_point_detail_not_found(self, client):
        assert_error(client.get(f"/map/points/{uuid.uuid4()}"), 404, "NOT_FOUND")
        assert_error(client.get("/map/points/not-a-uuid"), 404, "NOT_FOUND")


class TestGeocode:
    """Tests for /geocode."""

    def test_second_call_is_cached(self, client, provider):
        first = client.get("/geocode", params={"address": "10 Main Street"})
        second = client.get("/geocode", params={"address": "  10 MAIN   street "})

        assert first.status_code == 200
        assert first.json() == {"lat": 10.5, "lng": -20.25, "formatted_address": "Main St"}
        assert second.json() == first.json()
        assert provider.geocode.call_count == 1

    def test_missing_address(self, client):
        assert_error(client.get("/geocode"), 400, "VALIDATION_ERROR")

    def test_upstream_failure(self, client, provider):
        provider.geocode.side_effect = UpstreamFailure()

        assert_error(client.get("/geocode", params={"address": "x"}), 502, "UPSTREAM")

    def test_missing_api_key(self, client):
        app.dependency_overrides[get_geocoding_provider] = lambda: GoogleGeocodingClient(api_key="")

        assert_error(client.get("/geocode", params={"address": "x"}), 500, "CONFIG")


class TestReports:
    """Tests for /reports."""

    BOUNDS = {"west": -10, "south": -10, "east": 10, "north": 10}

    def test_preview(self, client):
        create_point(client, 0.0, 0.0)
        create_point(client, 1.0, 1.0)
        sync(client)

        response = client.post("/reports/preview", json={"bounds": self.BOUNDS})

        assert response.status_code == 200
        body = response.json()
        assert body["report_id"].startswith("rep_")
        assert body["summary"]["points"] == 2
        assert body["summary"]["residents"] == 0

    def test_preview_requires_bounds(self, client):
        message = assert_error(client.post("/reports/preview", json={}), 400, "VALIDATION_ERROR")
        assert message == "bounds is required"

    def test_csv_export(self, client):
        create_point(client, 0.0, 0.0, public_note='the "blue" house')
        create_point(client, 1.0, 1.0)
        sync(client)

        response = client.post("/reports/export", json={"bounds": self.BOUNDS, "format": "CSV"})

        assert response.status_code == 200
        body = response.json()
        assert body["content_type"] == "text/csv"
        assert "content_base64" not in body
        assert '"the ""blue"" house"' in body["content"]

    def test_json_export_honours_include_flags(self, client):
        create_point(client, 0.0, 0.0)
        sync(client)

        response = client.post("/reports/export", json={
            "bounds": self.BOUNDS,
            "format": "JSON",
            "include": {"indicators": True, "points": False, "narratives": True},
        })

        assert response.status_code == 200
        content = json.loads(response.json()["content"])
        assert content["items"] == []
        assert content["summary"]["points"] == 1

    def test_pdf_export(self, client):
        create_point(client, 0.0, 0.0)
        sync(client)

        response = client.post("/reports/export", json={"bounds": self.BOUNDS, "format": "PDF"})

        body = response.json()
        assert body["content_type"] == "application/pdf"
        assert "content" not in body
        assert base64.b64decode(body["content_base64"]).startswith(b"%PDF")

    def test_export_requires_bounds_and_format(self, client):
        message = assert_error(
            client.post("/reports/export", json={"bounds": self.BOUNDS}), 400, "VALIDATION_ERROR"
        )
        assert message == "bounds and format are required"

    def test_export_unknown_format(self, client):
        response = client.post("/reports/export", json={"bounds": self.BOUNDS, "format": "XLS"})

        assert_error(response, 400, "VALIDATION_ERROR")


class TestAssignments:
    """Tests for /assignments."""

    def test_reassignment(self, client):
        resident = client.post("/residents", json={"full_name": "R", "status": "active"}).json()["id"]
        point_a = create_point(client, 0.0, 0.0)
        point_b = create_point(client, 1.0, 1.0)

        for point in (point_a, point_b):
            response = client.post("/assignments", json={"resident_id": resident, "point_id": point})
            assert response.json() == {"ok": True}

        active = client.get("/assignments/active", params={"resident_id": resident}).json()
        assert active["point_id"] == point_b
        assert client.get("/assignments/active", params={"point_id": point_a}).json() is None

        sync(client)
        items = client.get("/map/points", params={"bbox": "-5,-5,5,5"}).json()["items"]
        residents = {item["id"]: item["residents"] for item in items}
        assert residents == {point_a: 0, point_b: 1}

    def test_missing_ids(self, client):
        message = assert_error(client.post("/assignments", json={}), 400, "VALIDATION_ERROR")
        assert message == "resident_id and point_id are required"

    def test_unknown_resident(self, client):
        point = create_point(client, 0.0, 0.0)

        response = client.post(
            "/assignments", json={"resident_id": str(uuid.uuid4()), "point_id": point}
        )

        assert_error(response, 404, "NOT_FOUND")


class TestWrites:
    """Tests for point/resident writes and the actor header."""

    def test_out_of_range_latitude(self, client):
        response = client.post(
            "/points", json={"lat": 200, "lng": 0, "precision": "exact", "status": "active"}
        )

        assert_error(response, 400, "VALIDATION_ERROR")

    def test_approx_point_is_jittered(self, client):
        response = client.post("/points", json={
            "lat": 0.0, "lng": 0.0, "accuracy_m": 500, "precision": "approx", "status": "active",
        })

        body = response.json()
        assert (body["public_lat"], body["public_lng"]) != (0.0, 0.0)

    def test_update_and_delete(self, client):
        point = create_point(client, 0.0, 0.0)

        assert client.put(f"/points/{point}", json={"lat": 2.0}).json() == {"ok": True}
        assert client.delete(f"/points/{point}").json() == {"ok": True}
        assert_error(client.delete(f"/points/{point}"), 404, "NOT_FOUND")

    def test_actor_header(self, client, owner_id):
        client.post(
            "/points",
            json={"lat": 0.0, "lng": 0.0, "precision": "exact", "status": "active"},
            headers={"X-Actor-User-Id": str(owner_id)},
        )

        entries = client.get("/audit", params={"actor_user_id": str(owner_id)}).json()["items"]
        assert [(e["action"], e["entity_type"]) for e in entries] == [("create", "map_point")]

    def test_invalid_actor_header(self, client):
        response = client.post(
            "/residents",
            json={"full_name": "R", "status": "active"},
            headers={"X-Actor-User-Id": "nobody"},
        )

        assert_error(response, 400, "VALIDATION_ERROR")

    def test_audit_filters(self, client):
        create_point(client, 0.0, 0.0)
        client.post("/residents", json={"full_name": "R", "status": "active"})

        body = client.get("/audit", params={"entity_type": "resident", "limit": 10}).json()

        assert len(body["items"]) == 1
        assert body["items"][0]["entity_type"] == "resident"


class TestAdmin:
    """Tests for /admin sync endpoints."""

    def test_status_before_and_after_sync(self, client):
        assert_error(client.get("/admin/sync/public-map/status"), 404, "NOT_FOUND")

        create_point(client, 0.0, 0.0)
        sync(client)

        status = client.get("/admin/sync/public-map/status").json()
        assert status["status"] == "completed"
        assert status["trigger"] == "manual"
        assert status["rows_written"] == 1

    def test_failed_sync(self, client, clock):
        builder = Mock()
        builder.refresh.side_effect = RuntimeError("database went away")
        app.dependency_overrides[get_refresh_task] = lambda: RefreshTask(builder, clock)

        assert_error(client.post("/admin/sync/public-map"), 500, "INTERNAL")

    def test_background_sync(self, client, session_factory, clock):
        task = RefreshTask(SnapshotBuilder(session_factory, clock), clock)
        app.dependency_overrides[get_refresh_task] = lambda: task

        response = client.post("/admin/sync/public-map/background")

        assert response.status_code == 202
        assert response.json() == {"ok": True}
        deadline = time.monotonic() + 10
        while time.monotonic() < deadline:
            observation = task.last_observation
            if observation is not None and observation.status != STARTED:
                break
            time.sleep(0.01)
        assert task.last_observation.status == COMPLETED


class TestErrorsAndHealth:

    def test_unknown_route(self, client):
        assert_error(client.get("/nowhere"), 404, "NOT_FOUND")

    def test_unexpected_error_is_internal(self, session_factory, clock):
        def broken_factory():
            raise RuntimeError("pool exhausted")

        app.dependency_overrides[get_session_factory] = lambda: session_factory
        app.dependency_overrides[get_clock] = lambda: clock
        app.dependency_overrides[get_refresh_task] = broken_factory
        try:
            response = TestClient(app, raise_server_exceptions=False).post("/admin/sync/public-map")
        finally:
            app.dependency_overrides.clear()

        assert_error(response, 500, "INTERNAL")

    def test_health(self, client):
        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["database"] == "connected"

    def test_root(self, client):
        assert client.get("/").json()["ok"] is True

    def test_request_id_is_echoed(self, client):
        response = client.get("/", headers={"X-Request-Id": "req-42"})

        assert response.headers["X-Request-Id"] == "req-42"

    def test_request_id_generated_when_missing(self, client):
        response = client.get("/")

        assert len(response.headers["X-Request-Id"]) == 32

    def test_error_envelope_documented(self, client):
        paths = client.get("/openapi.json").json()["paths"]

        listing = paths["/map/points"]["get"]["responses"]["400"]
        geocode = paths["/geocode"]["get"]["responses"]["502"]
        for response in (listing, geocode):
            ref = response["content"]["application/json"]["schema"]["$ref"]
            assert ref == "#/components/schemas/ErrorResponse"

    def test_shutdown_disposes_engine(self):
        with patch("src.publicmap.api.main.close_connections") as close:
            with TestClient(app):
                close.assert_not_called()

        close.assert_called_once_with()
