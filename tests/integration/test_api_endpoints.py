"""
Integration tests for FastAPI endpoints.

Tests the HTTP API:
- Health checks
- Tick / frame rendering
- Configuration updates
- Viewport changes and spiral trace
- Water refetch (offline stub source)
"""

import random
import time

import pytest
from fastapi.testclient import TestClient

from wander_core import (
    EventScheduler,
    LatLng,
    WanderConfig,
    WanderSession,
    WaterFetchError,
    WaterLayer,
    WebMercatorViewport,
)

from tests.conftest import polygon_feature, square


class StubWaterSource:

    def __init__(self, features=None, error=None):
        self.features = features or []
        self.error = error
        self.bboxes = []

    def fetch_water_polygons(self, bbox):
        self.bboxes.append(bbox)
        if self.error:
            raise self.error
        return self.features


@pytest.fixture
def water_source():
    return StubWaterSource()


@pytest.fixture
def session(water_source):
    viewport = WebMercatorViewport(LatLng(40.7128, -74.006), zoom=12, width=800, height=600)
    water = WaterLayer(water_source)
    yield WanderSession(viewport, config=WanderConfig(), water=water,
                        scheduler=EventScheduler(rng=random.Random(42)))
    water.shutdown()


@pytest.fixture
def client(session):
    """Create a test client bound to a fresh session."""
    from server.main import app, set_session

    set_session(session)
    yield TestClient(app)
    set_session(None)


def wait_for_status(client, prefix, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        data = client.get("/api/water").json()
        if data["status"].startswith(prefix):
            return data
        time.sleep(0.01)
    raise AssertionError(f"water status never reached {prefix!r}")


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_root_endpoint(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}


class TestTickEndpoint:

    def test_tick_returns_frame(self, client):
        client.post("/api/tick", json={"timestamp": 0})
        response = client.post("/api/tick", json={"timestamp": 1000})
        assert response.status_code == 200

        frame = response.json()
        assert frame["spiral_parameter"] == pytest.approx(1.4)
        assert frame["submerged"] is False
        assert len(frame["marker_position"]) == 2
        assert len(frame["marker_pixel_position"]) == 2
        assert frame["active_event_label"] is None
        assert frame["spiral_trace_enabled"] is True

    def test_first_frame_is_view_center(self, client):
        frame = client.post("/api/tick", json={"timestamp": 0}).json()
        assert frame["marker_pixel_position"] == pytest.approx([400.0, 300.0])

    def test_event_frame(self, client, session):
        client.post("/api/config", json={"enabled_event_ids": ["monster"]})
        session.events.next_event_delay = 0.5

        client.post("/api/tick", json={"timestamp": 0})
        frame = client.post("/api/tick", json={"timestamp": 1000}).json()

        assert frame["active_event_category"] == "monster"
        assert frame["active_event_label"] == "Monster encounter: cautious standoff."
        assert frame["paused"] is True
        assert frame["event_sprite_position"] == pytest.approx(
            [frame["marker_pixel_position"][0] + 70, frame["marker_pixel_position"][1] - 10]
        )

    def test_missing_timestamp(self, client):
        assert client.post("/api/tick", json={}).status_code == 422


class TestConfigEndpoints:

    def test_get_config(self, client):
        data = client.get("/api/config").json()
        assert data["spacing"] == 40.0
        assert sorted(data["enabled_event_ids"]) == ["chat", "monster", "picnic"]

    def test_partial_update(self, client, session):
        response = client.post("/api/config", json={"speed_factor": 2, "allow_water_crossing": True})
        assert response.status_code == 200
        assert response.json()["speed_factor"] == 2
        assert response.json()["spacing"] == 40.0
        assert session.config.allow_water_crossing is True

    def test_unknown_field_rejected(self, client, session):
        response = client.post("/api/config", json={"warp": 9})
        assert response.status_code == 422
        assert session.config == WanderConfig()

    def test_allow_water_reports_submerged(self, client, session):
        session.water.replace_polygons([polygon_feature(square(-180, -85, 180, 85))])
        client.post("/api/config", json={"allow_water_crossing": True})
        frame = client.post("/api/tick", json={"timestamp": 500}).json()
        assert frame["submerged"] is True


class TestViewportAndTrace:

    def test_viewport_update(self, client):
        response = client.post("/api/viewport", json={"center": [51.5, -0.12], "zoom": 10, "width": 640})
        data = response.json()
        assert data["center"] == pytest.approx([51.5, -0.12])
        assert data["zoom"] == 10
        assert data["width"] == 640
        assert data["height"] == 600
        south, west, north, east = data["bounds"]
        assert south < 51.5 < north
        assert west < -0.12 < east

    def test_bad_center(self, client):
        assert client.post("/api/viewport", json={"center": [1, 2, 3]}).status_code == 400

    def test_bad_center_leaves_viewport_unchanged(self, client, session):
        response = client.post("/api/viewport", json={"center": [1, 2, 3], "width": 320, "zoom": 3})
        assert response.status_code == 400
        assert session.projection.size() == (800, 600)
        assert session.projection.zoom == 12

    def test_trace(self, client):
        points = client.get("/api/trace").json()["points"]
        assert points[0] == pytest.approx([400.0, 300.0])
        assert len(points) > 100

    def test_trace_disabled(self, client):
        client.post("/api/config", json={"draw_spiral_enabled": False})
        assert client.get("/api/trace").json()["points"] is None


class TestWaterEndpoints:

    def test_initial_status(self, client):
        data = client.get("/api/water").json()
        assert data["polygon_count"] == 0

    def test_refetch_with_bbox(self, client, water_source):
        water_source.features = [polygon_feature(square(-74.1, 40.6, -73.9, 40.8))]
        response = client.post("/api/water/refetch", json={"bbox": [40.6, -74.1, 40.8, -73.9]})
        assert response.status_code == 200

        data = wait_for_status(client, "Loaded")
        assert data["polygon_count"] == 1
        assert tuple(water_source.bboxes[0]) == (40.6, -74.1, 40.8, -73.9)

    def test_refetch_defaults_to_viewport(self, client, session, water_source):
        client.post("/api/water/refetch", json={})
        wait_for_status(client, "Loaded")
        assert water_source.bboxes == [session.projection.bounds()]

    def test_refetch_failure_keeps_polygons(self, client, session, water_source):
        lake = [polygon_feature(square(0, 0, 1, 1))]
        session.water.replace_polygons(lake)
        water_source.error = WaterFetchError("Overpass error: 504", status_code=504)

        client.post("/api/water/refetch", json={})
        data = wait_for_status(client, "Could not load")
        assert data["polygon_count"] == 1

    def test_bad_bbox(self, client):
        assert client.post("/api/water/refetch", json={"bbox": [1, 2]}).status_code == 400
