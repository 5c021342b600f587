"""
Pytest configuration and fixtures for Wander tests.

Fixtures provide common test data and setup for:
- A planar projection (lng = x, lat = y) so polygons are easy to draw
- Water polygons (lakes, holes, malformed geometry)
- Seeded event schedulers
- Sessions and the API test client
"""

import os
import random
import sys
from pathlib import Path
from typing import Callable, List

import pytest

# Ensure project root is in path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Set PYTHONPATH for subprocesses
os.environ["PYTHONPATH"] = str(PROJECT_ROOT)

from wander_core.config import WanderConfig
from wander_core.events import EventScheduler
from wander_core.projection import BoundingBox, LatLng
from wander_core.session import WanderSession
from wander_core.water import WaterLayer


# =============================================================================
# Projection Fixtures
# =============================================================================

class PlanarProjection:
    """Identity projection: layer pixel (x, y) is LatLng(lat=y, lng=x)."""

    def __init__(self, center=LatLng(0.0, 0.0), width=200, height=100):
        self.center = center
        self.width = width
        self.height = height
        self.listeners: List[Callable[[], None]] = []

    def project(self, point):
        return (point.lng, point.lat)

    def unproject(self, point):
        return LatLng(lat=point[1], lng=point[0])

    def current_center(self):
        return self.center

    def to_container(self, point):
        return (point.lng - self.center.lng + self.width / 2, point.lat - self.center.lat + self.height / 2)

    def size(self):
        return (self.width, self.height)

    def bounds(self):
        return BoundingBox(
            south=self.center.lat - self.height / 2,
            west=self.center.lng - self.width / 2,
            north=self.center.lat + self.height / 2,
            east=self.center.lng + self.width / 2,
        )

    def subscribe(self, listener):
        self.listeners.append(listener)

    def move_to(self, center):
        self.center = center
        for listener in self.listeners:
            listener()


@pytest.fixture
def projection():
    """Planar projection centered on the origin."""
    return PlanarProjection()


# =============================================================================
# Water Fixtures
# =============================================================================

def square(x0, y0, x1, y1):
    """Closed GeoJSON ring for an axis-aligned rectangle ([lng, lat] = [x, y])."""
    return [[x0, y0], [x1, y0], [x1, y1], [x0, y1], [x0, y0]]


def polygon_feature(*rings):
    return {
        "type": "Feature",
        "properties": {"natural": "water"},
        "geometry": {"type": "Polygon", "coordinates": list(rings)},
    }


@pytest.fixture
def ocean():
    """One polygon covering every point the spiral can reach in a test."""
    return [polygon_feature(square(-10_000, -10_000, 10_000, 10_000))]


@pytest.fixture
def malformed_polygons():
    """Geometries that cannot be tested for containment."""
    return [
        {"type": "Feature", "geometry": None},
        {"type": "Polygon", "coordinates": []},
        {"type": "Polygon", "coordinates": [[["a", "b"], ["c", "d"], ["e", "f"]]]},
        {"type": "LineString", "coordinates": [[0, 0], [1, 1]]},
        "not a geometry",
    ]


class FailingSource:
    """Water source that must never be reached."""

    def fetch_water_polygons(self, bbox):
        raise AssertionError("unexpected water fetch")


# =============================================================================
# Scheduler & Session Fixtures
# =============================================================================

@pytest.fixture
def seeded_scheduler():
    """Event scheduler with a fixed random seed."""
    return EventScheduler(rng=random.Random(1234))


@pytest.fixture
def make_session(projection, seeded_scheduler):
    """Factory for sessions on the planar projection with an offline water layer."""
    layers = []

    def _make(config=None, polygons=(), source=None, planner=None):
        water = WaterLayer(source or FailingSource())
        if polygons:
            water.replace_polygons(polygons)
        layers.append(water)
        return WanderSession(projection, config=config or WanderConfig(),
                             water=water, scheduler=seeded_scheduler, planner=planner)

    yield _make

    for water in layers:
        water.shutdown()
