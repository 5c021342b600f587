"""
Map projection and viewport.

The planner works in layer pixels (spiral offsets are pixel distances) while
water polygons are geographic, so every candidate position round-trips
through a Projection. WebMercatorViewport is the spherical Web Mercator
projection used by slippy-map tiles (256 px tiles, y grows downward).
"""

from __future__ import annotations

import math
from typing import Callable, List, NamedTuple, Protocol, Tuple, runtime_checkable

Point = Tuple[float, float]

TILE_SIZE = 256
MAX_LATITUDE = 85.0511287798


class LatLng(NamedTuple):
    lat: float
    lng: float


class BoundingBox(NamedTuple):
    """Geographic bounds in Overpass order (south, west, north, east)."""
    south: float
    west: float
    north: float
    east: float


@runtime_checkable
class Projection(Protocol):
    """What the planner and session need from the map."""

    def project(self, point: LatLng) -> Point:
        ...

    def unproject(self, point: Point) -> LatLng:
        ...

    def current_center(self) -> LatLng:
        ...

    def to_container(self, point: LatLng) -> Point:
        ...

    def size(self) -> Tuple[int, int]:
        ...

    def bounds(self) -> BoundingBox:
        ...

    def subscribe(self, listener: Callable[[], None]) -> None:
        ...


class WebMercatorViewport:
    """
    A map viewport: center, integer-or-fractional zoom, and pixel size.

    Layer pixels are world pixels at the current zoom; container pixels are
    relative to the top-left corner of the viewport. Listeners registered
    with subscribe() are called after every view change.
    """

    def __init__(self, center: LatLng, zoom: float = 12, width: int = 1024, height: int = 768):
        self._center = LatLng(*center)
        self.zoom = float(zoom)
        self.width = int(width)
        self.height = int(height)
        self._listeners: List[Callable[[], None]] = []

    # ---------------------------------------------
    # Projection
    # ---------------------------------------------
    def _world_size(self) -> float:
        return TILE_SIZE * math.pow(2.0, self.zoom)

    def project(self, point: LatLng) -> Point:
        lat = max(-MAX_LATITUDE, min(MAX_LATITUDE, point.lat))
        world = self._world_size()
        sin_lat = math.sin(math.radians(lat))
        x = (point.lng + 180.0) / 360.0 * world
        y = (0.5 - math.log((1 + sin_lat) / (1 - sin_lat)) / (4 * math.pi)) * world
        return (x, y)

    def unproject(self, point: Point) -> LatLng:
        world = self._world_size()
        x, y = point
        lng = x / world * 360.0 - 180.0
        n = math.pi - 2.0 * math.pi * y / world
        lat = math.degrees(math.atan(math.sinh(n)))
        return LatLng(lat, lng)

    def current_center(self) -> LatLng:
        return self._center

    def _top_left(self) -> Point:
        cx, cy = self.project(self._center)
        return (cx - self.width / 2.0, cy - self.height / 2.0)

    def to_container(self, point: LatLng) -> Point:
        x, y = self.project(point)
        left, top = self._top_left()
        return (x - left, y - top)

    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    def bounds(self) -> BoundingBox:
        left, top = self._top_left()
        north_west = self.unproject((left, top))
        south_east = self.unproject((left + self.width, top + self.height))
        return BoundingBox(
            south=south_east.lat,
            west=north_west.lng,
            north=north_west.lat,
            east=south_east.lng,
        )

    # ---------------------------------------------
    # View changes
    # ---------------------------------------------
    def subscribe(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    def set_view(self, center: LatLng, zoom: float = None) -> None:
        self._center = LatLng(*center)
        if zoom is not None:
            self.zoom = float(zoom)
        self._notify()

    def pan_by(self, dx: float, dy: float) -> None:
        """Move the view by a pixel offset."""
        cx, cy = self.project(self._center)
        self._center = self.unproject((cx + dx, cy + dy))
        self._notify()

    def resize(self, width: int, height: int) -> None:
        self.width = int(width)
        self.height = int(height)
        self._notify()
