"""
Geometry Kernel

Pure functions for the spiral path and water containment:
- spiral_offset: Archimedean spiral offset in layer pixels
- spiral_trace: sampled spiral polyline for the optional trace overlay
- point_in_water: point-in-polygon test against GeoJSON water geometries
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
from matplotlib.path import Path as MplPath

from .errors import GeometryError
from .projection import LatLng

logger = logging.getLogger(__name__)

Point = Tuple[float, float]
Geometry = Dict[str, Any]

# Step between trace samples, in radians of spiral parameter
TRACE_STEP = 0.2


# =============================================================================
# Spiral
# =============================================================================

def spiral_offset(t: float, spacing: float) -> Point:
    """
    Offset of the Archimedean spiral r = (spacing / 2π) * t at parameter t.

    Successive turns are `spacing` pixels apart. A zero spacing collapses the
    spiral onto its center.
    """
    if spacing == 0:
        return (0.0, 0.0)
    b = spacing / (2 * math.pi)
    r = b * t
    return (r * math.cos(t), r * math.sin(t))


def spiral_trace(center: Point, spacing: float, max_radius: float,
                 step: float = TRACE_STEP) -> List[Point]:
    """
    Sample the spiral around `center` for drawing.

    Samples t = 0, step, 2*step, ... below 2 * max_radius, which reaches well
    past the viewport edge for any sensible spacing.

    Args:
        center: Layer pixel position of the spiral origin
        spacing: Distance between turns in pixels
        max_radius: Largest viewport dimension in pixels
        step: Parameter increment between samples

    Returns:
        List of (x, y) layer pixel points
    """
    if max_radius <= 0 or step <= 0:
        return [(float(center[0]), float(center[1]))]

    ts = np.arange(0.0, max_radius * 2, step)
    if spacing == 0:
        radii = np.zeros_like(ts)
    else:
        radii = (spacing / (2 * np.pi)) * ts
    xs = center[0] + radii * np.cos(ts)
    ys = center[1] + radii * np.sin(ts)
    return list(zip(xs.tolist(), ys.tolist()))


# =============================================================================
# Water containment
# =============================================================================

def _geometry_of(item: Any) -> Geometry:
    """Accept either a GeoJSON Feature or a bare geometry dict."""
    if not isinstance(item, dict):
        raise GeometryError(f"expected a GeoJSON mapping, got {type(item).__name__}")
    if item.get("type") == "Feature":
        geometry = item.get("geometry")
        if not isinstance(geometry, dict):
            raise GeometryError("feature has no geometry")
        return geometry
    return item


def _ring_path(ring: Any) -> MplPath:
    try:
        vertices = np.asarray(ring, dtype=float)
    except (TypeError, ValueError) as e:
        raise GeometryError(f"ring has non-numeric coordinates: {e}") from e

    if vertices.ndim != 2 or vertices.shape[0] < 3 or vertices.shape[1] < 2:
        raise GeometryError(f"ring has invalid shape {vertices.shape}")
    if not np.all(np.isfinite(vertices[:, :2])):
        raise GeometryError("ring has non-finite coordinates")

    vertices = vertices[:, :2]
    # closed=True treats the last vertex as the CLOSEPOLY slot, so it must repeat the first
    if not np.array_equal(vertices[0], vertices[-1]):
        vertices = np.vstack([vertices, vertices[:1]])
    return MplPath(vertices, closed=True)


def _polygon_rings(geometry: Geometry) -> List[Sequence[Any]]:
    """Return the list of polygons (each a list of rings) of a geometry."""
    geom_type = geometry.get("type")
    coordinates = geometry.get("coordinates")
    if not isinstance(coordinates, (list, tuple)) or not coordinates:
        raise GeometryError(f"{geom_type} geometry has no coordinates")

    if geom_type == "Polygon":
        return [coordinates]
    if geom_type == "MultiPolygon":
        for polygon in coordinates:
            if not isinstance(polygon, (list, tuple)) or not polygon:
                raise GeometryError("MultiPolygon member has no rings")
        return list(coordinates)
    raise GeometryError(f"unsupported geometry type: {geom_type!r}")


def geometry_contains(item: Any, point: Point) -> bool:
    """
    Test whether a Polygon/MultiPolygon contains `point` (x=lng, y=lat).

    Interior rings are holes: a point inside a hole is outside the polygon.

    Raises:
        GeometryError: if the geometry is malformed
    """
    geometry = _geometry_of(item)
    for rings in _polygon_rings(geometry):
        outer = _ring_path(rings[0])
        if not outer.contains_point(point):
            continue
        if any(_ring_path(hole).contains_point(point) for hole in rings[1:]):
            continue
        return True
    return False


def validate_geometry(item: Any) -> Optional[str]:
    """Return a description of what is wrong with a geometry, or None if it is usable."""
    try:
        for rings in _polygon_rings(_geometry_of(item)):
            for ring in rings:
                _ring_path(ring)
    except GeometryError as e:
        return str(e)
    return None


def point_in_water(point: LatLng, polygons: Iterable[Any]) -> bool:
    """
    Check whether a geographic point lies inside any water polygon.

    Malformed geometries are skipped; the remaining ones are still tested.
    An empty polygon set is always dry.
    """
    xy = (point.lng, point.lat)
    for index, polygon in enumerate(polygons):
        try:
            if geometry_contains(polygon, xy):
                return True
        except GeometryError as e:
            logger.debug("Skipping malformed water polygon %d: %s", index, e)
    return False
