"""
Water polygons from OpenStreetMap.

- build_overpass_query: Overpass QL for lakes, riverbanks and reservoirs in a bbox
- osm_to_water_features: OSM JSON -> GeoJSON Polygon/MultiPolygon features
- OverpassWaterSource: fetches polygons over HTTP with requests
- WaterLayer: holds the current polygon set and swaps it when a fetch completes
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests
from matplotlib.path import Path as MplPath

from .errors import WaterFetchError
from .geometry import validate_geometry
from .projection import BoundingBox

logger = logging.getLogger(__name__)

DEFAULT_OVERPASS_URL = "https://overpass-api.de/api/interpreter"
DEFAULT_TIMEOUT = 30.0

STATUS_IDLE = "No water data loaded."
STATUS_FETCHING = "Fetching water polygons…"
STATUS_FAILED = "Could not load water data. Try again."

Feature = Dict[str, Any]
Ring = List[List[float]]


# =============================================================================
# Query
# =============================================================================

def build_overpass_query(bbox: BoundingBox) -> str:
    """Overpass QL selecting water areas inside (south, west, north, east)."""
    box = ",".join(repr(float(v)) for v in bbox)
    return f"""
      [out:json][timeout:25];
      (
        way["natural"="water"]({box});
        relation["natural"="water"]({box});
        way["waterway"="riverbank"]({box});
        relation["waterway"="riverbank"]({box});
        way["landuse"="reservoir"]({box});
      );
      out body;
      >;
      out skel qt;
    """


# =============================================================================
# OSM JSON -> GeoJSON
# =============================================================================

def _is_closed(node_ids: Sequence[int]) -> bool:
    return len(node_ids) >= 4 and node_ids[0] == node_ids[-1]


def _assemble_rings(ways: List[List[int]]) -> List[List[int]]:
    """
    Join way fragments that share end nodes into closed rings.

    Fragments may need reversing. Chains that cannot be closed are dropped.
    """
    pending = [list(w) for w in ways if len(w) >= 2]
    rings: List[List[int]] = []

    while pending:
        current = pending.pop(0)
        while current[0] != current[-1]:
            for i, way in enumerate(pending):
                if way[0] == current[-1]:
                    current = current + way[1:]
                elif way[-1] == current[-1]:
                    current = current + way[-2::-1]
                elif way[-1] == current[0]:
                    current = way[:-1] + current
                elif way[0] == current[0]:
                    current = way[:0:-1] + current
                else:
                    continue
                pending.pop(i)
                break
            else:
                break

        if _is_closed(current):
            rings.append(current)

    return rings


def _ring_coordinates(node_ids: Sequence[int], nodes: Dict[int, Tuple[float, float]]) -> Optional[Ring]:
    coords = []
    for node_id in node_ids:
        if node_id not in nodes:
            return None
        lon, lat = nodes[node_id]
        coords.append([lon, lat])
    return coords


def _feature(osm_type: str, osm_id: Any, tags: Dict[str, Any], polygons: List[List[Ring]]) -> Feature:
    if len(polygons) == 1:
        geometry = {"type": "Polygon", "coordinates": polygons[0]}
    else:
        geometry = {"type": "MultiPolygon", "coordinates": polygons}
    return {
        "type": "Feature",
        "id": f"{osm_type}/{osm_id}",
        "properties": dict(tags or {}),
        "geometry": geometry,
    }


def osm_to_water_features(data: Dict[str, Any]) -> List[Feature]:
    """
    Convert an Overpass JSON response into GeoJSON polygon features.

    Tagged closed ways become Polygons. Relations are assembled from their
    outer/inner member ways; each inner ring is attached to the outer ring
    that contains it.
    """
    elements = data.get("elements", [])
    nodes: Dict[int, Tuple[float, float]] = {}
    ways: Dict[int, Dict[str, Any]] = {}
    relations: List[Dict[str, Any]] = []

    for element in elements:
        kind = element.get("type")
        if kind == "node" and "lat" in element and "lon" in element:
            nodes[element["id"]] = (float(element["lon"]), float(element["lat"]))
        elif kind == "way":
            # Relation members are printed again without tags by "out skel"
            known = ways.get(element["id"])
            if known is None or not known.get("tags"):
                ways[element["id"]] = element
        elif kind == "relation":
            relations.append(element)

    features: List[Feature] = []

    for way_id, way in ways.items():
        node_ids = way.get("nodes", [])
        if not way.get("tags") or not _is_closed(node_ids):
            continue
        ring = _ring_coordinates(node_ids, nodes)
        if ring is not None:
            features.append(_feature("way", way_id, way["tags"], [[ring]]))

    for relation in relations:
        outer_ways, inner_ways = [], []
        for member in relation.get("members", []):
            if member.get("type") != "way" or member.get("ref") not in ways:
                continue
            node_ids = ways[member["ref"]].get("nodes", [])
            if member.get("role") == "inner":
                inner_ways.append(node_ids)
            else:
                outer_ways.append(node_ids)

        outers = [r for r in (_ring_coordinates(ids, nodes) for ids in _assemble_rings(outer_ways)) if r]
        if not outers:
            continue
        polygons: List[List[Ring]] = [[outer] for outer in outers]
        outer_paths = [MplPath(outer, closed=True) for outer in outers]

        for ids in _assemble_rings(inner_ways):
            inner = _ring_coordinates(ids, nodes)
            if inner is None:
                continue
            for polygon, path in zip(polygons, outer_paths):
                if path.contains_point(inner[0]):
                    polygon.append(inner)
                    break

        features.append(_feature("relation", relation.get("id"), relation.get("tags"), polygons))

    return features


# =============================================================================
# Remote source
# =============================================================================

class OverpassWaterSource:
    """Fetch water polygons from an Overpass API endpoint."""

    def __init__(self, url: str = DEFAULT_OVERPASS_URL, timeout: float = DEFAULT_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_water_polygons(self, bbox: BoundingBox) -> List[Feature]:
        """
        Raises:
            WaterFetchError: on network errors, timeouts, non-2xx responses
                or an unreadable body
        """
        query = build_overpass_query(bbox)
        try:
            response = self.session.post(self.url, data=query.encode("utf-8"), timeout=self.timeout)
        except requests.RequestException as e:
            raise WaterFetchError(f"Overpass request failed: {e}") from e

        if not response.ok:
            raise WaterFetchError(f"Overpass error: {response.status_code}", status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise WaterFetchError(f"Overpass returned invalid JSON: {e}") from e

        try:
            return osm_to_water_features(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise WaterFetchError(f"Overpass response could not be converted: {e}") from e


# =============================================================================
# Current polygon set
# =============================================================================

class WaterLayer:
    """
    The water polygon set read by the planner.

    refetch() runs the source on a worker thread. On success the polygon
    tuple is replaced in a single assignment; on failure it is left as is
    and only the status changes. In-flight fetches are never cancelled, so
    the last one to finish wins.
    """

    def __init__(self, source: Optional[OverpassWaterSource] = None, max_workers: int = 2):
        self.source = source or OverpassWaterSource()
        self.polygons: Tuple[Feature, ...] = ()
        self.status: str = STATUS_IDLE
        self.malformed_count: int = 0
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="water-fetch")

    def replace_polygons(self, features: Sequence[Feature]) -> None:
        polygons = tuple(features)
        malformed = 0
        for index, feature in enumerate(polygons):
            problem = validate_geometry(feature)
            if problem:
                malformed += 1
                logger.warning("Water polygon %d is malformed and will be ignored: %s", index, problem)
        self.malformed_count = malformed
        self.polygons = polygons
        self.status = f"Loaded {len(polygons)} water polygons."

    def refetch(self, bbox: BoundingBox) -> Future:
        """
        Fetch polygons for `bbox` in the background.

        The returned future resolves after the polygon set has been swapped,
        or fails with the fetch error after the status has been updated.
        """
        self.status = STATUS_FETCHING
        logger.info("Fetching water polygons for %s", tuple(bbox))
        return self._executor.submit(self._fetch_and_swap, bbox)

    def _fetch_and_swap(self, bbox: BoundingBox) -> Tuple[Feature, ...]:
        try:
            features = self.source.fetch_water_polygons(bbox)
        except WaterFetchError as e:
            logger.warning("Water fetch failed, keeping %d polygons: %s", len(self.polygons), e)
            self.status = STATUS_FAILED
            raise
        self.replace_polygons(features)
        logger.info(self.status)
        return self.polygons

    def shutdown(self, wait: bool = False) -> None:
        self._executor.shutdown(wait=wait)
