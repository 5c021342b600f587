"""
Wander Core - spiral wandering with water avoidance and travel events

Key exports:
- WanderSession: per-frame animation loop (tick / update_configuration / trigger_refetch)
- SpiralPlanner: water-avoiding position resolver
- EventScheduler: randomized travel events
- WaterLayer / OverpassWaterSource: water polygon set and its remote source
- WebMercatorViewport: map projection and viewport
"""
from .config import WanderConfig
from .errors import ConfigurationError, GeometryError, WanderError, WaterFetchError
from .events import EVENT_CATALOG, EventCategory, EventDefinition, EventScheduler, EventState
from .geometry import point_in_water, spiral_offset, spiral_trace
from .planner import PlannerResult, SpiralPlanner
from .projection import BoundingBox, LatLng, WebMercatorViewport
from .session import RenderFrame, WanderSession
from .water import OverpassWaterSource, WaterLayer, osm_to_water_features

__all__ = [
    'WanderConfig',
    'ConfigurationError', 'GeometryError', 'WanderError', 'WaterFetchError',
    'EVENT_CATALOG', 'EventCategory', 'EventDefinition', 'EventScheduler', 'EventState',
    'point_in_water', 'spiral_offset', 'spiral_trace',
    'PlannerResult', 'SpiralPlanner',
    'BoundingBox', 'LatLng', 'WebMercatorViewport',
    'RenderFrame', 'WanderSession',
    'OverpassWaterSource', 'WaterLayer', 'osm_to_water_features',
]
