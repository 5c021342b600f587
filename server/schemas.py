"""
Pydantic schemas for the Wander API.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict


# =============================================================================
# Tick Schemas
# =============================================================================

class TickRequest(BaseModel):
    """Request schema for /api/tick endpoint."""
    timestamp: float  # host frame timestamp in milliseconds


class FrameResponse(BaseModel):
    """One rendered frame."""
    timestamp: float
    marker_position: List[float]          # [lat, lng]
    marker_pixel_position: List[float]    # [x, y] container pixels
    submerged: bool
    spiral_trace_enabled: bool
    sprite_size: int
    spiral_parameter: float
    paused: bool
    active_event_label: Optional[str] = None
    active_event_category: Optional[str] = None
    event_sprite_position: Optional[List[float]] = None
    event_in_water: bool = False


# =============================================================================
# Configuration Schemas
# =============================================================================

class ConfigUpdateRequest(BaseModel):
    """Partial configuration update; omitted fields keep their value."""
    model_config = ConfigDict(extra="forbid")

    spacing: Optional[float] = None
    speed_factor: Optional[float] = None
    draw_spiral_enabled: Optional[bool] = None
    sprite_size: Optional[int] = None
    allow_water_crossing: Optional[bool] = None
    event_frequency_base: Optional[float] = None
    enabled_event_ids: Optional[List[str]] = None
    freeze_during_events: Optional[bool] = None


class ConfigResponse(BaseModel):
    spacing: float
    speed_factor: float
    draw_spiral_enabled: bool
    sprite_size: int
    allow_water_crossing: bool
    event_frequency_base: float
    enabled_event_ids: List[str]
    freeze_during_events: bool


# =============================================================================
# Viewport & Water Schemas
# =============================================================================

class ViewportRequest(BaseModel):
    """Request schema for /api/viewport endpoint."""
    center: Optional[List[float]] = None  # [lat, lng]
    zoom: Optional[float] = None
    width: Optional[int] = None
    height: Optional[int] = None


class ViewportResponse(BaseModel):
    center: List[float]
    zoom: float
    width: int
    height: int
    bounds: List[float]  # [south, west, north, east]


class RefetchRequest(BaseModel):
    """Request schema for /api/water/refetch; bbox defaults to the viewport."""
    bbox: Optional[List[float]] = None  # [south, west, north, east]


class WaterStatusResponse(BaseModel):
    status: str
    polygon_count: int
    malformed_count: int = 0


class TraceResponse(BaseModel):
    points: Optional[List[List[float]]] = None
