"""
Animation Loop

WanderSession owns everything that changes from frame to frame: the spiral
parameter, the event state and the configuration snapshot. The host calls
tick() once per frame with a monotonically increasing timestamp in
milliseconds and draws the RenderFrame it gets back.
"""

from __future__ import annotations

import math
import threading
from concurrent.futures import Future
from dataclasses import dataclass, replace
from typing import Any, List, Mapping, Optional, Tuple

from .config import WanderConfig
from .events import EventCategory, EventScheduler, EventState
from .geometry import point_in_water, spiral_trace
from .planner import SpiralPlanner
from .projection import BoundingBox, LatLng, Projection
from .water import WaterLayer

Point = Tuple[float, float]

# Spiral parameter gained per second at speed factor 1
SPIRAL_RATE = 1.4
# Event sprite placement relative to the marker, in container pixels
EVENT_SPRITE_OFFSET = (70.0, -10.0)


@dataclass(frozen=True)
class RenderFrame:
    """Everything the renderer needs for one frame."""
    timestamp: float
    marker_position: LatLng
    marker_pixel_position: Point
    submerged: bool
    spiral_trace_enabled: bool
    sprite_size: int
    spiral_parameter: float
    paused: bool
    active_event_label: Optional[str] = None
    active_event_category: Optional[EventCategory] = None
    event_sprite_position: Optional[Point] = None
    event_in_water: bool = False


class WanderSession:
    """
    One marker wandering on a spiral around the map center.

        session = WanderSession(viewport, water=WaterLayer())
        session.trigger_refetch()
        frame = session.tick(timestamp_ms)
    """

    def __init__(self, projection: Projection,
                 config: Optional[WanderConfig] = None,
                 water: Optional[WaterLayer] = None,
                 scheduler: Optional[EventScheduler] = None,
                 planner: Optional[SpiralPlanner] = None):
        self.projection = projection
        self.config = config or WanderConfig()
        self.water = water or WaterLayer()
        self.scheduler = scheduler or EventScheduler()
        self.planner = planner or SpiralPlanner(projection)

        self.t = 0.0
        self.last_timestamp = 0.0
        self.events = EventState(next_event_delay=self.scheduler.sample_delay(self.config.event_frequency_base))
        self.last_frame: Optional[RenderFrame] = None

        # Ticks, configuration changes and trace rebuilds run one at a time
        self.lock = threading.RLock()
        self._trace: Optional[List[Point]] = None
        self.projection.subscribe(self._invalidate_trace)

    # ---------------------------------------------
    # Frame
    # ---------------------------------------------
    def tick(self, timestamp: float) -> RenderFrame:
        with self.lock:
            return self._advance(timestamp)

    def _advance(self, timestamp: float) -> RenderFrame:
        config = self.config
        state = self.events

        paused = state.is_paused(timestamp)
        elapsed = (timestamp - self.last_timestamp) / 1000.0
        if not math.isfinite(elapsed) or elapsed < 0:
            elapsed = 0.0
        if math.isfinite(timestamp):
            self.last_timestamp = timestamp

        spiral_elapsed = 0.0 if (paused and config.freeze_during_events) else elapsed
        self.t += spiral_elapsed * config.speed_factor * SPIRAL_RATE

        if not paused:
            state.travel_clock += elapsed

        center = self.projection.current_center()
        polygons = self.water.polygons
        result = self.planner.resolve_position(
            center, self.t, polygons,
            allow_water=config.allow_water_crossing,
            spacing=config.spacing,
        )
        self.t = result.t
        marker_px = self.projection.to_container(result.position)

        self.scheduler.update(state, timestamp, config.enabled_event_ids, config.event_frequency_base)

        frame = RenderFrame(
            timestamp=timestamp,
            marker_position=result.position,
            marker_pixel_position=marker_px,
            submerged=result.submerged,
            spiral_trace_enabled=config.draw_spiral_enabled,
            sprite_size=config.sprite_size,
            spiral_parameter=self.t,
            paused=state.is_paused(timestamp),
        )
        event = state.active_event
        if event is not None:
            frame = replace(
                frame,
                active_event_label=event.label,
                active_event_category=event.id,
                event_sprite_position=(marker_px[0] + EVENT_SPRITE_OFFSET[0],
                                       marker_px[1] + EVENT_SPRITE_OFFSET[1]),
                event_in_water=(event.id is EventCategory.CHAT
                                and point_in_water(result.position, polygons)),
            )

        self.last_frame = frame
        return frame

    # ---------------------------------------------
    # Host controls
    # ---------------------------------------------
    def update_configuration(self, changes: Mapping[str, Any]) -> WanderConfig:
        """
        Apply a partial configuration update.

        Raises:
            ConfigurationError: for unknown keys (nothing is changed)
        """
        with self.lock:
            previous = self.config
            self.config = previous.updated(changes)

            if self.config.event_frequency_base != previous.event_frequency_base:
                self.scheduler.on_frequency_changed(self.events, self.config.event_frequency_base)
            if self.config.enabled_event_ids != previous.enabled_event_ids:
                self.scheduler.on_categories_changed(self.events)
            if self.config.spacing != previous.spacing:
                self._invalidate_trace()

            return self.config

    def trigger_refetch(self, bbox: Optional[BoundingBox] = None) -> Future:
        """Start a background water fetch, defaulting to the visible bounds."""
        return self.water.refetch(bbox or self.projection.bounds())

    # ---------------------------------------------
    # Spiral trace
    # ---------------------------------------------
    def _invalidate_trace(self) -> None:
        self._trace = None

    def spiral_trace(self) -> Optional[List[Point]]:
        """Container-pixel polyline of the spiral, or None when drawing is off."""
        with self.lock:
            if not self.config.draw_spiral_enabled:
                return None
            if self._trace is None:
                center = self.projection.current_center()
                ox, oy = self.projection.to_container(center)
                width, height = self.projection.size()
                self._trace = spiral_trace((ox, oy), self.config.spacing, max(width, height))
            return self._trace
