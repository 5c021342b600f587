"""
Spiral Path Planner

Places the marker on the spiral around the map center while keeping it out of
water. When the ideal spiral point is wet, the planner walks forward along the
spiral in small parameter steps looking for dry land, and gives up after a
fixed number of attempts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from .geometry import point_in_water, spiral_offset
from .projection import LatLng, Projection

MAX_PROBE_ATTEMPTS = 40
PROBE_STEP = 0.25


@dataclass(frozen=True)
class PlannerResult:
    """Where the marker goes this tick."""
    position: LatLng
    t: float  # spiral parameter actually used (>= the requested one)
    submerged: bool


class SpiralPlanner:
    """
    Resolve marker positions on the spiral, avoiding water polygons.

        planner = SpiralPlanner(viewport)
        result = planner.resolve_position(center, t, polygons, allow_water=False, spacing=40)
    """

    def __init__(self, projection: Projection,
                 max_attempts: int = MAX_PROBE_ATTEMPTS,
                 step: float = PROBE_STEP):
        self.projection = projection
        self.max_attempts = max_attempts
        self.step = step

    def candidate(self, center: LatLng, t: float, spacing: float) -> LatLng:
        """Geographic position of the spiral point at parameter t."""
        cx, cy = self.projection.project(center)
        dx, dy = spiral_offset(t, spacing)
        return self.projection.unproject((cx + dx, cy + dy))

    def resolve_position(self, center: LatLng, t: float, polygons: Sequence[Any],
                         allow_water: bool, spacing: float) -> PlannerResult:
        """
        Pick the next marker position.

        Args:
            center: Spiral origin (the map center)
            t: Spiral parameter for this tick
            polygons: Current water polygon set (read only)
            allow_water: If True, the ideal point is always used and only
                flagged as submerged
            spacing: Spiral turn spacing in pixels

        Returns:
            PlannerResult. When no dry point exists within the probe window
            the ideal point at the requested t is returned, submerged.
        """
        ideal = self.candidate(center, t, spacing)
        ideal_submerged = point_in_water(ideal, polygons)

        if allow_water:
            return PlannerResult(position=ideal, t=t, submerged=ideal_submerged)

        if not ideal_submerged:
            return PlannerResult(position=ideal, t=t, submerged=False)

        # The ideal point counts as the first attempt
        for attempt in range(1, self.max_attempts):
            probe_t = t + attempt * self.step
            probe = self.candidate(center, probe_t, spacing)
            if not point_in_water(probe, polygons):
                return PlannerResult(position=probe, t=probe_t, submerged=False)

        return PlannerResult(position=ideal, t=t, submerged=True)
