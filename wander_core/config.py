"""
Configuration snapshot read by the session on every tick.

Values are not range-checked: a zero spacing or speed gives a degenerate
but valid animation.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, FrozenSet, Mapping

from .errors import ConfigurationError
from .events import EventCategory


def _all_event_ids() -> FrozenSet[str]:
    return frozenset(category.value for category in EventCategory)


@dataclass(frozen=True)
class WanderConfig:
    spacing: float = 40.0
    speed_factor: float = 1.0
    draw_spiral_enabled: bool = True
    sprite_size: int = 48
    allow_water_crossing: bool = False
    event_frequency_base: float = 10.0  # seconds of travel between events
    enabled_event_ids: FrozenSet[str] = field(default_factory=_all_event_ids)
    freeze_during_events: bool = False  # stop the spiral while an event pauses travel

    @classmethod
    def field_names(cls) -> FrozenSet[str]:
        return frozenset(f.name for f in fields(cls))

    def updated(self, changes: Mapping[str, Any]) -> "WanderConfig":
        """
        Return a new snapshot with `changes` applied.

        Raises:
            ConfigurationError: if a key is not a configuration field
        """
        unknown = set(changes) - self.field_names()
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")

        changes = dict(changes)
        if "enabled_event_ids" in changes:
            changes["enabled_event_ids"] = frozenset(
                str(getattr(i, "value", i)) for i in changes["enabled_event_ids"]
            )
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["enabled_event_ids"] = sorted(self.enabled_event_ids)
        return data
