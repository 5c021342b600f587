"""
Event Scheduler

Travel is interrupted now and then by a short event (picnic, monster, chat).
At most one event is active. A new one may start once the previous one is
over and enough unpaused travel time has accumulated; its duration also
pauses travel.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import Collection, List, Optional, Sequence


class EventCategory(str, Enum):
    """Kinds of travel events."""
    PICNIC = "picnic"
    MONSTER = "monster"
    CHAT = "chat"


@dataclass(frozen=True)
class EventDefinition:
    id: EventCategory
    label: str
    duration_ms: float


EVENT_CATALOG: Sequence[EventDefinition] = (
    EventDefinition(EventCategory.PICNIC, "Picnic stop: unpacks a blanket and snacks.", 3500),
    EventDefinition(EventCategory.MONSTER, "Monster encounter: cautious standoff.", 3000),
    EventDefinition(EventCategory.CHAT, "Chat break: catches up with a friend.", 3000),
)

# Jitter applied to the configured event frequency
DELAY_JITTER_MIN = 0.7
DELAY_JITTER_SPAN = 0.6


@dataclass
class EventState:
    """Runtime event state, owned by the session. Times in ms, clocks in seconds."""
    active_event: Optional[EventDefinition] = None
    event_end_time: float = 0.0
    pause_end_time: float = 0.0
    travel_clock: float = 0.0
    next_event_delay: float = 10.0

    @property
    def is_active(self) -> bool:
        return self.active_event is not None

    def is_paused(self, now: float) -> bool:
        return now < self.pause_end_time


class EventScheduler:
    """
    Idle/Active state machine for travel events.

    The random source is injectable so tests can seed it.
    """

    def __init__(self, catalog: Sequence[EventDefinition] = EVENT_CATALOG,
                 rng: Optional[random.Random] = None):
        self.catalog = tuple(catalog)
        self.rng = rng or random.Random()

    def enabled_events(self, enabled_ids: Collection[str]) -> List[EventDefinition]:
        """Catalog entries whose id is enabled, in catalog order."""
        enabled = {str(getattr(i, "value", i)) for i in enabled_ids}
        return [event for event in self.catalog if event.id.value in enabled]

    def sample_delay(self, base: float) -> float:
        """Seconds of travel before the next event, uniform in [0.7*base, 1.3*base]."""
        return base * (DELAY_JITTER_MIN + self.rng.random() * DELAY_JITTER_SPAN)

    def update(self, state: EventState, now: float, enabled_ids: Collection[str],
               frequency_base: float) -> Optional[EventDefinition]:
        """
        Advance the state machine by one tick.

        Returns:
            The event that started on this tick, or None
        """
        enabled = self.enabled_events(enabled_ids)
        started = None

        if not enabled:
            state.active_event = None

        if enabled and now >= state.event_end_time and state.travel_clock >= state.next_event_delay:
            event = self.rng.choice(enabled)
            state.active_event = event
            state.event_end_time = now + event.duration_ms
            state.pause_end_time = max(state.pause_end_time, state.event_end_time)
            state.travel_clock = 0.0
            state.next_event_delay = self.sample_delay(frequency_base)
            started = event

        if state.active_event is not None and now >= state.event_end_time:
            state.active_event = None

        return started

    def on_categories_changed(self, state: EventState) -> None:
        """Toggling any category drops the active event right away."""
        state.active_event = None

    def on_frequency_changed(self, state: EventState, base: float) -> None:
        state.next_event_delay = self.sample_delay(base)
