"""
Service settings, read from the environment (and a .env file if present).
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from wander_core.water import DEFAULT_OVERPASS_URL, DEFAULT_TIMEOUT

load_dotenv()


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    overpass_url: str = DEFAULT_OVERPASS_URL
    overpass_timeout: float = DEFAULT_TIMEOUT
    center_lat: float = 40.7128
    center_lng: float = -74.006
    zoom: float = 12
    viewport_width: int = 1024
    viewport_height: int = 768
    fetch_on_startup: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            overpass_url=os.getenv("OVERPASS_URL", DEFAULT_OVERPASS_URL),
            overpass_timeout=float(os.getenv("OVERPASS_TIMEOUT", DEFAULT_TIMEOUT)),
            center_lat=float(os.getenv("WANDER_CENTER_LAT", cls.center_lat)),
            center_lng=float(os.getenv("WANDER_CENTER_LNG", cls.center_lng)),
            zoom=float(os.getenv("WANDER_ZOOM", cls.zoom)),
            viewport_width=int(os.getenv("WANDER_VIEWPORT_WIDTH", cls.viewport_width)),
            viewport_height=int(os.getenv("WANDER_VIEWPORT_HEIGHT", cls.viewport_height)),
            fetch_on_startup=_flag(os.getenv("WANDER_FETCH_ON_STARTUP", "false")),
            log_level=os.getenv("WANDER_LOG_LEVEL", cls.log_level),
        )
