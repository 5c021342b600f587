"""
Error types shared by the wander core and the HTTP service.
"""


class WanderError(Exception):
    """Base class for all wander errors."""


class GeometryError(WanderError, ValueError):
    """Raised when a water geometry cannot be interpreted as a polygon."""


class WaterFetchError(WanderError):
    """Raised when water polygons could not be fetched or parsed."""

    def __init__(self, message: str, status_code: int = None):
        self.status_code = status_code
        super().__init__(message)


class ConfigurationError(WanderError, ValueError):
    """Raised for configuration updates naming unknown settings."""
