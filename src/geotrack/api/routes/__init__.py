"""Route group exports."""

from . import geocoding, health, tracking

__all__ = ["geocoding", "health", "tracking"]
