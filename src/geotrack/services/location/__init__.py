"""Customer location services."""

from .cache import LocationCache
from .locator import AutoLocator, LocationResult
from .position import (
    PositionErrorCode,
    PositionFailure,
    PositionOptions,
    PositionSource,
    StaticPositionSource,
)

__all__ = [
    "AutoLocator",
    "LocationCache",
    "LocationResult",
    "PositionErrorCode",
    "PositionFailure",
    "PositionOptions",
    "PositionSource",
    "StaticPositionSource",
]
