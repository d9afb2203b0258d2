"""Distance and ETA estimation between two coordinates."""

from __future__ import annotations

from ..config import settings
from ..models.domain import Coordinate, DistanceEstimate
from .geospatial import distance_km, round_half_up


class DistanceEstimator:
    """Straight-line distance with a flat-speed ETA.

    The default of 3 minutes per km (20 km/h) is a placeholder; a routed
    estimator can replace this class as long as it keeps ``estimate``.
    """

    def __init__(self, minutes_per_km: float | None = None) -> None:
        self.minutes_per_km = minutes_per_km if minutes_per_km is not None else settings.eta_minutes_per_km

    def estimate(self, origin: Coordinate, destination: Coordinate) -> DistanceEstimate:
        # ETA derives from the same one-decimal distance the resolver reports
        distance = distance_km(origin, destination)
        return DistanceEstimate(
            distance_km=round(distance, 2),
            eta_minutes=round_half_up(distance * self.minutes_per_km),
        )


def estimate(origin: Coordinate, destination: Coordinate) -> DistanceEstimate:
    return DistanceEstimator().estimate(origin, destination)
