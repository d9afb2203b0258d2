"""Per-delivery live tracking state and map parameter assembly."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Literal, Optional
from urllib.parse import urlencode

from ...config import settings
from ...models.domain import Coordinate, MapMarker, RenderParameters, TrackingSnapshot
from ..estimator import DistanceEstimator

logger = logging.getLogger(__name__)

STATIC_MAP_URL = "https://maps.googleapis.com/maps/api/staticmap"
DIRECTIONS_URL = "https://www.google.com/maps/dir/"
PLACE_URL = "https://www.google.com/maps"
OPENSTREETMAP_URL = "https://www.openstreetmap.org/"

PICKUP_MARKER = ("pickup", "P", "green")
DESTINATION_MARKER = ("destination", "D", "red")
AGENT_MARKER = ("agent", "A", "blue")
ROUTE_PATH_STYLE = "color:0x0000ff|weight:5"

# Characters the map provider expects unescaped inside marker/path values
_URL_SAFE = ":|,"

LocationObserver = Callable[[Coordinate], None]
Clock = Callable[[], datetime]


class SessionState(str, Enum):
    AWAITING_AGENT = "awaiting_agent"
    TRACKING = "tracking"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LiveTrackingSession:
    """Holds agent, pickup and destination for one delivery and derives distance/ETA.

    Updates are expected one at a time from a single feed; the session does no
    queuing of its own.
    """

    def __init__(
        self,
        pickup: Coordinate | None = None,
        destination: Coordinate | None = None,
        *,
        estimator: DistanceEstimator | None = None,
        observer: LocationObserver | None = None,
        clock: Clock = _utc_now,
        api_key: str | None = None,
        zoom: int | None = None,
        size: str | None = None,
    ) -> None:
        self.pickup = pickup
        self.destination = destination
        self.agent: Optional[Coordinate] = None
        self.distance_km: Optional[float] = None
        self.eta_minutes: Optional[int] = None
        self._estimator = estimator or DistanceEstimator()
        self._observer = observer
        self._clock = clock
        self.last_updated = clock()
        self.api_key = api_key if api_key is not None else settings.google_maps_api_key
        self.zoom = zoom if zoom is not None else settings.static_map_zoom
        self.size = size or settings.static_map_size

    @property
    def state(self) -> SessionState:
        return SessionState.AWAITING_AGENT if self.agent is None else SessionState.TRACKING

    def set_observer(self, observer: LocationObserver | None) -> None:
        self._observer = observer

    def snapshot(self) -> TrackingSnapshot:
        return TrackingSnapshot(
            agent=self.agent,
            pickup=self.pickup,
            destination=self.destination,
            distance_km=self.distance_km,
            eta_minutes=self.eta_minutes,
            last_updated=self.last_updated,
        )

    def on_agent_location_update(self, coordinate: Coordinate | None) -> TrackingSnapshot:
        """Store a new agent position, recompute distance/ETA and notify the observer."""

        if coordinate is None:
            # stale feed tick: keep the previous position
            return self.snapshot()

        self.agent = coordinate
        if self.destination is not None:
            result = self._estimator.estimate(coordinate, self.destination)
            self.distance_km = result.distance_km
            self.eta_minutes = result.eta_minutes
        self.last_updated = self._clock()

        if self._observer is not None:
            try:
                self._observer(coordinate)
            except Exception:
                logger.exception("Tracking observer failed for agent update")
        return self.snapshot()

    def get_render_parameters(self) -> RenderParameters:
        markers: list[MapMarker] = []
        for (role, label, color), coordinate in (
            (PICKUP_MARKER, self.pickup),
            (DESTINATION_MARKER, self.destination),
            (AGENT_MARKER, self.agent),
        ):
            if coordinate is not None:
                markers.append(MapMarker(role=role, label=label, color=color, coordinate=coordinate))
        return RenderParameters(markers=markers, center=self._center())

    def _center(self) -> Coordinate | None:
        for candidate in (self.agent, self.pickup, self.destination):
            if candidate is not None:
                return candidate
        return None

    def get_map_provider_url(self, kind: Literal["static", "directions"] = "static") -> str | None:
        """Build a static map or directions URL; None when no coordinate is known yet."""

        if kind == "static":
            return self._static_map_url()
        if kind == "directions":
            if self.agent is not None and self.destination is not None:
                return _directions_url(origin=self.agent, destination=self.destination)
            center = self._center()
            return _place_url(center) if center is not None else None
        raise ValueError(f"Unknown map URL kind: {kind}")

    def _static_map_url(self) -> str | None:
        params = self.get_render_parameters()
        if params.center is None:
            return None
        query: list[tuple[str, str]] = [
            ("center", params.center.as_pair()),
            ("zoom", str(self.zoom)),
            ("size", self.size),
        ]
        for marker in params.markers:
            query.append(("markers", f"color:{marker.color}|label:{marker.label}|{marker.coordinate.as_pair()}"))
        if self.agent is not None and self.destination is not None:
            query.append(("path", f"{ROUTE_PATH_STYLE}|{self.agent.as_pair()}|{self.destination.as_pair()}"))
        if self.api_key:
            query.append(("key", self.api_key))
        return f"{STATIC_MAP_URL}?{urlencode(query, safe=_URL_SAFE)}"

    def get_navigation_url(self, target: Literal["pickup", "destination"]) -> str | None:
        """Directions to the pickup or the destination without a fixed origin."""

        coordinate = self.pickup if target == "pickup" else self.destination
        if coordinate is not None:
            return _directions_url(origin=None, destination=coordinate)
        center = self._center()
        return _place_url(center) if center is not None else None

    def get_openstreetmap_url(self, zoom: int | None = None) -> str | None:
        center = self._center()
        if center is None:
            return None
        query = {
            "mlat": center.latitude,
            "mlon": center.longitude,
            "zoom": zoom if zoom is not None else settings.openstreetmap_zoom,
        }
        return f"{OPENSTREETMAP_URL}?{urlencode(query)}"


def _directions_url(origin: Coordinate | None, destination: Coordinate) -> str:
    query: list[tuple[str, str]] = [("api", "1")]
    if origin is not None:
        query.append(("origin", origin.as_pair()))
    query.append(("destination", destination.as_pair()))
    if origin is not None:
        query.append(("travelmode", "driving"))
    return f"{DIRECTIONS_URL}?{urlencode(query, safe=_URL_SAFE)}"


def _place_url(center: Coordinate) -> str:
    return f"{PLACE_URL}?{urlencode({'q': center.as_pair()}, safe=_URL_SAFE)}"
