"""Domain models for coordinates, addresses and tracking state."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def is_valid_coordinate(latitude: Any, longitude: Any) -> bool:
    """Return True when both values parse as finite numbers within lat/lon range."""

    lat = _as_float(latitude)
    lon = _as_float(longitude)
    if lat is None or lon is None:
        return False
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0


def coordinate_or_none(latitude: Any, longitude: Any) -> Optional["Coordinate"]:
    """Build a Coordinate from loosely typed values, returning None when invalid."""

    if not is_valid_coordinate(latitude, longitude):
        return None
    return Coordinate(float(latitude), float(longitude))


@dataclass(frozen=True, slots=True)
class Coordinate:
    """A latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not is_valid_coordinate(self.latitude, self.longitude):
            raise ValueError(f"Invalid coordinate: ({self.latitude}, {self.longitude})")
        object.__setattr__(self, "latitude", float(self.latitude))
        object.__setattr__(self, "longitude", float(self.longitude))

    def as_pair(self) -> str:
        return f"{self.latitude},{self.longitude}"


@dataclass(frozen=True, slots=True)
class AddressComponents:
    """Reverse geocoding output; the provider may omit any field."""

    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    pincode: Optional[str] = None


@dataclass(frozen=True, slots=True)
class LocationData:
    """A coordinate enriched with whatever address details are known."""

    coordinate: Coordinate
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    pincode: Optional[str] = None

    @classmethod
    def from_components(cls, coordinate: Coordinate, components: AddressComponents | None) -> "LocationData":
        if components is None:
            return cls(coordinate=coordinate)
        return cls(
            coordinate=coordinate,
            address=components.address,
            city=components.city,
            state=components.state,
            country=components.country,
            pincode=components.pincode,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "latitude": self.coordinate.latitude,
            "longitude": self.coordinate.longitude,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "country": self.country,
            "pincode": self.pincode,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> Optional["LocationData"]:
        coordinate = coordinate_or_none(payload.get("latitude"), payload.get("longitude"))
        if coordinate is None:
            return None
        return cls(
            coordinate=coordinate,
            address=payload.get("address"),
            city=payload.get("city"),
            state=payload.get("state"),
            country=payload.get("country"),
            pincode=payload.get("pincode"),
        )


@dataclass(frozen=True, slots=True)
class DistanceEstimate:
    distance_km: float
    eta_minutes: int


@dataclass(frozen=True, slots=True)
class TrackingSnapshot:
    """Point-in-time view of one delivery's live tracking state."""

    agent: Optional[Coordinate]
    pickup: Optional[Coordinate]
    destination: Optional[Coordinate]
    distance_km: Optional[float]
    eta_minutes: Optional[int]
    last_updated: datetime


@dataclass(frozen=True, slots=True)
class MapMarker:
    role: str
    label: str
    color: str
    coordinate: Coordinate


@dataclass(frozen=True, slots=True)
class RenderParameters:
    markers: List[MapMarker] = field(default_factory=list)
    center: Optional[Coordinate] = None


@dataclass(slots=True)
class DeliveryRecord:
    """Represents the stored state of one delivery as read from persistence."""

    delivery_id: str
    order_id: str
    status: str
    agent_id: Optional[str]
    agent: Optional[Coordinate]
    pickup: Optional[Coordinate]
    destination: Optional[Coordinate]
    updated_at: Optional[str] = None
    agent_profile: dict = field(default_factory=dict)
