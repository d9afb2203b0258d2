"""Geocoding and distance request/response schemas."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..models.domain import AddressComponents, Coordinate


class CoordinateModel(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    def to_domain(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)

    @classmethod
    def from_domain(cls, coordinate: Coordinate | None) -> Optional["CoordinateModel"]:
        if coordinate is None:
            return None
        return cls(latitude=coordinate.latitude, longitude=coordinate.longitude)


class AddressComponentsModel(BaseModel):
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    pincode: Optional[str] = None

    @classmethod
    def from_domain(cls, components: AddressComponents | None) -> Optional["AddressComponentsModel"]:
        if components is None:
            return None
        return cls(
            address=components.address,
            city=components.city,
            state=components.state,
            country=components.country,
            pincode=components.pincode,
        )


class ForwardGeocodeRequest(BaseModel):
    address: str = Field(..., description="Free-text address to resolve.")


class ForwardGeocodeResponse(BaseModel):
    address: str
    normalized_address: str
    coordinate: Optional[CoordinateModel] = None


class ReverseGeocodeResponse(BaseModel):
    coordinate: CoordinateModel
    components: Optional[AddressComponentsModel] = None


class BatchGeocodeRequest(BaseModel):
    addresses: List[str] = Field(default_factory=list, max_length=50)


class BatchGeocodeResponse(BaseModel):
    results: Dict[str, Optional[CoordinateModel]]


class DistanceRequest(BaseModel):
    origin: CoordinateModel
    destination: CoordinateModel


class DistanceResponse(BaseModel):
    distance_km: float
    eta_minutes: int
