"""Tracking request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel

from ..services.tracking.service import TrackingView
from .geocoding import CoordinateModel


class MapMarkerModel(BaseModel):
    role: str
    label: str
    color: str
    latitude: float
    longitude: float


class TrackingSnapshotModel(BaseModel):
    agent: Optional[CoordinateModel] = None
    pickup: Optional[CoordinateModel] = None
    destination: Optional[CoordinateModel] = None
    distance_km: Optional[float] = None
    eta_minutes: Optional[int] = None
    last_updated: datetime


class MapLinksModel(BaseModel):
    static: Optional[str] = None
    directions: Optional[str] = None
    openstreetmap: Optional[str] = None


class TrackingResponse(BaseModel):
    order_id: str
    delivery_id: str
    status: str
    agent_assigned: bool
    agent_visible: bool
    agent: Dict[str, str] = {}
    updated_at: Optional[str] = None
    snapshot: TrackingSnapshotModel
    markers: List[MapMarkerModel]
    center: Optional[CoordinateModel] = None
    map_links: MapLinksModel

    @classmethod
    def from_view(cls, view: TrackingView) -> "TrackingResponse":
        snapshot = view.snapshot
        delivery = view.delivery
        return cls(
            order_id=delivery.order_id,
            delivery_id=delivery.delivery_id,
            status=delivery.status,
            agent_assigned=bool(delivery.agent_id),
            agent_visible=view.agent_visible,
            agent={key: str(value) for key, value in delivery.agent_profile.items()},
            updated_at=delivery.updated_at,
            snapshot=TrackingSnapshotModel(
                agent=CoordinateModel.from_domain(snapshot.agent),
                pickup=CoordinateModel.from_domain(snapshot.pickup),
                destination=CoordinateModel.from_domain(snapshot.destination),
                distance_km=snapshot.distance_km,
                eta_minutes=snapshot.eta_minutes,
                last_updated=snapshot.last_updated,
            ),
            markers=[
                MapMarkerModel(
                    role=marker.role,
                    label=marker.label,
                    color=marker.color,
                    latitude=marker.coordinate.latitude,
                    longitude=marker.coordinate.longitude,
                )
                for marker in view.render.markers
            ],
            center=CoordinateModel.from_domain(view.render.center),
            map_links=MapLinksModel(
                static=view.static_map_url,
                directions=view.directions_url,
                openstreetmap=view.openstreetmap_url,
            ),
        )


class AgentLocationUpdate(CoordinateModel):
    pass


class AgentLocationResponse(BaseModel):
    success: bool
    message: str
    updated_deliveries: int
    location: CoordinateModel
    timestamp: datetime
