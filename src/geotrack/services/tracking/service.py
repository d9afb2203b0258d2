"""Tracking view assembly on top of the persistence layer."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ...models.domain import Coordinate, DeliveryRecord, RenderParameters, TrackingSnapshot
from ...persistence.database import get_delivery_for_order, is_in_progress, save_agent_location
from .session import LiveTrackingSession

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TrackingView:
    delivery: DeliveryRecord
    agent_visible: bool
    snapshot: TrackingSnapshot
    render: RenderParameters
    static_map_url: Optional[str]
    directions_url: Optional[str]
    openstreetmap_url: Optional[str]


def session_for_delivery(delivery: DeliveryRecord) -> LiveTrackingSession:
    """Rebuild a tracking session from a stored delivery.

    The agent position is only shown while the delivery is still on its way.
    """

    session = LiveTrackingSession(pickup=delivery.pickup, destination=delivery.destination)
    if delivery.agent_id and is_in_progress(delivery.status):
        session.on_agent_location_update(delivery.agent)
    return session


def build_tracking_view(order_id: str) -> TrackingView | None:
    delivery = get_delivery_for_order(order_id)
    if delivery is None:
        return None

    session = session_for_delivery(delivery)
    logger.debug(f"Tracking view for order {order_id}: state={session.state.value}")
    return TrackingView(
        delivery=delivery,
        agent_visible=session.agent is not None,
        snapshot=session.snapshot(),
        render=session.get_render_parameters(),
        static_map_url=session.get_map_provider_url("static"),
        directions_url=session.get_map_provider_url("directions"),
        openstreetmap_url=session.get_openstreetmap_url(),
    )


def record_agent_location(agent_id: str, coordinate: Coordinate) -> int:
    return save_agent_location(agent_id, coordinate)
