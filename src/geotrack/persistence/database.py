"""Database persistence for deliveries and agent positions."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from ..db.supabase import get_supabase_client
from ..models.domain import Coordinate, DeliveryRecord, coordinate_or_none

ACTIVE_DELIVERY_STATUSES = ("ASSIGNED", "PICKED_UP", "IN_TRANSIT")

DELIVERY_COLUMNS = (
    "id, order_id, status, delivery_agent_id, "
    "agent_latitude, agent_longitude, "
    "delivery_latitude, delivery_longitude, "
    "pickup_latitude, pickup_longitude, updated_at, "
    "delivery_agent:delivery_agents(id, name, phone, vehicle_type, latitude, longitude)"
)


def is_in_progress(status: str | None) -> bool:
    return (status or "").upper() in ACTIVE_DELIVERY_STATUSES


def _delivery_from_row(row: dict[str, Any], order_id: str) -> DeliveryRecord:
    agent_profile = row.get("delivery_agent") or {}
    if not isinstance(agent_profile, dict):
        agent_profile = {}

    # Prefer the per-delivery agent position, fall back to the agent's own row
    agent = coordinate_or_none(row.get("agent_latitude"), row.get("agent_longitude"))
    if agent is None:
        agent = coordinate_or_none(agent_profile.get("latitude"), agent_profile.get("longitude"))

    return DeliveryRecord(
        delivery_id=str(row.get("id", "")),
        order_id=str(row.get("order_id") or order_id),
        status=str(row.get("status") or ""),
        agent_id=row.get("delivery_agent_id"),
        agent=agent,
        pickup=coordinate_or_none(row.get("pickup_latitude"), row.get("pickup_longitude")),
        destination=coordinate_or_none(row.get("delivery_latitude"), row.get("delivery_longitude")),
        updated_at=row.get("updated_at"),
        agent_profile={
            key: agent_profile.get(key)
            for key in ("id", "name", "phone", "vehicle_type")
            if agent_profile.get(key) is not None
        },
    )


def get_delivery_for_order(order_id: str) -> DeliveryRecord | None:
    """Load the delivery attached to an order.

    Returns None when the database is not configured or no delivery exists.
    Query errors propagate to the caller.
    """
    supabase = get_supabase_client()
    if not supabase:
        logging.info("Supabase not configured - tracking data unavailable")
        return None

    response = (
        supabase.table("deliveries")
        .select(DELIVERY_COLUMNS)
        .eq("order_id", order_id)
        .limit(1)
        .execute()
    )
    rows = response.data or []
    if not rows:
        return None
    return _delivery_from_row(rows[0], order_id)


def save_agent_location(agent_id: str, coordinate: Coordinate) -> int:
    """Store an agent's position on its own row and on every active delivery it carries.

    Returns:
        Number of active deliveries updated with the new position.
    """
    supabase = get_supabase_client()
    if not supabase:
        logging.info("Supabase not configured - agent location not persisted")
        return 0

    timestamp = datetime.now(timezone.utc).isoformat()

    try:
        supabase.table("delivery_agents").update(
            {
                "latitude": coordinate.latitude,
                "longitude": coordinate.longitude,
                "last_location_update": timestamp,
                "updated_at": timestamp,
            }
        ).eq("id", agent_id).execute()
    except Exception as e:
        # The per-delivery position below is what customers see, keep going
        logging.warning(f"Failed to update location on agent {agent_id}: {e}")

    try:
        active = (
            supabase.table("deliveries")
            .select("id")
            .eq("delivery_agent_id", agent_id)
            .in_("status", list(ACTIVE_DELIVERY_STATUSES))
            .execute()
        )
        delivery_ids = [row["id"] for row in (active.data or []) if "id" in row]
        if not delivery_ids:
            return 0

        supabase.table("deliveries").update(
            {
                "agent_latitude": coordinate.latitude,
                "agent_longitude": coordinate.longitude,
                "updated_at": timestamp,
            }
        ).in_("id", delivery_ids).execute()
        logging.info(f"Updated agent location for {len(delivery_ids)} active deliveries")
        return len(delivery_ids)
    except Exception as e:
        logging.error(f"Failed to update delivery locations for agent {agent_id}: {e}")
        return 0
