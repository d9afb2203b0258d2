"""Live tracking endpoints."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, status

from ...schemas.tracking import AgentLocationResponse, AgentLocationUpdate, TrackingResponse
from ...services.tracking.service import build_tracking_view, record_agent_location

router = APIRouter(prefix="/tracking", tags=["tracking"])


@router.get("/orders/{order_id}", response_model=TrackingResponse, status_code=status.HTTP_200_OK)
def get_order_tracking(order_id: str) -> TrackingResponse:
    """Current agent position, distance/ETA and map links for an order's delivery."""
    try:
        view = build_tracking_view(order_id)
    except HTTPException:
        raise
    except Exception as exc:
        logging.exception(f"Error fetching tracking for order {order_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch order tracking: {str(exc)}",
        ) from exc

    if view is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Delivery not found for order {order_id}",
        )
    return TrackingResponse.from_view(view)


@router.post("/agents/{agent_id}/location", response_model=AgentLocationResponse, status_code=status.HTTP_200_OK)
def update_agent_location(agent_id: str, payload: AgentLocationUpdate) -> AgentLocationResponse:
    """Record an agent's latest position on the agent and its active deliveries."""
    try:
        updated = record_agent_location(agent_id, payload.to_domain())
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error updating location for agent {agent_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update agent location: {str(exc)}",
        ) from exc

    return AgentLocationResponse(
        success=True,
        message="Location updated successfully",
        updated_deliveries=updated,
        location=payload,
        timestamp=datetime.now(timezone.utc),
    )
