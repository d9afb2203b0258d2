"""Shared route dependencies."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from ..services.estimator import DistanceEstimator
from ..services.geocoding import AddressResolver


def get_resolver(request: Request) -> AddressResolver:
    resolver = getattr(request.app.state, "resolver", None)
    if resolver is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Geocoding client is not initialised",
        )
    return resolver


def get_estimator() -> DistanceEstimator:
    return DistanceEstimator()
