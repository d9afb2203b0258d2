"""Geocoding and distance endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...schemas.geocoding import (
    AddressComponentsModel,
    BatchGeocodeRequest,
    BatchGeocodeResponse,
    CoordinateModel,
    DistanceRequest,
    DistanceResponse,
    ForwardGeocodeRequest,
    ForwardGeocodeResponse,
    ReverseGeocodeResponse,
)
from ...services.estimator import DistanceEstimator
from ...services.geocoding import AddressResolver, prepare_query
from ..deps import get_estimator, get_resolver

router = APIRouter(tags=["geocoding"])


@router.post("/geocode/forward", response_model=ForwardGeocodeResponse, status_code=status.HTTP_200_OK)
async def geocode_forward(
    payload: ForwardGeocodeRequest,
    resolver: AddressResolver = Depends(get_resolver),
) -> ForwardGeocodeResponse:
    """Resolve an address; an unresolvable address returns ``coordinate: null``."""
    normalized, _ = prepare_query(payload.address, resolver.country_name, resolver.country_aliases)
    coordinate = await resolver.resolve_forward(payload.address)
    return ForwardGeocodeResponse(
        address=payload.address,
        normalized_address=normalized,
        coordinate=CoordinateModel.from_domain(coordinate),
    )


@router.post("/geocode/reverse", response_model=ReverseGeocodeResponse, status_code=status.HTTP_200_OK)
async def geocode_reverse(
    payload: CoordinateModel,
    resolver: AddressResolver = Depends(get_resolver),
) -> ReverseGeocodeResponse:
    components = await resolver.resolve_backward(payload.to_domain())
    return ReverseGeocodeResponse(
        coordinate=payload,
        components=AddressComponentsModel.from_domain(components),
    )


@router.post("/geocode/batch", response_model=BatchGeocodeResponse, status_code=status.HTTP_200_OK)
async def geocode_batch(
    payload: BatchGeocodeRequest,
    resolver: AddressResolver = Depends(get_resolver),
) -> BatchGeocodeResponse:
    results = await resolver.batch_resolve_forward(payload.addresses)
    return BatchGeocodeResponse(
        results={address: CoordinateModel.from_domain(coordinate) for address, coordinate in results.items()}
    )


@router.post("/distance", response_model=DistanceResponse, status_code=status.HTTP_200_OK)
def distance(
    payload: DistanceRequest,
    estimator: DistanceEstimator = Depends(get_estimator),
) -> DistanceResponse:
    try:
        result = estimator.estimate(payload.origin.to_domain(), payload.destination.to_domain())
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error estimating distance: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to estimate distance: {str(exc)}",
        ) from exc
    return DistanceResponse(distance_km=result.distance_km, eta_minutes=result.eta_minutes)
