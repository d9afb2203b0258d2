"""Geocoding services."""

from .resolver import (
    AddressResolver,
    ResolutionError,
    ResolutionOutcome,
    RetryPolicy,
    check_health,
    format_address_with_coordinates,
    normalize_address,
    prepare_query,
    retry_delay,
)

__all__ = [
    "AddressResolver",
    "ResolutionError",
    "ResolutionOutcome",
    "RetryPolicy",
    "check_health",
    "format_address_with_coordinates",
    "normalize_address",
    "prepare_query",
    "retry_delay",
]
