"""Automatic customer location detection backed by a position source and the geocoder."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ...models.domain import LocationData
from ..geocoding import AddressResolver
from .cache import LocationCache
from .position import PositionFailure, PositionOptions, PositionSource

logger = logging.getLogger(__name__)

UNSUPPORTED_MESSAGE = "Geolocation is not supported by your browser"
UNRESOLVED_ADDRESS_MESSAGE = "Unable to find location for this address"


@dataclass(slots=True)
class LocationResult:
    location: Optional[LocationData] = None
    error: Optional[str] = None
    permission_granted: bool = False


class AutoLocator:
    """Detects, enriches and caches the current location.

    Failures never raise; they are reported through ``LocationResult.error``.
    A denied permission is reported with ``error=None``.
    """

    def __init__(
        self,
        resolver: AddressResolver,
        position_source: PositionSource | None = None,
        cache: LocationCache | None = None,
        options: PositionOptions | None = None,
    ) -> None:
        self.resolver = resolver
        self.position_source = position_source
        self.cache = cache
        self.options = options or PositionOptions()
        self.location: Optional[LocationData] = None
        self.error: Optional[str] = None
        self.permission_granted = False

    @property
    def is_supported(self) -> bool:
        return self.position_source is not None

    def _result(self) -> LocationResult:
        return LocationResult(location=self.location, error=self.error, permission_granted=self.permission_granted)

    async def detect(self) -> LocationResult:
        """Return the cached location when fresh, otherwise query the position source."""

        if self.cache is not None:
            cached = self.cache.read()
            if cached is not None:
                self.location = cached
                self.error = None
                self.permission_granted = True
                return self._result()
        return await self.refresh()

    async def refresh(self) -> LocationResult:
        if self.position_source is None:
            self.error = UNSUPPORTED_MESSAGE
            return self._result()

        self.error = None
        position = await self.position_source.get_current_position(self.options)
        if isinstance(position, PositionFailure):
            if position.permission_denied:
                self.permission_granted = False
                self.error = None
            else:
                self.error = position.message or "Unable to detect location"
            logger.debug(f"Position request failed with code {position.code.name}")
            return self._result()

        components = await self.resolver.resolve_backward(position)
        if components is None:
            logger.info("Reverse geocoding failed, keeping bare coordinates")
        self.location = LocationData.from_components(position, components)
        self.permission_granted = True
        self._store(self.location)
        return self._result()

    async def update_from_address(self, address: str) -> LocationResult:
        """Resolve a manually entered address and make it the current location."""

        self.error = None
        coordinate = await self.resolver.resolve_forward(address)
        if coordinate is None:
            self.error = UNRESOLVED_ADDRESS_MESSAGE
            return self._result()

        components = await self.resolver.resolve_backward(coordinate)
        self.location = LocationData(
            coordinate=coordinate,
            address=address,
            city=components.city if components else None,
            state=components.state if components else None,
            country=components.country if components else None,
            pincode=components.pincode if components else None,
        )
        self._store(self.location)
        return self._result()

    def clear(self) -> None:
        if self.cache is not None:
            self.cache.clear()
        self.location = None
        self.error = None

    def _store(self, location: LocationData) -> None:
        if self.cache is not None:
            self.cache.write(location)
