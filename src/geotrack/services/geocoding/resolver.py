"""Address resolution against a Nominatim-compatible geocoding provider."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Iterable, Optional, Sequence, TypeVar

import httpx

from ...config import settings
from ...models.domain import AddressComponents, Coordinate, coordinate_or_none, is_valid_coordinate
from ..geospatial import distance_km

logger = logging.getLogger(__name__)

T = TypeVar("T")
SleepFunc = Callable[[float], Awaitable[None]]


class ResolutionError(str, Enum):
    """Reason a single resolution attempt did not produce a value."""

    INVALID_INPUT = "invalid_input"
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"
    CLIENT_ERROR = "client_error"
    MALFORMED_RESPONSE = "malformed_response"
    NO_RESULT = "no_result"


@dataclass(frozen=True, slots=True)
class ResolutionOutcome(Generic[T]):
    value: Optional[T] = None
    error: Optional[ResolutionError] = None
    status_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None

    @classmethod
    def failure(cls, error: ResolutionError, status_code: int | None = None) -> "ResolutionOutcome[T]":
        return cls(value=None, error=error, status_code=status_code)


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    max_attempts: int = 3
    backoff_seconds: float = 2.0
    timeout_retry_delay_seconds: float = 1.0

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.geocoder_max_attempts,
            backoff_seconds=settings.geocoder_backoff_seconds,
            timeout_retry_delay_seconds=settings.timeout_retry_delay_seconds,
        )


TRANSIENT_ERRORS = frozenset(
    {
        ResolutionError.RATE_LIMITED,
        ResolutionError.SERVER_ERROR,
        ResolutionError.NETWORK_ERROR,
    }
)


def retry_delay(error: ResolutionError, attempt: int, policy: RetryPolicy) -> float | None:
    """Return seconds to wait before the next attempt, or None when no retry should happen.

    ``attempt`` is the 1-based number of the attempt that just failed.
    """

    if attempt >= policy.max_attempts:
        return None
    if error in TRANSIENT_ERRORS:
        return policy.backoff_seconds * attempt
    if error is ResolutionError.TIMEOUT:
        return policy.timeout_retry_delay_seconds
    return None


def normalize_address(address: str) -> str:
    """Trim comma-separated segments and drop case-insensitive duplicates, keeping first-seen order."""

    seen: set[str] = set()
    unique_parts: list[str] = []
    for part in address.split(","):
        segment = part.strip()
        if not segment:
            continue
        key = segment.casefold()
        if key in seen:
            continue
        seen.add(key)
        unique_parts.append(segment)
    return ", ".join(unique_parts)


def has_country_marker(address: str, aliases: Iterable[str]) -> bool:
    lowered = address.casefold()
    return any(alias.casefold() in lowered for alias in aliases if alias)


def prepare_query(address: str, country_name: str, aliases: Sequence[str]) -> tuple[str, bool]:
    """Normalize an address and bias it to the target country.

    Returns the query string and whether the country suffix was appended.
    """

    normalized = normalize_address(address)
    markers = tuple(aliases) or (country_name,)
    if not normalized or not country_name or has_country_marker(normalized, markers):
        return normalized, False
    return f"{normalized}, {country_name}", True


def format_address_with_coordinates(address: str, coordinate: Coordinate | None) -> str:
    if coordinate is None:
        return address
    return f"{address} ({coordinate.latitude:.6f}, {coordinate.longitude:.6f})"


def parse_search_response(data: Any) -> ResolutionOutcome[Coordinate]:
    if not isinstance(data, list):
        return ResolutionOutcome.failure(ResolutionError.MALFORMED_RESPONSE)
    if not data or not isinstance(data[0], dict):
        return ResolutionOutcome.failure(ResolutionError.NO_RESULT)
    first = data[0]
    coordinate = coordinate_or_none(first.get("lat"), first.get("lon"))
    if coordinate is None:
        logger.warning(f"Invalid coordinates from geocoding provider: lat={first.get('lat')!r} lon={first.get('lon')!r}")
        return ResolutionOutcome.failure(ResolutionError.NO_RESULT)
    return ResolutionOutcome(value=coordinate)


def parse_reverse_response(data: Any) -> ResolutionOutcome[AddressComponents]:
    if not isinstance(data, dict):
        return ResolutionOutcome.failure(ResolutionError.MALFORMED_RESPONSE)
    details = data.get("address")
    if not isinstance(details, dict):
        # Nominatim answers {"error": "Unable to geocode"} for points with no match
        return ResolutionOutcome.failure(ResolutionError.NO_RESULT)

    address = data.get("display_name") or None
    if not address:
        road = details.get("road") or ""
        house_number = details.get("house_number") or ""
        address = f"{road} {house_number}".strip() or None

    components = AddressComponents(
        address=address,
        city=details.get("city") or details.get("town") or details.get("village") or None,
        state=details.get("state") or None,
        country=details.get("country") or None,
        pincode=details.get("postcode") or None,
    )
    return ResolutionOutcome(value=components)


class AddressResolver:
    """Forward and reverse geocoding with retry, backoff and country biasing.

    Every public coroutine is total: failures come back as ``None`` and the
    internal reason is logged.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        base_url: str | None = None,
        user_agent: str | None = None,
        country_name: str | None = None,
        country_aliases: Sequence[str] | None = None,
        country_code: str | None = None,
        retry_policy: RetryPolicy | None = None,
        forward_timeout: float | None = None,
        reverse_timeout: float | None = None,
        suffix_retry_delay: float | None = None,
        batch_size: int | None = None,
        batch_item_delay: float | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self._client = client
        self.base_url = (base_url or settings.geocoder_base_url).rstrip("/")
        self.user_agent = user_agent or settings.geocoder_user_agent
        self.country_name = country_name if country_name is not None else settings.country_name
        self.country_aliases = tuple(country_aliases if country_aliases is not None else settings.country_aliases)
        self.country_code = country_code if country_code is not None else settings.country_code
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        self.forward_timeout = forward_timeout if forward_timeout is not None else settings.forward_timeout_seconds
        self.reverse_timeout = reverse_timeout if reverse_timeout is not None else settings.reverse_timeout_seconds
        self.suffix_retry_delay = (
            suffix_retry_delay if suffix_retry_delay is not None else settings.suffix_retry_delay_seconds
        )
        self.batch_size = batch_size or settings.batch_size
        self.batch_item_delay = batch_item_delay if batch_item_delay is not None else settings.batch_item_delay_seconds
        self._sleep = sleep

    @classmethod
    def from_settings(cls, client: httpx.AsyncClient, **overrides: Any) -> "AddressResolver":
        return cls(client, **overrides)

    @property
    def headers(self) -> dict[str, str]:
        return {"User-Agent": self.user_agent, "Accept": "application/json"}

    async def _get_json(self, path: str, params: dict[str, Any], timeout: float) -> ResolutionOutcome[Any]:
        url = f"{self.base_url}/{path}"
        try:
            response = await asyncio.wait_for(
                self._client.get(url, params=params, headers=self.headers, timeout=timeout),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return ResolutionOutcome.failure(ResolutionError.TIMEOUT)
        except httpx.HTTPError as exc:
            logger.debug(f"Geocoding network error for {url}: {exc}")
            return ResolutionOutcome.failure(ResolutionError.NETWORK_ERROR)

        status_code = response.status_code
        if status_code == 429:
            return ResolutionOutcome.failure(ResolutionError.RATE_LIMITED, status_code)
        if status_code >= 500:
            return ResolutionOutcome.failure(ResolutionError.SERVER_ERROR, status_code)
        if not response.is_success:
            return ResolutionOutcome.failure(ResolutionError.CLIENT_ERROR, status_code)

        try:
            data = response.json()
        except ValueError:
            return ResolutionOutcome.failure(ResolutionError.MALFORMED_RESPONSE, status_code)
        return ResolutionOutcome(value=data, status_code=status_code)

    async def forward_attempt(self, query: str) -> ResolutionOutcome[Coordinate]:
        params = {
            "format": "json",
            "q": query,
            "limit": 1,
            "countrycodes": self.country_code,
            "addressdetails": 1,
        }
        outcome = await self._get_json("search", params, self.forward_timeout)
        if not outcome.ok:
            return ResolutionOutcome.failure(outcome.error or ResolutionError.NO_RESULT, outcome.status_code)
        return parse_search_response(outcome.value)

    async def reverse_attempt(self, coordinate: Coordinate) -> ResolutionOutcome[AddressComponents]:
        params = {"format": "json", "lat": coordinate.latitude, "lon": coordinate.longitude}
        outcome = await self._get_json("reverse", params, self.reverse_timeout)
        if not outcome.ok:
            return ResolutionOutcome.failure(outcome.error or ResolutionError.NO_RESULT, outcome.status_code)
        return parse_reverse_response(outcome.value)

    async def resolve_forward_outcome(self, address: Any) -> ResolutionOutcome[Coordinate]:
        """Run the full forward retry loop and report why it ended."""

        if not isinstance(address, str) or not address.strip():
            logger.warning("Geocoding skipped: empty or invalid address")
            return ResolutionOutcome.failure(ResolutionError.INVALID_INPUT)

        original = address.strip()
        query, suffix_appended = prepare_query(original, self.country_name, self.country_aliases)
        if not query:
            logger.warning(f"Geocoding skipped: address {address!r} has no content between commas")
            return ResolutionOutcome.failure(ResolutionError.INVALID_INPUT)
        logger.debug(f"Geocoding address original={original!r} formatted={query!r}")

        policy = self.retry_policy
        last = ResolutionOutcome.failure(ResolutionError.NO_RESULT)
        for attempt in range(1, policy.max_attempts + 1):
            last = await self.forward_attempt(query)
            if last.ok:
                logger.info(f"Geocoded {original!r} to {last.value} (attempt {attempt}/{policy.max_attempts})")
                return last

            error = last.error or ResolutionError.NO_RESULT
            if error is ResolutionError.NO_RESULT:
                if suffix_appended and attempt < policy.max_attempts:
                    logger.debug("No geocoding result, retrying with original address without country suffix")
                    query = original
                    suffix_appended = False
                    await self._sleep(self.suffix_retry_delay)
                    continue
                break

            if last.status_code is not None:
                logger.warning(f"Geocoding HTTP error {last.status_code} (attempt {attempt}/{policy.max_attempts})")
            delay = retry_delay(error, attempt, policy)
            if delay is None:
                break
            logger.debug(f"Geocoding {error.value}, retrying in {delay:.1f}s (attempt {attempt}/{policy.max_attempts})")
            await self._sleep(delay)

        logger.warning(f"Geocoding failed for {original!r}: {last.error.value if last.error else 'no result'}")
        return last

    async def resolve_backward_outcome(self, coordinate: Any) -> ResolutionOutcome[AddressComponents]:
        latitude = getattr(coordinate, "latitude", None)
        longitude = getattr(coordinate, "longitude", None)
        if not is_valid_coordinate(latitude, longitude):
            return ResolutionOutcome.failure(ResolutionError.INVALID_INPUT)
        point = Coordinate(float(latitude), float(longitude))

        policy = self.retry_policy
        last = ResolutionOutcome.failure(ResolutionError.NO_RESULT)
        for attempt in range(1, policy.max_attempts + 1):
            last = await self.reverse_attempt(point)
            if last.ok:
                return last
            error = last.error or ResolutionError.NO_RESULT
            delay = retry_delay(error, attempt, policy)
            if delay is None:
                break
            logger.debug(
                f"Reverse geocoding {error.value}, retrying in {delay:.1f}s (attempt {attempt}/{policy.max_attempts})"
            )
            await self._sleep(delay)

        logger.warning(f"Reverse geocoding failed for {point.as_pair()}: {last.error.value if last.error else 'no result'}")
        return last

    async def resolve_forward(self, address: Any) -> Coordinate | None:
        try:
            outcome = await self.resolve_forward_outcome(address)
        except Exception:
            logger.exception(f"Unexpected error geocoding {address!r}")
            return None
        return outcome.value if outcome.ok else None

    async def resolve_backward(self, coordinate: Any) -> AddressComponents | None:
        try:
            outcome = await self.resolve_backward_outcome(coordinate)
        except Exception:
            logger.exception(f"Unexpected error reverse geocoding {coordinate!r}")
            return None
        return outcome.value if outcome.ok else None

    @staticmethod
    def distance(a: Coordinate, b: Coordinate) -> float:
        return distance_km(a, b)

    async def batch_resolve_forward(self, addresses: Iterable[str]) -> dict[str, Coordinate | None]:
        """Resolve many addresses in small concurrent batches paced for the provider's rate limit."""

        results: dict[str, Coordinate | None] = {}
        pending = list(dict.fromkeys(addresses or []))

        async def resolve_one(address: str) -> None:
            results[address] = await self.resolve_forward(address)
            await self._sleep(self.batch_item_delay)

        for start in range(0, len(pending), self.batch_size):
            batch = pending[start : start + self.batch_size]
            await asyncio.gather(*(resolve_one(address) for address in batch))
        return results


async def check_health(resolver: AddressResolver, probe: Coordinate | None = None) -> bool:
    """Check the provider by reverse geocoding a known point (Chennai by default)."""

    outcome = await resolver.reverse_attempt(probe or Coordinate(13.0827, 80.2707))
    return outcome.ok
