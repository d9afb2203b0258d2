from __future__ import annotations

from typing import Callable

import httpx
import pytest

from src.geotrack.services.geocoding import AddressResolver, RetryPolicy


class RecordingSleep:
    """Stands in for asyncio.sleep and remembers requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class RecordingHandler:
    """Wraps a MockTransport handler and keeps every request it saw."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self._handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    @property
    def queries(self) -> list[str]:
        return [request.url.params.get("q", "") for request in self.requests]


def make_resolver(handler, sleep: RecordingSleep | None = None, **overrides) -> AddressResolver:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    options = dict(
        base_url="https://geo.test",
        user_agent="GeoTrackTests/1.0",
        country_name="India",
        country_aliases=("India", "भारत"),
        country_code="in",
        retry_policy=RetryPolicy(max_attempts=3, backoff_seconds=2.0, timeout_retry_delay_seconds=1.0),
        forward_timeout=15.0,
        reverse_timeout=10.0,
        suffix_retry_delay=1.0,
        batch_size=3,
        batch_item_delay=1.0,
        sleep=sleep or RecordingSleep(),
    )
    options.update(overrides)
    return AddressResolver(client, **options)


def search_hit(lat="13.0827", lon="80.2707") -> list[dict]:
    return [{"lat": lat, "lon": lon, "display_name": "Chennai, Tamil Nadu, India"}]


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()
