import asyncio

import httpx
import pytest

from conftest import RecordingHandler, RecordingSleep, make_resolver, search_hit
from src.geotrack.models.domain import AddressComponents, Coordinate
from src.geotrack.services.geocoding import (
    ResolutionError,
    RetryPolicy,
    format_address_with_coordinates,
    normalize_address,
    prepare_query,
    retry_delay,
)


def _fail_on_request(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"unexpected request to {request.url}")


# --- normalization ---------------------------------------------------------


def test_normalize_removes_duplicate_segments_case_insensitively() -> None:
    assert normalize_address("Anna Nagar, anna nagar ,  Chennai,, ") == "Anna Nagar, Chennai"


def test_normalize_is_idempotent() -> None:
    samples = [
        "Kalasalingam University, Kalasalingam University, Krishnankoil",
        " , ,",
        "12 Main Road,  MG Road, main road, Bengaluru, India",
    ]
    for sample in samples:
        once = normalize_address(sample)
        assert normalize_address(once) == once
        query, _ = prepare_query(sample, "India", ("India",))
        assert prepare_query(query, "India", ("India",)) == (query, False)


def test_prepare_query_appends_country_once() -> None:
    query, appended = prepare_query(
        "Kalasalingam University, Kalasalingam University, Krishnankoil", "India", ("India", "भारत")
    )
    assert query == "Kalasalingam University, Krishnankoil, India"
    assert appended is True

    assert prepare_query("Chennai, INDIA", "India", ("India", "भारत")) == ("Chennai, INDIA", False)
    assert prepare_query("चेन्नई, भारत", "India", ("India", "भारत")) == ("चेन्नई, भारत", False)


def test_format_address_with_coordinates() -> None:
    coordinate = Coordinate(13.0827, 80.2707)
    assert format_address_with_coordinates("Chennai", coordinate) == "Chennai (13.082700, 80.270700)"
    assert format_address_with_coordinates("Chennai", None) == "Chennai"


# --- retry policy ----------------------------------------------------------


def test_retry_delay_policy() -> None:
    policy = RetryPolicy(max_attempts=3, backoff_seconds=2.0, timeout_retry_delay_seconds=1.0)

    assert retry_delay(ResolutionError.RATE_LIMITED, 1, policy) == 2.0
    assert retry_delay(ResolutionError.SERVER_ERROR, 2, policy) == 4.0
    assert retry_delay(ResolutionError.NETWORK_ERROR, 1, policy) == 2.0
    assert retry_delay(ResolutionError.TIMEOUT, 2, policy) == 1.0
    assert retry_delay(ResolutionError.SERVER_ERROR, 3, policy) is None
    assert retry_delay(ResolutionError.CLIENT_ERROR, 1, policy) is None
    assert retry_delay(ResolutionError.MALFORMED_RESPONSE, 1, policy) is None


# --- forward resolution ----------------------------------------------------


def test_forward_sends_normalized_query_with_provider_params() -> None:
    handler = RecordingHandler(lambda request: httpx.Response(200, json=search_hit()))
    resolver = make_resolver(handler)

    result = asyncio.run(
        resolver.resolve_forward("Kalasalingam University, Kalasalingam University, Krishnankoil")
    )

    assert result == Coordinate(13.0827, 80.2707)
    assert len(handler.requests) == 1
    request = handler.requests[0]
    assert request.url.path == "/search"
    assert request.url.params["q"] == "Kalasalingam University, Krishnankoil, India"
    assert request.url.params["format"] == "json"
    assert request.url.params["limit"] == "1"
    assert request.url.params["countrycodes"] == "in"
    assert request.url.params["addressdetails"] == "1"
    assert request.headers["User-Agent"] == "GeoTrackTests/1.0"


@pytest.mark.parametrize("address", ["", "   ", None, 42])
def test_forward_invalid_input_makes_no_request(address) -> None:
    handler = RecordingHandler(_fail_on_request)
    resolver = make_resolver(handler)

    assert asyncio.run(resolver.resolve_forward(address)) is None
    assert handler.requests == []


def test_forward_retries_rate_limit_with_backoff(sleep: RecordingSleep) -> None:
    responses = iter([httpx.Response(429), httpx.Response(503), httpx.Response(200, json=search_hit())])
    handler = RecordingHandler(lambda request: next(responses))
    resolver = make_resolver(handler, sleep=sleep)

    result = asyncio.run(resolver.resolve_forward("Chennai"))

    assert result == Coordinate(13.0827, 80.2707)
    assert len(handler.requests) == 3
    assert sleep.calls == [2.0, 4.0]


def test_forward_gives_up_after_three_server_errors(sleep: RecordingSleep) -> None:
    handler = RecordingHandler(lambda request: httpx.Response(500))
    resolver = make_resolver(handler, sleep=sleep)

    assert asyncio.run(resolver.resolve_forward("Chennai")) is None
    assert len(handler.requests) == 3
    assert sleep.calls == [2.0, 4.0]


def test_forward_does_not_retry_client_errors(sleep: RecordingSleep) -> None:
    handler = RecordingHandler(lambda request: httpx.Response(403))
    resolver = make_resolver(handler, sleep=sleep)

    outcome = asyncio.run(resolver.resolve_forward_outcome("Chennai"))

    assert outcome.error is ResolutionError.CLIENT_ERROR
    assert outcome.status_code == 403
    assert len(handler.requests) == 1
    assert sleep.calls == []


def test_forward_does_not_retry_malformed_json(sleep: RecordingSleep) -> None:
    handler = RecordingHandler(lambda request: httpx.Response(200, content=b"<html>oops</html>"))
    resolver = make_resolver(handler, sleep=sleep)

    outcome = asyncio.run(resolver.resolve_forward_outcome("Chennai"))

    assert outcome.error is ResolutionError.MALFORMED_RESPONSE
    assert len(handler.requests) == 1


def test_forward_retries_network_errors(sleep: RecordingSleep) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    recording = RecordingHandler(handler)
    resolver = make_resolver(recording, sleep=sleep)

    outcome = asyncio.run(resolver.resolve_forward_outcome("Chennai"))

    assert outcome.error is ResolutionError.NETWORK_ERROR
    assert len(recording.requests) == 3
    assert sleep.calls == [2.0, 4.0]


def test_forward_retries_transport_timeouts_after_one_second(sleep: RecordingSleep) -> None:
    attempts = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        attempts["count"] += 1
        if attempts["count"] == 1:
            raise httpx.ReadTimeout("timed out", request=request)
        return httpx.Response(200, json=search_hit())

    resolver = make_resolver(handler, sleep=sleep)

    assert asyncio.run(resolver.resolve_forward("Chennai")) == Coordinate(13.0827, 80.2707)
    assert sleep.calls == [1.0]


def test_forward_cancels_hanging_requests_at_timeout(sleep: RecordingSleep) -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(5)
        return httpx.Response(200, json=search_hit())

    resolver = make_resolver(handler, sleep=sleep, forward_timeout=0.01)

    outcome = asyncio.run(resolver.resolve_forward_outcome("Chennai"))

    assert outcome.error is ResolutionError.TIMEOUT
    assert sleep.calls == [1.0, 1.0]


def test_forward_falls_back_to_original_address_without_suffix(sleep: RecordingSleep) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params["q"].endswith(", India"):
            return httpx.Response(200, json=[])
        return httpx.Response(200, json=search_hit("9.5", "77.6"))

    recording = RecordingHandler(handler)
    resolver = make_resolver(recording, sleep=sleep)

    result = asyncio.run(resolver.resolve_forward("  Krishnankoil, Krishnankoil  "))

    assert result == Coordinate(9.5, 77.6)
    assert recording.queries == ["Krishnankoil, India", "Krishnankoil, Krishnankoil"]
    assert sleep.calls == [1.0]


def test_forward_no_result_without_suffix_stops_immediately(sleep: RecordingSleep) -> None:
    handler = RecordingHandler(lambda request: httpx.Response(200, json=[]))
    resolver = make_resolver(handler, sleep=sleep)

    outcome = asyncio.run(resolver.resolve_forward_outcome("Chennai, India"))

    assert outcome.error is ResolutionError.NO_RESULT
    assert len(handler.requests) == 1
    assert sleep.calls == []


def test_forward_out_of_range_latitude_is_not_a_result(sleep: RecordingSleep) -> None:
    handler = RecordingHandler(lambda request: httpx.Response(200, json=search_hit(lat="91.0")))
    resolver = make_resolver(handler, sleep=sleep)

    assert asyncio.run(resolver.resolve_forward("Chennai")) is None
    # one attempt with the country suffix, one with the original text
    assert handler.queries == ["Chennai, India", "Chennai"]


# --- reverse resolution ----------------------------------------------------


def _reverse_payload(**address) -> dict:
    return {"display_name": "Anna Salai, Chennai, Tamil Nadu, India", "address": address}


def test_reverse_maps_provider_fields() -> None:
    payload = _reverse_payload(
        town="Srivilliputhur", village="Krishnankoil", state="Tamil Nadu", country="India", postcode="626126"
    )
    handler = RecordingHandler(lambda request: httpx.Response(200, json=payload))
    resolver = make_resolver(handler)

    result = asyncio.run(resolver.resolve_backward(Coordinate(9.5, 77.6)))

    assert result == AddressComponents(
        address="Anna Salai, Chennai, Tamil Nadu, India",
        city="Srivilliputhur",
        state="Tamil Nadu",
        country="India",
        pincode="626126",
    )
    request = handler.requests[0]
    assert request.url.path == "/reverse"
    assert request.url.params["lat"] == "9.5"
    assert request.url.params["lon"] == "77.6"
    assert request.url.params["format"] == "json"


def test_reverse_synthesizes_address_from_road_and_house_number() -> None:
    payload = {"address": {"road": "Anna Salai", "house_number": "12", "city": "Chennai"}}
    resolver = make_resolver(lambda request: httpx.Response(200, json=payload))

    result = asyncio.run(resolver.resolve_backward(Coordinate(13.06, 80.25)))

    assert result.address == "Anna Salai 12"
    assert result.city == "Chennai"
    assert result.pincode is None


@pytest.mark.parametrize("coordinate", [None, object(), type("P", (), {"latitude": 95.0, "longitude": 10.0})()])
def test_reverse_invalid_coordinate_makes_no_request(coordinate) -> None:
    handler = RecordingHandler(_fail_on_request)
    resolver = make_resolver(handler)

    assert asyncio.run(resolver.resolve_backward(coordinate)) is None
    assert handler.requests == []


def test_reverse_retries_server_errors(sleep: RecordingSleep) -> None:
    responses = iter([httpx.Response(502), httpx.Response(200, json=_reverse_payload(city="Chennai"))])
    handler = RecordingHandler(lambda request: next(responses))
    resolver = make_resolver(handler, sleep=sleep)

    result = asyncio.run(resolver.resolve_backward(Coordinate(13.06, 80.25)))

    assert result.city == "Chennai"
    assert sleep.calls == [2.0]


def test_reverse_unable_to_geocode_returns_none(sleep: RecordingSleep) -> None:
    handler = RecordingHandler(lambda request: httpx.Response(200, json={"error": "Unable to geocode"}))
    resolver = make_resolver(handler, sleep=sleep)

    assert asyncio.run(resolver.resolve_backward(Coordinate(0.0, 0.0))) is None
    assert len(handler.requests) == 1
    assert sleep.calls == []


# --- batch resolution ------------------------------------------------------


def test_batch_returns_every_distinct_address(sleep: RecordingSleep) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params["q"].startswith("Nowhere"):
            return httpx.Response(404)
        return httpx.Response(200, json=search_hit())

    resolver = make_resolver(handler, sleep=sleep)
    addresses = ["Chennai", "Madurai", "Chennai", "", "Nowhere", "Salem", "   "]

    results = asyncio.run(resolver.batch_resolve_forward(addresses))

    assert set(results) == set(addresses)
    assert len(results) == len(set(addresses))
    assert results["Chennai"] == Coordinate(13.0827, 80.2707)
    assert results[""] is None
    assert results["Nowhere"] is None
    # one pacing pause per resolved item
    assert sleep.calls == [1.0] * len(set(addresses))


def test_batch_limits_in_flight_requests_to_batch_size() -> None:
    state = {"in_flight": 0, "peak": 0}

    async def handler(request: httpx.Request) -> httpx.Response:
        state["in_flight"] += 1
        state["peak"] = max(state["peak"], state["in_flight"])
        await asyncio.sleep(0.01)
        state["in_flight"] -= 1
        return httpx.Response(200, json=search_hit())

    resolver = make_resolver(handler)
    addresses = [f"Street {index}" for index in range(7)]

    results = asyncio.run(resolver.batch_resolve_forward(addresses))

    assert len(results) == 7
    assert all(value is not None for value in results.values())
    assert state["peak"] <= 3
    assert state["peak"] > 1


def test_batch_of_nothing_is_empty() -> None:
    resolver = make_resolver(_fail_on_request)
    assert asyncio.run(resolver.batch_resolve_forward([])) == {}
