from __future__ import annotations

import asyncio

import pytest
from fakes import FakeHTTP, FakeResponse, make_settings

from wayfinder.errors import ConfigurationMissing, RouteUnavailable
from wayfinder.models import Coordinate, RouteResult, TravelMode
from wayfinder.services.routing import RouteFetcher, parse_directions

ORIGIN = Coordinate(lat=9.03, lon=38.74)
DESTINATION = Coordinate(lat=9.04, lon=38.75)


def _payload(distance=3200.0, duration=480.0):
    return {
        "features": [
            {
                "geometry": {"coordinates": [[38.74, 9.03], [38.745, 9.035], [38.75, 9.04]]},
                "properties": {"summary": {"distance": distance, "duration": duration}},
            }
        ]
    }


def test_unit_conversion():
    result = parse_directions(_payload(distance=1500, duration=600))
    assert result.distance_km == 1.5
    assert result.distance_label == "1.5 km"
    assert result.duration_min == 10


def test_duration_rounds_half_up():
    assert RouteResult.from_summary([], 0, 90).duration_min == 2
    assert RouteResult.from_summary([], 0, 89).duration_min == 1


@pytest.mark.parametrize("meters, label", [(1250, "1.3 km"), (3250, "3.3 km"), (1249, "1.2 km")])
def test_distance_rounds_half_up(meters, label):
    assert RouteResult.from_summary([], meters, 0).distance_label == label


def test_polyline_is_flipped_to_lat_lon():
    result = parse_directions(_payload())
    assert result.path[0] == ORIGIN
    assert result.path[-1] == DESTINATION


def test_empty_summary_means_zero_length_route():
    payload = _payload()
    payload["features"][0]["properties"]["summary"] = {}
    result = parse_directions(payload)
    assert result.distance_km == 0.0
    assert result.duration_min == 0


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"features": []},
        {"features": [{"properties": {"summary": {}}}]},
        {"features": [{"geometry": {"coordinates": [[38.74, 9.03]]}, "properties": {}}]},
        {"features": [{"geometry": {"coordinates": [[500, 9.03]]}, "properties": {"summary": {}}}]},
    ],
)
def test_malformed_payload_is_route_unavailable(payload):
    with pytest.raises(RouteUnavailable):
        parse_directions(payload)


@pytest.mark.asyncio
async def test_route_sends_lon_lat_and_profile():
    http = FakeHTTP(FakeResponse(_payload()))
    fetcher = RouteFetcher(http, make_settings())

    result = await fetcher.route(ORIGIN, DESTINATION, TravelMode.WALKING)

    (call,) = http.calls
    assert call["url"].endswith("/v2/directions/foot-walking")
    assert call["params"] == {"api_key": "test-key", "start": "38.74,9.03", "end": "38.75,9.04"}
    assert result.distance_label == "3.2 km"
    assert result.duration_label == "8 min"


@pytest.mark.asyncio
async def test_missing_key_fails_before_network():
    http = FakeHTTP()
    fetcher = RouteFetcher(http, make_settings(ors_api_key=None))
    with pytest.raises(ConfigurationMissing):
        await fetcher.route(ORIGIN, DESTINATION, TravelMode.DRIVING)
    assert http.calls == []


@pytest.mark.asyncio
async def test_non_success_status_is_route_unavailable():
    http = FakeHTTP(FakeResponse(status=403, text="quota exceeded"))
    fetcher = RouteFetcher(http, make_settings())
    with pytest.raises(RouteUnavailable) as exc:
        await fetcher.route(ORIGIN, DESTINATION, TravelMode.DRIVING)
    assert exc.value.details["status"] == 403


@pytest.mark.asyncio
async def test_timeout_is_route_unavailable():
    http = FakeHTTP(asyncio.TimeoutError())
    fetcher = RouteFetcher(http, make_settings())
    with pytest.raises(RouteUnavailable):
        await fetcher.route(ORIGIN, DESTINATION, TravelMode.CYCLING)
