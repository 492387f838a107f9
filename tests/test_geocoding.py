from __future__ import annotations

import asyncio

import aiohttp
import pytest
from fakes import FakeHTTP, FakeResponse, make_settings

from wayfinder.errors import ResolutionUnavailable, SuggestionUnavailable
from wayfinder.models import Coordinate
from wayfinder.services.geocoding import NominatimGeocoder, ResolutionFetcher, classify_place

CAFE_ITEM = {
    "place_id": 1234,
    "lat": "9.04",
    "lon": "38.75",
    "display_name": "Cafe X, Bole, Addis Ababa",
    "category": "amenity",
    "type": "cafe",
}


@pytest.mark.parametrize(
    "item, expected",
    [
        ({"category": "amenity", "type": "restaurant"}, "restaurant"),
        ({"class": "amenity", "type": "cafe"}, "cafe"),
        ({"category": "highway", "type": "cafe"}, "cafe"),
        ({"category": "shop", "type": "bakery"}, "shop"),
        ({"category": "place", "type": "shop"}, "shop"),
        ({"category": "building", "type": "yes", "extratags": {"amenity": "cafe"}}, "cafe"),
        ({"extratags": {"shop": "yes"}}, "shop"),
        ({"category": "place", "type": "suburb", "extratags": {}}, "other"),
        ({}, "other"),
    ],
)
def test_classify_place_precedence(item, expected):
    assert classify_place(item) == expected


def test_classify_prefers_category_over_extratags():
    item = {"category": "shop", "type": "mall", "extratags": {"amenity": "cafe"}}
    assert classify_place(item) == "shop"


@pytest.mark.asyncio
async def test_search_is_region_bounded_and_parsed():
    http = FakeHTTP(FakeResponse([CAFE_ITEM]))
    geocoder = NominatimGeocoder(http, make_settings(nominatim_email="ops@example.org"))

    results = await geocoder.search("Cafe X", limit=5)

    (call,) = http.calls
    params = call["params"]
    assert params["countrycodes"] == "et"
    assert params["viewbox"] == "37.5,15,48,3"
    assert params["bounded"] == 1
    assert params["limit"] == 5
    assert params["email"] == "ops@example.org"
    assert "extratags" not in params
    assert call["headers"]["User-Agent"].startswith("wayfinder/")
    assert results[0].id == "1234"
    assert results[0].coordinate == Coordinate(lat=9.04, lon=38.75)
    assert results[0].classification == "cafe"


@pytest.mark.asyncio
async def test_search_skips_malformed_items_and_caches():
    http = FakeHTTP(FakeResponse([{"display_name": "no coordinates"}, CAFE_ITEM]))
    geocoder = NominatimGeocoder(http, make_settings())

    first = await geocoder.search("cafe", limit=5)
    second = await geocoder.search("  CAFE ", limit=5)

    assert [c.id for c in first] == ["1234"]
    assert second == first
    assert len(http.calls) == 1


@pytest.mark.asyncio
async def test_suggest_blank_makes_no_request():
    http = FakeHTTP()
    geocoder = NominatimGeocoder(http, make_settings())
    assert await geocoder.suggest("   ") == []
    assert http.calls == []


@pytest.mark.asyncio
async def test_suggest_wraps_transport_errors():
    http = FakeHTTP(FakeResponse(status=503))
    geocoder = NominatimGeocoder(http, make_settings())
    with pytest.raises(SuggestionUnavailable):
        await geocoder.suggest("bole")


@pytest.mark.asyncio
async def test_resolve_asks_for_details_and_returns_best_match():
    http = FakeHTTP(FakeResponse([CAFE_ITEM]))
    resolver = ResolutionFetcher(NominatimGeocoder(http, make_settings()))

    candidate = await resolver.resolve("Cafe X")

    params = http.calls[0]["params"]
    assert params["limit"] == 1
    assert params["addressdetails"] == 1
    assert params["extratags"] == 1
    assert candidate.display_name.startswith("Cafe X")
    assert candidate.classification == "cafe"


@pytest.mark.asyncio
async def test_resolve_not_found_returns_none():
    http = FakeHTTP(FakeResponse([]))
    resolver = ResolutionFetcher(NominatimGeocoder(http, make_settings()))
    assert await resolver.resolve("Atlantis") is None


@pytest.mark.asyncio
@pytest.mark.parametrize("failure", [aiohttp.ClientError("refused"), asyncio.TimeoutError()])
async def test_resolve_transport_failure_raises(failure):
    http = FakeHTTP(failure)
    resolver = ResolutionFetcher(NominatimGeocoder(http, make_settings()))
    with pytest.raises(ResolutionUnavailable):
        await resolver.resolve("Cafe X")
