from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from wayfinder.config import Settings, get_settings
from wayfinder.errors import ResolutionUnavailable, SuggestionUnavailable
from wayfinder.models import Coordinate, PlaceCandidate
from wayfinder.services.cache import ResponseCache, query_key

logger = logging.getLogger(__name__)

# Nominatim "type" values that are already a usable classification
_TYPED_AMENITIES = ("restaurant", "cafe")


def classify_place(item: Dict[str, Any]) -> str:
    """Classification tag for a Nominatim record.

    Explicit category first (``category``/``class`` + ``type``), then the
    extended attributes (``extratags``), then "other".
    """
    category = item.get("category") or item.get("class")
    kind = item.get("type")

    if category == "amenity" or kind in _TYPED_AMENITIES:
        return kind or "other"
    if category == "shop" or kind == "shop":
        return "shop"

    extratags = item.get("extratags") or {}
    if extratags.get("amenity"):
        return str(extratags["amenity"])
    if extratags.get("shop"):
        return "shop"
    return "other"


def _candidate_from_item(item: Dict[str, Any]) -> PlaceCandidate:
    return PlaceCandidate(
        id=str(item.get("place_id") or item.get("osm_id") or f"{item['lat']},{item['lon']}"),
        display_name=str(item.get("display_name") or item.get("name") or "Unnamed"),
        classification=classify_place(item),
        coordinate=Coordinate(lat=float(item["lat"]), lon=float(item["lon"])),
    )


class NominatimGeocoder:
    """Region-bounded Nominatim search returning :class:`PlaceCandidate` objects."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        settings: Optional[Settings] = None,
        cache: Optional[ResponseCache[List[PlaceCandidate]]] = None,
    ) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.cache = cache if cache is not None else ResponseCache(
            ttl_s=self.settings.cache_ttl_s, max_size=self.settings.cache_max_size
        )

    async def search(self, query: str, *, limit: int, details: bool = False) -> List[PlaceCandidate]:
        """Raises ``aiohttp.ClientError``/``asyncio.TimeoutError`` on transport failure."""
        cache_key = query_key("details" if details else "search", query, limit)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        settings = self.settings
        params: Dict[str, Any] = {
            "q": query,
            "format": "jsonv2",
            "limit": limit,
            "countrycodes": settings.region_country_codes,
            "viewbox": settings.region_viewbox,
            "bounded": 1,
        }
        if details:
            params["addressdetails"] = 1
            params["extratags"] = 1
        if settings.nominatim_email:
            params["email"] = settings.nominatim_email

        headers = {"User-Agent": settings.user_agent}
        timeout = aiohttp.ClientTimeout(total=settings.http_timeout_s)

        async with self.session.get(
            str(settings.nominatim_base_url), params=params, headers=headers, timeout=timeout
        ) as resp:
            resp.raise_for_status()
            data = await resp.json()

        candidates: List[PlaceCandidate] = []
        for item in data or []:
            try:
                candidates.append(_candidate_from_item(item))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.debug("Skipping malformed Nominatim item %r: %s", item, e)
        result = candidates[:limit]
        self.cache.set(cache_key, result)
        return result

    async def suggest(self, query: str) -> List[PlaceCandidate]:
        if not query.strip():
            return []
        try:
            return await self.search(query, limit=self.settings.suggestion_limit)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise SuggestionUnavailable(f"Suggestion lookup failed: {e}") from e


class ResolutionFetcher:
    """Resolves a committed query to its single best match inside the region."""

    def __init__(self, geocoder: NominatimGeocoder) -> None:
        self.geocoder = geocoder

    async def resolve(self, query: str) -> Optional[PlaceCandidate]:
        query = query.strip()
        if not query:
            return None
        try:
            results = await self.geocoder.search(query, limit=1, details=True)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning("Resolution failed for %r: %s", query, e)
            raise ResolutionUnavailable(details={"query": query}) from e
        if not results:
            logger.info("No match for %r", query)
            return None
        return results[0]
