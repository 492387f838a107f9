from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from wayfinder.config import Settings, get_settings
from wayfinder.errors import NearbyUnavailable
from wayfinder.models import Coordinate, PlaceCandidate
from wayfinder.services.cache import ResponseCache, area_key

logger = logging.getLogger(__name__)

# One composite query; order is only cosmetic, Overpass returns a union.
NEARBY_FILTERS: Tuple[str, ...] = (
    '["amenity"="restaurant"]',
    '["amenity"="cafe"]',
    '["shop"]',
    '["tourism"="attraction"]',
)


def _overpass_query(lat: float, lon: float, radius_m: int) -> str:
    around = f"(around:{radius_m},{lat},{lon})"
    body = "\n".join(f"  node{tag}{around};" for tag in NEARBY_FILTERS)
    return f"""[out:json][timeout:15];
(
{body}
);
out body;
"""


def place_from_element(el: Dict[str, Any]) -> Optional[PlaceCandidate]:
    lat = el.get("lat")
    lon = el.get("lon")
    if lat is None or lon is None:
        return None
    tags = el.get("tags") or {}
    return PlaceCandidate(
        id=str(el.get("id", f"{lat},{lon}")),
        display_name=str(tags.get("name") or tags.get("name:en") or "Unnamed"),
        classification=str(tags.get("amenity") or tags.get("shop") or tags.get("tourism") or "other"),
        coordinate=Coordinate(lat=float(lat), lon=float(lon)),
    )


class NearbyFetcher:
    """Best-effort points of interest around a coordinate (Overpass)."""

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

    async def nearby(self, center: Coordinate, radius_m: Optional[int] = None) -> List[PlaceCandidate]:
        """Never raises; any failure yields an empty list."""
        if radius_m is None:
            radius_m = self.settings.nearby_radius_m
        try:
            return await self._fetch(center, radius_m)
        except NearbyUnavailable as e:
            logger.warning("Nearby lookup around %s failed: %s", center.as_lonlat(), e)
            return []

    async def _fetch(self, center: Coordinate, radius_m: int) -> List[PlaceCandidate]:
        cache_key = area_key(center.lat, center.lon, radius_m)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        settings = self.settings
        query = _overpass_query(center.lat, center.lon, radius_m)
        headers = {"User-Agent": settings.user_agent}
        timeout = aiohttp.ClientTimeout(total=settings.http_timeout_s)

        try:
            async with self.session.post(
                str(settings.overpass_base_url), data={"data": query}, headers=headers, timeout=timeout
            ) as resp:
                resp.raise_for_status()
                data = await resp.json()

            seen: set[str] = set()
            places: List[PlaceCandidate] = []
            for el in data.get("elements", []):
                place = place_from_element(el)
                if place is None or place.id in seen:
                    continue
                seen.add(place.id)
                places.append(place)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError, TypeError, AttributeError) as e:
            raise NearbyUnavailable(str(e), details={"radius_m": radius_m}) from e

        result = places[: settings.nearby_limit]
        self.cache.set(cache_key, result)
        return result
