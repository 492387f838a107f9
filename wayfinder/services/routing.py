from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from wayfinder.config import Settings, get_settings
from wayfinder.errors import ConfigurationMissing, RouteUnavailable
from wayfinder.models import Coordinate, RouteResult, TravelMode

logger = logging.getLogger(__name__)


def parse_directions(data: Dict[str, Any]) -> RouteResult:
    """Turn an ORS GeoJSON directions payload into a :class:`RouteResult`.

    The polyline comes back as [lon, lat] pairs and is flipped to (lat, lon).
    """
    try:
        feature = data["features"][0]
        raw_path = feature["geometry"]["coordinates"]
        summary = feature["properties"]["summary"]
        path = [Coordinate.from_lonlat(pair) for pair in raw_path]
        # ORS leaves the summary empty for zero-length routes
        distance_m = float(summary.get("distance", 0.0))
        duration_s = float(summary.get("duration", 0.0))
    except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
        raise RouteUnavailable(details={"reason": f"malformed payload: {e}"}) from e
    return RouteResult.from_summary(path, distance_m, duration_s)


class RouteFetcher:
    """OpenRouteService directions for one origin/destination pair."""

    def __init__(self, session: aiohttp.ClientSession, settings: Optional[Settings] = None) -> None:
        self.session = session
        self.settings = settings or get_settings()

    async def route(self, origin: Coordinate, destination: Coordinate, mode: TravelMode) -> RouteResult:
        settings = self.settings
        if not settings.ors_api_key:
            raise ConfigurationMissing(
                "OpenRouteService key not found. Add WAYFINDER_ORS_API_KEY to .env and restart."
            )

        url = f"{str(settings.ors_base_url).rstrip('/')}/{mode.profile}"
        params = {
            "api_key": settings.ors_api_key,
            "start": origin.as_lonlat(),
            "end": destination.as_lonlat(),
        }
        timeout = aiohttp.ClientTimeout(total=settings.http_timeout_s)

        try:
            async with self.session.get(url, params=params, timeout=timeout) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    logger.error("ORS error %s: %s", resp.status, text[:500])
                    raise RouteUnavailable(details={"status": resp.status})
                data = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error("Route request failed: %s", e)
            raise RouteUnavailable(details={"reason": str(e)}) from e

        result = parse_directions(data)
        logger.debug(
            "Route %s -> %s (%s): %s, %s",
            origin.as_lonlat(),
            destination.as_lonlat(),
            mode.value,
            result.distance_label,
            result.duration_label,
        )
        return result
