from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Protocol

from wayfinder.errors import LocationUnavailable
from wayfinder.models import Coordinate

logger = logging.getLogger(__name__)

NoticeSink = Callable[[str, str], None]

FALLBACK_NOTICE = "Could not get your location, using default point."
UNSUPPORTED_NOTICE = "Geolocation not supported, using default point."


class LocationSource(Protocol):
    async def locate(self) -> Coordinate:
        """Return the device position or raise :class:`LocationUnavailable`."""
        ...


class ReportedLocation:
    """Location reported by the presentation layer (the browser's geolocation API)."""

    def __init__(self, *, supported: bool = True) -> None:
        self.supported = supported
        self._future: Optional[asyncio.Future] = None

    def _pending(self) -> asyncio.Future:
        if self._future is None:
            self._future = asyncio.get_running_loop().create_future()
        return self._future

    def report(self, coordinate: Coordinate) -> None:
        future = self._pending()
        if not future.done():
            future.set_result(coordinate)

    def fail(self, reason: str) -> None:
        future = self._pending()
        if not future.done():
            future.set_exception(LocationUnavailable(reason))

    async def locate(self) -> Coordinate:
        if not self.supported:
            raise LocationUnavailable("Geolocation not supported", details={"unsupported": True})
        return await self._pending()


class GeolocationProvider:
    """One-shot origin acquisition with timeout and fallback; cached afterwards."""

    def __init__(
        self,
        source: LocationSource,
        *,
        fallback: Coordinate,
        timeout_s: float = 10.0,
        notify: Optional[NoticeSink] = None,
    ) -> None:
        self.source = source
        self.fallback = fallback
        self.timeout_s = timeout_s
        self.notify = notify
        self._origin: Optional[Coordinate] = None
        self._lock = asyncio.Lock()

    @property
    def origin(self) -> Optional[Coordinate]:
        return self._origin

    async def acquire(self) -> Coordinate:
        async with self._lock:
            if self._origin is None:
                self._origin = await self._acquire_once()
            return self._origin

    async def _acquire_once(self) -> Coordinate:
        try:
            return await asyncio.wait_for(self.source.locate(), timeout=self.timeout_s)
        except LocationUnavailable as e:
            logger.warning("Geolocation failed: %s", e)
            self._notice(UNSUPPORTED_NOTICE if e.details.get("unsupported") else FALLBACK_NOTICE)
        except asyncio.TimeoutError:
            logger.warning("Geolocation timed out after %.1fs", self.timeout_s)
            self._notice(FALLBACK_NOTICE)
        return self.fallback

    def _notice(self, message: str) -> None:
        if self.notify is not None:
            self.notify(LocationUnavailable.code, message)
