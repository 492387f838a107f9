from __future__ import annotations

import asyncio
import contextlib
from collections import deque
from typing import Any, Deque, Dict, List, Optional

import aiohttp

from wayfinder.config import Settings, get_settings
from wayfinder.models import Coordinate, Notice
from wayfinder.services.geocoding import NominatimGeocoder, ResolutionFetcher
from wayfinder.services.geolocation import GeolocationProvider, ReportedLocation
from wayfinder.services.nearby import NearbyFetcher
from wayfinder.services.orchestrator import SearchOrchestrator
from wayfinder.services.routing import RouteFetcher
from wayfinder.services.speech import ReportedTranscript, UtteranceQueue, VoiceControl
from wayfinder.services.suggestions import SuggestionFetcher


class NavigationSession:
    """Everything one browser tab talks to: orchestrator, platform bridges, notices."""

    def __init__(self, http: aiohttp.ClientSession, settings: Optional[Settings] = None) -> None:
        self.settings = settings = settings or get_settings()
        self._notices: Deque[Notice] = deque(maxlen=50)
        self.recenter: Optional[Dict[str, Any]] = None
        self._listen_task: Optional[asyncio.Task] = None
        self._start_task: Optional[asyncio.Task] = None

        self.location = ReportedLocation()
        geocoder = NominatimGeocoder(http, settings)
        self.orchestrator = SearchOrchestrator(
            geolocation=GeolocationProvider(
                self.location,
                fallback=Coordinate(lat=settings.fallback_lat, lon=settings.fallback_lon),
                timeout_s=settings.geolocation_timeout_s,
                notify=self.notice,
            ),
            suggestions=SuggestionFetcher(
                geocoder, debounce_s=settings.suggestion_debounce_s, limit=settings.suggestion_limit
            ),
            resolver=ResolutionFetcher(geocoder),
            router=RouteFetcher(http, settings),
            nearby=NearbyFetcher(http, settings),
            notify=self.notice,
            recenter=self._recenter,
            nearby_radius_m=settings.nearby_radius_m,
        )

        self.transcripts = ReportedTranscript()
        self.utterances = UtteranceQueue()
        self.voice = VoiceControl(
            self.transcripts,
            self.utterances,
            on_transcript=self._on_transcript,
            notify=self.notice,
            language=settings.speech_language,
        )

    @property
    def started(self) -> bool:
        return self._start_task is not None

    def ensure_started(self) -> None:
        """Begin origin acquisition on the first client contact."""
        if self._start_task is None:
            self._start_task = asyncio.get_running_loop().create_task(self.orchestrator.start())

    async def close(self) -> None:
        for task in (self._start_task, self._listen_task):
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

    def start_listening(self) -> None:
        if self._listen_task is None or self._listen_task.done():
            self._listen_task = asyncio.get_running_loop().create_task(self.voice.listen())

    def notice(self, code: str, message: str) -> None:
        self._notices.append(Notice(code=code, message=message))

    def drain_notices(self) -> List[Notice]:
        items = list(self._notices)
        self._notices.clear()
        return items

    def _recenter(self, coordinate: Coordinate) -> None:
        revision = (self.recenter or {}).get("revision", 0) + 1
        self.recenter = {"revision": revision, "position": [coordinate.lat, coordinate.lon], "zoom": 14}

    async def _on_transcript(self, text: str) -> None:
        self.orchestrator.voice_transcript(text)
