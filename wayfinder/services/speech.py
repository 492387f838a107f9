from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, Deque, List, Optional, Protocol

from wayfinder.errors import SpeechCaptureFailed
from wayfinder.models import RouteResult, TravelMode

logger = logging.getLogger(__name__)

UNSUPPORTED_MESSAGE = "Voice recognition not supported in your browser."


class Listener(Protocol):
    async def listen(self) -> str:
        """Capture one utterance; raise :class:`SpeechCaptureFailed` on error."""
        ...


class Speaker(Protocol):
    def speak(self, text: str, language: str) -> None:
        ...


def route_announcement(route: Optional[RouteResult], mode: TravelMode) -> str:
    if route is None:
        return "No route available yet."
    return (
        f"The distance is {route.distance_km:.1f} kilometers and it will take "
        f"about {route.duration_min} minutes by {mode.value}."
    )


class ReportedTranscript:
    """Listener fed by the presentation layer's speech recognition."""

    def __init__(self, *, supported: bool = True) -> None:
        self.supported = supported
        self._future: Optional[asyncio.Future] = None

    def _pending(self) -> asyncio.Future:
        # a transcript reported before listen() is kept for the next listen()
        if self._future is None:
            self._future = asyncio.get_running_loop().create_future()
        return self._future

    def report(self, text: str) -> None:
        future = self._pending()
        if not future.done():
            future.set_result(text)

    def fail(self, reason: str) -> None:
        # a failure only belongs to a capture that is in progress
        future = self._future
        if future is None:
            logger.info("Ignoring speech failure outside a capture: %s", reason)
            return
        if not future.done():
            future.set_exception(SpeechCaptureFailed(reason))

    async def listen(self) -> str:
        if not self.supported:
            raise SpeechCaptureFailed(UNSUPPORTED_MESSAGE)
        try:
            return await self._pending()
        finally:
            self._future = None


class UtteranceQueue:
    """Speaker whose utterances the browser drains and plays with speechSynthesis."""

    def __init__(self, maxlen: int = 20) -> None:
        self._queue: Deque[dict] = deque(maxlen=maxlen)

    def speak(self, text: str, language: str) -> None:
        self._queue.append({"text": text, "lang": language})

    def drain(self) -> List[dict]:
        items = list(self._queue)
        self._queue.clear()
        return items


class VoiceControl:
    """Microphone and "speak route" buttons.

    ``on_transcript`` is the orchestrator's voice entry point; ``notify`` gets
    (code, message) notices for capture failures.
    """

    def __init__(
        self,
        listener: Listener,
        speaker: Speaker,
        *,
        on_transcript: Callable[[str], Awaitable[None]],
        notify: Callable[[str, str], None],
        language: str = "en-US",
    ) -> None:
        self.listener = listener
        self.speaker = speaker
        self.on_transcript = on_transcript
        self.notify = notify
        self.language = language
        self.listening = False

    async def listen(self) -> Optional[str]:
        if self.listening:
            return None
        self.listening = True
        try:
            transcript = await self.listener.listen()
        except SpeechCaptureFailed as e:
            logger.warning("Speech capture failed: %s", e)
            self.notify(SpeechCaptureFailed.code, e.message)
            return None
        finally:
            self.listening = False

        transcript = transcript.strip()
        logger.info("Heard: %s", transcript)
        if transcript:
            await self.on_transcript(transcript)
        return transcript

    def announce_route(self, route: Optional[RouteResult], mode: TravelMode) -> str:
        text = route_announcement(route, mode)
        self.speaker.speak(text, self.language)
        return text
