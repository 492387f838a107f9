from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional, Protocol

from wayfinder.errors import SuggestionUnavailable
from wayfinder.models import PlaceCandidate

logger = logging.getLogger(__name__)

Deliver = Callable[[str, List[PlaceCandidate]], None]


class SuggestionSource(Protocol):
    async def suggest(self, query: str) -> List[PlaceCandidate]:
        ...


class SuggestionFetcher:
    """Debounced, cancellable live suggestions.

    ``schedule`` restarts the debounce window on every call and cancels
    whatever request is still in flight. Each scheduled lookup captures the
    generation it was issued under; ``deliver`` only runs while that
    generation is still current, so a late completion is dropped.
    """

    def __init__(self, source: SuggestionSource, *, debounce_s: float = 0.35, limit: int = 5) -> None:
        self.source = source
        self.debounce_s = debounce_s
        self.limit = limit
        self._generation = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    async def suggest(self, query: str) -> List[PlaceCandidate]:
        if not query.strip():
            return []
        return (await self.source.suggest(query))[: self.limit]

    def schedule(self, query: str, deliver: Deliver) -> None:
        self.cancel()
        if not query.strip():
            deliver(query, [])
            return
        generation = self._generation
        self._task = asyncio.get_running_loop().create_task(self._run(query, generation, deliver))

    def cancel(self) -> None:
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def wait(self) -> None:
        """Wait for the current lookup (if any) to finish or be cancelled."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    async def _run(self, query: str, generation: int, deliver: Deliver) -> None:
        await asyncio.sleep(self.debounce_s)
        if generation != self._generation:
            return
        try:
            results = await self.suggest(query)
        except SuggestionUnavailable as e:
            logger.debug("Suggestions for %r unavailable: %s", query, e)
            return
        if generation != self._generation:
            logger.debug("Dropping stale suggestions for %r", query)
            return
        deliver(query, results)
