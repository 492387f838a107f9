from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional, Protocol, Set

from wayfinder.errors import NavigatorError, OriginNotAcquired
from wayfinder.models import Coordinate, PlaceCandidate, RouteResult, TravelMode
from wayfinder.services.geolocation import GeolocationProvider
from wayfinder.services.suggestions import SuggestionFetcher
from wayfinder.trip import (
    CancelSuggestions,
    Cleared,
    Effect,
    Event,
    FetchNearby,
    FetchRoute,
    ModeChanged,
    NearbyLoaded,
    NearbyPicked,
    Notify,
    OriginAcquired,
    Phase,
    Recenter,
    Resolve,
    ResolutionFailed,
    Resolved,
    RouteFailed,
    RouteLoaded,
    ScheduleSuggestions,
    SuggestionPicked,
    SuggestionsLoaded,
    Submitted,
    TextChanged,
    TripState,
    VoiceTranscript,
    phase_of,
    reduce,
)

logger = logging.getLogger(__name__)


class Resolver(Protocol):
    async def resolve(self, query: str) -> Optional[PlaceCandidate]:
        ...


class Router(Protocol):
    async def route(self, origin: Coordinate, destination: Coordinate, mode: TravelMode) -> RouteResult:
        ...


class NearbySource(Protocol):
    async def nearby(self, center: Coordinate, radius_m: Optional[int] = None) -> List[PlaceCandidate]:
        ...


class SearchOrchestrator:
    """Runs the trip state machine against the real (or fake) fetchers.

    Every user action and every completed request goes through ``dispatch``,
    which applies :func:`wayfinder.trip.reduce` and executes the resulting
    effects. All of it happens on one event loop; the only concurrency
    discipline needed is dropping stale completions, which ``reduce`` does.
    """

    def __init__(
        self,
        *,
        geolocation: GeolocationProvider,
        suggestions: SuggestionFetcher,
        resolver: Resolver,
        router: Router,
        nearby: NearbySource,
        notify: Optional[Callable[[str, str], None]] = None,
        recenter: Optional[Callable[[Coordinate], None]] = None,
        nearby_radius_m: Optional[int] = None,
    ) -> None:
        self.geolocation = geolocation
        self.suggestions = suggestions
        self.resolver = resolver
        self.router = router
        self.nearby_source = nearby
        self.notify = notify
        self.recenter = recenter
        self.nearby_radius_m = nearby_radius_m
        self.state: Optional[TripState] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def phase(self) -> Phase:
        return phase_of(self.state)

    # --- startup ----------------------------------------------------------

    async def start(self) -> TripState:
        if self.state is None:
            origin = await self.geolocation.acquire()
            self.dispatch(OriginAcquired(origin))
            logger.info("Origin acquired at %s", origin.as_lonlat())
        return self.state

    # --- user actions -----------------------------------------------------

    def type_text(self, text: str) -> None:
        self._user(TextChanged(text))

    def submit(self, text: Optional[str] = None, *, enter: bool = False) -> None:
        self._user(Submitted(text=text, enter=enter))

    def voice_transcript(self, text: str) -> None:
        self._user(VoiceTranscript(text))

    def pick_suggestion(self, candidate: PlaceCandidate) -> None:
        self._user(SuggestionPicked(candidate))

    def pick_nearby(self, place: PlaceCandidate) -> None:
        self._user(NearbyPicked(place))

    def change_mode(self, mode: TravelMode) -> None:
        self._user(ModeChanged(mode))

    def clear(self) -> None:
        self._user(Cleared())

    def _user(self, event: Event) -> None:
        if self.state is None:
            raise OriginNotAcquired()
        self.dispatch(event)

    # --- core loop --------------------------------------------------------

    def dispatch(self, event: Event) -> None:
        transition = reduce(self.state, event)
        self.state = transition.state
        for effect in transition.effects:
            self._execute(effect)

    def _execute(self, effect: Effect) -> None:
        if isinstance(effect, ScheduleSuggestions):
            self.suggestions.schedule(effect.text, self._deliver_suggestions)
        elif isinstance(effect, CancelSuggestions):
            self.suggestions.cancel()
        elif isinstance(effect, Resolve):
            self._spawn(self._resolve(effect))
        elif isinstance(effect, FetchRoute):
            self._spawn(self._route(effect))
        elif isinstance(effect, FetchNearby):
            self._spawn(self._nearby(effect))
        elif isinstance(effect, Notify):
            logger.info("Notice [%s]: %s", effect.code, effect.message)
            if self.notify is not None:
                self.notify(effect.code, effect.message)
        elif isinstance(effect, Recenter):
            if self.recenter is not None:
                self.recenter(effect.coordinate)
        else:
            raise TypeError(f"Unknown effect {effect!r}")

    def _deliver_suggestions(self, text: str, candidates: List[PlaceCandidate]) -> None:
        self.dispatch(SuggestionsLoaded(text, tuple(candidates)))

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _resolve(self, effect: Resolve) -> None:
        try:
            candidate = await self.resolver.resolve(effect.query)
        except NavigatorError as e:
            self.dispatch(ResolutionFailed(effect.ticket, e.message))
            return
        self.dispatch(Resolved(effect.ticket, candidate))

    async def _route(self, effect: FetchRoute) -> None:
        try:
            result = await self.router.route(effect.origin, effect.tag.destination, effect.mode)
        except NavigatorError as e:
            self.dispatch(RouteFailed(effect.tag, e.message, e.code))
            return
        self.dispatch(RouteLoaded(effect.tag, result))

    async def _nearby(self, effect: FetchNearby) -> None:
        places = await self.nearby_source.nearby(effect.tag.destination, self.nearby_radius_m)
        self.dispatch(NearbyLoaded(effect.tag, tuple(places)))

    async def drain(self) -> None:
        """Wait until no lookups are in flight (suggestions included)."""
        while True:
            await self.suggestions.wait()
            if not self._tasks and not self.suggestions.pending:
                return
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
