"""Trip state and its transition function.

``reduce(state, event)`` never performs I/O. It returns the next state plus a
tuple of effects that :class:`wayfinder.services.orchestrator.SearchOrchestrator`
executes. Completions of asynchronous effects come back as events carrying the
ticket they were issued with, so stale completions are recognized here.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict

from wayfinder.errors import ResolutionNotFound
from wayfinder.models import Coordinate, PlaceCandidate, RouteResult, TravelMode


class Phase(str, Enum):
    AWAITING_ORIGIN = "awaiting_origin"
    IDLE = "idle"
    HAS_DESTINATION = "has_destination"


class RouteStatus(str, Enum):
    NONE = "none"
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


class TripState(BaseModel):
    model_config = ConfigDict(frozen=True)

    origin: Coordinate
    destination: Optional[Coordinate] = None
    destination_classification: Optional[str] = None
    route: Optional[RouteResult] = None
    route_status: RouteStatus = RouteStatus.NONE
    nearby: Tuple[PlaceCandidate, ...] = ()
    travel_mode: TravelMode = TravelMode.DRIVING
    pending_query_text: str = ""
    live_suggestions: Tuple[PlaceCandidate, ...] = ()

    route_ticket: int = 0
    nearby_ticket: int = 0
    resolve_ticket: int = 0

    @property
    def phase(self) -> Phase:
        return Phase.HAS_DESTINATION if self.destination is not None else Phase.IDLE


def phase_of(state: Optional[TripState]) -> Phase:
    return Phase.AWAITING_ORIGIN if state is None else state.phase


@dataclass(frozen=True)
class RequestTag:
    """Identifies which destination (and which request) a completion belongs to."""

    destination: Coordinate
    ticket: int


# --- events -----------------------------------------------------------------


@dataclass(frozen=True)
class OriginAcquired:
    origin: Coordinate


@dataclass(frozen=True)
class TextChanged:
    text: str


@dataclass(frozen=True)
class Submitted:
    text: Optional[str] = None
    enter: bool = False


@dataclass(frozen=True)
class VoiceTranscript:
    text: str


@dataclass(frozen=True)
class SuggestionPicked:
    candidate: PlaceCandidate


@dataclass(frozen=True)
class NearbyPicked:
    place: PlaceCandidate


@dataclass(frozen=True)
class ModeChanged:
    mode: TravelMode


@dataclass(frozen=True)
class Cleared:
    pass


@dataclass(frozen=True)
class SuggestionsLoaded:
    text: str
    candidates: Tuple[PlaceCandidate, ...]


@dataclass(frozen=True)
class Resolved:
    ticket: int
    candidate: Optional[PlaceCandidate]


@dataclass(frozen=True)
class ResolutionFailed:
    ticket: int
    message: str


@dataclass(frozen=True)
class RouteLoaded:
    tag: RequestTag
    route: RouteResult


@dataclass(frozen=True)
class RouteFailed:
    tag: RequestTag
    message: str
    code: str = "route_unavailable"


@dataclass(frozen=True)
class NearbyLoaded:
    tag: RequestTag
    places: Tuple[PlaceCandidate, ...]


Event = Union[
    OriginAcquired,
    TextChanged,
    Submitted,
    VoiceTranscript,
    SuggestionPicked,
    NearbyPicked,
    ModeChanged,
    Cleared,
    SuggestionsLoaded,
    Resolved,
    ResolutionFailed,
    RouteLoaded,
    RouteFailed,
    NearbyLoaded,
]


# --- effects ----------------------------------------------------------------


@dataclass(frozen=True)
class ScheduleSuggestions:
    text: str


@dataclass(frozen=True)
class CancelSuggestions:
    pass


@dataclass(frozen=True)
class Resolve:
    query: str
    ticket: int


@dataclass(frozen=True)
class FetchRoute:
    tag: RequestTag
    origin: Coordinate
    mode: TravelMode


@dataclass(frozen=True)
class FetchNearby:
    tag: RequestTag


@dataclass(frozen=True)
class Notify:
    code: str
    message: str


@dataclass(frozen=True)
class Recenter:
    coordinate: Coordinate


Effect = Union[ScheduleSuggestions, CancelSuggestions, Resolve, FetchRoute, FetchNearby, Notify, Recenter]


@dataclass(frozen=True)
class Transition:
    state: Optional[TripState]
    effects: Tuple[Effect, ...] = ()


# --- transitions ------------------------------------------------------------


def reduce(state: Optional[TripState], event: Event) -> Transition:
    if state is None:
        if isinstance(event, OriginAcquired):
            return Transition(TripState(origin=event.origin))
        # nothing is permitted before the origin is known
        return Transition(None)

    if isinstance(event, OriginAcquired):
        return Transition(state)
    if isinstance(event, TextChanged):
        return _text_changed(state, event.text)
    if isinstance(event, Submitted):
        return _submitted(state, event)
    if isinstance(event, VoiceTranscript):
        state = state.model_copy(update={"pending_query_text": event.text})
        return _submitted(state, Submitted(text=event.text))
    if isinstance(event, SuggestionPicked):
        state = state.model_copy(update={"pending_query_text": event.candidate.display_name})
        return set_destination(state, event.candidate)
    if isinstance(event, NearbyPicked):
        return set_destination(state, event.place)
    if isinstance(event, ModeChanged):
        return _mode_changed(state, event.mode)
    if isinstance(event, Cleared):
        return clear(state)
    if isinstance(event, SuggestionsLoaded):
        return _suggestions_loaded(state, event)
    if isinstance(event, Resolved):
        return _resolved(state, event)
    if isinstance(event, ResolutionFailed):
        if event.ticket != state.resolve_ticket:
            return Transition(state)
        return Transition(state, (Notify("resolution_unavailable", event.message),))
    if isinstance(event, RouteLoaded):
        if not _is_current(state, event.tag, state.route_ticket):
            return Transition(state)
        return Transition(state.model_copy(update={"route": event.route, "route_status": RouteStatus.READY}))
    if isinstance(event, RouteFailed):
        if not _is_current(state, event.tag, state.route_ticket):
            return Transition(state)
        state = state.model_copy(update={"route": None, "route_status": RouteStatus.FAILED})
        return Transition(state, (Notify(event.code, event.message),))
    if isinstance(event, NearbyLoaded):
        if not _is_current(state, event.tag, state.nearby_ticket):
            return Transition(state)
        return Transition(state.model_copy(update={"nearby": tuple(event.places)}))

    raise TypeError(f"Unknown event {event!r}")


def _is_current(state: TripState, tag: RequestTag, ticket: int) -> bool:
    return tag.ticket == ticket and state.destination is not None and tag.destination == state.destination


def _text_changed(state: TripState, text: str) -> Transition:
    # suggestions belong to the text they were fetched for
    state = state.model_copy(update={"pending_query_text": text, "live_suggestions": ()})
    if not text.strip():
        return Transition(state, (CancelSuggestions(),))
    return Transition(state, (ScheduleSuggestions(text),))


def _suggestions_loaded(state: TripState, event: SuggestionsLoaded) -> Transition:
    if event.text != state.pending_query_text or not event.text.strip():
        return Transition(state)
    return Transition(state.model_copy(update={"live_suggestions": tuple(event.candidates)}))


def _submitted(state: TripState, event: Submitted) -> Transition:
    if event.enter and state.live_suggestions:
        first = state.live_suggestions[0]
        state = state.model_copy(update={"pending_query_text": first.display_name})
        return set_destination(state, first)

    query = (event.text if event.text is not None else state.pending_query_text).strip()
    if not query:
        return Transition(state)
    ticket = state.resolve_ticket + 1
    state = state.model_copy(update={"resolve_ticket": ticket})
    return Transition(state, (CancelSuggestions(), Resolve(query, ticket)))


def _resolved(state: TripState, event: Resolved) -> Transition:
    if event.ticket != state.resolve_ticket:
        return Transition(state)
    if event.candidate is None:
        notice = ResolutionNotFound()
        return Transition(state, (Notify(notice.code, notice.message),))
    return set_destination(state, event.candidate)


def _mode_changed(state: TripState, mode: TravelMode) -> Transition:
    state = state.model_copy(update={"travel_mode": mode})
    if state.destination is None:
        return Transition(state)
    ticket = state.route_ticket + 1
    state = state.model_copy(update={"route_ticket": ticket, "route_status": RouteStatus.PENDING})
    tag = RequestTag(destination=state.destination, ticket=ticket)
    return Transition(state, (FetchRoute(tag, state.origin, mode),))


def set_destination(state: TripState, place: PlaceCandidate) -> Transition:
    """Point the trip at ``place`` and request route + nearby for it."""
    route_ticket = state.route_ticket + 1
    nearby_ticket = state.nearby_ticket + 1
    destination = place.coordinate
    state = state.model_copy(
        update={
            "destination": destination,
            "destination_classification": place.classification or "other",
            "route": None,
            "route_status": RouteStatus.PENDING,
            "nearby": (),
            "live_suggestions": (),
            "route_ticket": route_ticket,
            "nearby_ticket": nearby_ticket,
            # an older commit must not overwrite this pick
            "resolve_ticket": state.resolve_ticket + 1,
        }
    )
    effects = (
        CancelSuggestions(),
        Recenter(destination),
        FetchRoute(RequestTag(destination, route_ticket), state.origin, state.travel_mode),
        FetchNearby(RequestTag(destination, nearby_ticket)),
    )
    return Transition(state, effects)


def clear(state: TripState) -> Transition:
    state = state.model_copy(
        update={
            "destination": None,
            "destination_classification": None,
            "route": None,
            "route_status": RouteStatus.NONE,
            "nearby": (),
            # retire anything still in flight
            "route_ticket": state.route_ticket + 1,
            "nearby_ticket": state.nearby_ticket + 1,
            "resolve_ticket": state.resolve_ticket + 1,
        }
    )
    return Transition(state)
