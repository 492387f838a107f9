from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Dict, List

import aiohttp
from fastapi import FastAPI, HTTPException, Request

from wayfinder.config import get_settings
from wayfinder.errors import OriginNotAcquired
from wayfinder.log import configure_logging
from wayfinder.markers import map_view
from wayfinder.models import Coordinate, LocationReport, ModeRequest, Notice, SubmitRequest, TextInput, TranscriptReport
from wayfinder.session import NavigationSession

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    async with aiohttp.ClientSession() as http:
        navigation = NavigationSession(http, settings)
        app.state.navigation = navigation
        try:
            yield
        finally:
            await navigation.close()


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="Navigation assistant: region-bounded search, routing and nearby places on OpenStreetMap data.",
    lifespan=lifespan,
)


def _navigation(request: Request) -> NavigationSession:
    return request.app.state.navigation


def _act(action) -> None:
    try:
        action()
    except OriginNotAcquired as e:
        raise HTTPException(status_code=409, detail=e.message)


def _trip_payload(navigation: NavigationSession) -> Dict[str, Any]:
    orchestrator = navigation.orchestrator
    state = orchestrator.state
    payload: Dict[str, Any] = {"phase": orchestrator.phase.value, "map": map_view(state, navigation.recenter)}
    if state is None:
        return payload
    payload.update(
        {
            "travel_mode": state.travel_mode.value,
            "query": state.pending_query_text,
            "suggestions": [s.model_dump() for s in state.live_suggestions],
            "destination_classification": state.destination_classification,
            "route_status": state.route_status.value,
            "distance": state.route.distance_label if state.route else None,
            "duration": state.route.duration_label if state.route else None,
        }
    )
    return payload


@app.get("/", tags=["Root"])
async def root():
    return {"ok": True, "service": settings.app_name, "version": settings.version}


@app.get("/health", tags=["Healthcheck"])
async def health():
    return {"ok": True}


@app.post("/api/location", tags=["Platform"])
async def report_location(report: LocationReport, request: Request):
    navigation = _navigation(request)
    navigation.ensure_started()
    if report.lat is not None and report.lon is not None:
        navigation.location.report(Coordinate(lat=report.lat, lon=report.lon))
    else:
        navigation.location.fail(report.error or "Position unavailable")
    return {"ok": True}


@app.get("/api/trip", tags=["Trip"])
async def trip(request: Request):
    navigation = _navigation(request)
    navigation.ensure_started()
    return _trip_payload(navigation)


@app.post("/api/input", tags=["Trip"])
async def input_changed(body: TextInput, request: Request):
    navigation = _navigation(request)
    _act(lambda: navigation.orchestrator.type_text(body.text))
    return _trip_payload(navigation)


@app.post("/api/submit", tags=["Trip"])
async def submit(body: SubmitRequest, request: Request):
    navigation = _navigation(request)
    _act(lambda: navigation.orchestrator.submit(body.text, enter=body.enter))
    return _trip_payload(navigation)


@app.post("/api/suggestions/{index}", tags=["Trip"])
async def pick_suggestion(index: int, request: Request):
    navigation = _navigation(request)
    state = navigation.orchestrator.state
    if state is None:
        raise HTTPException(status_code=409, detail=OriginNotAcquired().message)
    if not 0 <= index < len(state.live_suggestions):
        raise HTTPException(status_code=404, detail="No such suggestion")
    navigation.orchestrator.pick_suggestion(state.live_suggestions[index])
    return _trip_payload(navigation)


@app.post("/api/nearby/{place_id}", tags=["Trip"])
async def pick_nearby(place_id: str, request: Request):
    navigation = _navigation(request)
    state = navigation.orchestrator.state
    if state is None:
        raise HTTPException(status_code=409, detail=OriginNotAcquired().message)
    place = next((p for p in state.nearby if p.id == place_id), None)
    if place is None:
        raise HTTPException(status_code=404, detail="No such nearby place")
    navigation.orchestrator.pick_nearby(place)
    return _trip_payload(navigation)


@app.post("/api/mode", tags=["Trip"])
async def change_mode(body: ModeRequest, request: Request):
    navigation = _navigation(request)
    _act(lambda: navigation.orchestrator.change_mode(body.mode))
    return _trip_payload(navigation)


@app.post("/api/clear", tags=["Trip"])
async def clear(request: Request):
    navigation = _navigation(request)
    _act(navigation.orchestrator.clear)
    return _trip_payload(navigation)


@app.post("/api/voice/listen", tags=["Voice"])
async def voice_listen(request: Request):
    navigation = _navigation(request)
    if navigation.orchestrator.state is None:
        raise HTTPException(status_code=409, detail=OriginNotAcquired().message)
    navigation.start_listening()
    return {"listening": True}


@app.post("/api/voice/transcript", tags=["Voice"])
async def voice_transcript(report: TranscriptReport, request: Request):
    navigation = _navigation(request)
    if report.text:
        navigation.transcripts.report(report.text)
    else:
        navigation.transcripts.fail(report.error or "Speech recognition error")
    return {"ok": True}


@app.post("/api/voice/announce", tags=["Voice"])
async def voice_announce(request: Request):
    navigation = _navigation(request)
    state = navigation.orchestrator.state
    if state is None:
        raise HTTPException(status_code=409, detail=OriginNotAcquired().message)
    text = navigation.voice.announce_route(state.route, state.travel_mode)
    return {"text": text}


@app.get("/api/voice/utterances", tags=["Voice"])
async def voice_utterances(request: Request):
    return {"utterances": _navigation(request).utterances.drain()}


@app.get("/api/notices", response_model=List[Notice], tags=["Trip"])
async def notices(request: Request):
    return _navigation(request).drain_notices()
