from __future__ import annotations

import time

import pytest
from fastapi.testclient import TestClient

from wayfinder.main import app
from wayfinder.models import Coordinate


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def test_root_and_health(client):
    assert client.get("/health").json() == {"ok": True}
    body = client.get("/").json()
    assert body["ok"] is True
    assert body["service"] == "Wayfinder"


def test_trip_before_origin(client):
    body = client.get("/api/trip").json()
    assert body["phase"] == "awaiting_origin"
    assert body["map"] == {"ready": False}


def test_input_before_origin_is_conflict(client):
    assert client.post("/api/input", json={"text": "cafe"}).status_code == 409
    assert client.post("/api/clear").status_code == 409
    assert client.post("/api/suggestions/0").status_code == 409


def test_unknown_travel_mode_is_rejected(client):
    assert client.post("/api/mode", json={"mode": "teleport"}).status_code == 422


def test_invalid_location_report_is_rejected(client):
    assert client.post("/api/location", json={"lat": 123.0, "lon": 38.7}).status_code == 422


def test_notices_start_empty(client):
    assert client.get("/api/notices").json() == []
    assert client.get("/api/voice/utterances").json() == {"utterances": []}


def test_origin_is_not_requested_until_a_client_connects(client):
    client.get("/health")
    assert client.app.state.navigation.started is False


def test_reported_location_becomes_the_origin(client):
    assert client.post("/api/location", json={"lat": 9.01, "lon": 38.76}).status_code == 200
    assert client.app.state.navigation.started is True

    body = {}
    for _ in range(50):
        body = client.get("/api/trip").json()
        if body["phase"] != "awaiting_origin":
            break
        time.sleep(0.01)

    assert body["phase"] == "idle"
    assert client.app.state.navigation.orchestrator.state.origin == Coordinate(lat=9.01, lon=38.76)
    assert client.get("/api/notices").json() == []
