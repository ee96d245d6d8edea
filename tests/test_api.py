# tests/test_api.py
"""
HTTP surface: routes, schema mapping and domain-error status codes.
"""
from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from api.app.dependencies import get_companion_service
from api.app.main import app
from conftest import FakeClock, FakeProvider, FakeStore, FixedRandom
from services.response_generator import ResponseGenerator
from services.session_service import CompanionService

REPLY = json.dumps({"bursts": [{"text": "hey you", "wait_ms": 500}]})
PLAN = json.dumps({"emotional_state": "warm", "response_strategy": "playful"})


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def client(fake_store, settings):
    clock = FakeClock()
    rng = FixedRandom(0.99)
    generator = ResponseGenerator(FakeProvider([PLAN, REPLY]), settings, rng=rng, clock=clock)
    service = CompanionService(fake_store, generator, settings, rng=rng, clock=clock)
    app.dependency_overrides[get_companion_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def _bootstrap(client) -> tuple[dict, str]:
    user = client.post("/v1/users", json={"name": "Sam"}).json()
    headers = {"X-User-Id": user["id"]}
    session = client.post("/v1/sessions", json={}, headers=headers).json()
    return headers, session["session_id"]


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


def test_create_user_and_session(client, settings):
    response = client.post("/v1/users", json={"name": "Sam"})
    assert response.status_code == 201
    assert response.json()["credits"] == settings.initial_credits

    headers = {"X-User-Id": response.json()["id"]}
    session = client.post("/v1/sessions", json={"title": "first chat"}, headers=headers)
    assert session.status_code == 201
    assert session.json()["greeting"]


def test_message_turn(client):
    headers, session_id = _bootstrap(client)
    response = client.post(f"/v1/sessions/{session_id}/messages", json={"text": "hey there"}, headers=headers)

    assert response.status_code == 200
    body = response.json()
    assert body["bursts"] == [{"text": "hey you", "wait_ms": 500}]
    assert body["credits_remaining"] == 99
    assert body["relationship_update"]["stage"] == "new"

    history = client.get(f"/v1/sessions/{session_id}/messages", headers=headers).json()
    assert [m["role"] for m in history] == ["user", "assistant"]


def test_missing_header_is_rejected(client):
    assert client.get("/v1/credits").status_code == 422
    assert client.get("/v1/credits", headers={"X-User-Id": "  "}).status_code == 401


def test_unknown_user_is_404(client):
    assert client.get("/v1/credits", headers={"X-User-Id": "ghost"}).status_code == 404


def test_out_of_credits_is_403(client, fake_store):
    headers, session_id = _bootstrap(client)
    fake_store.users[headers["X-User-Id"]].credits = 0
    response = client.post(f"/v1/sessions/{session_id}/messages", json={"text": "hello"}, headers=headers)
    assert response.status_code == 403


def test_blank_text_is_422(client):
    headers, session_id = _bootstrap(client)
    response = client.post(f"/v1/sessions/{session_id}/messages", json={"text": "   "}, headers=headers)
    assert response.status_code == 422


def test_ice_breakers_and_check_in(client):
    headers, session_id = _bootstrap(client)
    items = client.post(f"/v1/sessions/{session_id}/ice-breakers", json={"count": 2}, headers=headers).json()
    assert len(items) == 2
    assert all(i["id"].startswith("ice_") for i in items)

    check_in = client.post(f"/v1/sessions/{session_id}/check-in", json={"silence_seconds": 5}, headers=headers)
    assert check_in.json() == {"message": None}
