# tests/conftest.py
from __future__ import annotations

import random
import uuid
from datetime import datetime, timezone

import pytest

from api.app.config import Settings
from services.errors import InsufficientCreditsError, NotFoundError
from services.store import MessageRecord, SessionRecord, UserRecord

T0 = 1_700_000_000.0


class FakeClock:
    def __init__(self, now: float = T0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FixedRandom(random.Random):
    """Seeded RNG whose random() always returns the same value."""

    def __init__(self, value: float = 0.99, seed: int = 7):
        super().__init__(seed)
        self.value = value

    def random(self) -> float:
        return self.value


class FakeProvider:
    """Scripted stand-in for InferenceProvider: each call pops the next str or raises the next exception."""

    def __init__(self, script: list | None = None):
        self.script = list(script or [])
        self.calls: list[dict] = []

    async def complete(self, model, messages, temperature, max_tokens, top_p=None, on_token=None) -> str:
        self.calls.append({"model": model, "messages": messages, "temperature": temperature})
        if not self.script:
            raise RuntimeError("no scripted response")
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeStore:
    """In-memory CompanionStore with the same failure semantics as the SQL store."""

    def __init__(self):
        self.users: dict[str, UserRecord] = {}
        self.sessions: dict[str, SessionRecord] = {}
        self.states: dict[str, dict] = {}
        self.messages: dict[str, list[MessageRecord]] = {}
        self.events: list[dict] = []
        self.version = 0

    async def get_user(self, user_id):
        return self.users.get(user_id)

    async def create_user(self, user_id, name, email, initial_credits):
        uid = user_id or str(uuid.uuid4())
        user = UserRecord(id=uid, name=name, credits=initial_credits, created_at=datetime.now(timezone.utc))
        self.users[uid] = user
        return user

    async def create_session(self, user_id, title=None):
        if user_id not in self.users:
            raise NotFoundError("user", user_id)
        session = SessionRecord(id=str(uuid.uuid4()), user_id=user_id, title=title)
        self.sessions[session.id] = session
        self.messages[session.id] = []
        return session

    async def get_session(self, user_id, session_id):
        session = self.sessions.get(session_id)
        if session is None or session.user_id != user_id:
            return None
        return session

    async def get_credits(self, user_id):
        user = self.users.get(user_id)
        return user.credits if user else None

    def _state(self, user_id) -> dict:
        return self.states.setdefault(user_id, {})

    async def load_traits(self, user_id):
        return self._state(user_id).get("traits")

    async def save_traits(self, user_id, traits):
        self._state(user_id)["traits"] = traits

    async def load_relationship(self, user_id):
        return self._state(user_id).get("relationship")

    async def save_relationship(self, user_id, relationship):
        self._state(user_id)["relationship"] = relationship

    async def load_memory(self, user_id, session_id=None):
        return self._state(user_id).get("memory")

    async def save_memory(self, user_id, memory):
        self._state(user_id)["memory"] = memory

    async def save_state(self, user_id, traits, relationship, memory):
        self.states[user_id] = {"traits": traits, "relationship": relationship, "memory": memory}
        self.version += 1
        return self.version

    async def append_message(self, user_id, session_id, role, content, metadata=None):
        if session_id not in self.sessions:
            raise NotFoundError("session", session_id)
        self.messages[session_id].append(MessageRecord(role, content, metadata))
        self.sessions[session_id].message_count += 1
        if role == "user":
            self.users[user_id].total_messages += 1

    async def load_recent_messages(self, user_id, session_id, limit):
        return list(self.messages.get(session_id, []))[-limit:]

    async def debit_credits(self, user_id, amount):
        user = self.users.get(user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        if user.credits < amount:
            raise InsufficientCreditsError(user_id, required=amount, available=user.credits)
        user.credits -= amount
        return user.credits

    async def record_analytics_event(self, user_id, event_type, payload=None, level="info", source=None, message=None):
        self.events.append({
            "user_id": user_id,
            "event_type": event_type,
            "payload": payload,
            "level": level,
            "source": source,
            "message": message,
        })


@pytest.fixture
def settings() -> Settings:
    return Settings(database_url="sqlite+aiosqlite://", inference_api_key="test-key")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()
