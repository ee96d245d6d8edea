# tests/test_store.py
"""
SqlCompanionStore against a throwaway sqlite database.
"""
from __future__ import annotations

import uuid

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from db.engine import build_engine
from db.session import build_session_factory
from models import Base, Event
from services.errors import InsufficientCreditsError, InvalidInputError, NotFoundError
from services.store import SqlCompanionStore


@pytest_asyncio.fixture
async def factory(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'aria.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def sql_store(factory) -> SqlCompanionStore:
    return SqlCompanionStore(factory)


@pytest.mark.asyncio
async def test_create_and_get_user(sql_store):
    user = await sql_store.create_user(None, "Sam", "sam@example.com", 100)
    fetched = await sql_store.get_user(user.id)

    assert fetched.name == "Sam"
    assert fetched.credits == 100
    assert await sql_store.get_credits(user.id) == 100


@pytest.mark.asyncio
async def test_missing_records_are_none(sql_store):
    assert await sql_store.get_user(str(uuid.uuid4())) is None
    assert await sql_store.get_user("not-a-uuid") is None
    assert await sql_store.load_traits(str(uuid.uuid4())) is None


@pytest.mark.asyncio
async def test_create_user_rejects_bad_id(sql_store):
    with pytest.raises(InvalidInputError):
        await sql_store.create_user("not-a-uuid", "Sam", None, 100)


@pytest.mark.asyncio
async def test_sessions_are_scoped_to_their_user(sql_store):
    owner = await sql_store.create_user(None, "A", None, 10)
    other = await sql_store.create_user(None, "B", None, 10)
    session = await sql_store.create_session(owner.id, "chat")

    assert (await sql_store.get_session(owner.id, session.id)).title == "chat"
    assert await sql_store.get_session(other.id, session.id) is None

    with pytest.raises(NotFoundError):
        await sql_store.create_session(str(uuid.uuid4()))


@pytest.mark.asyncio
async def test_save_state_bumps_version(sql_store):
    user = await sql_store.create_user(None, "Sam", None, 10)
    assert await sql_store.save_state(user.id, {"traits": {}}, {"stage": "new"}, {"themes": []}) == 1
    assert await sql_store.save_state(user.id, {"traits": {"humor": 0.7}}, {"stage": "comfortable"}, {"themes": ["work"]}) == 2

    assert await sql_store.load_traits(user.id) == {"traits": {"humor": 0.7}}
    assert (await sql_store.load_relationship(user.id))["stage"] == "comfortable"
    assert (await sql_store.load_memory(user.id))["themes"] == ["work"]

    await sql_store.save_memory(user.id, {"themes": ["family"]})
    assert (await sql_store.load_memory(user.id))["themes"] == ["family"]


@pytest.mark.asyncio
async def test_messages_and_counters(sql_store):
    user = await sql_store.create_user(None, "Sam", None, 10)
    session = await sql_store.create_session(user.id)

    await sql_store.append_message(user.id, session.id, "user", "hi")
    await sql_store.append_message(user.id, session.id, "assistant", "hey you", {"source": "model"})
    await sql_store.append_message(user.id, session.id, "user", "how are you")

    recent = await sql_store.load_recent_messages(user.id, session.id, 2)
    assert [m.content for m in recent] == ["hey you", "how are you"]
    assert recent[0].metadata == {"source": "model"}

    assert (await sql_store.get_session(user.id, session.id)).message_count == 3
    refreshed = await sql_store.get_user(user.id)
    assert refreshed.total_messages == 2
    assert refreshed.last_active_at is not None


@pytest.mark.asyncio
async def test_debit_credits(sql_store):
    user = await sql_store.create_user(None, "Sam", None, 1)

    assert await sql_store.debit_credits(user.id, 1) == 0
    with pytest.raises(InsufficientCreditsError) as info:
        await sql_store.debit_credits(user.id, 1)
    assert info.value.available == 0
    assert await sql_store.get_credits(user.id) == 0

    with pytest.raises(NotFoundError):
        await sql_store.debit_credits(str(uuid.uuid4()), 1)


@pytest.mark.asyncio
async def test_record_analytics_event(sql_store, factory):
    user = await sql_store.create_user(None, "Sam", None, 1)
    await sql_store.record_analytics_event(user.id, "message_sent", {"bursts": 2}, source="test")
    await sql_store.record_analytics_event(None, "system_check", level="debug")

    async with factory() as db:
        count = (await db.execute(select(func.count()).select_from(Event))).scalar_one()
        event = (await db.execute(select(Event).where(Event.event_type == "message_sent"))).scalar_one()
    assert count == 2
    assert event.metadata_ == {"bursts": 2}
    assert event.source == "test"
