# services/store.py
"""
Persistence collaborator for the companion core.

`CompanionStore` is the protocol the service depends on; `SqlCompanionStore`
implements it on async SQLAlchemy. Missing records are a normal state and
come back as None so callers can default-initialise.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from db.session import session_scope
from models.base import utcnow
from models.conversation import Conversation
from models.event import Event
from models.message import Message
from models.persona_state import PersonaState
from models.user import User
from services.errors import InsufficientCreditsError, InvalidInputError, NotFoundError

logger = logging.getLogger(__name__)


@dataclass
class UserRecord:
    id: str
    name: str | None
    credits: int
    total_messages: int = 0
    last_active_at: datetime | None = None
    created_at: datetime | None = None


@dataclass
class SessionRecord:
    id: str
    user_id: str
    title: str | None = None
    message_count: int = 0
    created_at: datetime | None = None


@dataclass
class MessageRecord:
    role: str
    content: str
    metadata: dict | None = None
    created_at: datetime | None = None

    def to_prompt(self) -> dict:
        return {"role": self.role, "content": self.content}


class CompanionStore(Protocol):
    async def get_user(self, user_id: str) -> UserRecord | None: ...

    async def create_user(
        self,
        user_id: str | None,
        name: str | None,
        email: str | None,
        initial_credits: int,
    ) -> UserRecord: ...

    async def create_session(self, user_id: str, title: str | None = None) -> SessionRecord: ...

    async def get_session(self, user_id: str, session_id: str) -> SessionRecord | None: ...

    async def get_credits(self, user_id: str) -> int | None: ...

    async def load_traits(self, user_id: str) -> dict | None: ...

    async def save_traits(self, user_id: str, traits: dict) -> None: ...

    async def load_relationship(self, user_id: str) -> dict | None: ...

    async def save_relationship(self, user_id: str, relationship: dict) -> None: ...

    async def load_memory(self, user_id: str, session_id: str | None = None) -> dict | None: ...

    async def save_memory(self, user_id: str, memory: dict) -> None: ...

    async def save_state(self, user_id: str, traits: dict, relationship: dict, memory: dict) -> int: ...

    async def append_message(
        self,
        user_id: str,
        session_id: str,
        role: str,
        content: str,
        metadata: dict | None = None,
    ) -> None: ...

    async def load_recent_messages(self, user_id: str, session_id: str, limit: int) -> list[MessageRecord]: ...

    async def debit_credits(self, user_id: str, amount: int) -> int: ...

    async def record_analytics_event(
        self,
        user_id: str | None,
        event_type: str,
        payload: dict | None = None,
        level: str = "info",
        source: str | None = None,
        message: str | None = None,
    ) -> None: ...


def _uuid(value: str | uuid.UUID | None) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def _user_record(user: User) -> UserRecord:
    return UserRecord(
        id=str(user.id),
        name=user.name,
        credits=user.credits,
        total_messages=user.total_messages,
        last_active_at=user.last_active_at,
        created_at=user.created_at,
    )


def _session_record(conv: Conversation) -> SessionRecord:
    return SessionRecord(
        id=str(conv.id),
        user_id=str(conv.user_id),
        title=conv.title,
        message_count=conv.message_count,
        created_at=conv.created_at,
    )


class SqlCompanionStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._factory = session_factory

    def _session(self):
        return session_scope(self._factory)

    # ── users & sessions ──

    async def get_user(self, user_id: str) -> UserRecord | None:
        uid = _uuid(user_id)
        if uid is None:
            return None
        async with self._session() as db:
            user = await db.get(User, uid)
            return _user_record(user) if user else None

    async def create_user(
        self,
        user_id: str | None,
        name: str | None,
        email: str | None,
        initial_credits: int,
    ) -> UserRecord:
        uid = _uuid(user_id) if user_id else uuid.uuid4()
        if uid is None:
            raise InvalidInputError(f"Invalid user id: {user_id}")
        async with self._session() as db:
            user = User(id=uid, name=name, email=email, credits=initial_credits, total_messages=0)
            db.add(user)
            await db.flush()
            return _user_record(user)

    async def create_session(self, user_id: str, title: str | None = None) -> SessionRecord:
        uid = _uuid(user_id)
        async with self._session() as db:
            if uid is None or await db.get(User, uid) is None:
                raise NotFoundError("user", str(user_id))
            conv = Conversation(user_id=uid, title=title, message_count=0)
            db.add(conv)
            await db.flush()
            return _session_record(conv)

    async def get_session(self, user_id: str, session_id: str) -> SessionRecord | None:
        uid, sid = _uuid(user_id), _uuid(session_id)
        if uid is None or sid is None:
            return None
        async with self._session() as db:
            conv = await db.get(Conversation, sid)
            if conv is None or conv.user_id != uid:
                return None
            return _session_record(conv)

    async def get_credits(self, user_id: str) -> int | None:
        uid = _uuid(user_id)
        if uid is None:
            return None
        async with self._session() as db:
            result = await db.execute(select(User.credits).where(User.id == uid))
            return result.scalar_one_or_none()

    # ── persona state ──

    async def _persona(self, db: AsyncSession, uid: uuid.UUID) -> PersonaState | None:
        result = await db.execute(select(PersonaState).where(PersonaState.user_id == uid))
        return result.scalar_one_or_none()

    async def _load_column(self, user_id: str, column: str) -> dict | None:
        uid = _uuid(user_id)
        if uid is None:
            return None
        async with self._session() as db:
            state = await self._persona(db, uid)
            return getattr(state, column) if state else None

    async def _save_columns(self, user_id: str, **values: dict) -> int:
        uid = _uuid(user_id)
        if uid is None:
            raise NotFoundError("user", str(user_id))
        async with self._session() as db:
            state = await self._persona(db, uid)
            if state is None:
                state = PersonaState(user_id=uid, version=0)
                db.add(state)
            for column, value in values.items():
                setattr(state, column, value)
            state.version = (state.version or 0) + 1
            await db.flush()
            return state.version

    async def load_traits(self, user_id: str) -> dict | None:
        return await self._load_column(user_id, "traits")

    async def save_traits(self, user_id: str, traits: dict) -> None:
        await self._save_columns(user_id, traits=traits)

    async def load_relationship(self, user_id: str) -> dict | None:
        return await self._load_column(user_id, "relationship_")

    async def save_relationship(self, user_id: str, relationship: dict) -> None:
        await self._save_columns(user_id, relationship_=relationship)

    async def load_memory(self, user_id: str, session_id: str | None = None) -> dict | None:
        # Memory is kept per user so it follows them across sessions.
        return await self._load_column(user_id, "memory")

    async def save_memory(self, user_id: str, memory: dict) -> None:
        await self._save_columns(user_id, memory=memory)

    async def save_state(self, user_id: str, traits: dict, relationship: dict, memory: dict) -> int:
        """Write all three blobs in one transaction. Returns the new version."""
        version = await self._save_columns(user_id, traits=traits, relationship_=relationship, memory=memory)
        logger.debug("Persona state saved for %s (v%d)", user_id, version)
        return version

    # ── messages ──

    async def append_message(
        self,
        user_id: str,
        session_id: str,
        role: str,
        content: str,
        metadata: dict | None = None,
    ) -> None:
        uid, sid = _uuid(user_id), _uuid(session_id)
        if uid is None or sid is None:
            raise NotFoundError("session", str(session_id))
        now = utcnow()
        async with self._session() as db:
            db.add(Message(conversation_id=sid, user_id=uid, role=role, content=content, metadata_=metadata))
            await db.execute(
                update(Conversation)
                .where(Conversation.id == sid)
                .values(message_count=Conversation.message_count + 1, last_message_at=now)
            )
            if role == "user":
                await db.execute(
                    update(User)
                    .where(User.id == uid)
                    .values(total_messages=User.total_messages + 1, last_active_at=now)
                )

    async def load_recent_messages(self, user_id: str, session_id: str, limit: int) -> list[MessageRecord]:
        uid, sid = _uuid(user_id), _uuid(session_id)
        if uid is None or sid is None:
            return []
        async with self._session() as db:
            result = await db.execute(
                select(Message)
                .where(Message.conversation_id == sid, Message.user_id == uid)
                .order_by(Message.created_at.desc())
                .limit(limit)
            )
            rows = list(result.scalars().all())
        rows.reverse()
        return [MessageRecord(r.role, r.content, r.metadata_, r.created_at) for r in rows]

    # ── credits ──

    async def debit_credits(self, user_id: str, amount: int) -> int:
        """Atomic conditional debit. Returns the remaining balance."""
        uid = _uuid(user_id)
        if uid is None:
            raise NotFoundError("user", str(user_id))
        async with self._session() as db:
            result = await db.execute(
                update(User)
                .where(User.id == uid, User.credits >= amount)
                .values(credits=User.credits - amount)
            )
            remaining = (await db.execute(select(User.credits).where(User.id == uid))).scalar_one_or_none()
            if remaining is None:
                raise NotFoundError("user", str(user_id))
            if result.rowcount == 0:
                raise InsufficientCreditsError(str(user_id), required=amount, available=remaining)
            return remaining

    # ── analytics ──

    async def record_analytics_event(
        self,
        user_id: str | None,
        event_type: str,
        payload: dict | None = None,
        level: str = "info",
        source: str | None = None,
        message: str | None = None,
    ) -> None:
        async with self._session() as db:
            db.add(Event(
                user_id=_uuid(user_id) if user_id else None,
                event_type=event_type,
                level=level,
                source=source,
                message=message,
                metadata_=payload,
            ))
