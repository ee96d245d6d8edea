# api/app/dependencies.py
from __future__ import annotations

import random
from collections.abc import AsyncGenerator
from functools import lru_cache

from fastapi import Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.app.config import get_settings
from db.session import get_db, get_session_factory
from services.openai_llm import InferenceProvider
from services.response_generator import ResponseGenerator
from services.session_service import CompanionService
from services.store import SqlCompanionStore


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_db():
        yield session


@lru_cache
def get_companion_service() -> CompanionService:
    """One service per process so the circuit breaker and per-user locks are shared."""
    settings = get_settings()
    rng = random.Random()
    generator = ResponseGenerator(InferenceProvider(settings), settings, rng=rng)
    return CompanionService(SqlCompanionStore(get_session_factory()), generator, settings, rng=rng)


async def get_current_user_id(
    x_user_id: str = Header(..., alias="X-User-Id"),
) -> str:
    """Caller identity from the X-User-Id header."""
    user_id = x_user_id.strip()
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing user id",
        )
    return user_id
