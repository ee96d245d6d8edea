# scripts/init_db.py
"""
Create tables and seed a development user with a default persona.
Run: python -m scripts.init_db
"""
from __future__ import annotations

import asyncio

from api.app.config import get_settings
from db.engine import get_engine
from db.session import get_session_factory
from models import Base
from services.conversation_memory import ConversationMemory
from services.relationship import RelationshipState
from services.store import SqlCompanionStore
from services.traits import TraitStore

DEV_USER_ID = "00000000-0000-4000-8000-000000000001"


async def init_db():
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print("Tables created.")

    store = SqlCompanionStore(get_session_factory())
    user = await store.get_user(DEV_USER_ID)
    if user:
        print(f"Seed user already exists: {user.id} ({user.credits} credits)")
    else:
        user = await store.create_user(DEV_USER_ID, "Dev User", "dev@companion.local", get_settings().initial_credits)
        await store.save_state(
            user.id,
            TraitStore().to_dict(),
            RelationshipState().to_dict(),
            ConversationMemory().to_dict(),
        )
        print(f"Created user: {user.id} ({user.credits} credits)")

    print("✅ Database ready.")


if __name__ == "__main__":
    asyncio.run(init_db())
