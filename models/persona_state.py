# models/persona_state.py
from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, Integer, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, JSONType, TimestampMixin, UUIDPrimaryKey


class PersonaState(Base, UUIDPrimaryKey, TimestampMixin):
    """Per-user companion state: traits, relationship progress and memory."""

    __tablename__ = "persona_states"

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), unique=True, nullable=False)

    traits: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    relationship_: Mapped[dict | None] = mapped_column("relationship", JSONType, nullable=True)
    memory: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    # Bumped on every save
    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    user = relationship("User", back_populates="persona_state")
