# api/app/schemas/chat.py
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    email: str | None = Field(default=None, max_length=255)


class UserResponse(BaseModel):
    id: str
    name: str | None = None
    credits: int
    total_messages: int = 0
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class SessionCreate(BaseModel):
    title: str | None = Field(default=None, max_length=512)


class SessionResponse(BaseModel):
    session_id: str
    greeting: str


class MessageCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=1000)


class BurstOut(BaseModel):
    text: str
    wait_ms: int

    class Config:
        from_attributes = True


class EmotionOut(BaseModel):
    primary_emotion: str
    intensity: float
    secondary_emotions: list[str] = []
    support_needed: str
    response_tone: str
    confidence: float

    class Config:
        from_attributes = True


class RelationshipUpdateOut(BaseModel):
    stage: str
    previous_stage: str
    stage_changed: bool
    milestone: dict | None = None


class TurnResponse(BaseModel):
    bursts: list[BurstOut]
    fallback_probe: str | None = None
    credits_remaining: int
    emotional_context: EmotionOut
    relationship_update: RelationshipUpdateOut


class HistoryMessage(BaseModel):
    role: str
    content: str
    metadata: dict | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class IceBreakerRequest(BaseModel):
    count: int = Field(default=3, ge=1, le=10)
    include_types: list[str] | None = None
    exclude_types: list[str] | None = None


class IceBreakerOut(BaseModel):
    id: str
    text: str
    type: str
    mood: str
    priority: int

    class Config:
        from_attributes = True


class CheckInRequest(BaseModel):
    silence_seconds: float = Field(..., ge=0)


class CheckInResponse(BaseModel):
    message: str | None = None


class CreditsResponse(BaseModel):
    credits: int
