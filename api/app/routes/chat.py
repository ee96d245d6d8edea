# api/app/routes/chat.py
"""
Chat endpoints: user bootstrap, sessions, message turns, history,
ice breakers, silence check-ins and credits.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status

from api.app.dependencies import get_companion_service, get_current_user_id
from api.app.schemas.chat import (
    BurstOut,
    CheckInRequest,
    CheckInResponse,
    CreditsResponse,
    EmotionOut,
    HistoryMessage,
    IceBreakerOut,
    IceBreakerRequest,
    MessageCreate,
    RelationshipUpdateOut,
    SessionCreate,
    SessionResponse,
    TurnResponse,
    UserCreate,
    UserResponse,
)
from services.errors import CompanionError, InsufficientCreditsError, InvalidInputError, NotFoundError
from services.session_service import CompanionService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


def _http_error(exc: CompanionError) -> HTTPException:
    if isinstance(exc, InsufficientCreditsError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, InvalidInputError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    service: CompanionService = Depends(get_companion_service),
):
    try:
        user = await service.initialize_user(x_user_id, name=body.name, email=body.email)
    except CompanionError as exc:
        raise _http_error(exc) from exc
    return UserResponse.model_validate(user)


@router.post("/sessions", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    body: SessionCreate,
    user_id: str = Depends(get_current_user_id),
    service: CompanionService = Depends(get_companion_service),
):
    try:
        session_id = await service.initialize_session(user_id, title=body.title)
        greeting = await service.greeting(user_id)
    except CompanionError as exc:
        raise _http_error(exc) from exc
    return SessionResponse(session_id=session_id, greeting=greeting)


@router.post("/sessions/{session_id}/messages", response_model=TurnResponse)
async def send_message(
    session_id: str,
    body: MessageCreate,
    user_id: str = Depends(get_current_user_id),
    service: CompanionService = Depends(get_companion_service),
):
    try:
        result = await service.handle_user_message(user_id, session_id, body.text)
    except CompanionError as exc:
        raise _http_error(exc) from exc

    return TurnResponse(
        bursts=[BurstOut(text=b.text, wait_ms=b.wait_ms) for b in result.bursts],
        fallback_probe=result.fallback_probe,
        credits_remaining=result.credits_remaining,
        emotional_context=EmotionOut.model_validate(result.emotional_context),
        relationship_update=RelationshipUpdateOut(**result.relationship_update.to_dict()),
    )


@router.get("/sessions/{session_id}/messages", response_model=list[HistoryMessage])
async def get_history(
    session_id: str,
    limit: int = Query(default=20, ge=1, le=200),
    user_id: str = Depends(get_current_user_id),
    service: CompanionService = Depends(get_companion_service),
):
    try:
        messages = await service.get_history(user_id, session_id, limit)
    except CompanionError as exc:
        raise _http_error(exc) from exc
    return [HistoryMessage.model_validate(m) for m in messages]


@router.post("/sessions/{session_id}/ice-breakers", response_model=list[IceBreakerOut])
async def get_ice_breakers(
    session_id: str,
    body: IceBreakerRequest,
    user_id: str = Depends(get_current_user_id),
    service: CompanionService = Depends(get_companion_service),
):
    try:
        items = await service.generate_ice_breakers(
            user_id, session_id, body.count, body.include_types, body.exclude_types,
        )
    except CompanionError as exc:
        raise _http_error(exc) from exc
    return [IceBreakerOut.model_validate(i) for i in items]


@router.post("/sessions/{session_id}/check-in", response_model=CheckInResponse)
async def silence_check_in(
    session_id: str,
    body: CheckInRequest,
    user_id: str = Depends(get_current_user_id),
    service: CompanionService = Depends(get_companion_service),
):
    try:
        message = await service.silence_check_in(user_id, session_id, body.silence_seconds)
    except CompanionError as exc:
        raise _http_error(exc) from exc
    return CheckInResponse(message=message)


@router.get("/credits", response_model=CreditsResponse)
async def get_credits(
    user_id: str = Depends(get_current_user_id),
    service: CompanionService = Depends(get_companion_service),
):
    try:
        credits = await service.get_credits(user_id)
    except CompanionError as exc:
        raise _http_error(exc) from exc
    return CreditsResponse(credits=credits)
