# services/observability.py
"""
Structured analytics events: persisted through the store and mirrored to
the Python logger.
"""
from __future__ import annotations

import logging

from services.store import CompanionStore

logger = logging.getLogger(__name__)


async def log_event(
    store: CompanionStore,
    event_type: str,
    user_id: str | None = None,
    level: str = "info",
    source: str | None = None,
    message: str | None = None,
    metadata: dict | None = None,
) -> None:
    """Persist a structured event. Storage failures are logged, never raised."""
    logger.log(
        getattr(logging, level.upper(), logging.INFO),
        "[%s] %s — %s",
        event_type,
        message or "",
        metadata or {},
    )
    try:
        await store.record_analytics_event(
            user_id,
            event_type,
            payload=metadata,
            level=level,
            source=source,
            message=message,
        )
    except Exception as exc:
        logger.warning("Failed to record event %s: %s", event_type, exc)
