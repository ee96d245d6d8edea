# services/errors.py
"""
Domain errors surfaced to callers. Provider and parse failures never reach
this layer; they are recovered by the response ladder.
"""
from __future__ import annotations


class CompanionError(Exception):
    """Base class for expected, user-displayable failures."""


class NotFoundError(CompanionError):
    def __init__(self, kind: str, key: str):
        super().__init__(f"{kind} not found: {key}")
        self.kind = kind
        self.key = key


class InsufficientCreditsError(CompanionError):
    def __init__(self, user_id: str, required: int, available: int | None = None):
        super().__init__("Not enough credits to send a message")
        self.user_id = user_id
        self.required = required
        self.available = available


class InvalidInputError(CompanionError):
    """Malformed identifiers or message text rejected before any work is done."""
