# services/openai_llm.py
"""
Chat-completion client for an OpenAI-compatible inference router.

Failures are normalised into three shapes the response ladder routes on:
  EmptyCompletionError  — call succeeded but produced no text
  QuotaExceededError    — HTTP 402 or quota / credit wording in the error
  ProviderError         — anything else (timeout, 5xx, connection, ...)
"""
from __future__ import annotations

import logging
import re
from collections.abc import Callable

import openai
from openai import AsyncOpenAI

from api.app.config import Settings, get_settings

logger = logging.getLogger(__name__)

_QUOTA_WORDING = re.compile(
    r"quota|insufficient[_ ]credit|exceeded your (?:monthly )?(?:included )?credits|payment required|billing",
    re.IGNORECASE,
)


class ProviderError(Exception):
    """A chat completion could not be obtained from a model."""

    def __init__(self, message: str, model: str | None = None):
        super().__init__(message)
        self.model = model


class EmptyCompletionError(ProviderError):
    pass


class QuotaExceededError(ProviderError):
    pass


def classify_error(exc: Exception, model: str | None = None) -> ProviderError:
    """Map an SDK exception onto the provider failure hierarchy."""
    if isinstance(exc, ProviderError):
        return exc
    status = getattr(exc, "status_code", None)
    text = str(exc)
    body = getattr(exc, "body", None)
    if body:
        text = f"{text} {body}"
    if status == 402 or _QUOTA_WORDING.search(text):
        return QuotaExceededError(text, model=model)
    return ProviderError(text, model=model)


class InferenceProvider:
    def __init__(self, settings: Settings | None = None, client: AsyncOpenAI | None = None):
        self.settings = settings or get_settings()
        self.client = client or AsyncOpenAI(
            api_key=self.settings.inference_api_key,
            base_url=self.settings.inference_base_url,
            timeout=self.settings.inference_timeout_seconds,
            max_retries=0,
        )

    async def complete(
        self,
        model: str,
        messages: list[dict],
        temperature: float,
        max_tokens: int,
        top_p: float | None = None,
        on_token: Callable[[str], None] | None = None,
    ) -> str:
        """Run one chat completion and return the assistant text."""
        kwargs: dict = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if top_p is not None:
            kwargs["top_p"] = top_p

        logger.info("LLM: sending %d messages to %s", len(messages), model)
        try:
            if self.settings.use_streaming:
                text = await self._stream(kwargs, on_token)
            else:
                response = await self.client.chat.completions.create(**kwargs)
                text = (response.choices[0].message.content or "") if response.choices else ""
        except openai.OpenAIError as exc:
            raise classify_error(exc, model=model) from exc

        if not text.strip():
            raise EmptyCompletionError("Empty completion", model=model)
        logger.info("LLM: got %d chars response from %s", len(text), model)
        return text

    async def _stream(self, kwargs: dict, on_token: Callable[[str], None] | None) -> str:
        stream = await self.client.chat.completions.create(**kwargs, stream=True)
        parts: list[str] = []
        async for chunk in stream:
            if not chunk.choices:
                continue
            token = chunk.choices[0].delta.content or ""
            if not token:
                continue
            parts.append(token)
            if on_token:
                on_token(token)
        return "".join(parts)
