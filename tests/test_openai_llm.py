# tests/test_openai_llm.py
"""
Tests for the inference client (the OpenAI SDK client is mocked).
"""
from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import openai
import pytest

from api.app.config import Settings
from services.openai_llm import (
    EmptyCompletionError,
    InferenceProvider,
    ProviderError,
    QuotaExceededError,
    classify_error,
)


class _StatusError(Exception):
    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _client(**create_kwargs) -> MagicMock:
    client = MagicMock()
    client.chat.completions.create = AsyncMock(**create_kwargs)
    return client


def test_classify_payment_required():
    assert isinstance(classify_error(_StatusError("nope", 402), "m"), QuotaExceededError)


def test_classify_quota_wording():
    error = classify_error(Exception("You have exceeded your monthly included credits"), "m")
    assert isinstance(error, QuotaExceededError)
    assert error.model == "m"


def test_classify_other_errors():
    error = classify_error(_StatusError("bad gateway", 502))
    assert type(error) is ProviderError


@pytest.mark.asyncio
async def test_complete_returns_text(settings):
    client = _client(return_value=_completion("hello there"))
    provider = InferenceProvider(settings, client=client)

    text = await provider.complete("model-a", [{"role": "user", "content": "hi"}], temperature=0.7, max_tokens=50, top_p=0.9)

    assert text == "hello there"
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "model-a"
    assert kwargs["top_p"] == 0.9


@pytest.mark.asyncio
async def test_top_p_omitted_when_unset(settings):
    client = _client(return_value=_completion("ok then"))
    await InferenceProvider(settings, client=client).complete("m", [], temperature=0.5, max_tokens=10)
    assert "top_p" not in client.chat.completions.create.call_args.kwargs


@pytest.mark.asyncio
async def test_blank_completion_raises(settings):
    provider = InferenceProvider(settings, client=_client(return_value=_completion("   ")))
    with pytest.raises(EmptyCompletionError):
        await provider.complete("m", [], temperature=0.5, max_tokens=10)


@pytest.mark.asyncio
async def test_sdk_quota_error_is_classified(settings):
    client = _client(side_effect=openai.OpenAIError("insufficient_credits for this request"))
    with pytest.raises(QuotaExceededError):
        await InferenceProvider(settings, client=client).complete("m", [], temperature=0.5, max_tokens=10)


@pytest.mark.asyncio
async def test_sdk_error_becomes_provider_error(settings):
    client = _client(side_effect=openai.OpenAIError("connection reset"))
    with pytest.raises(ProviderError) as info:
        await InferenceProvider(settings, client=client).complete("m", [], temperature=0.5, max_tokens=10)
    assert not isinstance(info.value, QuotaExceededError)


@pytest.mark.asyncio
async def test_streaming_forwards_tokens():
    async def chunks():
        for token in ("hey ", None, "you"):
            yield SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=token))])

    settings = Settings(database_url="sqlite+aiosqlite://", inference_api_key="k", use_streaming=True)
    client = _client(return_value=chunks())
    seen: list[str] = []

    text = await InferenceProvider(settings, client=client).complete(
        "m", [], temperature=0.5, max_tokens=10, on_token=seen.append,
    )

    assert text == "hey you"
    assert seen == ["hey ", "you"]
    assert client.chat.completions.create.call_args.kwargs["stream"] is True
