# tests/test_response_generator.py
"""
Tests for the plan/respond pipeline, the model fallback ladder and the
circuit breaker.
"""
from __future__ import annotations

import json
from datetime import datetime

import pytest

from ai.response_parser import EMERGENCY_BURSTS
from conftest import FakeClock, FakeProvider, FixedRandom
from services.companion_state import ConversationContext
from services.emotion_detector import EmotionalState
from services.openai_llm import QuotaExceededError
from services.response_generator import CircuitBreaker, ResponseGenerator, describe_emotional_pattern, to_prompt_context
from services.temporal import temporal_context
from services.traits import TRAIT_DEFAULTS

PLAN = json.dumps({"emotional_state": "tender", "response_strategy": "reassuring", "tone": "gentle"})
BURSTS = json.dumps({
    "bursts": [{"text": "hey, I'm right here", "wait_ms": 700}, {"text": "you've got this", "wait_ms": 1100}],
    "fallback_probe": "what's the exam on?",
})


def _ctx(text: str = "hey there") -> ConversationContext:
    return ConversationContext(
        user_id="u1",
        session_id="s1",
        user_message=text,
        user_name="Sam",
        traits=dict(TRAIT_DEFAULTS),
        emotion=EmotionalState(primary_emotion="anxious", intensity=0.7, support_needed="gentle_guidance"),
        temporal=temporal_context(datetime(2024, 3, 1, 20, 0)),
    )


def _generator(settings, script, clock=None) -> tuple[ResponseGenerator, FakeProvider]:
    provider = FakeProvider(script)
    return ResponseGenerator(provider, settings, rng=FixedRandom(), clock=clock or FakeClock()), provider


@pytest.mark.asyncio
async def test_plan_then_respond(settings):
    generator, provider = _generator(settings, [PLAN, BURSTS])
    response = await generator.generate(_ctx())

    assert response.source == "model"
    assert [b.text for b in response.bursts] == ["hey, I'm right here", "you've got this"]
    assert response.fallback_probe == "what's the exam on?"
    assert [c["model"] for c in provider.calls] == [settings.primary_model, settings.primary_model]
    assert "anxious" in provider.calls[0]["messages"][0]["content"]
    assert "Tone: gentle" in provider.calls[1]["messages"][0]["content"]


@pytest.mark.asyncio
async def test_falls_through_to_next_model(settings):
    generator, provider = _generator(settings, [RuntimeError("503"), PLAN, BURSTS])
    response = await generator.generate(_ctx())

    assert response.source == "model"
    assert [c["model"] for c in provider.calls] == [
        settings.primary_model, settings.fallback_models[0], settings.primary_model,
    ]


@pytest.mark.asyncio
async def test_rescued_turns_keep_breaker_closed(settings):
    down = RuntimeError("503")
    clock = FakeClock()
    generator, provider = _generator(settings, [down, down, PLAN, down, down, BURSTS, PLAN, BURSTS], clock=clock)

    first = await generator.generate(_ctx())
    clock.advance(30)
    second = await generator.generate(_ctx())

    assert first.source == "model"
    assert second.source == "model"
    assert generator.breaker.is_open() is False
    assert provider.calls[2]["model"] == settings.fallback_models[1]


@pytest.mark.asyncio
async def test_all_models_failing_gives_emergency_message(settings):
    failures = [RuntimeError("down")] * (2 * (1 + len(settings.fallback_models)))
    generator, provider = _generator(settings, failures)

    response = await generator.generate(_ctx())

    assert response.source == "emergency"
    assert [(b.text, b.wait_ms) for b in response.bursts] == list(EMERGENCY_BURSTS)
    assert len(provider.calls) == len(failures)


@pytest.mark.asyncio
async def test_planner_failure_uses_default_plan(settings):
    failures = [RuntimeError("down")] * (1 + len(settings.fallback_models))
    generator, provider = _generator(settings, [*failures, BURSTS])

    response = await generator.generate(_ctx())

    assert response.source == "model"
    assert "Tone: loving" in provider.calls[-1]["messages"][0]["content"]


@pytest.mark.asyncio
async def test_quota_exhaustion_switches_to_local_reply(settings):
    generator, provider = _generator(settings, [QuotaExceededError("quota exceeded")])
    response = await generator.generate(_ctx("hey there"))

    assert response.source == "local"
    assert len(provider.calls) == 1
    assert response.bursts


@pytest.mark.asyncio
async def test_open_breaker_skips_provider(settings):
    clock = FakeClock()
    generator, provider = _generator(settings, [PLAN, BURSTS], clock=clock)
    generator.breaker.record_failure()
    generator.breaker.record_failure()

    response = await generator.generate(_ctx())

    assert response.source == "local"
    assert provider.calls == []


@pytest.mark.asyncio
async def test_ice_breaker_text_none_on_failure(settings):
    failures = [RuntimeError("down")] * (1 + len(settings.fallback_models))
    generator, _ = _generator(settings, failures)
    assert await generator.ice_breaker_text(_ctx(), 3, ["question"]) is None


def test_breaker_opens_and_resets():
    clock = FakeClock()
    breaker = CircuitBreaker(threshold=2, window=300, reset=600, clock=clock)

    breaker.record_failure()
    assert breaker.is_open() is False
    breaker.record_failure()
    assert breaker.is_open() is True

    clock.advance(599)
    assert breaker.is_open() is True
    clock.advance(1)
    assert breaker.is_open() is False


def test_breaker_ignores_failures_outside_window():
    clock = FakeClock()
    breaker = CircuitBreaker(threshold=2, window=300, reset=600, clock=clock)
    breaker.record_failure()
    clock.advance(301)
    breaker.record_failure()
    assert breaker.is_open() is False


def test_success_clears_failures_while_closed():
    breaker = CircuitBreaker(threshold=2, clock=FakeClock())
    breaker.record_failure()
    breaker.record_success()
    breaker.record_failure()
    assert breaker.is_open() is False


def test_prompt_context_mapping():
    prompt_ctx = to_prompt_context(_ctx("hello"))
    assert prompt_ctx.user_message == "hello"
    assert prompt_ctx.detected_emotion == "anxious"
    assert prompt_ctx.time_period == "evening"
    assert prompt_ctx.relationship_stage == "new"


def test_emotional_pattern_rendering():
    assert describe_emotional_pattern({"pattern": "insufficient_data"}) == ""
    text = describe_emotional_pattern({
        "pattern": "analyzed",
        "dominant_emotion": "anxious",
        "average_intensity": 0.6,
        "emotional_stability": "moderate",
    })
    assert text == "mostly anxious, average intensity 60%, stability moderate"
