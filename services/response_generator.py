# services/response_generator.py
"""
Two-call response pipeline: planner call, then response call steered by the
parsed plan.

Fallback ladder for each call:
  primary model → each fallback model in order
  quota exceeded        → local rule-based reply
  every model failed    → emergency two-burst message
  circuit breaker open  → local reply without touching the provider
"""
from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from ai.local_responder import local_response
from ai.prompt_builder import PromptContext, build_ice_breaker_prompt
from ai.prompt_versions import get_prompt_builders
from ai.prompts.ice_breaker import ICE_BREAKER_SYSTEM
from ai.response_parser import AIResponse, Plan, emergency_response, parse_plan, parse_response
from api.app.config import Settings
from services.companion_state import ConversationContext
from services.openai_llm import InferenceProvider, ProviderError, QuotaExceededError
from services.traits import describe_personality, personality_influences

logger = logging.getLogger(__name__)


class AllModelsFailedError(ProviderError):
    pass


@dataclass
class CircuitBreaker:
    """Opens after `threshold` failures inside `window` seconds; closes after `reset` quiet seconds."""

    threshold: int = 2
    window: float = 300
    reset: float = 600
    clock: Callable[[], float] = time.time
    failures: list[float] = field(default_factory=list)
    opened_at: float | None = None

    def record_failure(self) -> None:
        now = self.clock()
        self.failures = [t for t in self.failures if now - t < self.window]
        self.failures.append(now)
        if self.opened_at is None and len(self.failures) >= self.threshold:
            self.opened_at = now
            logger.warning("Circuit breaker opened after %d failures", len(self.failures))

    def record_success(self) -> None:
        if self.opened_at is None:
            self.failures.clear()

    def is_open(self) -> bool:
        if self.opened_at is None:
            return False
        last_failure = self.failures[-1] if self.failures else self.opened_at
        if self.clock() - last_failure >= self.reset:
            logger.info("Circuit breaker reset")
            self.opened_at = None
            self.failures.clear()
            return False
        return True


def describe_emotional_pattern(pattern: dict) -> str:
    if pattern.get("pattern") != "analyzed":
        return ""
    return (
        f"mostly {pattern['dominant_emotion']}, "
        f"average intensity {pattern['average_intensity']:.0%}, "
        f"stability {pattern['emotional_stability']}"
    )


def to_prompt_context(ctx: ConversationContext) -> PromptContext:
    rel = ctx.relationship
    return PromptContext(
        companion_name=ctx.companion_name,
        user_name=ctx.user_name,
        user_message=ctx.user_message,
        relationship_stage=rel.stage,
        stage_description=ctx.stage_description,
        interaction_count=rel.interaction_count,
        trust_level=rel.trust_level,
        intimacy_level=rel.intimacy_level,
        chemistry_level=rel.sexual_chemistry,
        communication_quality=rel.communication_quality,
        milestones=[m.description for m in rel.milestones],
        max_vulnerability=ctx.max_vulnerability,
        openness_ceiling=ctx.openness_ceiling,
        appropriate_behaviors=list(ctx.appropriate_behaviors),
        time_period=ctx.temporal.period,
        energy_level=ctx.temporal.energy_level,
        traits=dict(ctx.traits),
        personality_description=describe_personality(ctx.traits),
        personality_influences=personality_influences(ctx.traits),
        archetype=ctx.archetype,
        current_mood=ctx.current_mood["name"] if ctx.current_mood else None,
        user_profile_summary=ctx.user_profile_summary,
        recent_topics=list(ctx.recent_topics),
        unresolved_topics=list(ctx.unresolved_topics),
        inside_jokes=list(ctx.inside_jokes),
        recent_emotions=[m.emotion for m in ctx.emotional_moments[-3:]],
        recent_messages=list(ctx.recent_messages),
        priority_threads=list(ctx.priority_threads),
        favorite_time=ctx.favorite_time,
        emotional_pattern=describe_emotional_pattern(ctx.emotional_pattern),
        detected_emotion=ctx.emotion.primary_emotion,
        emotion_intensity=ctx.emotion.intensity,
        emotion_confidence=ctx.emotion.confidence,
        support_needed=ctx.emotion.support_needed,
        response_tone=ctx.emotion.response_tone,
        content_category=ctx.content_category,
        empathy_hint=ctx.empathy_hint,
        validation_hint=ctx.validation_hint,
        topic_transition=ctx.topic_transition,
    )


class ResponseGenerator:
    def __init__(
        self,
        provider: InferenceProvider,
        settings: Settings,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.time,
        breaker: CircuitBreaker | None = None,
    ):
        self.provider = provider
        self.settings = settings
        self.rng = rng or random.Random()
        self.breaker = breaker or CircuitBreaker(
            threshold=settings.circuit_failure_threshold,
            window=settings.circuit_failure_window_seconds,
            reset=settings.circuit_reset_seconds,
            clock=clock,
        )
        self.builders = get_prompt_builders(settings.prompt_version)

    @property
    def models(self) -> list[str]:
        return [self.settings.primary_model, *self.settings.fallback_models]

    async def complete(
        self,
        messages: list[dict],
        temperature: float,
        max_tokens: int,
        top_p: float | None = None,
        on_token: Callable[[str], None] | None = None,
        purpose: str = "response",
    ) -> str:
        """Try each model in order. QuotaExceededError short-circuits the list.

        The breaker sees one failure per call, not per model, so a call rescued
        by a fallback model leaves it untouched.
        """
        for model in self.models:
            try:
                text = await self.provider.complete(
                    model=model,
                    messages=messages,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    top_p=top_p,
                    on_token=on_token,
                )
            except QuotaExceededError:
                self.breaker.record_failure()
                logger.warning("%s: quota exceeded on %s", purpose, model)
                raise
            except Exception as exc:
                logger.warning("%s: model %s failed: %s", purpose, model, exc)
                continue
            self.breaker.record_success()
            return text

        self.breaker.record_failure()
        logger.error("%s: all %d models failed", purpose, len(self.models))
        raise AllModelsFailedError(f"{purpose}: all models failed")

    def local_reply(self, ctx: ConversationContext) -> AIResponse:
        try:
            return local_response(
                ctx.user_message,
                ctx.temporal.period,
                ctx.traits,
                user_name=ctx.user_name,
                rng=self.rng,
            )
        except Exception as exc:
            logger.error("Local response failed: %s", exc)
            return emergency_response()

    async def plan(self, prompt_ctx: PromptContext) -> Plan:
        text = await self.complete(
            self.builders.planner(prompt_ctx),
            temperature=self.settings.planner_temperature,
            max_tokens=self.settings.planner_max_tokens,
            purpose="planner",
        )
        return parse_plan(text)

    async def generate(
        self,
        ctx: ConversationContext,
        on_token: Callable[[str], None] | None = None,
    ) -> AIResponse:
        if self.breaker.is_open():
            logger.warning("Circuit open, using local response mode")
            return self.local_reply(ctx)

        prompt_ctx = to_prompt_context(ctx)

        # 1. Plan
        try:
            plan = await self.plan(prompt_ctx)
        except QuotaExceededError:
            return self.local_reply(ctx)
        except ProviderError:
            logger.warning("Planner unavailable, using default plan")
            plan = Plan()

        # 2. Respond
        try:
            text = await self.complete(
                self.builders.response(prompt_ctx, plan),
                temperature=self.settings.response_temperature,
                max_tokens=self.settings.response_max_tokens,
                top_p=self.settings.response_top_p,
                on_token=on_token,
                purpose="response",
            )
        except QuotaExceededError:
            return self.local_reply(ctx)
        except ProviderError:
            return emergency_response()

        return parse_response(text, self.rng)

    async def ice_breaker_text(self, ctx: ConversationContext, count: int, allowed_types: list[str]) -> str | None:
        """Raw model text for ice-breaker parsing, or None when unavailable."""
        if self.breaker.is_open():
            return None
        messages = [
            {"role": "system", "content": ICE_BREAKER_SYSTEM},
            {"role": "user", "content": build_ice_breaker_prompt(to_prompt_context(ctx), count, allowed_types)},
        ]
        try:
            return await self.complete(
                messages,
                temperature=self.settings.ice_breaker_temperature,
                max_tokens=self.settings.ice_breaker_max_tokens,
                purpose="ice_breakers",
            )
        except ProviderError:
            return None
