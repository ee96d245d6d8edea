# ai/prompt_builder.py
"""
Renders persona, relationship, temporal, memory and emotional context into
the planner prompt, the persona/system prompt and the burst-format response
instructions. List fields are joined with ", " and fall back to "none".
"""
from __future__ import annotations

from dataclasses import dataclass, field

from ai.prompts.boundaries import BOUNDARIES
from ai.prompts.ice_breaker import ICE_BREAKER_PROMPT
from ai.prompts.planner import PLANNER_PROMPT
from ai.prompts.system_aria import RESPONSE_INSTRUCTIONS, SYSTEM_ARIA
from ai.prompts.time_guidance import PERSONALITY_TRAIT_EFFECTS, TIME_BEHAVIOR_GUIDANCE
from ai.response_parser import Plan

ICE_BREAKER_TYPES = ("question", "compliment", "playful", "intimate", "supportive", "flirty")


@dataclass
class PromptContext:
    companion_name: str = "Aria"
    user_name: str | None = None
    user_message: str = ""

    # Relationship
    relationship_stage: str = "new"
    stage_description: str = ""
    interaction_count: int = 0
    trust_level: float = 0.0
    intimacy_level: float = 0.0
    chemistry_level: float = 0.0
    communication_quality: float = 0.0
    milestones: list[str] = field(default_factory=list)
    max_vulnerability: int = 3
    openness_ceiling: float = 6
    appropriate_behaviors: list[str] = field(default_factory=list)

    # Time
    time_period: str = "evening"
    energy_level: str = "medium"

    # Personality
    traits: dict[str, float] = field(default_factory=dict)
    personality_description: str = ""
    personality_influences: str = ""
    archetype: str = "balanced"
    current_mood: str | None = None

    # Memory
    user_profile_summary: str = ""
    recent_topics: list[str] = field(default_factory=list)
    unresolved_topics: list[str] = field(default_factory=list)
    inside_jokes: list[str] = field(default_factory=list)
    recent_emotions: list[str] = field(default_factory=list)
    recent_messages: list[dict] = field(default_factory=list)
    priority_threads: list[str] = field(default_factory=list)
    favorite_time: str | None = None
    emotional_pattern: str = ""

    # Emotion of the current message
    detected_emotion: str = "neutral"
    emotion_intensity: float = 0.0
    emotion_confidence: float = 0.0
    support_needed: str = "none"
    response_tone: str = "neutral"
    content_category: str = "casual"

    # Phrasing hints for the reply
    empathy_hint: str = ""
    validation_hint: str = ""
    topic_transition: str = ""


def _join(items: list[str]) -> str:
    return ", ".join(items) if items else "none"


def _scale(value: float) -> str:
    return f"{value * 10:.1f}"


def build_planner_prompt(ctx: PromptContext) -> str:
    return PLANNER_PROMPT.format(
        companion_name=ctx.companion_name,
        user_name=ctx.user_name or "unknown",
        relationship_stage=ctx.relationship_stage,
        time_period=ctx.time_period,
        energy_level=ctx.energy_level,
        personality_description=ctx.personality_description or "balanced and warm",
        recent_topics=_join(ctx.recent_topics),
        unresolved_topics=_join(ctx.unresolved_topics),
        inside_jokes=_join(ctx.inside_jokes),
        user_profile=ctx.user_profile_summary or "none",
        user_emotion=ctx.detected_emotion,
        emotion_intensity=ctx.emotion_intensity,
        emotion_confidence=ctx.emotion_confidence,
        support_needed=ctx.support_needed,
        response_tone=ctx.response_tone,
        content_category=ctx.content_category,
        priority_threads=_join(ctx.priority_threads),
        trust_level=_scale(ctx.trust_level),
        intimacy_level=_scale(ctx.intimacy_level),
        communication_quality=_scale(ctx.communication_quality),
        time_guidance=TIME_BEHAVIOR_GUIDANCE.get(ctx.time_period, TIME_BEHAVIOR_GUIDANCE["evening"]),
        trait_effects=PERSONALITY_TRAIT_EFFECTS,
        user_message=ctx.user_message,
    )


def build_system_prompt(ctx: PromptContext) -> str:
    """Persona layer followed by the boundaries layer."""
    sections: list[str] = []

    # 1. Persona with full context
    sections.append(SYSTEM_ARIA.format(
        companion_name=ctx.companion_name,
        relationship_stage=ctx.relationship_stage,
        stage_description=ctx.stage_description,
        personality_description=ctx.personality_description or "balanced and warm",
        archetype=ctx.archetype.replace("_", " "),
        time_period=ctx.time_period,
        energy_level=ctx.energy_level,
        favorite_time=ctx.favorite_time or "unknown yet",
        interaction_count=ctx.interaction_count,
        user_name=ctx.user_name or "unknown",
        user_profile=ctx.user_profile_summary or "none",
        recent_topics=_join(ctx.recent_topics),
        unresolved_topics=_join(ctx.unresolved_topics),
        inside_jokes=_join(ctx.inside_jokes),
        recent_emotions=_join(ctx.recent_emotions),
        emotional_pattern=ctx.emotional_pattern or "not enough history",
        priority_threads=_join(ctx.priority_threads),
        current_mood=ctx.current_mood or "none",
        trust_level=_scale(ctx.trust_level),
        intimacy_level=_scale(ctx.intimacy_level),
        chemistry_level=_scale(ctx.chemistry_level),
        communication_quality=_scale(ctx.communication_quality),
        recent_milestones="\n".join(f"- {m}" for m in ctx.milestones[-3:]) or "- none yet",
        max_vulnerability=ctx.max_vulnerability,
        openness_ceiling=ctx.openness_ceiling,
        appropriate_behaviors=_join(ctx.appropriate_behaviors),
        time_guidance=TIME_BEHAVIOR_GUIDANCE.get(ctx.time_period, TIME_BEHAVIOR_GUIDANCE["evening"]),
        personality_influences=ctx.personality_influences or "- Balanced personality: natural, warm responses",
    ))

    # 2. Boundaries
    sections.append(BOUNDARIES)

    return "\n\n".join(sections)


def build_response_prompt(ctx: PromptContext, plan: Plan) -> str:
    """System prompt plus the plan and the burst-format instructions."""
    instructions = RESPONSE_INSTRUCTIONS.format(
        emotional_state=plan.emotional_state,
        response_strategy=plan.response_strategy,
        key_themes=_join(plan.key_themes),
        intimacy_level=plan.intimacy_level,
        response_length=plan.response_length,
        tone=plan.tone,
        interaction_goals=_join(plan.interaction_goals),
        user_emotion=ctx.detected_emotion,
        emotion_intensity=ctx.emotion_intensity,
        support_needed=ctx.support_needed,
    )
    hints = [
        f"- {label}: \"{text}\""
        for label, text in (
            ("Acknowledge", ctx.empathy_hint),
            ("Validate", ctx.validation_hint),
            ("Change topic", ctx.topic_transition),
        )
        if text
    ]
    if hints:
        instructions += "\nPHRASING IDEAS (adapt, never copy):\n" + "\n".join(hints) + "\n"
    return build_system_prompt(ctx) + "\n\n" + instructions


def build_planner_messages(ctx: PromptContext) -> list[dict]:
    return [
        {"role": "system", "content": build_planner_prompt(ctx)},
        {"role": "user", "content": ctx.user_message},
    ]


def build_response_messages(ctx: PromptContext, plan: Plan) -> list[dict]:
    messages: list[dict] = [{"role": "system", "content": build_response_prompt(ctx, plan)}]
    messages.extend(
        {"role": m["role"], "content": m["content"]}
        for m in ctx.recent_messages
        if m.get("role") in ("user", "assistant") and m.get("content")
    )
    messages.append({"role": "user", "content": ctx.user_message})
    return messages


def build_ice_breaker_prompt(ctx: PromptContext, count: int, allowed_types: list[str]) -> str:
    recent = ctx.recent_messages[-6:]
    last_assistant = next(
        (m["content"] for m in reversed(ctx.recent_messages) if m.get("role") == "assistant"),
        "",
    )
    traits = ctx.traits
    return ICE_BREAKER_PROMPT.format(
        count=count,
        companion_name=ctx.companion_name,
        relationship_stage=ctx.relationship_stage,
        trust_level=f"{ctx.trust_level:.2f}",
        intimacy_level=f"{ctx.intimacy_level:.2f}",
        time_period=ctx.time_period,
        energy_level=ctx.energy_level,
        recent_messages="\n".join(f"{m['role']}: {m['content']}" for m in recent) or "(no messages yet)",
        last_assistant_message=last_assistant,
        confidence=f"{traits.get('confidence', 0.5):.2f}",
        playfulness=f"{traits.get('playfulness', 0.5):.2f}",
        vulnerability=f"{traits.get('vulnerability', 0.5):.2f}",
        romantic_intensity=f"{traits.get('romantic_intensity', 0.5):.2f}",
        recent_topics=_join(ctx.recent_topics),
        inside_jokes=_join(ctx.inside_jokes),
        allowed_types=_join(allowed_types),
        type_choices="|".join(ICE_BREAKER_TYPES),
    )
