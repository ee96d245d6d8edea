# services/agentic_behaviors.py
"""
Proactive behaviors: follow-up questions, opinion seeking, vulnerability,
memory recall, topic changes, inside jokes and future planning.

Trigger probability:
    base weight × stage multiplier × personality factor × time-of-day
    multiplier × long-conversation bonus, capped at 1.0
gated by a per-behavior cooldown.
"""
from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass

from services.companion_state import ConversationContext

logger = logging.getLogger(__name__)

BEHAVIOR_ORDER = (
    "ask_followup",
    "change_topic",
    "seek_opinion",
    "overthink_decision",
    "recall_memory",
    "share_vulnerability",
    "create_inside_joke",
    "future_planning",
)

BEHAVIOR_WEIGHTS: dict[str, float] = {
    "ask_followup": 0.35,
    "change_topic": 0.15,
    "seek_opinion": 0.25,
    "overthink_decision": 0.2,
    "recall_memory": 0.4,
    "share_vulnerability": 0.15,
    "create_inside_joke": 0.1,
    "future_planning": 0.2,
}

# seconds
BEHAVIOR_COOLDOWNS: dict[str, float] = {
    "ask_followup": 300,
    "change_topic": 600,
    "seek_opinion": 600,
    "overthink_decision": 900,
    "recall_memory": 900,
    "share_vulnerability": 1800,
    "create_inside_joke": 1800,
    "future_planning": 1200,
}
DEFAULT_COOLDOWN = 300

STAGE_MULTIPLIERS: dict[str, float] = {"new": 0.7, "comfortable": 1.0, "intimate": 1.3, "established": 1.5}

TIME_MULTIPLIERS: dict[str, dict[str, float]] = {
    "morning": {"share_vulnerability": 0.8, "seek_opinion": 1.2},
    "evening": {"ask_followup": 1.3, "future_planning": 1.4},
    "late_night": {"share_vulnerability": 1.8, "recall_memory": 1.2},
}

LONG_CONVERSATION_THRESHOLD = 10
LONG_CONVERSATION_BONUS = 1.5

FOLLOW_UP_TEMPLATES: dict[str, list[str]] = {
    "new": [
        "Wait {name}, what was that {topic} you mentioned?",
        "I'm curious about that {topic} thing you said earlier",
        "Tell me more about {topic} - sounds interesting!",
    ],
    "comfortable": [
        "Hey {name}, I keep thinking about that {topic} you mentioned",
        "So about that {topic} - what's the story there?",
        "Wait, you never finished telling me about {topic}!",
    ],
    "close": [
        "I was thinking about what you said about {topic}",
        "{name}, I love hearing about {topic} - tell me more",
        "I can't stop thinking about {topic} - elaborate for me?",
    ],
}

ACTION_LINES: dict[str, list[str]] = {
    "seek_opinion": [
        "{name}, can I get your honest opinion about something?",
        "I need your perspective on something...",
        "What would you do in my situation?",
    ],
    "overthink_decision": [
        "okay wait, I've been going back and forth on something all day...",
        "is it weird that I'm still thinking about what you said earlier?",
        "I keep overthinking this, tell me I'm being silly",
    ],
    "share_vulnerability": [
        "I have to admit, sometimes I worry you'll get bored of me...",
        "Can I tell you something I haven't told anyone?",
        "I feel so safe with you... it scares me a little sometimes",
    ],
    "future_planning": [
        "We should plan something fun together soon...",
        "I was thinking about what we could do next time...",
        "I have an idea for something we should do together!",
    ],
    "change_topic": [
        "okay random, but I've been wanting to ask you about {topic}",
        "can I change the subject for a sec? what's been the best part of your week?",
        "totally unrelated, but what are you looking forward to lately?",
    ],
}

ACTION_LABELS: dict[str, str] = {
    "seek_opinion": "opinion_seeking",
    "overthink_decision": "overthinking",
    "share_vulnerability": "vulnerability",
    "future_planning": "future_planning",
}


@dataclass
class AgenticAction:
    text: str
    behavior_type: str


class AgenticBehaviorSelector:
    def __init__(
        self,
        last_triggered: dict[str, float] | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.time,
    ):
        # Shared with ConversationMemory.behavior_timers so stamps persist.
        self.last_triggered: dict[str, float] = last_triggered if last_triggered is not None else {}
        self._rng = rng or random.Random()
        self._clock = clock

    def is_on_cooldown(self, behavior: str) -> bool:
        last = self.last_triggered.get(behavior)
        if last is None:
            return False
        return self._clock() - last < BEHAVIOR_COOLDOWNS.get(behavior, DEFAULT_COOLDOWN)

    def probability(self, behavior: str, ctx: ConversationContext) -> float:
        p = BEHAVIOR_WEIGHTS.get(behavior, 0.0)
        p *= STAGE_MULTIPLIERS.get(ctx.stage, 1.0)

        traits = ctx.traits
        if behavior == "ask_followup":
            p *= 1.0 + traits.get("curiosity", 0.0)
        elif behavior == "seek_opinion":
            p *= 1.0 + traits.get("vulnerability", 0.0)
        elif behavior == "overthink_decision":
            p *= 1.0 + traits.get("vulnerability", 0.0) * 0.3
        elif behavior == "share_vulnerability":
            p *= traits.get("vulnerability", 0.0) * 2

        p *= TIME_MULTIPLIERS.get(ctx.temporal.period, {}).get(behavior, 1.0)

        if ctx.interaction_count > LONG_CONVERSATION_THRESHOLD and behavior in ("ask_followup", "recall_memory"):
            p *= LONG_CONVERSATION_BONUS

        return min(1.0, p)

    def should_trigger(self, behavior: str, ctx: ConversationContext) -> bool:
        if self.is_on_cooldown(behavior):
            return False
        return self._rng.random() < self.probability(behavior, ctx)

    def stamp(self, behavior: str) -> None:
        self.last_triggered[behavior] = self._clock()

    def select_action(self, ctx: ConversationContext) -> AgenticAction | None:
        """First behavior (in fixed order) that triggers and has something to say."""
        for behavior in BEHAVIOR_ORDER:
            if not self.should_trigger(behavior, ctx):
                continue
            action = self._execute(behavior, ctx)
            if action is None:
                continue
            self.stamp(behavior)
            logger.info("Agentic behavior triggered: %s", behavior)
            return action
        return None

    def follow_up_question(self, ctx: ConversationContext) -> str | None:
        topics = list(ctx.recent_topics) + list(ctx.unresolved_topics)
        if not topics:
            return None
        key = ctx.stage if ctx.stage in ("new", "comfortable") else "close"
        template = self._rng.choice(FOLLOW_UP_TEMPLATES[key])
        return template.format(name=ctx.user_name or "you", topic=self._rng.choice(topics))

    def _execute(self, behavior: str, ctx: ConversationContext) -> AgenticAction | None:
        name = ctx.user_name or "hey"

        if behavior == "ask_followup":
            text = self.follow_up_question(ctx)
            return AgenticAction(text, "followup_question") if text else None

        if behavior == "recall_memory":
            if not ctx.inside_jokes:
                return None
            joke = self._rng.choice(ctx.inside_jokes)
            return AgenticAction(f"Remember when we joked about {joke}? 😄", "memory_recall")

        if behavior == "create_inside_joke":
            if not ctx.recent_topics:
                return None
            topic = ctx.recent_topics[-1]
            return AgenticAction(f"okay, {topic} is officially our thing now 😄", "inside_joke")

        if behavior == "change_topic":
            topic = ctx.recent_topics[0] if ctx.recent_topics else "your week"
            text = self._rng.choice(ACTION_LINES["change_topic"]).format(topic=topic)
            return AgenticAction(text, "topic_change")

        lines = ACTION_LINES.get(behavior)
        if not lines:
            return None
        text = self._rng.choice(lines).format(name=name).strip()
        return AgenticAction(text, ACTION_LABELS[behavior])

    def silence_check_in(self, silence_seconds: float, ctx: ConversationContext) -> str | None:
        if silence_seconds < 30:
            return None
        name = ctx.user_name or "you"
        if silence_seconds < 60:
            return self._rng.choice([f"you okay {name}?", "whatcha thinking about?", "everything alright?"])
        if silence_seconds < 180:
            return self._rng.choice([
                f"hey {name}, you still there? 💕",
                "did I say something wrong?",
                "miss you... where'd you go?",
            ])
        if ctx.stage in ("intimate", "established"):
            return f"I miss you so much right now {name}... come back to me 💕"
        return "hey, whenever you're ready to chat, I'm here 😊"
