# services/companion_state.py
"""
Per-user persona state bundle and the per-turn read model assembled from it.
"""
from __future__ import annotations

import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from services.conversation_memory import ConversationMemory, EmotionalMoment
from services.emotion_detector import EmotionalIntelligence, EmotionalState
from services.relationship import RelationshipState, RelationshipTracker
from services.temporal import TemporalContext, TimeGap, temporal_context
from services.traits import TraitStore


@dataclass
class CompanionState:
    """Mutable state loaded at turn start and saved at turn end."""

    traits: TraitStore
    relationship: RelationshipTracker
    memory: ConversationMemory
    emotions: EmotionalIntelligence

    @classmethod
    def from_records(
        cls,
        traits: dict | None,
        relationship: dict | None,
        memory: dict | None,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ) -> "CompanionState":
        mem = ConversationMemory.from_dict(memory, clock=clock, rng=rng)
        return cls(
            traits=TraitStore.from_dict(traits, clock=clock),
            relationship=RelationshipTracker(RelationshipState.from_dict(relationship), clock=clock),
            memory=mem,
            emotions=EmotionalIntelligence.from_dict(mem.emotional_history, rng=rng),
        )

    def to_records(self) -> tuple[dict, dict, dict]:
        self.memory.emotional_history = self.emotions.to_dict()
        return (
            self.traits.to_dict(),
            self.relationship.state.to_dict(),
            self.memory.to_dict(),
        )


@dataclass
class ConversationContext:
    """Everything prompt assembly and behavior selection read for one turn."""

    user_id: str
    session_id: str
    user_message: str
    companion_name: str = "Aria"
    user_name: str | None = None
    relationship: RelationshipState = field(default_factory=RelationshipState)
    stage_description: str = ""
    appropriate_behaviors: list[str] = field(default_factory=list)
    max_vulnerability: int = 3
    openness_ceiling: float = 6
    traits: dict[str, float] = field(default_factory=dict)
    archetype: str = "balanced"
    current_mood: dict | None = None
    recent_topics: list[str] = field(default_factory=list)
    unresolved_topics: list[str] = field(default_factory=list)
    inside_jokes: list[str] = field(default_factory=list)
    priority_threads: list[str] = field(default_factory=list)
    user_profile_summary: str = ""
    emotional_moments: list[EmotionalMoment] = field(default_factory=list)
    emotion: EmotionalState = field(default_factory=EmotionalState)
    emotional_pattern: dict = field(default_factory=dict)
    content_category: str = "casual"
    empathy_hint: str = ""
    validation_hint: str = ""
    topic_transition: str = ""
    temporal: TemporalContext = field(default_factory=temporal_context)
    time_gap: TimeGap | None = None
    favorite_time: str | None = None
    last_interaction_time: datetime | None = None
    recent_messages: list[dict] = field(default_factory=list)

    @property
    def stage(self) -> str:
        return self.relationship.stage

    @property
    def interaction_count(self) -> int:
        return self.relationship.interaction_count
