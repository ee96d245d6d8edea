# services/session_service.py
"""
Companion turn orchestration.

handle_user_message pipeline (per user, serialized by an asyncio.Lock):
  1. Validate the user, the session and the message text
  2. Debit credits (fails fast on an insufficient balance)
  3. Load traits / relationship / memory and recent history
  4. Emotional analysis + interaction signals
  5. Memory updates: basic info, preferences, themes, topic thread, moments
  6. Relationship nudges and stage progression
  7. Trait deltas, emotion mood overlay, periodic natural drift
  8. Build the ConversationContext read model
  9. Plan + respond through the fallback ladder
 10. Optional agentic action appended as a final burst
 11. Persist messages and state, record analytics
"""
from __future__ import annotations

import asyncio
import logging
import random
import time
import weakref
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from ai.response_parser import AIResponse, MessageBurst
from api.app.config import Settings
from services.agentic_behaviors import AgenticBehaviorSelector
from services.companion_state import CompanionState, ConversationContext
from services.conversation_memory import ConversationMemory
from services.emotion_detector import EmotionalState
from services.errors import InvalidInputError, NotFoundError
from services.ice_breakers import IceBreaker, IceBreakerGenerator
from services.interaction_signals import InteractionSignals
from services.observability import log_event
from services.relationship import RelationshipState, RelationshipUpdate
from services.response_generator import ResponseGenerator
from services.store import CompanionStore, MessageRecord, SessionRecord, UserRecord
from services.temporal import TemporalProvider, classify_gap, temporal_context
from services.traits import TraitStore

logger = logging.getLogger(__name__)

# emotion -> (overlay name, trait modifiers)
EMOTION_MOODS: dict[str, tuple[str, dict[str, float]]] = {
    "sad": ("comforting", {"empathy": 0.1, "playfulness": -0.1}),
    "lonely": ("comforting", {"empathy": 0.1, "playfulness": -0.1}),
    "anxious": ("comforting", {"empathy": 0.1, "playfulness": -0.1}),
    "stressed": ("comforting", {"empathy": 0.1, "playfulness": -0.1}),
    "happy": ("cheerful", {"playfulness": 0.1, "confidence": 0.05}),
}
MOOD_INTENSITY_THRESHOLD = 0.7
MOOD_DURATION_MINUTES = 60

ACTION_WAIT_MS = 1500
DEFAULT_PROBE = "what's on your mind?"
NO_SUPPORT = ("none", "celebration")


@dataclass
class TurnResult:
    bursts: list[MessageBurst]
    credits_remaining: int
    emotional_context: EmotionalState
    relationship_update: RelationshipUpdate
    fallback_probe: str | None = None
    source: str = "model"


def _as_local_naive(value: datetime | None) -> datetime | None:
    """Stored timestamps are UTC; temporal helpers work on local wall time."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone().replace(tzinfo=None)


class CompanionService:
    def __init__(
        self,
        store: CompanionStore,
        generator: ResponseGenerator,
        settings: Settings,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.generator = generator
        self.settings = settings
        self.rng = rng or random.Random()
        self.clock = clock
        self.ice_breakers = IceBreakerGenerator(generator)
        # Entries disappear once no turn holds or awaits the lock.
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self.clock())

    def _user_lock(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    # ─────────────────────────────────────────────
    # Users & sessions
    # ─────────────────────────────────────────────

    async def initialize_user(
        self,
        user_id: str | None = None,
        name: str | None = None,
        email: str | None = None,
    ) -> UserRecord:
        """Create the user (with starting credits and default persona) on first contact."""
        if user_id:
            existing = await self.store.get_user(user_id)
            if existing is not None:
                return existing

        user = await self.store.create_user(user_id, name, email, self.settings.initial_credits)
        await self.store.save_state(
            user.id,
            TraitStore(clock=self.clock).to_dict(),
            RelationshipState().to_dict(),
            ConversationMemory(clock=self.clock).to_dict(),
        )
        await log_event(
            self.store, "user_created", user_id=user.id, source="session_service",
            message="New user initialized", metadata={"credits": user.credits},
        )
        return user

    async def _require_user(self, user_id: str) -> UserRecord:
        user = await self.store.get_user(user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        return user

    async def _require_session(self, user_id: str, session_id: str) -> SessionRecord:
        session = await self.store.get_session(user_id, session_id)
        if session is None:
            raise NotFoundError("session", session_id)
        return session

    async def initialize_session(self, user_id: str, title: str | None = None) -> str:
        await self._require_user(user_id)
        session = await self.store.create_session(user_id, title)
        await log_event(
            self.store, "session_start", user_id=user_id, source="session_service",
            metadata={"session_id": session.id},
        )
        return session.id

    async def greeting(self, user_id: str) -> str:
        """Time-aware opener, switching to a reunion line after a long absence."""
        user = await self._require_user(user_id)
        memory = ConversationMemory.from_dict(await self.store.load_memory(user_id), clock=self.clock, rng=self.rng)
        provider = TemporalProvider(memory.activity, rng=self.rng)
        return provider.time_aware_greeting(
            memory.profile.name or user.name,
            _as_local_naive(user.last_active_at),
            now=self._now(),
        )

    async def get_credits(self, user_id: str) -> int:
        credits = await self.store.get_credits(user_id)
        if credits is None:
            raise NotFoundError("user", user_id)
        return credits

    async def get_history(self, user_id: str, session_id: str, limit: int | None = None) -> list[MessageRecord]:
        await self._require_session(user_id, session_id)
        return await self.store.load_recent_messages(
            user_id, session_id, limit or self.settings.max_history_length,
        )

    # ─────────────────────────────────────────────
    # State
    # ─────────────────────────────────────────────

    async def _load_state(self, user_id: str, session_id: str) -> CompanionState:
        traits, relationship, memory = await asyncio.gather(
            self.store.load_traits(user_id),
            self.store.load_relationship(user_id),
            self.store.load_memory(user_id, session_id),
        )
        return CompanionState.from_records(traits, relationship, memory, clock=self.clock, rng=self.rng)

    def _build_context(
        self,
        user: UserRecord,
        session_id: str,
        text: str,
        state: CompanionState,
        emotion: EmotionalState,
        recent: list[MessageRecord],
        now: datetime,
        signals: InteractionSignals | None = None,
        topic_transition: str = "",
    ) -> ConversationContext:
        rel = state.relationship
        memory = state.memory
        last_active = _as_local_naive(user.last_active_at)
        continuity = memory.continuity()
        activity = TemporalProvider(memory.activity, rng=self.rng).activity_summary()
        distressed = emotion.support_needed not in NO_SUPPORT
        return ConversationContext(
            user_id=user.id,
            session_id=session_id,
            user_message=text,
            companion_name=self.settings.companion_name,
            user_name=memory.profile.name or user.name,
            relationship=rel.state,
            stage_description=rel.describe_stage(),
            appropriate_behaviors=rel.appropriate_behaviors(),
            max_vulnerability=rel.max_vulnerability(),
            openness_ceiling=rel.openness_ceiling(),
            traits=state.traits.effective_traits(),
            archetype=state.traits.dominant_archetype(),
            current_mood=state.traits.current_mood(),
            recent_topics=list(memory.recent_topics),
            unresolved_topics=memory.unresolved_topics(),
            inside_jokes=list(memory.inside_jokes),
            priority_threads=list(dict.fromkeys(
                continuity["high_priority_threads"] + continuity["needs_followup"]
            )),
            user_profile_summary=memory.profile.summary(),
            emotional_moments=list(memory.emotional_moments),
            emotion=emotion,
            emotional_pattern=state.emotions.emotional_pattern(),
            content_category=signals.content_category if signals else "casual",
            empathy_hint=state.emotions.empathy_response(emotion) if emotion.primary_emotion != "neutral" else "",
            validation_hint=memory.validation_response(emotion.primary_emotion) if distressed else "",
            topic_transition=topic_transition,
            temporal=temporal_context(now),
            time_gap=classify_gap(last_active, now),
            favorite_time=activity["favorite_time"] if activity["total_interactions"] else None,
            last_interaction_time=last_active,
            recent_messages=[m.to_prompt() for m in recent],
        )

    # ─────────────────────────────────────────────
    # Turn handling
    # ─────────────────────────────────────────────

    def _validate_text(self, text: str) -> str:
        cleaned = (text or "").strip()
        if not cleaned:
            raise InvalidInputError("Message cannot be empty")
        if len(cleaned) > self.settings.max_message_length:
            raise InvalidInputError(f"Message exceeds {self.settings.max_message_length} characters")
        return cleaned

    def _apply_emotion_mood(self, traits: TraitStore, emotion: EmotionalState) -> None:
        mood = EMOTION_MOODS.get(emotion.primary_emotion)
        if mood and emotion.intensity >= MOOD_INTENSITY_THRESHOLD:
            name, modifiers = mood
            traits.apply_mood(name, modifiers, duration_minutes=MOOD_DURATION_MINUTES)

    async def handle_user_message(
        self,
        user_id: str,
        session_id: str,
        text: str,
        on_token: Callable[[str], None] | None = None,
    ) -> TurnResult:
        text = self._validate_text(text)
        user = await self._require_user(user_id)
        session = await self._require_session(user_id, session_id)

        async with self._user_lock(user_id):
            credits_remaining = await self.store.debit_credits(user_id, self.settings.credits_per_message)

            state = await self._load_state(user_id, session_id)
            recent = await self.store.load_recent_messages(user_id, session_id, self.settings.max_history_length)
            await self.store.append_message(user_id, session_id, "user", text)

            now = self._now()

            # Emotion & signals
            emotion = state.emotions.analyze(text)
            signals = InteractionSignals.from_text(text, conversation_length=session.message_count // 2 + 1)

            # Memory
            memory = state.memory
            memory.extract_basic_info(text)
            memory.update_themes(text)
            transition = ""
            if signals.main_topic != "general conversation":
                previous = memory.recent_topics[-1] if memory.recent_topics else None
                if previous and previous != signals.main_topic:
                    transition = memory.natural_transition(signals.main_topic)
                engagement = min(1.0, 0.3 + signals.message_length / 200)
                memory.track_topic(signals.main_topic, text, engagement)
            memory.record_emotional_moment(text, emotion.primary_emotion, emotion.intensity)
            memory.cleanup_old_threads()
            temporal = TemporalProvider(memory.activity, rng=self.rng)
            temporal.track_activity(now)
            memory.activity = temporal.activity

            # Relationship
            relationship_update = state.relationship.record_interaction(signals)

            # Traits
            state.traits.update_from_interaction(
                signals,
                support_given=emotion.support_needed not in NO_SUPPORT or signals.emotional_support_needed,
            )
            self._apply_emotion_mood(state.traits, emotion)
            count = state.relationship.state.interaction_count
            if self.settings.natural_drift_every > 0 and count % self.settings.natural_drift_every == 0:
                state.traits.natural_drift(self.settings.natural_drift_factor, self.rng)

            # Generate
            ctx = self._build_context(
                user, session_id, text, state, emotion, recent, now,
                signals=signals, topic_transition=transition,
            )
            response: AIResponse = await self.generator.generate(ctx, on_token=on_token)
            bursts = list(response.bursts)

            selector = AgenticBehaviorSelector(memory.behavior_timers, rng=self.rng, clock=self.clock)
            action = selector.select_action(ctx)
            if action is not None:
                bursts.append(MessageBurst(text=action.text, wait_ms=ACTION_WAIT_MS))
                if action.behavior_type == "inside_joke" and ctx.recent_topics:
                    memory.add_inside_joke(ctx.recent_topics[-1])

            probe = response.fallback_probe or memory.pending_follow_up() or DEFAULT_PROBE

            # Persist
            await self.store.append_message(
                user_id,
                session_id,
                "assistant",
                " ".join(b.text for b in bursts),
                metadata={
                    "bursts": [b.to_dict() for b in bursts],
                    "fallback_probe": probe,
                    "source": response.source,
                    "agentic_action": action.behavior_type if action else None,
                    "emotion": emotion.to_dict(),
                    "relationship_stage": relationship_update.stage,
                },
            )
            await self.store.save_state(user_id, *state.to_records())

        await self._record_turn_events(user_id, session_id, emotion, relationship_update, response)

        return TurnResult(
            bursts=bursts,
            credits_remaining=credits_remaining,
            emotional_context=emotion,
            relationship_update=relationship_update,
            fallback_probe=probe,
            source=response.source,
        )

    async def _record_turn_events(
        self,
        user_id: str,
        session_id: str,
        emotion: EmotionalState,
        update: RelationshipUpdate,
        response: AIResponse,
    ) -> None:
        await log_event(
            self.store, "message_sent", user_id=user_id, source="session_service",
            metadata={"session_id": session_id, "bursts": len(response.bursts), "source": response.source},
        )
        if emotion.primary_emotion != "neutral":
            await log_event(
                self.store, "emotion_detected", user_id=user_id, source="emotion_detector",
                metadata={"emotion": emotion.primary_emotion, "intensity": round(emotion.intensity, 3)},
            )
        if update.stage_changed:
            await log_event(
                self.store, "relationship_milestone", user_id=user_id, source="relationship",
                message=update.milestone.description if update.milestone else None,
                metadata=update.to_dict(),
            )
        if response.source != "model":
            await log_event(
                self.store, "fallback_used", user_id=user_id, level="warning", source="response_generator",
                metadata={"source": response.source},
            )

    # ─────────────────────────────────────────────
    # Ice breakers & check-ins
    # ─────────────────────────────────────────────

    async def _read_context(self, user_id: str, session_id: str) -> ConversationContext:
        """Context for side requests; reads state without mutating it."""
        user = await self._require_user(user_id)
        await self._require_session(user_id, session_id)
        state = await self._load_state(user_id, session_id)
        recent = await self.store.load_recent_messages(user_id, session_id, self.settings.max_history_length)
        return self._build_context(user, session_id, "", state, EmotionalState(), recent, self._now())

    async def generate_ice_breakers(
        self,
        user_id: str,
        session_id: str,
        count: int = 3,
        include_types: list[str] | None = None,
        exclude_types: list[str] | None = None,
    ) -> list[IceBreaker]:
        ctx = await self._read_context(user_id, session_id)
        return await self.ice_breakers.generate(ctx, count, include_types, exclude_types)

    async def silence_check_in(self, user_id: str, session_id: str, silence_seconds: float) -> str | None:
        ctx = await self._read_context(user_id, session_id)
        selector = AgenticBehaviorSelector(rng=self.rng, clock=self.clock)
        return selector.silence_check_in(silence_seconds, ctx)
