# services/conversation_memory.py
"""
Per-user conversation memory: topic threads, recent topics, emotional
moments, inside jokes, themes and basic facts about the user.

Everything here is rule-based and serializes to a plain JSON dict so the
store can keep it in a single column.
"""
from __future__ import annotations

import logging
import random
import re
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

RECENT_TOPICS_LIMIT = 15
EMOTIONAL_MOMENTS_LIMIT = 50
INSIDE_JOKES_LIMIT = 20
PREFERENCE_LIMIT = 20
FOLLOW_UP_MIN_GAP_SECONDS = 2 * 60 * 60
MOMENT_MIN_INTENSITY = 0.5

THREAD_STATUSES = ("ongoing", "resolved", "needs_followup", "waiting_for_user")

_EMOTIONAL_WORDS = ("feel", "hurt", "happy", "scared", "worried", "excited", "love", "hate")
_PERSONAL_WORDS = re.compile(r"\b(?:my|me|i|myself)\b", re.IGNORECASE)
_IMPORTANT_TOPICS = ("work", "family", "health", "relationship", "future", "career")
_RESOLUTION_WORDS = ("resolved", "better now", "figured it out", "all good", "worked out")
_CONTINUATION = re.compile(r"\b(?:still|continue|ongoing|more|also|and)\b", re.IGNORECASE)

TOPIC_CATEGORIES: list[tuple[str, tuple[str, ...]]] = [
    ("work_stress", ("work", "job", "boss", "career", "deadline")),
    ("relationship_issues", ("relationship", "friend", "dating", "breakup")),
    ("health_concerns", ("health", "doctor", "sick", "pain")),
    ("family_drama", ("family", "mom", "dad", "sister", "brother")),
    ("future_plans", ("future", "plan", "decision", "choice")),
]

FOLLOW_UP_TEMPLATES: dict[str, list[str]] = {
    "work_stress": [
        "How did that meeting go?",
        "Did you get through that deadline okay?",
        "Is work still overwhelming?",
        "How are things with your boss now?",
    ],
    "relationship_issues": [
        "How are things with them now?",
        "Did you end up talking to them?",
        "Any updates on that situation?",
    ],
    "health_concerns": [
        "How are you feeling today?",
        "Did you get a chance to see the doctor?",
        "Are you taking care of yourself?",
    ],
    "family_drama": [
        "How did things go with your family?",
        "Have you talked to them since?",
        "Are things any better at home?",
    ],
    "future_plans": [
        "Have you thought more about that decision?",
        "Any progress on those plans?",
        "What's your next step going to be?",
    ],
}

GENERIC_FOLLOW_UPS = [
    "How did that {topic} situation work out?",
    "Any updates on the {topic} thing?",
    "I've been thinking about what you said about {topic}...",
    "How are you feeling about {topic} now?",
]

TRANSITION_PHRASES = [
    "Speaking of {topic}, how was...",
    "That reminds me - you mentioned {topic}...",
    "Oh, and about {topic}...",
    "You know what's interesting?",
    "Can I ask you something related to that?",
]

VALIDATION_RESPONSES: dict[str, list[str]] = {
    "distress": [
        "That sounds really overwhelming",
        "I can hear how hard this is for you",
        "Your feelings are completely valid",
        "Anyone would struggle with that",
    ],
    "joy": [
        "I love hearing the excitement in your voice!",
        "That's such wonderful news!",
        "You deserve to feel happy about this",
    ],
    "general": [
        "That sounds really hard",
        "I can hear how much this means to you",
        "Your feelings make complete sense",
        "You're handling this so well",
        "That's really insightful of you",
    ],
}

THEME_KEYWORDS: dict[str, tuple[str, ...]] = {
    "work": ("work", "job", "boss", "colleague", "office", "project", "meeting"),
    "relationships": ("girlfriend", "boyfriend", "dating", "relationship", "partner"),
    "family": ("family", "mom", "dad", "mother", "father", "sister", "brother"),
    "health": ("health", "sick", "doctor", "hospital", "pain", "medical"),
    "emotions": ("happy", "sad", "angry", "stressed", "anxious", "excited"),
    "future": ("future", "plan", "goal", "dream", "hope"),
    "past": ("remember", "used to", "memory", "past"),
    "intimacy": ("kiss", "cuddle", "hug", "miss you", "want you"),
    "daily_life": ("today", "yesterday", "morning", "evening", "weekend"),
    "hobbies": ("music", "movie", "book", "game", "sport", "hobby"),
}
_THEME_PATTERNS = {
    theme: re.compile(r"\b(?:" + "|".join(re.escape(k) for k in keywords) + r")s?\b", re.IGNORECASE)
    for theme, keywords in THEME_KEYWORDS.items()
}

# ── basic info extraction ──

_NAME = re.compile(r"(?i:\bmy name is|\bcall me|\bi'm|\bi am)\s+([A-Z][a-z]+)\b")
_AGE = re.compile(r"\b(?:i'm|i am|im)\s+(\d{1,2})\s*(?:years old|yo)\b", re.IGNORECASE)
_LOCATION = re.compile(r"(?i:\bi'm from|\bi am from|\bi live in)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)")
_LIKES = re.compile(
    r"\b(?:i (?:really )?(?:like|love|enjoy)|i(?:'m| am) (?:really )?(?:into|interested in|passionate about))"
    r"\s+(.+?)(?:[.,!?;]|$)",
    re.IGNORECASE,
)
_DISLIKES = re.compile(r"\bi (?:really )?(?:hate|dislike|don't like|do not like|can't stand)\s+(.+?)(?:[.,!?;]|$)", re.IGNORECASE)

_NAME_STOPWORDS = {
    "Feeling", "Fine", "Good", "Okay", "Ok", "Sorry", "So", "Just", "Not", "Really", "Very", "Tired",
    "Happy", "Sad", "Here", "Back", "Home", "Going", "Doing", "Working", "Trying", "Sure", "Glad",
    "Still", "Also", "Always", "Never", "Bored", "Busy", "Excited", "Stressed", "Anxious", "Worried",
}
_PREFERENCE_STOPWORDS = {"you", "it", "that", "this", "them", "him", "her", "when", "how"}


@dataclass
class ConversationThread:
    topic: str
    status: str
    last_mentioned: float
    importance: float
    context: str
    user_engagement: float = 0.5


@dataclass
class EmotionalMoment:
    timestamp: str
    description: str
    emotion: str
    intensity: float
    resolved: bool = False


@dataclass
class UserProfile:
    name: str | None = None
    age: int | None = None
    location: str | None = None
    likes: list[str] = field(default_factory=list)
    dislikes: list[str] = field(default_factory=list)

    def summary(self) -> str:
        parts: list[str] = []
        if self.name:
            parts.append(f"Name: {self.name}")
        if self.age:
            parts.append(f"Age: {self.age}")
        if self.location:
            parts.append(f"Lives in: {self.location}")
        if self.likes:
            parts.append("Likes: " + ", ".join(self.likes[-5:]))
        if self.dislikes:
            parts.append("Dislikes: " + ", ".join(self.dislikes[-5:]))
        return "; ".join(parts)


def calculate_importance(topic: str, user_text: str) -> float:
    importance = 0.5
    if len(user_text) > 100:
        importance += 0.2

    lowered = user_text.lower()
    emotional = sum(1 for w in _EMOTIONAL_WORDS if w in lowered)
    importance += min(emotional * 0.1, 0.3)

    personal = len({m.lower() for m in _PERSONAL_WORDS.findall(user_text)})
    importance += min(personal * 0.05, 0.2)

    if any(t in topic.lower() for t in _IMPORTANT_TOPICS):
        importance += 0.2
    return min(importance, 1.0)


def determine_status(user_text: str, engagement: float) -> str:
    lowered = user_text.lower()
    if any(w in lowered for w in _RESOLUTION_WORDS):
        return "resolved"
    if _CONTINUATION.search(user_text):
        return "ongoing"
    if engagement < 0.3:
        return "waiting_for_user"
    if engagement > 0.7:
        return "needs_followup"
    return "ongoing"


def categorize_topic(topic: str) -> str:
    lowered = topic.lower()
    for category, words in TOPIC_CATEGORIES:
        if any(w in lowered for w in words):
            return category
    return "general"


def analyze_themes(text: str) -> list[str]:
    return [theme for theme, pattern in _THEME_PATTERNS.items() if pattern.search(text)]


def _append_unique(items: list[str], value: str, limit: int) -> list[str]:
    """Most recent last; a repeated value moves to the end."""
    items = [i for i in items if i != value]
    items.append(value)
    return items[-limit:]


class ConversationMemory:
    def __init__(
        self,
        threads: dict[str, ConversationThread] | None = None,
        recent_topics: list[str] | None = None,
        emotional_moments: list[EmotionalMoment] | None = None,
        inside_jokes: list[str] | None = None,
        themes: list[str] | None = None,
        profile: UserProfile | None = None,
        behavior_timers: dict[str, float] | None = None,
        activity: dict[str, int] | None = None,
        emotional_history: dict | None = None,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ):
        self.threads: dict[str, ConversationThread] = dict(threads or {})
        self.recent_topics: list[str] = list(recent_topics or [])[-RECENT_TOPICS_LIMIT:]
        self.emotional_moments: list[EmotionalMoment] = list(emotional_moments or [])[-EMOTIONAL_MOMENTS_LIMIT:]
        self.inside_jokes: list[str] = list(inside_jokes or [])
        self.themes: list[str] = list(themes or [])
        self.profile = profile or UserProfile()
        self.behavior_timers: dict[str, float] = dict(behavior_timers or {})
        self.activity: dict[str, int] = dict(activity or {})
        self.emotional_history: dict = dict(emotional_history or {})
        self._clock = clock
        self._rng = rng or random.Random()

    # ── threads ──

    def track_topic(self, topic: str, user_text: str, engagement: float = 0.5) -> ConversationThread:
        thread = ConversationThread(
            topic=topic,
            status=determine_status(user_text, engagement),
            last_mentioned=self._clock(),
            importance=calculate_importance(topic, user_text),
            context=user_text[:200],
            user_engagement=engagement,
        )
        self.threads[topic] = thread
        self.recent_topics = _append_unique(self.recent_topics, topic, RECENT_TOPICS_LIMIT)
        return thread

    def generate_follow_up(self, topic: str) -> str | None:
        thread = self.threads.get(topic)
        if thread is None or thread.status == "resolved":
            return None
        if self._clock() - thread.last_mentioned < FOLLOW_UP_MIN_GAP_SECONDS:
            return None

        templates = FOLLOW_UP_TEMPLATES.get(categorize_topic(topic))
        if not templates:
            return self._rng.choice(GENERIC_FOLLOW_UPS).format(topic=topic)
        return self._rng.choice(templates)

    def pending_follow_up(self) -> str | None:
        """Follow-up for the most important open thread that is due, if any."""
        candidates = sorted(
            (t for t in self.threads.values() if t.status in ("ongoing", "needs_followup")),
            key=lambda t: t.importance,
            reverse=True,
        )
        for thread in candidates:
            question = self.generate_follow_up(thread.topic)
            if question:
                return question
        return None

    def cleanup_old_threads(self, days_old: int = 7) -> int:
        cutoff = self._clock() - days_old * 86400
        stale = [
            topic for topic, t in self.threads.items()
            if t.last_mentioned < cutoff and t.importance < 0.5
        ]
        for topic in stale:
            del self.threads[topic]
        if stale:
            logger.info("Cleaned up %d old conversation threads", len(stale))
        return len(stale)

    def continuity(self) -> dict:
        active = [t for t in self.threads.values() if t.status in ("ongoing", "needs_followup")]
        return {
            "active_threads": len(active),
            "total_threads": len(self.threads),
            "recent_topics": self.recent_topics[-5:],
            "high_priority_threads": [t.topic for t in active if t.importance > 0.7],
            "needs_followup": [t.topic for t in active if t.status == "needs_followup"],
        }

    def unresolved_topics(self, limit: int = 3) -> list[str]:
        open_threads = [t for t in self.threads.values() if t.status != "resolved"]
        open_threads.sort(key=lambda t: t.last_mentioned)
        return [t.topic for t in open_threads[-limit:]]

    # ── emotional moments / jokes / themes ──

    def record_emotional_moment(self, text: str, emotion: str, intensity: float) -> EmotionalMoment | None:
        if emotion == "neutral" or intensity <= MOMENT_MIN_INTENSITY:
            return None
        moment = EmotionalMoment(
            timestamp=datetime.fromtimestamp(self._clock(), tz=timezone.utc).isoformat(),
            description=text[:100],
            emotion=emotion,
            intensity=intensity,
        )
        self.emotional_moments.append(moment)
        if len(self.emotional_moments) > EMOTIONAL_MOMENTS_LIMIT:
            self.emotional_moments = self.emotional_moments[-EMOTIONAL_MOMENTS_LIMIT:]
        return moment

    def add_inside_joke(self, joke: str) -> None:
        self.inside_jokes = _append_unique(self.inside_jokes, joke, INSIDE_JOKES_LIMIT)

    def update_themes(self, text: str) -> list[str]:
        found = analyze_themes(text)
        for theme in found:
            if theme not in self.themes:
                self.themes.append(theme)
        return found

    # ── user facts ──

    def extract_basic_info(self, text: str) -> None:
        name = _NAME.search(text)
        if name and name.group(1) not in _NAME_STOPWORDS:
            self.profile.name = name.group(1)

        age = _AGE.search(text)
        if age:
            self.profile.age = int(age.group(1))

        location = _LOCATION.search(text)
        if location:
            self.profile.location = location.group(1)

        self.extract_preferences(text)

    def extract_preferences(self, text: str) -> None:
        for match in _DISLIKES.finditer(text):
            value = match.group(1).strip().lower()
            if value and value not in _PREFERENCE_STOPWORDS:
                self.profile.dislikes = _append_unique(self.profile.dislikes, value, PREFERENCE_LIMIT)
        for match in _LIKES.finditer(text):
            value = match.group(1).strip().lower()
            if value and value.split()[0] not in _PREFERENCE_STOPWORDS:
                self.profile.likes = _append_unique(self.profile.likes, value, PREFERENCE_LIMIT)

    # ── phrasing helpers ──

    def natural_transition(self, new_topic: str) -> str:
        return self._rng.choice(TRANSITION_PHRASES).format(topic=new_topic)

    def validation_response(self, emotion: str = "") -> str:
        if emotion in ("sad", "stressed", "anxious"):
            pool = VALIDATION_RESPONSES["distress"]
        elif emotion in ("happy", "excited"):
            pool = VALIDATION_RESPONSES["joy"]
        else:
            pool = VALIDATION_RESPONSES["general"]
        return self._rng.choice(pool)

    # ── serialization ──

    def to_dict(self) -> dict:
        return {
            "threads": {topic: asdict(t) for topic, t in self.threads.items()},
            "recent_topics": list(self.recent_topics),
            "emotional_moments": [asdict(m) for m in self.emotional_moments],
            "inside_jokes": list(self.inside_jokes),
            "themes": list(self.themes),
            "profile": asdict(self.profile),
            "behavior_timers": dict(self.behavior_timers),
            "activity": dict(self.activity),
            "emotional_history": dict(self.emotional_history),
        }

    @classmethod
    def from_dict(
        cls,
        data: dict | None,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ) -> "ConversationMemory":
        data = data or {}
        return cls(
            threads={topic: ConversationThread(**t) for topic, t in (data.get("threads") or {}).items()},
            recent_topics=data.get("recent_topics"),
            emotional_moments=[EmotionalMoment(**m) for m in data.get("emotional_moments") or []],
            inside_jokes=data.get("inside_jokes"),
            themes=data.get("themes"),
            profile=UserProfile(**(data.get("profile") or {})),
            behavior_timers=data.get("behavior_timers"),
            activity=data.get("activity"),
            emotional_history=data.get("emotional_history"),
            clock=clock,
            rng=rng,
        )
