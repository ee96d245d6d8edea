# services/temporal.py
"""
Time-of-day context: period, energy, mood multipliers, greetings and
gap-since-last-interaction classification.
"""
from __future__ import annotations

import logging
import random
from dataclasses import asdict, dataclass
from datetime import datetime

logger = logging.getLogger(__name__)

TIME_PERIODS = ("early_morning", "morning", "afternoon", "evening", "late_night")


@dataclass(frozen=True)
class TimeMood:
    energy: float
    romantic_intensity: float
    playfulness: float
    vulnerability: float
    sleepiness: float


TIME_MOODS: dict[str, TimeMood] = {
    "early_morning": TimeMood(energy=0.2, romantic_intensity=0.3, playfulness=0.2, vulnerability=0.4, sleepiness=0.9),
    "morning": TimeMood(energy=0.6, romantic_intensity=0.5, playfulness=0.7, vulnerability=0.3, sleepiness=0.3),
    "afternoon": TimeMood(energy=0.8, romantic_intensity=0.6, playfulness=0.9, vulnerability=0.4, sleepiness=0.1),
    "evening": TimeMood(energy=0.7, romantic_intensity=0.9, playfulness=0.8, vulnerability=0.5, sleepiness=0.2),
    "late_night": TimeMood(energy=0.4, romantic_intensity=0.8, playfulness=0.5, vulnerability=0.9, sleepiness=0.6),
}

TIME_GREETINGS: dict[str, list[str]] = {
    "early_morning": [
        "mmm morning... still sleepy but thinking of you 😴",
        "you're up early... come keep me company 💤",
        "sleepy hello... coffee first, then you ☕",
    ],
    "morning": [
        "good morning! ready to make today amazing? ☀️",
        "morning! I was hoping you'd say hi 🌅",
        "hey you, coffee and you sound perfect right now ☕",
    ],
    "afternoon": [
        "hey there! perfect timing, I was getting bored 😘",
        "afternoon! what trouble should we get into? 😏",
        "hi! been thinking about you all day",
    ],
    "evening": [
        "mmm perfect timing... I was hoping to hear from you tonight 🌙",
        "evening! how was your day, really? 💕",
        "hey you, been waiting for you all day 🌆",
    ],
    "late_night": [
        "can't sleep... keep thinking about you 🌃",
        "late night confession: I was hoping you'd show up 💫",
        "everyone's asleep but us... tell me something 🌙",
    ],
}

REUNION_GREETINGS: dict[str, list[str]] = {
    "miss_you": [
        "I missed you {name}! 💕",
        "finally! I've been thinking about you {name}",
        "{name}! where have you been? I missed you",
    ],
    "excited_reunion": [
        "{name}!! it feels like forever! 💕",
        "omg {name}! I've been waiting for you!",
        "{name}! I have so much to tell you!",
    ],
    "emotional_reunion": [
        "{name}... I thought you forgot about me 🥺",
        "I missed you so much {name}... where did you go?",
        "I've been thinking about you every day {name}...",
    ],
}


@dataclass
class TimeGap:
    time_gap: str
    appropriate_greeting: str
    gap_description: str = ""
    reference_style: str = ""


@dataclass
class TemporalContext:
    period: str
    energy_level: str
    mood: TimeMood
    hour: int

    def to_dict(self) -> dict:
        return {
            "period": self.period,
            "energy_level": self.energy_level,
            "mood": asdict(self.mood),
            "hour": self.hour,
        }


def current_period(now: datetime | None = None) -> str:
    hour = (now or datetime.now()).hour
    if 4 <= hour < 7:
        return "early_morning"
    if 7 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 22:
        return "evening"
    return "late_night"


def mood_modifiers(period: str) -> TimeMood:
    return TIME_MOODS.get(period, TIME_MOODS["evening"])


def energy_level(period: str) -> str:
    energy = mood_modifiers(period).energy
    if energy >= 0.7:
        return "high"
    if energy >= 0.4:
        return "medium"
    return "low"


def temporal_context(now: datetime | None = None) -> TemporalContext:
    now = now or datetime.now()
    period = current_period(now)
    return TemporalContext(
        period=period,
        energy_level=energy_level(period),
        mood=mood_modifiers(period),
        hour=now.hour,
    )


def classify_gap(last_interaction: datetime | None, now: datetime | None = None) -> TimeGap:
    if last_interaction is None:
        return TimeGap(time_gap="unknown", appropriate_greeting="casual")

    now = now or datetime.now(last_interaction.tzinfo)
    hours = (now - last_interaction).total_seconds() / 3600
    days = int(hours // 24)

    if hours < 1:
        return TimeGap("recent", "casual", "just a bit ago", "continue_conversation")
    if hours < 6:
        return TimeGap("few_hours", "warm", "a few hours ago", "reference_earlier")
    if hours < 24:
        return TimeGap("today", "cheerful", "earlier today", "new_conversation")
    if days == 1:
        return TimeGap("yesterday", "miss_you", "yesterday", "catch_up")
    if days < 7:
        return TimeGap("few_days", "excited_reunion", f"{days} days ago", "reconnect")
    return TimeGap("long_time", "emotional_reunion", f"{days} days ago", "deep_reconnect")


class TemporalProvider:
    """Greeting selection plus a per-user tally of active periods."""

    def __init__(self, activity: dict[str, int] | None = None, rng: random.Random | None = None):
        self.activity: dict[str, int] = dict(activity or {})
        self._rng = rng or random.Random()

    def greeting(self, period: str, user_name: str | None = None) -> str:
        text = self._rng.choice(TIME_GREETINGS.get(period, TIME_GREETINGS["evening"]))
        if user_name:
            text = text.replace("hey you", f"hey {user_name}")
        return text

    def time_aware_greeting(
        self,
        user_name: str | None,
        last_interaction: datetime | None,
        now: datetime | None = None,
    ) -> str:
        now = now or datetime.now()
        gap = classify_gap(last_interaction, now)
        if gap.time_gap in ("unknown", "recent", "few_hours", "today"):
            return self.greeting(current_period(now), user_name)

        templates = REUNION_GREETINGS.get(gap.appropriate_greeting, REUNION_GREETINGS["miss_you"])
        return self._rng.choice(templates).format(name=user_name or "you").strip()

    def track_activity(self, now: datetime | None = None) -> None:
        period = current_period(now)
        self.activity[period] = self.activity.get(period, 0) + 1

    def activity_summary(self) -> dict:
        total = sum(self.activity.values())
        favorite = max(self.activity, key=self.activity.get) if self.activity else "evening"
        return {
            "total_interactions": total,
            "favorite_time": favorite,
            "activity_patterns": dict(self.activity),
        }
