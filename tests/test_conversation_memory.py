# tests/test_conversation_memory.py
"""
Tests for topic threads, follow-ups, emotional moments and fact extraction.
"""
from __future__ import annotations

from conftest import FakeClock, FixedRandom
from services.conversation_memory import (
    FOLLOW_UP_TEMPLATES,
    TRANSITION_PHRASES,
    VALIDATION_RESPONSES,
    ConversationMemory,
    analyze_themes,
    categorize_topic,
    determine_status,
)


def test_track_topic_updates_recent_topics_without_duplicates():
    memory = ConversationMemory(clock=FakeClock())
    memory.track_topic("work deadline", "My work deadline is killing me", 0.8)
    memory.track_topic("work deadline", "Still on that deadline", 0.5)
    assert memory.recent_topics == ["work deadline"]
    assert memory.threads["work deadline"].status == "ongoing"


def test_repeated_topic_moves_to_most_recent():
    memory = ConversationMemory(clock=FakeClock())
    for i in range(15):
        memory.track_topic(f"topic {i}", "just chatting about it", 0.5)
    memory.track_topic("topic 0", "back to this again", 0.5)
    memory.track_topic("brand new", "something else entirely", 0.5)

    assert len(memory.recent_topics) == 15
    assert memory.recent_topics[-2:] == ["topic 0", "brand new"]
    assert "topic 1" not in memory.recent_topics


def test_determine_status():
    assert determine_status("it all worked out in the end", 0.9) == "resolved"
    assert determine_status("ugh", 0.1) == "waiting_for_user"
    assert determine_status("big news today", 0.9) == "needs_followup"


def test_follow_up_requires_two_hours():
    clock = FakeClock()
    memory = ConversationMemory(clock=clock, rng=FixedRandom())
    memory.track_topic("boss meeting", "My boss meeting went badly", 0.9)

    assert memory.generate_follow_up("boss meeting") is None
    clock.advance(2 * 60 * 60 + 1)
    assert memory.generate_follow_up("boss meeting") in FOLLOW_UP_TEMPLATES["work_stress"]
    assert memory.pending_follow_up() is not None


def test_resolved_thread_has_no_follow_up():
    clock = FakeClock()
    memory = ConversationMemory(clock=clock)
    memory.track_topic("exam", "the exam is all good now", 0.5)
    clock.advance(3 * 60 * 60)
    assert memory.generate_follow_up("exam") is None


def test_cleanup_removes_only_old_unimportant_threads():
    clock = FakeClock()
    memory = ConversationMemory(clock=clock)
    memory.track_topic("weather", "ok", 0.5)
    memory.threads["weather"].importance = 0.4
    memory.track_topic("family dinner", "my family dinner was hard", 0.5)

    clock.advance(8 * 86400)
    assert memory.cleanup_old_threads() == 1
    assert list(memory.threads) == ["family dinner"]


def test_emotional_moment_threshold():
    memory = ConversationMemory(clock=FakeClock())
    assert memory.record_emotional_moment("meh", "sad", 0.5) is None
    assert memory.record_emotional_moment("hi", "neutral", 0.9) is None
    moment = memory.record_emotional_moment("I failed my exam", "sad", 0.8)
    assert moment.emotion == "sad"
    assert len(memory.emotional_moments) == 1


def test_extract_basic_info():
    memory = ConversationMemory()
    memory.extract_basic_info("Hi, my name is Jordan and I'm 27 years old. I live in New York")
    assert memory.profile.name == "Jordan"
    assert memory.profile.age == 27
    assert memory.profile.location == "New York"


def test_name_stopwords_are_ignored():
    memory = ConversationMemory()
    memory.extract_basic_info("I'm Tired of all this")
    assert memory.profile.name is None


def test_extract_preferences():
    memory = ConversationMemory()
    memory.extract_basic_info("I really love hiking in the mountains. I hate traffic.")
    assert memory.profile.likes == ["hiking in the mountains"]
    assert memory.profile.dislikes == ["traffic"]
    assert "Likes: hiking in the mountains" in memory.profile.summary()


def test_themes():
    assert set(analyze_themes("My boss and my mom both called")) == {"work", "family"}
    memory = ConversationMemory()
    memory.update_themes("watched a movie")
    memory.update_themes("another movie")
    assert memory.themes == ["hobbies"]


def test_categorize_topic():
    assert categorize_topic("doctor visit") == "health_concerns"
    assert categorize_topic("pizza") == "general"


def test_round_trip():
    clock = FakeClock()
    memory = ConversationMemory(clock=clock)
    memory.track_topic("career change", "thinking about a career change", 0.6)
    memory.add_inside_joke("pineapple pizza")
    memory.behavior_timers["ask_followup"] = clock()
    memory.profile.name = "Jordan"

    restored = ConversationMemory.from_dict(memory.to_dict(), clock=clock)
    assert restored.threads["career change"].topic == "career change"
    assert restored.inside_jokes == ["pineapple pizza"]
    assert restored.behavior_timers == {"ask_followup": clock()}
    assert restored.profile.name == "Jordan"


def test_continuity_lists_priority_and_follow_up_threads():
    memory = ConversationMemory(clock=FakeClock())
    memory.track_topic("job interview", "my job interview is tomorrow", 0.9)
    memory.threads["job interview"].importance = 0.9
    memory.threads["job interview"].status = "ongoing"
    memory.track_topic("new puppy", "we got a puppy", 0.9)
    memory.threads["new puppy"].status = "needs_followup"
    memory.track_topic("old bug", "the bug is resolved", 0.5)
    memory.threads["old bug"].status = "resolved"

    summary = memory.continuity()
    assert summary["total_threads"] == 3
    assert summary["active_threads"] == 2
    assert "job interview" in summary["high_priority_threads"]
    assert summary["needs_followup"] == ["new puppy"]


def test_phrasing_helpers_pick_from_matching_pools():
    memory = ConversationMemory(clock=FakeClock(), rng=FixedRandom())
    transition = memory.natural_transition("cooking")
    assert any(transition == p.format(topic="cooking") for p in TRANSITION_PHRASES)
    assert memory.validation_response("anxious") in VALIDATION_RESPONSES["distress"]
    assert memory.validation_response("happy") in VALIDATION_RESPONSES["joy"]
    assert memory.validation_response() in VALIDATION_RESPONSES["general"]
