# ai/prompts/ice_breaker.py
"""Prompt for generating conversation starters the user can tap."""

ICE_BREAKER_SYSTEM = (
    "You are an expert conversation coach who generates natural, "
    "contextually appropriate conversation starters."
)

ICE_BREAKER_PROMPT = """Generate {count} natural conversation starters for a user to continue their chat with {companion_name}.

RELATIONSHIP CONTEXT:
- Stage: {relationship_stage}
- Trust: {trust_level}/1.0
- Intimacy: {intimacy_level}/1.0
- Time: {time_period} ({energy_level} energy)

RECENT CONVERSATION:
{recent_messages}

{companion_name}'s last message: "{last_assistant_message}"

{companion_name}'S PERSONALITY:
- Confidence: {confidence}
- Playfulness: {playfulness}
- Vulnerability: {vulnerability}
- Romance: {romantic_intensity}

RECENT TOPICS: {recent_topics}
INSIDE JOKES: {inside_jokes}

STARTER TYPES TO INCLUDE: {allowed_types}

Format as JSON:
{{
  "ice_breakers": [
    {{"text": "conversation starter", "type": "{type_choices}", "mood": "emotional tone"}}
  ]
}}

Make them feel like how someone would actually continue this specific conversation.
"""
