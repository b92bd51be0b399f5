from __future__ import annotations

from career_roadmap.models import Profile, Roadmap
from career_roadmap.schema import dump_roadmap

ROADMAP_STEP_COUNT = 7

# System instruction for plan generation
ROADMAP_SYSTEM_PROMPT = f"""You are a world-class career strategist. Create a highly professional {ROADMAP_STEP_COUNT}-step learning roadmap.
Format: JSON array of objects. Each object: {{"step": "Title", "desc": "3-4 sentences of deep insight", "links": [{{"label": "Resource", "url": "URL"}}]}}.
Use high-quality resources like Harvard Business Review, Coursera, or industry-specific documentation.
Output JSON only. No markdown."""

CHAT_FALLBACK_REPLY = "I apologize, I'm experiencing a brief connectivity issue. Could you repeat that?"


def build_plan_prompt(profile: Profile) -> str:
    """
    User prompt for plan generation. Goal may be empty.
    """
    return f"Target: {profile.interest}. Career Goal: {profile.goal}. User Name: {profile.name}."


def build_mentor_instruction(profile: Profile) -> str:
    """Binds the chat persona to the user's profile."""
    return (
        f"You are the Lead Mentor for {profile.name}. "
        f"You are assisting them in reaching the goal of {profile.goal} in the field of {profile.interest}. "
        "Use a professional, encouraging, and sophisticated tone."
    )


def build_chat_prompt(roadmap: Roadmap, message: str) -> str:
    return f"Context Roadmap: {dump_roadmap(roadmap or [])}. User Message: {message}"


def welcome_message(profile: Profile) -> str:
    return (
        f"Greetings, {profile.name}. Your strategic roadmap for {profile.interest} is now active. "
        "I am here to provide granular guidance on any of these phases."
    )
