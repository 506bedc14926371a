# src/safeharbor/services/vocabulary.py
"""Static child-safe vocabulary and phrase suggestions."""

from __future__ import annotations

from collections.abc import Iterable

from safeharbor.services.types import unique

CHILD_SAFE_VOCABULARY: tuple[str, ...] = (
    "happy", "fun", "play", "learn", "study", "friend", "school", "teacher",
    "book", "game", "art", "music", "dance", "sport", "science", "math",
    "reading", "writing", "adventure", "explore", "create", "build", "design",
    "project", "team", "help", "share", "kind", "nice", "good", "great",
    "awesome", "cool", "amazing", "wonderful", "beautiful", "smart",
    "creative", "talented", "brave", "strong", "gentle", "caring", "family",
    "parent", "sibling", "pet", "nature", "animal", "flower", "tree",
    "sunshine", "rainbow", "star", "moon", "earth", "water", "food",
    "healthy", "exercise", "sleep", "dream", "hope", "wish", "birthday",
    "celebration", "gift",
)

SAFE_PHRASE_SUGGESTIONS: dict[str, tuple[str, ...]] = {
    "frustration": (
        "I need help with this",
        "This is challenging for me",
        "I'm working hard on this",
    ),
    "disagreement": (
        "I have a different idea",
        "Let's talk about this",
        "I respect your opinion",
    ),
    "sadness": (
        "I'm feeling down today",
        "I need some encouragement",
        "This is hard for me",
    ),
    "excitement": (
        "I'm really happy about this!",
        "This is so cool!",
        "I can't wait to share this!",
    ),
    "achievement": (
        "I worked really hard on this",
        "I'm proud of my progress",
        "I learned something new today",
    ),
}

VOCABULARY_PREVIEW_SIZE = 50
SUGGESTION_PREVIEW_SIZE = 10

_SAFE_ALTERNATIVES: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (
        ("explicit_language", "profanity"),
        (
            "I'm frustrated with this situation",
            "This is really challenging",
            "I'm having a hard time with this",
        ),
    ),
    (
        ("bullying",),
        (
            "I disagree with your opinion",
            "I see things differently",
            "Let's talk about this respectfully",
        ),
    ),
)


def safe_alternatives_for(flags: Iterable[str]) -> tuple[str, ...]:
    """Return kinder rephrasings for the categories present in ``flags``."""
    flags = tuple(flags)
    alternatives: list[str] = []
    for markers, phrases in _SAFE_ALTERNATIVES:
        if any(marker in flag for flag in flags for marker in markers):
            alternatives.extend(phrases)
    return unique(alternatives)


def vocabulary_payload(scenario: str | None = None) -> dict[str, list[str]]:
    """Build the response for the read-only vocabulary endpoint."""
    if scenario and scenario in SAFE_PHRASE_SUGGESTIONS:
        return {"suggestions": list(SAFE_PHRASE_SUGGESTIONS[scenario])}

    all_suggestions = [phrase for phrases in SAFE_PHRASE_SUGGESTIONS.values() for phrase in phrases]
    return {
        "vocabulary": list(CHILD_SAFE_VOCABULARY[:VOCABULARY_PREVIEW_SIZE]),
        "suggestions": all_suggestions[:SUGGESTION_PREVIEW_SIZE],
    }
