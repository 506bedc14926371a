"""Tests for static vocabulary data and safe alternatives."""

from __future__ import annotations

from safeharbor.services.vocabulary import (
    SAFE_PHRASE_SUGGESTIONS,
    safe_alternatives_for,
    vocabulary_payload,
)


def test_scenario_returns_only_its_suggestions() -> None:
    payload = vocabulary_payload("sadness")
    assert payload == {"suggestions": list(SAFE_PHRASE_SUGGESTIONS["sadness"])}


def test_default_payload_is_truncated() -> None:
    payload = vocabulary_payload()
    assert len(payload["vocabulary"]) == 50
    assert len(payload["suggestions"]) == 10
    assert payload["suggestions"][:3] == list(SAFE_PHRASE_SUGGESTIONS["frustration"])


def test_unknown_scenario_falls_back_to_default() -> None:
    assert vocabulary_payload("boredom") == vocabulary_payload()


def test_safe_alternatives_for_language_and_bullying() -> None:
    assert "I'm frustrated with this situation" in safe_alternatives_for(["profanity_low"])
    assert "I see things differently" in safe_alternatives_for(["openai_bullying"])
    assert len(safe_alternatives_for(["profanity_low", "bullying_low"])) == 6
    assert safe_alternatives_for(["self_harm_critical"]) == ()
