"""Tests for the pattern scorer."""

from __future__ import annotations

import pytest

from safeharbor.services.categories import Category, CategoryRuleSet
from safeharbor.services.scoring import PatternScorer


@pytest.fixture()
def scorer() -> PatternScorer:
    return PatternScorer()


def test_clean_content_scores_zero(scorer: PatternScorer) -> None:
    result = scorer.score("I love learning math and science!")
    assert result.raw_score == 0
    assert result.flags == ()


def test_self_harm_scores_every_matching_tier(scorer: PatternScorer) -> None:
    result = scorer.score("I want to kill myself")
    # violence high (15 * 3) + self-harm critical (25 * 4)
    assert result.raw_score == 145
    assert set(result.tokens) == {"violence_high", "self_harm_critical"}


def test_bullying_low_tier(scorer: PatternScorer) -> None:
    result = scorer.score("you are so stupid and ugly")
    assert result.raw_score == 24
    assert result.tokens == ("bullying_low",)
    assert result.match_counts == {"bullying_low": 2}


def test_email_is_personal_information(scorer: PatternScorer) -> None:
    result = scorer.score("contact me at a@b.com")
    assert result.tokens == ("personal_information_high",)
    assert result.raw_score == 60


def test_repeated_matches_accumulate(scorer: PatternScorer) -> None:
    assert scorer.score("stupid").raw_score == 12
    assert scorer.score("stupid stupid stupid").raw_score == 36


def test_categories_do_not_short_circuit(scorer: PatternScorer) -> None:
    result = scorer.score("shut up, you bring beer to school")
    assert {flag.category for flag in result.flags} == {
        Category.BULLYING,
        Category.INAPPROPRIATE_CONTENT,
    }


@pytest.mark.parametrize(
    ("base", "extra"),
    [
        ("you are dumb", " shut up"),
        ("hello", " where do you live"),
        ("my phone number", " is 5551234567"),
        ("that was a fight", " with a knife"),
    ],
)
def test_adding_matches_never_lowers_score(scorer: PatternScorer, base: str, extra: str) -> None:
    assert scorer.score(base + extra).raw_score >= scorer.score(base).raw_score


def test_zero_weight_still_flags() -> None:
    scorer = PatternScorer(CategoryRuleSet(weights={"bullying": 0}))
    result = scorer.score("stupid")
    assert result.raw_score == 0
    assert result.tokens == ("bullying_low",)


def test_static_confidence_is_configurable() -> None:
    assert PatternScorer().confidence == 0.8
    assert PatternScorer(confidence=0.6).confidence == 0.6
