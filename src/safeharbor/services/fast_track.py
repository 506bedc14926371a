# src/safeharbor/services/fast_track.py
"""Cheap pre-filter that approves obviously safe short content."""

from __future__ import annotations

import re
import time

from safeharbor.services.categories import CategoryRuleSet
from safeharbor.services.types import ModerationResult, ModerationStatus

FAST_TRACK_CONFIDENCE = 0.95

_BASIC_PROFANITY = re.compile(r"\b(fuck|shit|damn|bitch)\b", re.IGNORECASE)

_SAFE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"\b(learn(?:s|ed|ing)?|stud(?:y|ies|ied|ying)|school|homework|project|assignment"
        r"|math|science|reading|writing|teacher|class|lesson)\b",
        re.IGNORECASE,
    ),
    re.compile(
        r"\b(happy|excited|proud|grateful|thankful|love|enjoy(?:ed|ing)?|fun|awesome)\b",
        re.IGNORECASE,
    ),
)


class FastTrackClassifier:
    """Approve short content built from known-safe vocabulary.

    Anything that trips a rule of the full rule set is left for the full
    pipeline, so a fast-track approval never disagrees with it.
    """

    def __init__(self, rule_set: CategoryRuleSet | None = None, max_length: int = 500) -> None:
        self.rule_set = rule_set or CategoryRuleSet()
        self.max_length = max_length

    def classify(self, content: str) -> ModerationResult | None:
        start = time.perf_counter()

        if len(content) >= self.max_length:
            return None
        if not any(pattern.search(content) for pattern in _SAFE_PATTERNS):
            return None
        if _BASIC_PROFANITY.search(content) or self.rule_set.matches_any(content):
            return None

        return ModerationResult(
            status=ModerationStatus.APPROVED,
            risk_score=0,
            flags=(),
            confidence=FAST_TRACK_CONFIDENCE,
            processing_time_ms=int((time.perf_counter() - start) * 1000),
            requires_human_review=False,
            reason="Content approved for publication",
        )
