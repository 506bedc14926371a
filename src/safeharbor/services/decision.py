# src/safeharbor/services/decision.py
"""Ordered threshold rules mapping a score and flags to a verdict."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from safeharbor.services.types import ModerationStatus, unique


@dataclass(frozen=True)
class DecisionRule:
    """One row of the policy table; the first matching row wins.

    A rule matches when the score reaches ``min_score`` or when any flag
    contains one of ``flag_markers``. Category markers apply regardless of
    score because some categories are unsafe for minors at any volume.
    """

    status: ModerationStatus
    min_score: float
    flag_markers: tuple[str, ...]
    reason: str
    requires_human_review: bool = True

    def matches(self, score: float, flags: Sequence[str]) -> bool:
        if score >= self.min_score:
            return True
        return any(marker in flag for flag in flags for marker in self.flag_markers)


@dataclass(frozen=True)
class Decision:
    status: ModerationStatus
    requires_human_review: bool
    reason: str
    suggestions: tuple[str, ...] = ()


DEFAULT_RULES: tuple[DecisionRule, ...] = (
    DecisionRule(
        status=ModerationStatus.REJECTED,
        min_score=25,
        flag_markers=("self_harm", "violence_threats", "stranger_danger"),
        reason="Content contains highly inappropriate or dangerous material",
    ),
    DecisionRule(
        status=ModerationStatus.PENDING_REVIEW,
        min_score=15,
        flag_markers=("bullying", "personal_information"),
        reason="Content requires human review before publication",
    ),
    DecisionRule(
        status=ModerationStatus.FLAGGED,
        min_score=5,
        flag_markers=(
            "explicit_language",
            "profanity",
            "substance_references",
            "inappropriate_content",
        ),
        reason="Content flagged for potential issues",
    ),
)

APPROVED_REASON = "Content approved for publication"

# (flag marker, suggestion); checked in order so output is deterministic.
SUGGESTIONS: tuple[tuple[str, str], ...] = (
    ("self_harm", "If you're having difficult feelings, please talk to a trusted adult or counselor"),
    ("stranger_danger", "Never arrange to meet strangers online or share personal information"),
    (
        "personal_information",
        "Never share personal information like addresses, phone numbers, or email addresses online",
    ),
    ("violence", "Content contains violent language not suitable for children"),
    ("bullying", "Please be kind and respectful to others"),
    ("explicit_language", "Please use appropriate language suitable for children"),
    ("profanity", "Please use appropriate language suitable for children"),
    ("substance_references", "Content about drugs and alcohol is not appropriate for children"),
    ("inappropriate_content", "Content about drugs and alcohol is not appropriate for children"),
)


def suggestions_for(flags: Iterable[str]) -> tuple[str, ...]:
    """Return remediation suggestions for the categories present in ``flags``."""
    flags = tuple(flags)
    return unique(
        suggestion
        for marker, suggestion in SUGGESTIONS
        if any(marker in flag for flag in flags)
    )


class DecisionEngine:
    """Pure function from ``(score, flags)`` to a :class:`Decision`."""

    def __init__(self, rules: Sequence[DecisionRule] = DEFAULT_RULES) -> None:
        self.rules = tuple(rules)

    def decide(self, score: float, flags: Sequence[str]) -> Decision:
        for rule in self.rules:
            if rule.matches(score, flags):
                return Decision(
                    status=rule.status,
                    requires_human_review=rule.requires_human_review,
                    reason=rule.reason,
                    suggestions=suggestions_for(flags),
                )
        return Decision(
            status=ModerationStatus.APPROVED,
            requires_human_review=False,
            reason=APPROVED_REASON,
        )
