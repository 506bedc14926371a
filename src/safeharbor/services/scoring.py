# src/safeharbor/services/scoring.py
"""Lexical risk scoring over the category rule table."""

from __future__ import annotations

from dataclasses import dataclass

from safeharbor.services.categories import CategoryFlag, CategoryRuleSet


@dataclass(frozen=True)
class PatternScore:
    """Raw lexical score and the tiers that contributed to it."""

    raw_score: int
    flags: tuple[CategoryFlag, ...]
    match_counts: dict[str, int]

    @property
    def tokens(self) -> tuple[str, ...]:
        return tuple(flag.token for flag in self.flags)


class PatternScorer:
    """Score content against every rule in a :class:`CategoryRuleSet`.

    All tiers of all categories are evaluated; a message containing both
    bullying and substance references contributes to both.
    """

    def __init__(self, rule_set: CategoryRuleSet | None = None, confidence: float = 0.8) -> None:
        self.rule_set = rule_set or CategoryRuleSet()
        self.confidence = confidence

    def score(self, content: str) -> PatternScore:
        raw_score = 0
        flags: list[CategoryFlag] = []
        match_counts: dict[str, int] = {}

        for rule in self.rule_set:
            matches = sum(1 for _ in rule.pattern.finditer(content))
            if matches == 0:
                continue
            raw_score += (
                matches * self.rule_set.weight(rule.category) * rule.severity.multiplier
            )
            flags.append(rule.flag)
            match_counts[rule.flag.token] = matches

        return PatternScore(raw_score=raw_score, flags=tuple(flags), match_counts=match_counts)
