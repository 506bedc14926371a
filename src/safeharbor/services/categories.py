# src/safeharbor/services/categories.py
"""Lexical rule table grouped by risk category and severity tier.

Categories and severities are closed enumerations so that a typo in a rule
or weight override fails at construction time instead of silently creating
a flag that no decision rule recognises.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum


class Category(str, Enum):
    """Risk categories scored by the lexical rules."""

    VIOLENCE = "violence"
    SELF_HARM = "self_harm"
    PERSONAL_INFORMATION = "personal_information"
    BULLYING = "bullying"
    INAPPROPRIATE_CONTENT = "inappropriate_content"
    PROFANITY = "profanity"
    STRANGER_DANGER = "stranger_danger"


class Severity(str, Enum):
    """Severity tiers; each tier scales the category weight."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def multiplier(self) -> int:
        return _SEVERITY_MULTIPLIERS[self]


_SEVERITY_MULTIPLIERS: dict[Severity, int] = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
}

DEFAULT_CATEGORY_WEIGHTS: dict[Category, int] = {
    Category.VIOLENCE: 15,
    Category.SELF_HARM: 25,
    Category.PERSONAL_INFORMATION: 20,
    Category.BULLYING: 12,
    Category.INAPPROPRIATE_CONTENT: 8,
    Category.PROFANITY: 10,
    Category.STRANGER_DANGER: 30,
}

_STREET_SUFFIXES = r"street|st|avenue|ave|road|rd|boulevard|blvd|lane|ln|drive|dr|court|ct|place|pl"

DEFAULT_RULES: dict[Category, dict[Severity, str]] = {
    Category.VIOLENCE: {
        Severity.HIGH: r"\b(kill|murder|shoot|stab|bomb|terrorist|massacre|slaughter|execute|torture|assault)\b",
        Severity.MEDIUM: (
            r"\b(hurt|harm|fight|attack|beat|punch|kick|weapon|gun|knife|blood|brutal|destroy)\b"
        ),
        Severity.LOW: r"\b(hit|slap|die|dead|eliminate|threat|terror)\b",
    },
    Category.SELF_HARM: {
        Severity.CRITICAL: (
            r"\b(suicide|kill myself|end it all|want to die|better off dead|no reason to live)\b"
        ),
        Severity.HIGH: r"\b(hurt myself|cut myself|cutting|overdose|razor|blade|wrist|hanging)\b",
        Severity.MEDIUM: r"\b(self.harm|pills|depressed|hopeless|worthless)\b",
    },
    Category.PERSONAL_INFORMATION: {
        Severity.CRITICAL: (
            r"\b\d{3}-\d{2}-\d{4}\b"
            r"|\b\d{10}\b"
            rf"|\b\d+\s+(?:[A-Za-z0-9.,'-]+\s+){{1,4}}(?:{_STREET_SUFFIXES})\b"
        ),
        Severity.HIGH: r"\b[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}\b",
        Severity.MEDIUM: r"\b(my address|phone number|where I live|my school is)\b",
    },
    Category.BULLYING: {
        Severity.HIGH: (
            r"\b(you (are|look|sound) (stupid|ugly|fat|dumb|weird|loser|pathetic|worthless)"
            r"|kill yourself|nobody likes you|everyone hates you)\b"
        ),
        Severity.MEDIUM: (
            r"\b(you have no friends|go away|shut up|you suck|i hate you|you're annoying)\b"
        ),
        Severity.LOW: r"\b(dumb|stupid|weird|ugly)\b",
    },
    Category.INAPPROPRIATE_CONTENT: {
        Severity.HIGH: r"\b(sex|porn|nude|naked|cocaine|heroin|meth)\b",
        Severity.MEDIUM: r"\b(drugs|marijuana|weed|alcohol|drunk|high|stoned)\b",
        Severity.LOW: r"\b(smoking|cigarette|vape|beer|wine)\b",
    },
    Category.PROFANITY: {
        Severity.HIGH: r"\b(fuck|motherfucker|cunt|cocksucker)\b",
        Severity.MEDIUM: r"\b(shit|bitch|asshole|bastard|goddamn|dickhead|whore|slut)\b",
        Severity.LOW: r"\b(damn|crap|piss|hell|bloody|wtf|stfu|gtfo)\b",
    },
    Category.STRANGER_DANGER: {
        Severity.CRITICAL: (
            r"\b(meet (me|up)|let's meet|come over|don't tell (your parents|anyone)"
            r"|this is our secret|adults don't need to know)\b"
        ),
        Severity.HIGH: (
            r"\b(send me your|what's your address|where do you live|how old are you|are you alone)\b"
        ),
        Severity.MEDIUM: r"(\bage/sex/location\b|\ba/s/l\b|\bsend pic\b|\bphoto of you\b)",
    },
}


@dataclass(frozen=True)
class CategoryFlag:
    """A category matched at a given severity."""

    category: Category
    severity: Severity

    @property
    def token(self) -> str:
        """Wire form, e.g. ``self_harm_critical``."""
        return f"{self.category.value}_{self.severity.value}"

    @classmethod
    def from_token(cls, token: str) -> CategoryFlag:
        category, _, severity = token.rpartition("_")
        return cls(Category(category), Severity(severity))


@dataclass(frozen=True)
class CategoryRule:
    """One compiled pattern for a category/severity tier."""

    category: Category
    severity: Severity
    pattern: re.Pattern[str]

    @property
    def flag(self) -> CategoryFlag:
        return CategoryFlag(self.category, self.severity)


def _coerce_weights(overrides: Mapping[str, int] | Mapping[Category, int] | None) -> dict[Category, int]:
    weights = dict(DEFAULT_CATEGORY_WEIGHTS)
    for key, value in (overrides or {}).items():
        try:
            category = Category(key)
        except ValueError as err:
            raise ValueError(f"Unknown moderation category in weights: {key!r}") from err
        if value < 0:
            raise ValueError(f"Category weight must be non-negative: {key!r}={value}")
        weights[category] = int(value)
    return weights


class CategoryRuleSet:
    """Static table of lexical rules with per-category weights."""

    def __init__(
        self,
        rules: Mapping[Category, Mapping[Severity, str]] | None = None,
        weights: Mapping[str, int] | Mapping[Category, int] | None = None,
    ) -> None:
        source = rules if rules is not None else DEFAULT_RULES
        self._rules: tuple[CategoryRule, ...] = tuple(
            CategoryRule(Category(category), Severity(severity), re.compile(pattern, re.IGNORECASE))
            for category, tiers in source.items()
            for severity, pattern in tiers.items()
        )
        self._weights = _coerce_weights(weights)
        self._screen = re.compile(
            "|".join(f"(?:{rule.pattern.pattern})" for rule in self._rules) or r"(?!)",
            re.IGNORECASE,
        )

    def __iter__(self) -> Iterator[CategoryRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def weight(self, category: Category) -> int:
        """Return the base weight for a category."""
        return self._weights[category]

    @property
    def weights(self) -> dict[Category, int]:
        return dict(self._weights)

    def matches_any(self, content: str) -> bool:
        """Return True if any rule in the table matches the content."""
        return self._screen.search(content) is not None
