# src/safeharbor/services/types.py
"""Value types shared by the moderation pipeline."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum


class ModerationError(RuntimeError):
    """Base exception for moderation failures."""


class InvalidModerationRequest(ModerationError, ValueError):
    """Raised when a request is missing required fields or is malformed."""


class ContentType(str, Enum):
    """Kinds of user-generated content the engine accepts."""

    POST = "post"
    COMMENT = "comment"
    PROFILE = "profile"
    MESSAGE = "message"
    IMAGE_TEXT = "image_text"


class ModerationStatus(str, Enum):
    """Verdicts, ordered from most lenient to most severe."""

    APPROVED = "approved"
    FLAGGED = "flagged"
    PENDING_REVIEW = "pending_review"
    REJECTED = "rejected"


class ReviewPriority(str, Enum):
    """Priority of an item in the human review queue."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def for_score(cls, risk_score: int) -> ReviewPriority:
        if risk_score >= 20:
            return cls.HIGH
        if risk_score >= 10:
            return cls.MEDIUM
        return cls.LOW


def unique(items: Iterable[str]) -> tuple[str, ...]:
    """Deduplicate while keeping first-seen order."""
    return tuple(dict.fromkeys(items))


def _clean_refs(refs: Iterable[str | None]) -> tuple[str, ...]:
    return unique(ref.strip() for ref in refs if ref and ref.strip())


@dataclass(frozen=True)
class ModerationRequest:
    """A single piece of content submitted for moderation."""

    content: str
    content_type: ContentType
    author_id: str
    media_refs: tuple[str, ...] = ()
    # Explicit video references; moderated as video whatever their extension.
    video_refs: tuple[str, ...] = ()

    @property
    def attachments(self) -> tuple[str, ...]:
        return (*self.media_refs, *self.video_refs)

    @classmethod
    def create(
        cls,
        content: str | None,
        content_type: str | ContentType | None,
        author_id: str | None,
        media_refs: Iterable[str | None] = (),
        video_refs: Iterable[str | None] = (),
    ) -> ModerationRequest:
        """Validate raw input and build a request.

        Raises:
            InvalidModerationRequest: If a required field is missing or the
                content type is unknown.
        """
        if not content or not content.strip():
            raise InvalidModerationRequest("content is required")
        if not content_type:
            raise InvalidModerationRequest("type is required")
        if not author_id:
            raise InvalidModerationRequest("userId is required")
        try:
            kind = ContentType(content_type)
        except ValueError as err:
            raise InvalidModerationRequest(f"Unsupported content type: {content_type}") from err
        return cls(
            content=content,
            content_type=kind,
            author_id=str(author_id),
            media_refs=_clean_refs(media_refs),
            video_refs=_clean_refs(video_refs),
        )


@dataclass(frozen=True)
class ModerationResult:
    """Verdict produced once per request; may be served from cache."""

    status: ModerationStatus
    risk_score: int
    flags: tuple[str, ...] = ()
    confidence: float = 0.0
    processing_time_ms: int = 0
    requires_human_review: bool = False
    reason: str | None = None
    suggestions: tuple[str, ...] = ()
    safe_alternatives: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, object]:
        """Return the camelCase wire representation."""
        return {
            "status": self.status.value,
            "riskScore": self.risk_score,
            "flags": list(self.flags),
            "confidence": self.confidence,
            "processingTimeMs": self.processing_time_ms,
            "requiresHumanReview": self.requires_human_review,
            "reason": self.reason,
            "suggestions": list(self.suggestions),
            "safeAlternatives": list(self.safe_alternatives),
        }


@dataclass(frozen=True)
class NormalizedSignal:
    """Provider-independent output of one classifier call."""

    score: float = 0.0
    flags: tuple[str, ...] = ()
    confidence: float = 0.0

    @classmethod
    def neutral(cls) -> NormalizedSignal:
        return cls()


@dataclass(frozen=True)
class AggregatedSignal:
    """Blend of the lexical score and every external classifier."""

    score: float
    flags: tuple[str, ...]
    confidence: float
    sources: dict[str, NormalizedSignal] = field(default_factory=dict)


@dataclass(frozen=True)
class MediaVerdict:
    """Outcome of moderating one media reference."""

    risk_score: int
    flags: tuple[str, ...] = ()
    requires_human_review: bool = True
