"""Pydantic schemas for the SafeHarbor API."""

from .moderation import (
    ModerationRequestBody,
    ModerationResponse,
    ModerationResultSchema,
    ModerationStatusResponse,
    VocabularyResponse,
)

__all__ = [
    "ModerationRequestBody",
    "ModerationResponse",
    "ModerationResultSchema",
    "ModerationStatusResponse",
    "VocabularyResponse",
]
