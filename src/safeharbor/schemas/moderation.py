# src/safeharbor/schemas/moderation.py
"""Moderation-related Pydantic schemas."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ModerationRequestBody(BaseModel):
    """Schema for submitting content for moderation.

    Required fields are validated by the endpoint so that a missing field is
    reported as 400 rather than a schema error.
    """

    model_config = ConfigDict(populate_by_name=True)

    content: str | None = None
    content_type: str | None = Field(default=None, alias="type")
    user_id: str | None = Field(default=None, alias="userId")
    image_url: str | None = Field(default=None, alias="imageUrl")
    video_url: str | None = Field(default=None, alias="videoUrl")
    media_refs: list[str] = Field(default_factory=list, alias="mediaRefs")


class ModerationResultSchema(BaseModel):
    """Verdict returned to the caller."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: str
    risk_score: int
    flags: list[str]
    confidence: float
    processing_time_ms: int
    requires_human_review: bool
    reason: str | None = None
    suggestions: list[str] = Field(default_factory=list)
    safe_alternatives: list[str] = Field(default_factory=list)


class ModerationResponse(BaseModel):
    success: bool
    moderation: ModerationResultSchema


class VocabularyResponse(BaseModel):
    """Static child-safe vocabulary and phrase suggestions."""

    vocabulary: list[str] | None = None
    suggestions: list[str]


class ModerationStatusResponse(BaseModel):
    """Provider configuration, breaker state and pipeline metrics."""

    enabled_providers: dict[str, bool] = Field(alias="enabledProviders")
    providers: dict[str, dict]
    metrics: dict[str, float | int]

    model_config = ConfigDict(populate_by_name=True)
