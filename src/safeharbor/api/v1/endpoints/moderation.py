"""Moderation endpoints for the SafeHarbor API."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, status

from safeharbor.api.v1.dependencies import CurrentSubjectDep, ModerationServiceDep
from safeharbor.core.settings import settings
from safeharbor.schemas.moderation import (
    ModerationRequestBody,
    ModerationResponse,
    ModerationResultSchema,
    ModerationStatusResponse,
    VocabularyResponse,
)
from safeharbor.services.types import InvalidModerationRequest, ModerationRequest
from safeharbor.services.vocabulary import vocabulary_payload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/moderation", tags=["moderation"])


@router.post("", response_model=ModerationResponse)
async def moderate_content(
    body: ModerationRequestBody,
    subject: CurrentSubjectDep,
    service: ModerationServiceDep,
) -> ModerationResponse:
    """Score content and return the moderation verdict."""
    try:
        request = ModerationRequest.create(
            body.content,
            body.content_type,
            body.user_id,
            [body.image_url, *body.media_refs],
            [body.video_url],
        )
    except InvalidModerationRequest as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err)) from err

    try:
        result = await service.moderate(request)
    except Exception as err:
        logger.exception("Moderation request from %s failed", subject)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Moderation failed",
        ) from err

    return ModerationResponse(
        success=True,
        moderation=ModerationResultSchema.model_validate(result.to_dict()),
    )


@router.get("/vocabulary", response_model=VocabularyResponse, response_model_exclude_none=True)
async def get_vocabulary(scenario: str | None = Query(None)) -> VocabularyResponse:
    """Return child-safe vocabulary and safe-phrase suggestions."""
    return VocabularyResponse(**vocabulary_payload(scenario))


@router.get("/status", response_model=ModerationStatusResponse)
async def get_moderation_status(
    subject: CurrentSubjectDep,
    service: ModerationServiceDep,
) -> ModerationStatusResponse:
    """Report provider configuration, circuit breaker state and metrics."""
    return ModerationStatusResponse(
        enabled_providers=settings.enabled_providers,
        providers=service.provider_status(),
        metrics=service.metrics(),
    )
