# src/safeharbor/services/moderation.py
"""Moderation pipeline orchestration.

Request flow: result cache, then fast-track, then the lexical scorer and
external classifiers (concurrently with any media references), then the
decision table. The final result is cached and handed to the escalation
sink. Only request validation errors ever reach the caller.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from typing import Any

from sqlalchemy.orm import Session, sessionmaker

from safeharbor.core.settings import Settings, settings
from safeharbor.db.session import SessionLocal
from safeharbor.services.aggregator import ExternalSignalAggregator
from safeharbor.services.cache import ResultCache
from safeharbor.services.categories import CategoryRuleSet
from safeharbor.services.classifiers import (
    CircuitBreaker,
    HttpClassifier,
    OpenAIModerationClassifier,
    PerspectiveClassifier,
)
from safeharbor.services.decision import DecisionEngine
from safeharbor.services.escalation import EscalationSink, SqlModerationRepository
from safeharbor.services.fast_track import FastTrackClassifier
from safeharbor.services.images import ImageModerationAdapter, VisionClient
from safeharbor.services.scoring import PatternScorer
from safeharbor.services.types import (
    MediaVerdict,
    ModerationRequest,
    ModerationResult,
    ModerationStatus,
    unique,
)
from safeharbor.services.vocabulary import safe_alternatives_for
from safeharbor.utils.hash import content_hash, normalize_content

logger = logging.getLogger(__name__)

MEDIA_REVIEW_REASON = "Content requires human review before publication"
FAILURE_REASON = "Moderation could not be completed; content held for human review"


class ModerationService:
    """Compose the pipeline stages; every stage is injected."""

    def __init__(
        self,
        *,
        cache: ResultCache,
        fast_track: FastTrackClassifier,
        aggregator: ExternalSignalAggregator,
        decision_engine: DecisionEngine,
        image_adapter: ImageModerationAdapter,
        sink: EscalationSink,
        escalation_timeout_seconds: float = 2.0,
    ) -> None:
        self.cache = cache
        self.fast_track = fast_track
        self.aggregator = aggregator
        self.decision_engine = decision_engine
        self.image_adapter = image_adapter
        self.sink = sink
        self.escalation_timeout_seconds = escalation_timeout_seconds

        self.total_requests = 0
        self.fast_tracked = 0
        self.failures = 0
        self.escalation_timeouts = 0
        self._total_processing_ms = 0

    @staticmethod
    def _cache_key(request: ModerationRequest) -> str:
        refs = [*request.media_refs, *(f"video:{ref}" for ref in request.video_refs)]
        return content_hash(request.content, refs)

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.perf_counter() - start) * 1000)

    async def moderate(self, request: ModerationRequest) -> ModerationResult:
        """Return the verdict for ``request``.

        Cache hits are returned as-is (with a fresh processing time) and are
        not escalated again.
        """
        start = time.perf_counter()
        self.total_requests += 1
        key = self._cache_key(request)

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s from %s", request.content_type.value, request.author_id)
            return self._finish(replace(cached, processing_time_ms=self._elapsed_ms(start)))

        try:
            result = await self._evaluate(request, normalize_content(request.content), start)
        except Exception:
            self.failures += 1
            logger.exception(
                "Moderation pipeline failed for %s from %s; holding for review",
                request.content_type.value,
                request.author_id,
            )
            result = ModerationResult(
                status=ModerationStatus.PENDING_REVIEW,
                risk_score=0,
                flags=("moderation_error",),
                confidence=0.0,
                processing_time_ms=self._elapsed_ms(start),
                requires_human_review=True,
                reason=FAILURE_REASON,
            )
        else:
            self.cache.put(key, result)

        await self._escalate(request, result)
        return self._finish(result)

    async def _escalate(self, request: ModerationRequest, result: ModerationResult) -> None:
        try:
            await asyncio.wait_for(
                asyncio.to_thread(self.sink.record, request, result),
                timeout=self.escalation_timeout_seconds,
            )
        except asyncio.TimeoutError:
            # The write keeps running in its worker thread.
            self.escalation_timeouts += 1
            logger.warning(
                "Escalation for %s exceeded %.2fs; returning verdict without waiting",
                request.author_id,
                self.escalation_timeout_seconds,
            )

    def _finish(self, result: ModerationResult) -> ModerationResult:
        self._total_processing_ms += result.processing_time_ms
        return result

    async def _evaluate(
        self, request: ModerationRequest, content: str, start: float
    ) -> ModerationResult:
        # Media always needs the full pipeline.
        if not request.attachments:
            fast = self.fast_track.classify(content)
            if fast is not None:
                self.fast_tracked += 1
                return replace(fast, processing_time_ms=self._elapsed_ms(start))

        signal, *verdicts = await asyncio.gather(
            self.aggregator.aggregate(content),
            *(self.image_adapter.moderate(ref) for ref in request.media_refs),
            *(self.image_adapter.moderate(ref, video=True) for ref in request.video_refs),
        )
        media: list[MediaVerdict] = verdicts

        risk_score = round(signal.score + sum(verdict.risk_score for verdict in media))
        flags = unique([*signal.flags, *(flag for verdict in media for flag in verdict.flags)])
        decision = self.decision_engine.decide(risk_score, flags)

        status = decision.status
        reason = decision.reason
        media_review = any(verdict.requires_human_review for verdict in media)
        if media_review and status == ModerationStatus.APPROVED:
            status = ModerationStatus.PENDING_REVIEW
            reason = MEDIA_REVIEW_REASON

        result = ModerationResult(
            status=status,
            risk_score=risk_score,
            flags=flags,
            confidence=signal.confidence,
            processing_time_ms=self._elapsed_ms(start),
            requires_human_review=decision.requires_human_review or media_review,
            reason=reason,
            suggestions=decision.suggestions,
            safe_alternatives=safe_alternatives_for(flags),
        )
        logger.info(
            "Moderated %s from %s: status=%s score=%d flags=%s",
            request.content_type.value,
            request.author_id,
            result.status.value,
            result.risk_score,
            ",".join(result.flags) or "-",
        )
        return result

    def metrics(self) -> dict[str, Any]:
        total = self.total_requests
        return {
            "totalRequests": total,
            "cacheSize": len(self.cache),
            "cacheHitRate": self.cache.hit_rate,
            "fastTrackRate": self.fast_tracked / total if total else 0.0,
            "averageProcessingTimeMs": self._total_processing_ms / total if total else 0.0,
            "pipelineFailures": self.failures,
            "escalationFailures": self.sink.failures,
            "escalationTimeouts": self.escalation_timeouts,
        }

    def provider_status(self) -> dict[str, Any]:
        providers: dict[str, Any] = {}
        for classifier in self.aggregator.classifiers:
            if isinstance(classifier, HttpClassifier):
                providers[classifier.name] = classifier.status()
            else:
                providers[classifier.name] = {"weight": classifier.weight}
        vision = self.image_adapter.vision
        if vision is not None:
            providers[vision.name] = vision.status()
        return providers

    async def aclose(self) -> None:
        for classifier in self.aggregator.classifiers:
            await classifier.aclose()
        if self.image_adapter.vision is not None:
            await self.image_adapter.vision.aclose()


def _breaker(config: Settings) -> CircuitBreaker:
    return CircuitBreaker(
        failure_threshold=config.breaker_failure_threshold,
        recovery_timeout=config.breaker_recovery_seconds,
        success_threshold=config.breaker_success_threshold,
    )


def build_moderation_service(
    config: Settings,
    *,
    session_factory: sessionmaker[Session] | None = None,
) -> ModerationService:
    """Wire a :class:`ModerationService` from settings."""
    rule_set = CategoryRuleSet(weights=config.category_weights)
    scorer = PatternScorer(rule_set, confidence=config.pattern_confidence)

    classifiers: list[HttpClassifier] = []
    if config.openai_api_key:
        classifiers.append(
            OpenAIModerationClassifier(
                api_key=config.openai_api_key,
                url=config.openai_moderation_url,
                model=config.openai_moderation_model,
                weight=config.openai_weight,
                timeout_seconds=config.classifier_timeout_seconds,
                breaker=_breaker(config),
            )
        )
    if config.perspective_api_key:
        classifiers.append(
            PerspectiveClassifier(
                api_key=config.perspective_api_key,
                url=config.perspective_url,
                threshold=config.perspective_threshold,
                weight=config.perspective_weight,
                timeout_seconds=config.classifier_timeout_seconds,
                breaker=_breaker(config),
            )
        )

    aggregator = ExternalSignalAggregator(
        scorer,
        classifiers,
        pattern_weight=config.pattern_weight,
        deadline_seconds=config.aggregation_deadline_seconds,
    )

    vision = None
    if config.google_vision_api_key:
        vision = VisionClient(
            api_key=config.google_vision_api_key,
            url=config.google_vision_url,
            timeout_seconds=config.classifier_timeout_seconds,
            breaker=_breaker(config),
        )

    return ModerationService(
        cache=ResultCache(config.cache_ttl_seconds, enabled=config.cache_enabled),
        fast_track=FastTrackClassifier(rule_set, max_length=config.fast_track_max_length),
        aggregator=aggregator,
        decision_engine=DecisionEngine(),
        image_adapter=ImageModerationAdapter(
            vision,
            aggregator.aggregate,
            text_weight=config.image_text_weight,
        ),
        sink=EscalationSink(SqlModerationRepository(session_factory or SessionLocal)),
        escalation_timeout_seconds=config.escalation_timeout_seconds,
    )


class _ModerationServiceSingleton:
    """Singleton wrapper for ModerationService."""

    _instance: ModerationService | None = None

    @classmethod
    def get_instance(cls) -> ModerationService:
        if cls._instance is None:
            cls._instance = build_moderation_service(settings)
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        cls._instance = None


def get_moderation_service() -> ModerationService:
    """Return the process-wide moderation service."""
    return _ModerationServiceSingleton.get_instance()


def reset_moderation_service() -> None:
    _ModerationServiceSingleton.reset()
