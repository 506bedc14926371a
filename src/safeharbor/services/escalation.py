# src/safeharbor/services/escalation.py
"""Audit logging and human review queueing for computed verdicts."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Protocol

from sqlalchemy.orm import Session

from safeharbor.models.moderation import (
    AUDIT_CONTENT_LIMIT,
    HumanReviewQueueEntry,
    ModerationAuditLog,
)
from safeharbor.services.types import ModerationRequest, ModerationResult, ReviewPriority

logger = logging.getLogger(__name__)

__all__ = ["EscalationSink", "ModerationRepository", "SqlModerationRepository"]


class ModerationRepository(Protocol):
    """Persistence collaborator used by :class:`EscalationSink`."""

    def create_audit_log_entry(
        self, request: ModerationRequest, result: ModerationResult
    ) -> None: ...

    def create_review_queue_entry(
        self,
        request: ModerationRequest,
        result: ModerationResult,
        priority: ReviewPriority,
    ) -> None: ...


class SqlModerationRepository:
    """Write audit and review rows, one short-lived session per write."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self.session_factory = session_factory

    def create_audit_log_entry(self, request: ModerationRequest, result: ModerationResult) -> None:
        entry = ModerationAuditLog(
            author_id=request.author_id,
            content_type=request.content_type.value,
            content=request.content[:AUDIT_CONTENT_LIMIT],
            media_refs=list(request.attachments),
            status=result.status.value,
            risk_score=result.risk_score,
            flags=list(result.flags),
            confidence=result.confidence,
            reason=result.reason,
            requires_human_review=result.requires_human_review,
        )
        with self.session_factory() as session:
            session.add(entry)
            session.commit()

    def create_review_queue_entry(
        self,
        request: ModerationRequest,
        result: ModerationResult,
        priority: ReviewPriority,
    ) -> None:
        entry = HumanReviewQueueEntry(
            author_id=request.author_id,
            content_type=request.content_type.value,
            content=request.content,
            media_refs=list(request.attachments),
            status=result.status.value,
            risk_score=result.risk_score,
            flags=list(result.flags),
            reason=result.reason,
            priority=priority.value,
        )
        with self.session_factory() as session:
            session.add(entry)
            session.commit()


class EscalationSink:
    """Record verdict side effects without ever failing the caller.

    The audit write and the queue write are independent; losing one while
    keeping the other is tolerated.
    """

    def __init__(self, repository: ModerationRepository) -> None:
        self.repository = repository
        self.failures = 0
        self._lock = threading.Lock()

    def _record_failure(self) -> None:
        # record() runs in worker threads.
        with self._lock:
            self.failures += 1

    def record(self, request: ModerationRequest, result: ModerationResult) -> None:
        try:
            self.repository.create_audit_log_entry(request, result)
        except Exception:
            self._record_failure()
            logger.exception("Failed to write moderation audit entry for %s", request.author_id)

        if not result.requires_human_review:
            return

        priority = ReviewPriority.for_score(result.risk_score)
        try:
            self.repository.create_review_queue_entry(request, result, priority)
        except Exception:
            self._record_failure()
            logger.exception("Failed to queue content from %s for review", request.author_id)
        else:
            logger.info(
                "Queued %s from %s for human review (priority=%s, score=%d)",
                request.content_type.value,
                request.author_id,
                priority.value,
                result.risk_score,
            )
