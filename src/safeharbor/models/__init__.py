# src/safeharbor/models/__init__.py
"""SQLAlchemy models for the SafeHarbor moderation service."""

from .moderation import HumanReviewQueueEntry, ModerationAuditLog

__all__ = [
    "HumanReviewQueueEntry",
    "ModerationAuditLog",
]
