# src/safeharbor/services/__init__.py
"""Moderation pipeline services."""

from .aggregator import ExternalSignalAggregator
from .cache import ResultCache
from .categories import CategoryRuleSet
from .decision import DecisionEngine
from .escalation import EscalationSink
from .fast_track import FastTrackClassifier
from .images import ImageModerationAdapter
from .moderation import ModerationService, build_moderation_service, get_moderation_service
from .scoring import PatternScorer

__all__ = [
    "CategoryRuleSet",
    "DecisionEngine",
    "EscalationSink",
    "ExternalSignalAggregator",
    "FastTrackClassifier",
    "ImageModerationAdapter",
    "ModerationService",
    "PatternScorer",
    "ResultCache",
    "build_moderation_service",
    "get_moderation_service",
]
