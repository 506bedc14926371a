# src/safeharbor/services/aggregator.py
"""Blend the lexical score with external classifier signals."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from safeharbor.services.classifiers import Classifier
from safeharbor.services.scoring import PatternScorer
from safeharbor.services.types import AggregatedSignal, NormalizedSignal, unique

logger = logging.getLogger(__name__)


class ExternalSignalAggregator:
    """Run the pattern scorer and every classifier, then combine them.

    The combined score is ``pattern_weight * raw + sum(weight_i * score_i)``.
    Weights are non-negative, so no signal can lower the score. Classifiers
    that have not answered by ``deadline_seconds`` are cancelled and count as
    neutral; the verdict then rests on the remaining signals.
    """

    def __init__(
        self,
        scorer: PatternScorer,
        classifiers: Sequence[Classifier] = (),
        *,
        pattern_weight: float = 1.0,
        deadline_seconds: float = 8.0,
    ) -> None:
        if pattern_weight < 0 or any(classifier.weight < 0 for classifier in classifiers):
            raise ValueError("Signal weights must be non-negative")
        self.scorer = scorer
        self.classifiers = tuple(classifiers)
        self.pattern_weight = pattern_weight
        self.deadline_seconds = deadline_seconds

    async def _collect(self, content: str) -> dict[str, NormalizedSignal]:
        if not self.classifiers:
            return {}

        tasks = {
            asyncio.ensure_future(classifier.classify(content)): classifier.name
            for classifier in self.classifiers
        }
        try:
            done, pending = await asyncio.wait(tasks, timeout=self.deadline_seconds)
        except asyncio.CancelledError:
            # The caller gave up; abandon every in-flight provider call.
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        for task in pending:
            task.cancel()
            logger.warning(
                "%s classifier missed the %.2fs aggregation deadline",
                tasks[task],
                self.deadline_seconds,
            )
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        signals: dict[str, NormalizedSignal] = {}
        for task, name in tasks.items():
            if task in done and not task.cancelled() and task.exception() is None:
                signals[name] = task.result()
            else:
                if task in done and not task.cancelled():
                    logger.warning("%s classifier raised: %r", name, task.exception())
                signals[name] = NormalizedSignal.neutral()
        return signals

    async def aggregate(self, content: str) -> AggregatedSignal:
        pattern = self.scorer.score(content)
        signals = await self._collect(content)

        score = self.pattern_weight * pattern.raw_score
        flags = list(pattern.tokens)
        confidences = [self.scorer.confidence]

        for classifier in self.classifiers:
            signal = signals[classifier.name]
            score += classifier.weight * signal.score
            flags.extend(f"{classifier.name}_{flag}" for flag in signal.flags)
            confidences.append(signal.confidence)

        return AggregatedSignal(
            score=score,
            flags=unique(flags),
            confidence=sum(confidences) / len(confidences),
            sources=signals,
        )
