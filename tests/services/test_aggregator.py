"""Tests for signal aggregation across the pattern scorer and classifiers."""

from __future__ import annotations

import asyncio

import pytest

from safeharbor.services.aggregator import ExternalSignalAggregator
from safeharbor.services.scoring import PatternScorer
from safeharbor.services.types import NormalizedSignal

BULLYING = "you are so stupid and ugly"


@pytest.mark.asyncio
async def test_pattern_only() -> None:
    aggregator = ExternalSignalAggregator(PatternScorer())
    signal = await aggregator.aggregate(BULLYING)

    assert signal.score == 24
    assert signal.flags == ("bullying_low",)
    assert signal.confidence == pytest.approx(0.8)
    assert signal.sources == {}


@pytest.mark.asyncio
async def test_weighted_blend_with_prefixed_flags(fake_classifier) -> None:
    openai = fake_classifier(
        "openai", 0.4, NormalizedSignal(score=12, flags=("bullying",), confidence=0.95)
    )
    perspective = fake_classifier(
        "perspective", 0.3, NormalizedSignal(score=20, flags=("toxicity", "insult"), confidence=0.9)
    )
    aggregator = ExternalSignalAggregator(PatternScorer(), [openai, perspective])

    signal = await aggregator.aggregate(BULLYING)

    assert signal.score == pytest.approx(24 + 0.4 * 12 + 0.3 * 20)
    assert signal.flags == (
        "bullying_low",
        "openai_bullying",
        "perspective_toxicity",
        "perspective_insult",
    )
    assert signal.confidence == pytest.approx((0.8 + 0.95 + 0.9) / 3)
    assert openai.calls == [BULLYING]
    assert perspective.calls == [BULLYING]


@pytest.mark.asyncio
async def test_unavailable_classifier_lowers_confidence_only(fake_classifier) -> None:
    down = fake_classifier("openai", 0.4)
    aggregator = ExternalSignalAggregator(PatternScorer(), [down])

    signal = await aggregator.aggregate(BULLYING)

    assert signal.score == 24
    assert signal.confidence == pytest.approx(0.4)


@pytest.mark.asyncio
async def test_raising_classifier_is_treated_as_neutral(fake_classifier) -> None:
    broken = fake_classifier("openai", 0.4, error=RuntimeError("boom"))
    healthy = fake_classifier("perspective", 0.3, NormalizedSignal(10, ("toxicity",), 0.9))
    aggregator = ExternalSignalAggregator(PatternScorer(), [broken, healthy])

    signal = await aggregator.aggregate(BULLYING)

    assert signal.sources["openai"] == NormalizedSignal.neutral()
    assert signal.score == pytest.approx(27)
    assert "perspective_toxicity" in signal.flags


@pytest.mark.asyncio
async def test_classifiers_run_concurrently(fake_classifier) -> None:
    slow = [
        fake_classifier(f"provider{i}", 0.1, NormalizedSignal(1, (), 0.5), delay=0.2)
        for i in range(3)
    ]
    aggregator = ExternalSignalAggregator(PatternScorer(), slow, deadline_seconds=2)

    loop = asyncio.get_running_loop()
    started = loop.time()
    await aggregator.aggregate("hello")

    assert loop.time() - started < 0.5


@pytest.mark.asyncio
async def test_deadline_cancels_stragglers(fake_classifier) -> None:
    hung = fake_classifier("openai", 0.4, NormalizedSignal(50, ("hate_speech",), 0.95), delay=10)
    aggregator = ExternalSignalAggregator(PatternScorer(), [hung], deadline_seconds=0.05)

    loop = asyncio.get_running_loop()
    started = loop.time()
    signal = await aggregator.aggregate(BULLYING)

    assert loop.time() - started < 1.0
    assert signal.sources["openai"] == NormalizedSignal.neutral()
    assert signal.score == 24
    assert signal.flags == ("bullying_low",)


@pytest.mark.asyncio
async def test_external_signals_never_lower_score(fake_classifier) -> None:
    content = "shut up, nobody likes you"
    base = await ExternalSignalAggregator(PatternScorer()).aggregate(content)
    blended = await ExternalSignalAggregator(
        PatternScorer(),
        [fake_classifier("openai", 0.4, NormalizedSignal(12, ("bullying",), 0.95))],
    ).aggregate(content)

    assert blended.score >= base.score
    assert set(base.flags) <= set(blended.flags)


def test_negative_weights_are_rejected(fake_classifier) -> None:
    with pytest.raises(ValueError):
        ExternalSignalAggregator(PatternScorer(), [fake_classifier("openai", -0.1)])
    with pytest.raises(ValueError):
        ExternalSignalAggregator(PatternScorer(), pattern_weight=-1)


@pytest.mark.asyncio
async def test_caller_cancellation_abandons_classifier_calls(fake_classifier) -> None:
    slow = [
        fake_classifier("openai", 0.4, delay=10),
        fake_classifier("perspective", 0.3, delay=10),
    ]
    aggregator = ExternalSignalAggregator(PatternScorer(), slow, deadline_seconds=30)

    task = asyncio.create_task(aggregator.aggregate(BULLYING))
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert all(classifier.cancelled for classifier in slow)
