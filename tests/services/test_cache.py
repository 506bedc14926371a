"""Tests for the TTL result cache."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from safeharbor.services.cache import ResultCache
from safeharbor.services.types import ModerationResult, ModerationStatus


def _result(score: int = 0) -> ModerationResult:
    return ModerationResult(status=ModerationStatus.APPROVED, risk_score=score)


def test_put_then_get(fake_clock) -> None:
    cache = ResultCache(60, clock=fake_clock)
    cache.put("k", _result(1))
    assert cache.get("k") == _result(1)
    assert len(cache) == 1


def test_entries_expire_lazily(fake_clock) -> None:
    cache = ResultCache(60, clock=fake_clock)
    cache.put("k", _result())

    fake_clock.advance(60)
    assert cache.get("k") is not None

    fake_clock.advance(1)
    assert len(cache) == 1
    assert cache.get("k") is None
    assert len(cache) == 0


def test_expired_entry_is_overwritten(fake_clock) -> None:
    cache = ResultCache(60, clock=fake_clock)
    cache.put("k", _result(1))
    fake_clock.advance(120)
    cache.put("k", _result(2))
    assert cache.get("k") == _result(2)


def test_last_write_wins(fake_clock) -> None:
    cache = ResultCache(60, clock=fake_clock)
    cache.put("k", _result(1))
    cache.put("k", _result(2))
    assert cache.get("k") == _result(2)


def test_hit_rate(fake_clock) -> None:
    cache = ResultCache(60, clock=fake_clock)
    assert cache.hit_rate == 0.0
    cache.get("missing")
    cache.put("k", _result())
    cache.get("k")
    assert cache.hits == 1
    assert cache.misses == 1
    assert cache.hit_rate == 0.5


def test_disabled_cache_stores_nothing() -> None:
    cache = ResultCache(60, enabled=False)
    cache.put("k", _result())
    assert cache.get("k") is None
    assert len(cache) == 0


def test_negative_ttl_is_rejected() -> None:
    with pytest.raises(ValueError):
        ResultCache(-1)


def test_concurrent_writers() -> None:
    cache = ResultCache(60)

    def _write(index: int) -> None:
        cache.put(f"key-{index % 10}", _result(index))
        cache.get(f"key-{index % 10}")

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(_write, range(200)))

    assert len(cache) == 10
