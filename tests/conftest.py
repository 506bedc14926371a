# tests/conftest.py
from __future__ import annotations

import asyncio
import os
from collections.abc import Callable, Generator, Iterator, Sequence
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
for _provider_key in ("OPENAI_API_KEY", "PERSPECTIVE_API_KEY", "GOOGLE_VISION_API_KEY"):
    os.environ[_provider_key] = ""

from safeharbor.core.security import create_access_token
from safeharbor.db.session import Base
from safeharbor.main import app as fastapi_app
from safeharbor.services.aggregator import ExternalSignalAggregator
from safeharbor.services.cache import ResultCache
from safeharbor.services.categories import CategoryRuleSet
from safeharbor.services.decision import DecisionEngine
from safeharbor.services.escalation import (
    EscalationSink,
    ModerationRepository,
    SqlModerationRepository,
)
from safeharbor.services.fast_track import FastTrackClassifier
from safeharbor.services.images import ImageModerationAdapter, VisionClient
from safeharbor.services.moderation import ModerationService, get_moderation_service
from safeharbor.services.scoring import PatternScorer
from safeharbor.services.types import NormalizedSignal


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeClassifier:
    """In-memory stand-in for an external text classifier."""

    def __init__(
        self,
        name: str = "fake",
        weight: float = 0.4,
        signal: NormalizedSignal | None = None,
        *,
        delay: float = 0.0,
        error: Exception | None = None,
    ) -> None:
        self.name = name
        self.weight = weight
        self.signal = signal or NormalizedSignal.neutral()
        self.delay = delay
        self.error = error
        self.calls: list[str] = []
        self.cancelled = False
        self.closed = False

    async def classify(self, text: str) -> NormalizedSignal:
        self.calls.append(text)
        if self.delay:
            try:
                await asyncio.sleep(self.delay)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if self.error is not None:
            raise self.error
        return self.signal

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def fake_classifier() -> type[FakeClassifier]:
    return FakeClassifier


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def build_service(
    session_factory: sessionmaker[Session],
) -> Callable[..., ModerationService]:
    """Return a factory assembling a service from test doubles."""

    def _build(
        classifiers: Sequence[Any] = (),
        *,
        vision: VisionClient | None = None,
        repository: ModerationRepository | None = None,
        cache: ResultCache | None = None,
        deadline_seconds: float = 2.0,
    ) -> ModerationService:
        rule_set = CategoryRuleSet()
        aggregator = ExternalSignalAggregator(
            PatternScorer(rule_set),
            classifiers,
            deadline_seconds=deadline_seconds,
        )
        return ModerationService(
            cache=cache if cache is not None else ResultCache(ttl_seconds=30 * 60),
            fast_track=FastTrackClassifier(rule_set),
            aggregator=aggregator,
            decision_engine=DecisionEngine(),
            image_adapter=ImageModerationAdapter(vision, aggregator.aggregate),
            sink=EscalationSink(repository or SqlModerationRepository(session_factory)),
        )

    return _build


@pytest.fixture()
def moderation_service(build_service: Callable[..., ModerationService]) -> ModerationService:
    return build_service()


@pytest.fixture()
def client(moderation_service: ModerationService) -> Iterator[TestClient]:
    fastapi_app.dependency_overrides[get_moderation_service] = lambda: moderation_service
    try:
        yield TestClient(fastapi_app)
    finally:
        fastapi_app.dependency_overrides.pop(get_moderation_service, None)


@pytest.fixture()
def auth_headers() -> dict[str, str]:
    token = create_access_token("moderation-tester")
    return {"Authorization": f"Bearer {token}"}
