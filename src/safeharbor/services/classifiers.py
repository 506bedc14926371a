# src/safeharbor/services/classifiers.py
"""External text classifier adapters.

Each provider is wrapped behind the :class:`Classifier` protocol so the
aggregator never sees a provider-specific payload. The adapters include:

- A lazily created ``httpx.AsyncClient`` with a bounded timeout
- Circuit breaker pattern for fault tolerance
- Metrics collection for the status endpoint
- Normalization of provider categories into flag/score pairs

Adapters never raise to their caller; any failure is logged and reported
as :meth:`NormalizedSignal.neutral`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import defaultdict
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable

import httpx

from safeharbor.services.types import ModerationError, NormalizedSignal, unique

logger = logging.getLogger(__name__)

# (json body, query params, headers)
RequestParts = tuple[dict[str, Any], dict[str, str] | None, dict[str, str] | None]


class ClassifierError(ModerationError):
    """Raised inside an adapter for non-2xx responses or malformed payloads."""


class CircuitState(Enum):
    """Circuit breaker states for a single provider."""
    CLOSED = "closed"      # Normal operation - requests allowed
    OPEN = "open"          # Provider skipped until the recovery timeout passes
    HALF_OPEN = "half_open"  # Probing whether the provider is back


@dataclass
class CircuitBreaker:
    """Circuit breaker guarding one external provider."""

    failure_threshold: int = 5
    recovery_timeout: float = 60.0
    success_threshold: int = 2
    clock: Callable[[], float] = time.monotonic

    _state: CircuitState = CircuitState.CLOSED
    _failure_count: int = 0
    _success_count: int = 0
    _last_failure_time: float = 0.0

    def is_open(self) -> bool:
        """Check if calls should be skipped."""
        if self._state == CircuitState.OPEN:
            if self.clock() - self._last_failure_time > self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
                self._success_count = 0
            return self._state == CircuitState.OPEN
        return False

    def record_success(self) -> None:
        if self._state == CircuitState.HALF_OPEN:
            self._success_count += 1
            if self._success_count >= self.success_threshold:
                self._state = CircuitState.CLOSED
                self._failure_count = 0
        elif self._state == CircuitState.CLOSED:
            self._failure_count = 0

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = self.clock()

        # A failed probe reopens immediately.
        if self._state == CircuitState.HALF_OPEN or self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count


@dataclass
class ClassifierMetrics:
    """Request metrics for one provider."""

    request_count: int = 0
    success_count: int = 0
    error_count: int = 0
    skipped_count: int = 0
    total_response_time: float = 0.0
    error_counts_by_type: dict[str, int] = field(default_factory=lambda: defaultdict(int))

    def record_request(
        self, response_time: float, success: bool, error_type: str | None = None
    ) -> None:
        self.request_count += 1
        self.total_response_time += response_time

        if success:
            self.success_count += 1
        else:
            self.error_count += 1
            if error_type:
                self.error_counts_by_type[error_type] += 1

    def get_average_response_time(self) -> float:
        return self.total_response_time / self.request_count if self.request_count > 0 else 0.0

    def get_success_rate(self) -> float:
        """Get success rate as a percentage."""
        return (self.success_count / self.request_count * 100) if self.request_count > 0 else 0.0

    def as_dict(self) -> dict[str, Any]:
        return {
            "requests": self.request_count,
            "successes": self.success_count,
            "errors": self.error_count,
            "skipped": self.skipped_count,
            "averageResponseTime": self.get_average_response_time(),
            "successRate": self.get_success_rate(),
            "errorsByType": dict(self.error_counts_by_type),
        }


@runtime_checkable
class Classifier(Protocol):
    """Capability interface every external text classifier implements."""

    name: str
    weight: float

    async def classify(self, text: str) -> NormalizedSignal: ...

    async def aclose(self) -> None: ...


class HttpClassifier:
    """Shared plumbing for JSON-over-HTTP classifiers.

    Subclasses provide :meth:`build_request` and :meth:`parse`. ``transport``
    is passed straight to ``httpx.AsyncClient`` so tests can inject an
    ``httpx.MockTransport``.
    """

    name = "http"

    def __init__(
        self,
        *,
        api_key: str,
        url: str,
        weight: float,
        timeout_seconds: float = 5.0,
        breaker: CircuitBreaker | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.url = url
        self.weight = weight
        self.timeout_seconds = timeout_seconds
        self.breaker = breaker or CircuitBreaker()
        self.metrics = ClassifierMetrics()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    def build_request(self, text: str) -> RequestParts:
        """Return ``(json_body, query_params, headers)`` for one call."""
        raise NotImplementedError

    def parse(self, payload: Mapping[str, Any]) -> NormalizedSignal:
        raise NotImplementedError

    async def _call(self, text: str) -> NormalizedSignal:
        client = await self._ensure_client()
        body, params, headers = self.build_request(text)
        response = await client.post(self.url, json=body, params=params, headers=headers)
        if not response.is_success:
            raise ClassifierError(f"{self.name} responded with {response.status_code}")
        payload = response.json()
        if not isinstance(payload, Mapping):
            raise ClassifierError(f"{self.name} returned a non-object payload")
        return self.parse(payload)

    async def classify(self, text: str) -> NormalizedSignal:
        if self.breaker.is_open():
            self.metrics.skipped_count += 1
            logger.debug("Skipping %s classifier: circuit open", self.name)
            return NormalizedSignal.neutral()

        start_time = time.perf_counter()
        error_type: str | None = None
        try:
            signal = await asyncio.wait_for(self._call(text), timeout=self.timeout_seconds)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            error_type = "timeout"
            logger.warning("%s classifier timed out after %.2fs", self.name, self.timeout_seconds)
        except httpx.HTTPError as exc:
            error_type = "network_error"
            logger.warning("%s classifier request failed: %s", self.name, exc)
        except ClassifierError as exc:
            error_type = "bad_response"
            logger.warning("%s classifier error: %s", self.name, exc)
        except (ValueError, KeyError, TypeError, IndexError) as exc:
            error_type = "malformed_payload"
            logger.warning("%s classifier returned a malformed payload: %s", self.name, exc)
        else:
            self.breaker.record_success()
            self.metrics.record_request(time.perf_counter() - start_time, True)
            return signal

        self.breaker.record_failure()
        self.metrics.record_request(time.perf_counter() - start_time, False, error_type)
        return NormalizedSignal.neutral()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def status(self) -> dict[str, Any]:
        return {
            "weight": self.weight,
            "circuit": self.breaker.state.value,
            "metrics": self.metrics.as_dict(),
        }


# provider category -> (flag, score)
OPENAI_CATEGORY_MAP: dict[str, tuple[str, int]] = {
    "hate": ("hate_speech", 15),
    "hate/threatening": ("violence_threats", 20),
    "harassment": ("bullying", 12),
    "harassment/threatening": ("violence_threats", 18),
    "self-harm": ("self_harm", 25),
    "self-harm/intent": ("self_harm", 30),
    "self-harm/instructions": ("self_harm", 25),
    "sexual": ("inappropriate_content", 20),
    "sexual/minors": ("inappropriate_content", 30),
    "violence": ("violence", 18),
    "violence/graphic": ("violence", 22),
}


class OpenAIModerationClassifier(HttpClassifier):
    """Adapter for the OpenAI moderation endpoint."""

    name = "openai"

    def __init__(self, *, model: str = "omni-moderation-latest", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.model = model

    def build_request(self, text: str) -> RequestParts:
        return (
            {"input": text, "model": self.model},
            None,
            {"Authorization": f"Bearer {self.api_key}"},
        )

    def parse(self, payload: Mapping[str, Any]) -> NormalizedSignal:
        result = payload["results"][0]
        categories = result["categories"]
        score = 0
        flags: list[str] = []
        for category, flagged in categories.items():
            mapping = OPENAI_CATEGORY_MAP.get(category)
            if flagged and mapping:
                flags.append(mapping[0])
                score += mapping[1]
        return NormalizedSignal(
            score=score,
            flags=unique(flags),
            confidence=0.95 if result.get("flagged") else 0.85,
        )


PERSPECTIVE_ATTRIBUTE_MAP: dict[str, tuple[str, int]] = {
    "TOXICITY": ("toxicity", 10),
    "SEVERE_TOXICITY": ("severe_toxicity", 20),
    "IDENTITY_ATTACK": ("hate_speech", 15),
    "INSULT": ("insult", 10),
    "PROFANITY": ("profanity", 8),
    "THREAT": ("violence_threats", 18),
    "SEXUALLY_EXPLICIT": ("inappropriate_content", 20),
}

PERSPECTIVE_CONFIDENCE = 0.9


class PerspectiveClassifier(HttpClassifier):
    """Adapter for the Perspective comment analyzer."""

    name = "perspective"

    def __init__(self, *, threshold: float = 0.7, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.threshold = threshold

    def build_request(self, text: str) -> RequestParts:
        body = {
            "comment": {"text": text},
            "languages": ["en"],
            "requestedAttributes": {attribute: {} for attribute in PERSPECTIVE_ATTRIBUTE_MAP},
        }
        return body, {"key": self.api_key}, None

    def parse(self, payload: Mapping[str, Any]) -> NormalizedSignal:
        attribute_scores = payload["attributeScores"]
        score = 0
        flags: list[str] = []
        for attribute, (flag, weight) in PERSPECTIVE_ATTRIBUTE_MAP.items():
            value = attribute_scores.get(attribute, {}).get("summaryScore", {}).get("value")
            if value is not None and float(value) > self.threshold:
                flags.append(flag)
                score += weight
        return NormalizedSignal(score=score, flags=unique(flags), confidence=PERSPECTIVE_CONFIDENCE)
