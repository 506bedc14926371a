# src/safeharbor/services/images.py
"""Media moderation: safe-search likelihoods, object labels and OCR text."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any
from urllib.parse import urlparse

import httpx

from safeharbor.services.classifiers import CircuitBreaker, ClassifierError, ClassifierMetrics
from safeharbor.services.types import AggregatedSignal, MediaVerdict, unique

logger = logging.getLogger(__name__)

TextAssessor = Callable[[str], Awaitable[AggregatedSignal]]

SUSPICIOUS_EXTENSIONS = (".exe", ".bat", ".cmd", ".scr", ".zip", ".rar")
VIDEO_EXTENSIONS = (".mp4", ".mov", ".webm", ".avi", ".mkv", ".m4v")

LIKELIHOOD_SCORES: dict[str, int] = {
    "VERY_UNLIKELY": 0,
    "UNLIKELY": 1,
    "POSSIBLE": 3,
    "LIKELY": 8,
    "VERY_LIKELY": 15,
}

# safe-search field -> flag; the likelihood score itself is added
SAFE_SEARCH_SCORED = (
    ("adult", "adult_content"),
    ("violence", "violent_content"),
    ("racy", "racy_content"),
)
# safe-search field -> (flag, fixed penalty); counted only above POSSIBLE
SAFE_SEARCH_FIXED = (
    ("medical", "medical_content", 2),
    ("spoof", "spoof_content", 3),
)
CONCERNING_OBJECTS = ("weapon", "gun", "knife", "drug", "alcohol")
CONCERNING_OBJECT_PENALTY = 10
MIN_OCR_TEXT_LENGTH = 3
REVIEW_SCORE_THRESHOLD = 5

SUSPICIOUS_FILE = MediaVerdict(risk_score=20, flags=("suspicious_file",))
VIDEO_CONTENT = MediaVerdict(risk_score=5, flags=("video_content",))
PROVIDER_UNAVAILABLE = MediaVerdict(risk_score=3, flags=("image_requires_review",))
PROVIDER_ERROR = MediaVerdict(risk_score=10, flags=("image_error",))


def _extension_in(url: str, extensions: tuple[str, ...]) -> bool:
    path = urlparse(url).path or url
    return path.lower().endswith(extensions)


def is_suspicious_file(url: str) -> bool:
    return _extension_in(url, SUSPICIOUS_EXTENSIONS)


def is_video(url: str) -> bool:
    return _extension_in(url, VIDEO_EXTENSIONS)


class VisionClient:
    """Thin client for the Google Vision ``images:annotate`` endpoint."""

    name = "google_vision"

    def __init__(
        self,
        *,
        api_key: str,
        url: str = "https://vision.googleapis.com/v1/images:annotate",
        timeout_seconds: float = 5.0,
        breaker: CircuitBreaker | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.url = url
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

    async def _post(self, image_url: str) -> Mapping[str, Any]:
        client = await self._ensure_client()
        body = {
            "requests": [
                {
                    "image": {"source": {"imageUri": image_url}},
                    "features": [
                        {"type": "SAFE_SEARCH_DETECTION"},
                        {"type": "TEXT_DETECTION"},
                        {"type": "OBJECT_LOCALIZATION"},
                    ],
                }
            ]
        }
        response = await client.post(self.url, json=body, params={"key": self.api_key})
        if not response.is_success:
            raise ClassifierError(f"{self.name} responded with {response.status_code}")
        result = response.json()["responses"][0]
        if not isinstance(result, Mapping):
            raise ClassifierError(f"{self.name} returned a non-object annotation")
        return result

    async def annotate(self, image_url: str) -> Mapping[str, Any]:
        """Return the first annotation response for ``image_url``.

        Raises:
            ClassifierError: If the circuit is open, the call times out, or
                the response is not a usable annotation.
        """
        if self.breaker.is_open():
            self.metrics.skipped_count += 1
            raise ClassifierError(f"{self.name} circuit breaker is open")

        start_time = time.perf_counter()
        try:
            result = await asyncio.wait_for(self._post(image_url), timeout=self.timeout_seconds)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            self._record_failure(start_time, "timeout")
            raise ClassifierError(f"{self.name} timed out") from exc
        except httpx.HTTPError as exc:
            self._record_failure(start_time, "network_error")
            raise ClassifierError(f"{self.name} request failed: {exc}") from exc
        except ClassifierError:
            self._record_failure(start_time, "bad_response")
            raise
        except (ValueError, KeyError, TypeError, IndexError) as exc:
            self._record_failure(start_time, "malformed_payload")
            raise ClassifierError(f"{self.name} returned a malformed payload") from exc

        self.breaker.record_success()
        self.metrics.record_request(time.perf_counter() - start_time, True)
        return result

    def _record_failure(self, start_time: float, error_type: str) -> None:
        self.breaker.record_failure()
        self.metrics.record_request(time.perf_counter() - start_time, False, error_type)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def status(self) -> dict[str, Any]:
        return {"circuit": self.breaker.state.value, "metrics": self.metrics.as_dict()}


class ImageModerationAdapter:
    """Score media references.

    Images go through the vision client; OCR text found in an image is fed
    to ``text_assessor`` (the text pipeline without cache or escalation) and
    counted at ``text_weight``. Videos are not inspected and always go to a
    human reviewer. Every failure path returns a non-zero verdict that
    requires review.
    """

    def __init__(
        self,
        vision: VisionClient | None = None,
        text_assessor: TextAssessor | None = None,
        *,
        text_weight: float = 0.3,
    ) -> None:
        self.vision = vision
        self.text_assessor = text_assessor
        self.text_weight = text_weight

    async def moderate(self, url: str, *, video: bool = False) -> MediaVerdict:
        """Moderate one reference; ``video`` marks a ref the caller declared as video."""
        if video or is_video(url):
            return self.moderate_video(url)
        return await self.moderate_image(url)

    def moderate_video(self, url: str) -> MediaVerdict:
        logger.info("Queueing video %s for human review", url)
        return VIDEO_CONTENT

    async def moderate_image(self, url: str) -> MediaVerdict:
        if is_suspicious_file(url):
            logger.warning("Rejecting suspicious media reference %s", url)
            return SUSPICIOUS_FILE
        if self.vision is None:
            return PROVIDER_UNAVAILABLE

        try:
            annotation = await self.vision.annotate(url)
            return await self._score_annotation(annotation)
        except ClassifierError as exc:
            logger.warning("Image moderation failed for %s: %s", url, exc)
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.warning("Unreadable vision annotation for %s: %r", url, exc)
        return PROVIDER_ERROR

    async def _score_annotation(self, annotation: Mapping[str, Any]) -> MediaVerdict:
        score = 0.0
        flags: list[str] = []

        safe_search = annotation.get("safeSearchAnnotation") or {}
        for field_name, flag in SAFE_SEARCH_SCORED:
            likelihood = LIKELIHOOD_SCORES.get(safe_search.get(field_name, ""), 0)
            if likelihood > LIKELIHOOD_SCORES["UNLIKELY"]:
                score += likelihood
                flags.append(flag)
        for field_name, flag, penalty in SAFE_SEARCH_FIXED:
            likelihood = LIKELIHOOD_SCORES.get(safe_search.get(field_name, ""), 0)
            if likelihood > LIKELIHOOD_SCORES["POSSIBLE"]:
                score += penalty
                flags.append(flag)

        for obj in annotation.get("localizedObjectAnnotations") or ():
            name = str(obj.get("name", "")).lower()
            if any(concern in name for concern in CONCERNING_OBJECTS):
                score += CONCERNING_OBJECT_PENALTY
                flags.append("concerning_object")

        text_annotations = annotation.get("textAnnotations") or ()
        detected_text = text_annotations[0].get("description", "") if text_annotations else ""
        if self.text_assessor is not None and len(detected_text) > MIN_OCR_TEXT_LENGTH:
            text_signal = await self.text_assessor(detected_text)
            score += text_signal.score * self.text_weight
            flags.extend(f"image_text_{flag}" for flag in text_signal.flags)

        flags_out = unique(flags)
        return MediaVerdict(
            risk_score=round(score),
            flags=flags_out,
            requires_human_review=score > REVIEW_SCORE_THRESHOLD or bool(flags_out),
        )
