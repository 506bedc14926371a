# src/safeharbor/utils/hash.py
"""Content hashing helpers providing a BLAKE3 interface with a fallback."""

from __future__ import annotations

import hashlib
import sys
from collections.abc import Callable, Iterable
from typing import Protocol, cast


class _DigestLike(Protocol):
    """Protocol capturing the subset of the BLAKE3 API we rely on."""

    def hexdigest(self) -> str: ...


DigestFactory = Callable[[bytes], _DigestLike]

try:  # pragma: no cover - optional dependency path
    from blake3 import blake3 as _blake3_constructor
except Exception:  # pragma: no cover - runtime fallback
    _blake3: DigestFactory | None = None
else:
    _blake3 = cast(DigestFactory, _blake3_constructor)

_RUNNING_ON_PY314 = sys.version_info[:2] == (3, 14)


def _blake2s(data: bytes) -> _DigestLike:
    return hashlib.blake2s(data)


def digest_factory() -> DigestFactory:
    """Return a callable that mimics the BLAKE3 constructor.

    The compiled `blake3` wheel segfaults on some Python 3.14 builds, so we
    degrade to blake2s whenever the import fails or that interpreter is used.
    """
    if _blake3 is not None and not _RUNNING_ON_PY314:
        return _blake3
    return _blake2s


def normalize_content(content: str) -> str:
    """Trim surrounding whitespace; case is preserved."""
    return content.strip()


def content_hash(content: str, media_refs: Iterable[str] = ()) -> str:
    """Return the cache key for a piece of content and its media references.

    Content without media hashes to the same key regardless of how the
    request was shaped, so text-only lookups stay stable.
    """
    payload = normalize_content(content)
    refs = sorted(ref.strip() for ref in media_refs if ref and ref.strip())
    if refs:
        payload = "\n".join([payload, *refs])
    return digest_factory()(payload.encode("utf-8")).hexdigest()
