from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

_WHITESPACE = re.compile(r"\s+")


def canonical_title(raw: str) -> str:
    """Underscores become spaces, whitespace runs collapse, ends are trimmed."""
    return _WHITESPACE.sub(" ", raw.replace("_", " ")).strip()


@dataclass(slots=True, frozen=True)
class ReferenceEntry:
    """A detected topic linked to its canonical reference article."""

    title: str
    url: str
    confidence: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"title": self.title, "url": self.url, "confidence": self.confidence}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReferenceEntry:
        confidence = data.get("confidence")
        return cls(
            title=str(data.get("title", "")),
            url=str(data.get("url", "")),
            confidence=float(confidence) if isinstance(confidence, (int, float)) else None,
        )


@dataclass(slots=True)
class AnnotationResult:
    key: str
    entries: tuple[ReferenceEntry, ...]
    computed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


CONTENT_KEY_VERSION = 1


def content_key(text: str) -> str:
    """Deterministic key for the exact answer text (any byte difference misses)."""
    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()
    return f"v{CONTENT_KEY_VERSION}:{digest}"
