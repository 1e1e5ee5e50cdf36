from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

from reflink.models.references import AnnotationResult, ReferenceEntry

STORE_VERSION = 1


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def entry_path(cache_dir: str | Path, key: str) -> Path:
    return Path(cache_dir) / f"{key.replace(':', '_')}.json"


def load(key: str, *, cache_dir: str | Path, ttl_seconds: int = 0) -> AnnotationResult | None:
    """Read a persisted result; missing, corrupt, foreign or expired files yield None."""
    path = entry_path(cache_dir, key)
    if not path.exists():
        return None

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    if not isinstance(payload, dict) or payload.get("key") != key:
        return None

    computed_at_raw = payload.get("computed_at")
    if not isinstance(computed_at_raw, str):
        return None
    try:
        computed_at = datetime.fromisoformat(computed_at_raw)
    except ValueError:
        return None
    if computed_at.tzinfo is None:
        computed_at = computed_at.replace(tzinfo=timezone.utc)

    if ttl_seconds > 0 and _utc_now() > computed_at + timedelta(seconds=ttl_seconds):
        return None

    raw_entries = payload.get("entries")
    if not isinstance(raw_entries, list):
        return None
    entries = tuple(
        ReferenceEntry.from_dict(item)
        for item in raw_entries
        if isinstance(item, dict) and item.get("title")
    )
    return AnnotationResult(key=key, entries=entries, computed_at=computed_at)


def save(result: AnnotationResult, *, cache_dir: str | Path) -> Path:
    path = entry_path(cache_dir, result.key)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "version": STORE_VERSION,
        "key": result.key,
        "computed_at": result.computed_at.isoformat(),
        "entries": [entry.to_dict() for entry in result.entries],
    }
    path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
    return path
