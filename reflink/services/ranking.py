from __future__ import annotations

from collections.abc import Iterable

from reflink.models.references import ReferenceEntry


def rank(entries: Iterable[ReferenceEntry], limit: int | None = None) -> list[ReferenceEntry]:
    """Highest confidence first (missing counts as 0), one entry per title.

    With ``limit=None`` the full ranked list is returned; callers that cache
    the ranking truncate per request.
    """
    if limit is not None and limit <= 0:
        return []
    ordered = sorted(entries, key=lambda entry: entry.confidence or 0.0, reverse=True)
    ranked: list[ReferenceEntry] = []
    seen: set[str] = set()
    for entry in ordered:
        if not entry.title or entry.title in seen:
            continue
        seen.add(entry.title)
        ranked.append(entry)
        if limit is not None and len(ranked) >= limit:
            break
    return ranked
