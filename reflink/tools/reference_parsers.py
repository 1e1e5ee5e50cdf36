"""Response-shape strategies for the entity-linking service.

The service answers either with a structured ``annotations`` list or with a
``wikifiedHTML`` blob whose anchors point at reference articles. Each shape
has its own strategy; ``parse_response`` picks the first one that matches.
"""

from __future__ import annotations

from typing import Any, Protocol
from urllib.parse import quote, unquote, urlsplit

from bs4 import BeautifulSoup

from reflink.errors import ParseFailure
from reflink.models.references import ReferenceEntry, canonical_title

_TITLE_SAFE_CHARS = "_()',-.:!/"


def reference_url(title: str, base_url: str) -> str:
    """Canonical article URL for a title (spaces as underscores, rest percent-encoded)."""
    slug = quote(canonical_title(title).replace(" ", "_"), safe=_TITLE_SAFE_CHARS)
    return f"{base_url.rstrip('/')}/{slug}"


def _coerce_confidence(item: dict[str, Any]) -> float | None:
    for field_name in ("pageRank", "confidence"):
        value = item.get(field_name)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        return min(max(float(value), 0.0), 1.0)
    return None


def _title_from_href(href: str, base_url: str) -> str | None:
    target = urlsplit(href.strip())
    base = urlsplit(base_url)
    if target.scheme.lower() not in ("http", "https"):
        return None
    if target.netloc.lower() != base.netloc.lower():
        return None
    prefix = base.path.rstrip("/") + "/"
    if not target.path.startswith(prefix):
        return None
    # Everything after the prefix is the title; titles such as "AC/DC" contain slashes.
    remainder = target.path[len(prefix):]
    if not remainder:
        return None
    return canonical_title(unquote(remainder)) or None


class ParseStrategy(Protocol):
    name: str

    def matches(self, payload: dict[str, Any]) -> bool: ...

    def parse(self, payload: dict[str, Any], base_url: str) -> list[ReferenceEntry]: ...


class AnnotationListStrategy:
    name = "annotation_list"

    def matches(self, payload: dict[str, Any]) -> bool:
        return isinstance(payload.get("annotations"), list)

    def parse(self, payload: dict[str, Any], base_url: str) -> list[ReferenceEntry]:
        entries: list[ReferenceEntry] = []
        for item in payload["annotations"]:
            if not isinstance(item, dict):
                continue
            raw_title = item.get("title") or item.get("articleTitle")
            if not isinstance(raw_title, str):
                continue
            title = canonical_title(raw_title)
            if not title:
                continue
            url = item.get("url")
            if not isinstance(url, str) or not url.strip():
                url = reference_url(title, base_url)
            entries.append(
                ReferenceEntry(title=title, url=url.strip(), confidence=_coerce_confidence(item))
            )
        return entries


class WikifiedHtmlStrategy:
    name = "wikified_html"

    def matches(self, payload: dict[str, Any]) -> bool:
        return isinstance(payload.get("wikifiedHTML"), str)

    def parse(self, payload: dict[str, Any], base_url: str) -> list[ReferenceEntry]:
        soup = BeautifulSoup(payload["wikifiedHTML"], "html.parser")
        seen: set[str] = set()
        entries: list[ReferenceEntry] = []
        for anchor in soup.find_all("a", href=True):
            title = _title_from_href(str(anchor["href"]), base_url)
            if title is None or title in seen:
                continue
            seen.add(title)
            entries.append(ReferenceEntry(title=title, url=reference_url(title, base_url)))
        return entries


PARSE_STRATEGIES: tuple[ParseStrategy, ...] = (AnnotationListStrategy(), WikifiedHtmlStrategy())


def parse_response(payload: Any, base_url: str) -> tuple[str, list[ReferenceEntry]]:
    """Return ``(strategy_name, entries)``; raise ParseFailure for unknown shapes."""
    if not isinstance(payload, dict):
        raise ParseFailure(f"unexpected response type: {type(payload).__name__}")
    for strategy in PARSE_STRATEGIES:
        if strategy.matches(payload):
            return strategy.name, strategy.parse(payload, base_url)
    raise ParseFailure(f"unrecognised response keys: {sorted(payload)[:5]}")
