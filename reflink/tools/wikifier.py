from __future__ import annotations

import time
from typing import Any

import httpx

from reflink.config import settings
from reflink.errors import InvalidInput, MissingCredential, ParseFailure, UpstreamUnavailable
from reflink.models.references import ReferenceEntry, content_key
from reflink.services.logger import log_extraction_call, logger
from reflink.tools.reference_parsers import parse_response


def build_params(text: str) -> dict[str, str]:
    """Query parameters for one annotate-article request."""
    return {
        "userKey": settings.wikifier_user_key,
        "text": text,
        "lang": settings.wikifier_lang,
        "pageRankSqThreshold": f"{settings.wikifier_page_rank_threshold:g}",
        "applyPageRankSqThreshold": str(bool(settings.wikifier_apply_threshold)).lower(),
        "nTopDfValuesToIgnore": str(int(settings.wikifier_top_df_values_to_ignore)),
        "nWordsToIgnoreFromList": str(int(settings.wikifier_words_to_ignore)),
    }


async def _fetch(client: httpx.AsyncClient, params: dict[str, str]) -> Any:
    response = await client.get(
        settings.wikifier_base_url,
        params=params,
        headers={"Accept": "application/json"},
        timeout=settings.wikifier_timeout_seconds,
    )
    response.raise_for_status()
    try:
        return response.json()
    except ValueError as e:
        raise ParseFailure(f"response body is not JSON: {e}") from e


async def extract(
    text: str,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> list[ReferenceEntry]:
    """Annotate `text` with the Wikifier service and normalize the references.

    Makes exactly one outbound request. Unrecognised response shapes are
    logged and yield an empty list.
    """
    if not text or not text.strip():
        raise InvalidInput("text is empty")
    if not settings.wikifier_user_key:
        raise MissingCredential("WIKIFIER_USER_KEY is not configured")

    key = content_key(text)
    params = build_params(text)
    started = time.monotonic()

    try:
        if http_client is None:
            async with httpx.AsyncClient(timeout=settings.wikifier_timeout_seconds) as client:
                payload = await _fetch(client, params)
        else:
            payload = await _fetch(http_client, params)
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        log_extraction_call(key, "http_error", duration_ms=_elapsed_ms(started), error=f"HTTP {status}")
        raise UpstreamUnavailable(f"Wikifier responded with HTTP {status}", upstream_status=status) from e
    except httpx.TimeoutException as e:
        log_extraction_call(key, "timeout", duration_ms=_elapsed_ms(started), error=str(e) or "timeout")
        raise UpstreamUnavailable(
            f"Wikifier did not answer within {settings.wikifier_timeout_seconds:g}s"
        ) from e
    except httpx.TransportError as e:
        log_extraction_call(key, "unreachable", duration_ms=_elapsed_ms(started), error=str(e))
        raise UpstreamUnavailable(f"Wikifier is unreachable: {e}") from e
    except ParseFailure as e:
        logger.warning(f"Wikifier response could not be decoded, treating as no references: {e}")
        log_extraction_call(key, "parse_failure", duration_ms=_elapsed_ms(started))
        return []

    try:
        strategy, entries = parse_response(payload, settings.reference_base_url)
    except ParseFailure as e:
        logger.warning(f"Wikifier response shape not recognised, treating as no references: {e}")
        log_extraction_call(key, "parse_failure", duration_ms=_elapsed_ms(started))
        return []

    logger.debug(f"Wikifier parsed {len(entries)} references via {strategy}")
    log_extraction_call(key, "success", entries=len(entries), duration_ms=_elapsed_ms(started))
    return entries


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
