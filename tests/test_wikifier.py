from __future__ import annotations

import httpx
import pytest

from reflink.config import settings
from reflink.errors import InvalidInput, MissingCredential, UpstreamUnavailable
from reflink.tools import wikifier


@pytest.fixture(autouse=True)
def wikifier_settings(monkeypatch):
    monkeypatch.setattr(settings, "wikifier_user_key", "test-key")
    monkeypatch.setattr(settings, "wikifier_base_url", "https://www.wikifier.org/annotate-article")
    monkeypatch.setattr(settings, "reference_base_url", "https://en.wikipedia.org/wiki/")
    monkeypatch.setattr(settings, "wikifier_lang", "auto")
    monkeypatch.setattr(settings, "wikifier_timeout_seconds", 5.0)


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_extract_sends_tuning_parameters():
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"annotations": []})

    async with _client(handler) as client:
        entries = await wikifier.extract("Gravity bends light.", http_client=client)

    assert entries == []
    assert len(captured) == 1
    params = captured[0].url.params
    assert captured[0].method == "GET"
    assert captured[0].url.path == "/annotate-article"
    assert params["userKey"] == "test-key"
    assert params["text"] == "Gravity bends light."
    assert params["lang"] == "auto"
    assert params["pageRankSqThreshold"] == "0.5"
    assert params["applyPageRankSqThreshold"] == "true"
    assert params["nTopDfValuesToIgnore"] == "100"
    assert params["nWordsToIgnoreFromList"] == "200"


@pytest.mark.asyncio
async def test_extract_parses_annotation_list():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "annotations": [
                    {"title": "Newton's Laws", "pageRank": 0.9},
                    {"title": "Force", "pageRank": 0.95},
                ]
            },
        )

    async with _client(handler) as client:
        entries = await wikifier.extract("F = ma", http_client=client)

    assert [e.title for e in entries] == ["Newton's Laws", "Force"]
    assert entries[1].url == "https://en.wikipedia.org/wiki/Force"


@pytest.mark.asyncio
async def test_extract_html_without_links_returns_empty():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"wikifiedHTML": "no links here"})

    async with _client(handler) as client:
        assert await wikifier.extract("no links here", http_client=client) == []


@pytest.mark.asyncio
async def test_extract_unknown_shape_or_non_json_returns_empty():
    responses = iter(
        [
            httpx.Response(200, json={"unexpected": True}),
            httpx.Response(200, text="<html>not json</html>"),
        ]
    )

    def handler(request: httpx.Request) -> httpx.Response:
        return next(responses)

    async with _client(handler) as client:
        assert await wikifier.extract("text one", http_client=client) == []
        assert await wikifier.extract("text two", http_client=client) == []


@pytest.mark.asyncio
async def test_extract_maps_non_success_status_to_upstream_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="maintenance")

    async with _client(handler) as client:
        with pytest.raises(UpstreamUnavailable) as exc_info:
            await wikifier.extract("Gravity", http_client=client)

    assert exc_info.value.upstream_status == 503
    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_extract_maps_timeout_to_upstream_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    async with _client(handler) as client:
        with pytest.raises(UpstreamUnavailable):
            await wikifier.extract("Gravity", http_client=client)


@pytest.mark.asyncio
async def test_extract_maps_connection_error_to_upstream_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async with _client(handler) as client:
        with pytest.raises(UpstreamUnavailable):
            await wikifier.extract("Gravity", http_client=client)


@pytest.mark.asyncio
async def test_extract_rejects_empty_text_without_network_call(monkeypatch):
    calls = 0

    async def fake_get(self, url: str, **kwargs):  # noqa: ARG001
        nonlocal calls
        calls += 1
        raise AssertionError("network must not be used")

    monkeypatch.setattr(httpx.AsyncClient, "get", fake_get)

    with pytest.raises(InvalidInput):
        await wikifier.extract("")
    with pytest.raises(InvalidInput):
        await wikifier.extract("   \n")

    assert calls == 0


@pytest.mark.asyncio
async def test_extract_requires_credential_before_network_call(monkeypatch):
    monkeypatch.setattr(settings, "wikifier_user_key", "")
    calls = 0

    async def fake_get(self, url: str, **kwargs):  # noqa: ARG001
        nonlocal calls
        calls += 1

    monkeypatch.setattr(httpx.AsyncClient, "get", fake_get)

    with pytest.raises(MissingCredential):
        await wikifier.extract("Gravity")

    assert calls == 0


@pytest.mark.asyncio
async def test_extract_uses_own_client_with_timeout(monkeypatch):
    captured: dict = {}

    async def fake_get(self, url: str, **kwargs):
        captured["url"] = url
        captured.update(kwargs)
        return httpx.Response(
            200,
            json={"wikifiedHTML": '<a href="https://en.wikipedia.org/wiki/Light">light</a>'},
            request=httpx.Request("GET", url),
        )

    monkeypatch.setattr(httpx.AsyncClient, "get", fake_get)

    entries = await wikifier.extract("Light travels.")

    assert captured["url"] == "https://www.wikifier.org/annotate-article"
    assert captured["timeout"] == 5.0
    assert [e.title for e in entries] == ["Light"]
