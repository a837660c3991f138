"""Unit tests for HttpExtractor."""

import json

import httpx
import pytest

from ingestor.extractor_client import HttpExtractor


def _extractor(handler) -> HttpExtractor:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpExtractor(url="http://extractor/extract", timeout=5.0, client=client)


@pytest.mark.asyncio
async def test_posts_chunk_payload():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True})

    extractor = _extractor(handler)
    result = await extractor.extract("abc", 3, "some text\n")
    await extractor.close()

    assert result is True
    assert seen["path"] == "/extract"
    assert seen["body"] == {"content_hash": "abc", "chunk_index": 3, "text": "some text\n"}


@pytest.mark.asyncio
async def test_empty_2xx_is_success():
    extractor = _extractor(lambda request: httpx.Response(204))

    assert await extractor.extract("abc", 0, "x") is True


@pytest.mark.asyncio
async def test_reported_failure():
    extractor = _extractor(lambda request: httpx.Response(200, json={"success": False, "error": "turn budget exhausted"}))

    assert await extractor.extract("abc", 0, "x") is False


@pytest.mark.asyncio
async def test_server_error_is_failure():
    extractor = _extractor(lambda request: httpx.Response(500, json={"detail": "boom"}))

    assert await extractor.extract("abc", 0, "x") is False


@pytest.mark.asyncio
async def test_transport_error_is_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    extractor = _extractor(handler)

    assert await extractor.extract("abc", 0, "x") is False


@pytest.mark.asyncio
async def test_timeout_is_failure():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    extractor = _extractor(handler)

    assert await extractor.extract("abc", 0, "x") is False


@pytest.mark.asyncio
async def test_api_key_sent_as_bearer_token():
    extractor = HttpExtractor(url="http://extractor/extract", timeout=5.0, api_key="secret-key")

    assert extractor.client.headers["Authorization"] == "Bearer secret-key"
    await extractor.close()
