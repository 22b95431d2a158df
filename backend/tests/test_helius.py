"""Tests for the Helius token index client."""

from __future__ import annotations

import httpx
import pytest

from hypescreener.core.exceptions import ProviderError
from hypescreener.core.settings import Settings
from hypescreener.discovery.helius import HeliusClient


@pytest.mark.asyncio
async def test_fetch_recent_tokens(helius, upstream):
    seen = {}

    def handler(request):
        seen["url"] = request.url
        return httpx.Response(200, json=[
            {"mint": "MintA", "name": "Alpha", "createdAt": "2024-06-01T10:00:00Z"},
            {"address": "MintB", "createdAt": 1717236000000},
            {"name": "No mint"},
            "garbage",
        ])

    upstream.helius = handler

    tokens = await helius.fetch_recent_tokens()

    assert [t.mint for t in tokens] == ["MintA", "MintB"]
    assert tokens[0].name == "Alpha"
    assert tokens[1].name is None
    assert tokens[1].created_at == 1717236000000
    assert seen["url"].path == "/v0/tokens"
    assert seen["url"].params["api-key"] == "test-key"


@pytest.mark.asyncio
async def test_wrapped_payload_and_limit(helius, upstream):
    upstream.helius = lambda request: httpx.Response(200, json={
        "tokens": [{"mint": f"Mint{i}"} for i in range(10)]
    })

    tokens = await helius.fetch_recent_tokens(limit=3)

    assert [t.mint for t in tokens] == ["Mint0", "Mint1", "Mint2"]


@pytest.mark.asyncio
@pytest.mark.parametrize("response,fragment", [
    (httpx.Response(500, text="error"), "HTTP 500"),
    (httpx.Response(200, text="not json"), "malformed JSON"),
    (httpx.Response(200, json={"error": "nope"}), "unexpected payload"),
])
async def test_failures_raise_provider_error(helius, upstream, response, fragment):
    upstream.helius = lambda request: response

    with pytest.raises(ProviderError) as exc_info:
        await helius.fetch_recent_tokens()

    assert exc_info.value.provider == "helius"
    assert fragment in exc_info.value.message


@pytest.mark.asyncio
async def test_missing_key_skips_request(http_client, upstream):
    client = HeliusClient(Settings(_env_file=None, helius_api_key=None), client=http_client)

    with pytest.raises(ProviderError) as exc_info:
        await client.fetch_recent_tokens()

    assert exc_info.value.error_code == "PROVIDER_NOT_CONFIGURED"
    assert upstream.requests == []


def test_stream_url(helius):
    assert helius.stream_url == "wss://mainnet.helius-rpc.com/?api-key=test-key"


@pytest.mark.asyncio
async def test_wrongly_typed_fields_are_not_fatal(helius, upstream):
    upstream.helius = lambda request: httpx.Response(200, json=[
        {"mint": "MintGood", "name": "Good", "createdAt": "2024-06-01T10:00:00Z"},
        {"mint": "MintOdd", "name": 42, "createdAt": "2024-06-01T10:00:00Z"},
        {"mint": 12345, "name": "Numeric mint"},
        {"mint": ["MintList"], "name": "List mint"},
    ])

    tokens = await helius.fetch_recent_tokens()

    assert [t.mint for t in tokens] == ["MintGood", "MintOdd"]
    assert tokens[1].name is None
