"""
Shared fixtures and fakes for the test suite.

The Redis fake implements just the commands TokenCache uses so the real
cache code runs against it. Upstream HTTP is served by httpx's
MockTransport.
"""

from __future__ import annotations

import json
import random
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from hypescreener.core.settings import Settings
from hypescreener.discovery.dexscreener import DexscreenerClient
from hypescreener.discovery.enricher import TokenEnricher
from hypescreener.discovery.helius import HeliusClient
from hypescreener.storage.cache import TokenCache

NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeRedis:
    """In-memory stand-in for redis.asyncio.Redis with decode_responses=True."""

    def __init__(self):
        self.strings: Dict[str, str] = {}
        self.hashes: Dict[str, Dict[str, str]] = {}
        self.published: List[tuple] = []
        self.fail = False
        self.closed = False

    def _check(self) -> None:
        if self.fail:
            raise RedisConnectionError("connection refused")

    async def ping(self) -> bool:
        self._check()
        return True

    async def get(self, key: str) -> Optional[str]:
        self._check()
        return self.strings.get(key)

    async def set(self, key: str, value: str) -> bool:
        self._check()
        self.strings[key] = value
        return True

    async def exists(self, *keys: str) -> int:
        self._check()
        return sum(1 for k in keys if k in self.strings or k in self.hashes)

    async def hset(self, name: str, mapping: Dict[str, Any]) -> int:
        self._check()
        target = self.hashes.setdefault(name, {})
        added = sum(1 for k in mapping if k not in target)
        target.update({k: str(v) for k, v in mapping.items()})
        return added

    async def hgetall(self, name: str) -> Dict[str, str]:
        self._check()
        return dict(self.hashes.get(name, {}))

    async def hexists(self, name: str, key: str) -> bool:
        self._check()
        return key in self.hashes.get(name, {})

    async def publish(self, channel: str, message: str) -> int:
        self._check()
        self.published.append((channel, message))
        return 0

    async def aclose(self) -> None:
        self.closed = True


class FixedRandom(random.Random):
    """Random source with pinned draws."""

    def __init__(self, value: float = 0.0, noise: float = 0.0):
        super().__init__(0)
        self.value = value
        self.noise = noise

    def random(self) -> float:
        return self.value

    def uniform(self, a: float, b: float) -> float:
        return self.noise


def iso_hours_ago(hours: float, now: datetime = NOW) -> str:
    """ISO timestamp ``hours`` before ``now``."""
    return (now - timedelta(hours=hours)).isoformat().replace("+00:00", "Z")


def ms_hours_ago(hours: float, now: datetime = NOW) -> int:
    """Epoch milliseconds ``hours`` before ``now``."""
    return int((now - timedelta(hours=hours)).timestamp() * 1000)


def make_pair(
    address: str,
    name: Optional[str] = "Token",
    symbol: str = "TKN",
    chain_id: str = "solana",
    fdv: Any = 0,
    volume: Any = 0,
    price_change: Any = 0,
    price: Any = "0.001",
    liquidity: Any = 1000,
    created_ms: Optional[int] = None,
) -> Dict[str, Any]:
    """Pair object shaped like the Dexscreener API."""
    return {
        "chainId": chain_id,
        "dexId": "raydium",
        "pairAddress": f"pair-{address}",
        "baseToken": {"address": address, "name": name, "symbol": symbol},
        "quoteToken": {"address": "So11111111111111111111111111111111111111112", "name": "Wrapped SOL", "symbol": "SOL"},
        "priceUsd": price,
        "liquidity": {"usd": liquidity},
        "fdv": fdv,
        "volume": {"h24": volume},
        "priceChange": {"h24": price_change},
        "pairCreatedAt": created_ms,
    }


class UpstreamRouter:
    """
    Request handler for httpx.MockTransport.

    Routes Helius and Dexscreener calls to per-endpoint callables and
    records every request.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.helius: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(200, json=[])
        )
        self.token_pairs: Dict[str, Any] = {}
        self.search: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(200, json={"pairs": []})
        )

    def paths(self, prefix: str = "") -> List[str]:
        return [r.url.path for r in self.requests if r.url.path.startswith(prefix)]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.url.host == "api.helius.xyz":
            return self.helius(request)

        if path.startswith("/latest/dex/tokens/"):
            address = path.rsplit("/", 1)[-1]
            entry = self.token_pairs.get(address, [])
            if isinstance(entry, httpx.Response):
                return entry
            return httpx.Response(200, json={"schemaVersion": "1.0.0", "pairs": entry})

        if path == "/latest/dex/search":
            return self.search(request)

        return httpx.Response(404, json={"error": "not found"})


@pytest.fixture
def settings():
    """Settings isolated from the environment and .env files."""
    return Settings(
        _env_file=None,
        helius_api_key="test-key",
        live_feed_reconnect_delay=0,
    )


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cache(fake_redis):
    return TokenCache(fake_redis)


@pytest.fixture
def upstream():
    return UpstreamRouter()


@pytest.fixture
def http_client(upstream):
    return httpx.AsyncClient(transport=httpx.MockTransport(upstream))


@pytest.fixture
def dexscreener(settings, http_client):
    return DexscreenerClient(settings, client=http_client)


@pytest.fixture
def helius(settings, http_client):
    return HeliusClient(settings, client=http_client)


@pytest.fixture
def enricher(dexscreener, cache):
    return TokenEnricher(dexscreener, cache, rng=FixedRandom(0.0, 0.0))


def stored_list(fake_redis: FakeRedis, key: str) -> Optional[List[Dict[str, Any]]]:
    """Decoded JSON list stored under ``key``."""
    raw = fake_redis.strings.get(key)
    return None if raw is None else json.loads(raw)
