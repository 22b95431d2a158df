"""
Startup and shutdown wiring.

Runs the real lifespan with Redis replaced by the in-memory fake and
every outbound integration switched off.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import FakeRedis
from hypescreener.core import bootstrap
from hypescreener.core.settings import Settings
from hypescreener.storage.cache import FEATURED_TOKENS_KEY, TokenCache


@pytest.fixture
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(bootstrap.TokenCache, "from_url", classmethod(lambda cls, url: TokenCache(fake)))
    return fake


@pytest.fixture
def quiet_settings(tmp_path):
    return Settings(
        _env_file=None,
        helius_api_key=None,
        refresh_on_startup=False,
        broker_publish_enabled=False,
        logs_dir=tmp_path,
    )


def test_lifespan_wires_services(fake_redis, quiet_settings):
    app = bootstrap.create_app(quiet_settings)

    with TestClient(app) as client:
        assert app.state.scheduler.is_running
        assert app.state.listener is None
        assert fake_redis.strings[FEATURED_TOKENS_KEY] == "[]"

        body = client.get("/health").json()
        assert body["subsystems"] == {"cache": "OK", "scheduler": "OK", "live_feed": "DISABLED"}
        assert "discovery_refresh" in body["details"]["jobs"]

        assert client.get("/api/featured-tokens").json() == []

    assert not app.state.scheduler.is_running
    assert fake_redis.closed


def test_startup_survives_redis_outage(fake_redis, quiet_settings):
    fake_redis.fail = True
    app = bootstrap.create_app(quiet_settings)

    with TestClient(app) as client:
        response = client.get("/api/featured-tokens")
        assert response.status_code == 500
        assert client.get("/health").json()["subsystems"]["cache"] == "ERROR"


def test_cors_allows_frontend(quiet_settings):
    app = bootstrap.create_app(quiet_settings)

    response = TestClient(app).options(
        "/api/new-tokens",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "GET",
        },
    )

    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
