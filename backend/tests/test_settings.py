"""Tests for settings and the error model."""

from __future__ import annotations

import pytest
from pydantic import ValidationError as PydanticValidationError

from hypescreener.core.exceptions import CacheError, ProviderError, ValidationError, _status_for
from hypescreener.core.settings import Settings


class TestSettings:
    """Test suite for Settings."""

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.port == 3001
        assert settings.freshness_window_hours == 12
        assert settings.top_tokens_limit == 5
        assert settings.refresh_interval_hours == 12
        assert settings.live_feed_reconnect_delay == 5.0
        assert settings.new_tokens_channel == "new-tokens-channel"
        assert settings.featured_tokens_channel == "featured-tokens-channel"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("HELIUS_API_KEY", "from-env")
        monkeypatch.setenv("TOP_TOKENS_LIMIT", "10")

        settings = Settings(_env_file=None)

        assert settings.helius_api_key == "from-env"
        assert settings.top_tokens_limit == 10

    def test_cors_origins_fall_back_to_frontend_url(self):
        assert Settings(_env_file=None, frontend_url="https://hype.example").get_cors_origins() == [
            "https://hype.example"
        ]
        explicit = Settings(_env_file=None, cors_origins=["https://a.example", "https://b.example"])
        assert explicit.get_cors_origins() == ["https://a.example", "https://b.example"]

    def test_live_feed_requires_key(self):
        assert not Settings(_env_file=None, helius_api_key=None).live_feed_configured
        assert not Settings(_env_file=None, helius_api_key="k", live_feed_enabled=False).live_feed_configured
        assert Settings(_env_file=None, helius_api_key="k").live_feed_configured

    @pytest.mark.parametrize("field,value", [
        ("freshness_window_hours", 0),
        ("top_tokens_limit", -1),
        ("live_feed_reconnect_delay", -5),
        ("slow_request_ms", -1),
        ("environment", "qa"),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None, **{field: value})


class TestExceptions:
    """Test suite for the exception hierarchy."""

    def test_provider_error(self):
        error = ProviderError("helius", "HTTP 500")

        assert error.message == "helius: HTTP 500"
        assert error.provider == "helius"
        assert error.error_code == "PROVIDER_ERROR"
        assert error.trace_id

    def test_status_codes(self):
        assert _status_for(ValidationError("bad")) == 400
        assert _status_for(ProviderError("dexscreener", "down")) == 502
        assert _status_for(CacheError("down")) == 500
