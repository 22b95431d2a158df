"""Application settings and configuration management."""
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    # App basics
    app_name: str = "HypeScreener"
    debug: bool = False
    version: str = "1.0.0"
    environment: str = "development"  # development, staging, production

    # Server
    host: str = "0.0.0.0"
    port: int = 3001
    reload: bool = False

    # CORS settings
    frontend_url: str = "http://localhost:3000"
    cors_origins: List[str] = []

    # Cache / broker
    redis_url: str = "redis://localhost:6379/0"

    # Upstream providers
    helius_api_key: Optional[str] = None
    helius_api_url: str = "https://api.helius.xyz/v0"
    helius_ws_url: str = "wss://mainnet.helius-rpc.com"
    dexscreener_api_url: str = "https://api.dexscreener.com/latest"

    # Discovery
    discovery_chain: str = "solana"
    discovery_batch_size: int = 50
    freshness_window_hours: int = 12
    top_tokens_limit: int = 5
    refresh_interval_hours: int = 12
    refresh_on_startup: bool = True

    # Live mint feed
    live_feed_enabled: bool = True
    live_feed_reconnect_delay: float = 5.0

    # Notifications
    broker_publish_enabled: bool = True
    new_tokens_channel: str = "new-tokens-channel"
    new_token_event: str = "new-token-event"
    featured_tokens_channel: str = "featured-tokens-channel"
    new_featured_event: str = "new-featured-event"

    # Logging
    log_level: str = "INFO"
    slow_request_ms: float = 1000.0
    log_to_file: bool = False
    log_retention_days: int = 30
    logs_dir: Path = Field(default_factory=lambda: Path("data/logs"))

    def get_cors_origins(self) -> List[str]:
        """
        Origins allowed to call the API.

        Returns:
            Explicit ``cors_origins`` when set, otherwise the frontend URL
        """
        if self.cors_origins:
            return self.cors_origins
        return [self.frontend_url]

    @property
    def live_feed_configured(self) -> bool:
        """Check if the live mint feed can be started."""
        return self.live_feed_enabled and bool(self.helius_api_key)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is a valid value."""
        if v not in ["development", "staging", "production"]:
            raise ValueError("Environment must be one of: development, staging, production")
        return v

    @field_validator("freshness_window_hours", "top_tokens_limit", "discovery_batch_size", "refresh_interval_hours")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Ensure sizing and window values are positive."""
        if v <= 0:
            raise ValueError("Value must be a positive integer")
        return v

    @field_validator("live_feed_reconnect_delay", "slow_request_ms")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        """Delays and thresholds cannot be negative."""
        if v < 0:
            raise ValueError("Value must be >= 0")
        return v

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
        "str_strip_whitespace": True,
    }


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """
    Get the global settings instance.

    Returns:
        Settings: The global settings instance
    """
    return settings


__all__ = [
    "Settings",
    "settings",
    "get_settings",
]
