"""
Redis backed token cache.

Layout:
    newTokens               JSON list of the ranked auto-discovered tokens
    featuredTokens          JSON list of the manually listed tokens
    allTokens:<address>     hash holding one token record

File: backend/hypescreener/storage/cache.py
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import redis.asyncio as redis
from pydantic import ValidationError as PydanticValidationError

from ..core.exceptions import CacheError
from ..core.logging import get_logger
from ..discovery.models import TokenRecord

logger = get_logger(__name__)

NEW_TOKENS_KEY = "newTokens"
FEATURED_TOKENS_KEY = "featuredTokens"
TOKEN_KEY_PREFIX = "allTokens:"


def token_key(address: str) -> str:
    """Cache key of a single token record."""
    return f"{TOKEN_KEY_PREFIX}{address}"


def _encode_hash(token: TokenRecord) -> Dict[str, Any]:
    """Flatten a record into values Redis accepts as hash fields."""
    mapping: Dict[str, Any] = {}
    for key, value in token.model_dump(by_alias=True, exclude_none=True).items():
        if isinstance(value, bool):
            mapping[key] = "true" if value else "false"
        elif isinstance(value, (list, dict)):
            mapping[key] = json.dumps(value)
        else:
            mapping[key] = value
    return mapping


class TokenCache:
    """
    Key-value store for token lists and per-address records.

    Every Redis failure is re-raised as CacheError so callers deal with
    one exception type regardless of the driver.
    """

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, redis_url: str) -> "TokenCache":
        """Create a cache bound to a Redis URL."""
        return cls(redis.from_url(redis_url, decode_responses=True))

    async def close(self) -> None:
        await self.client.aclose()

    async def ping(self) -> bool:
        """Check if Redis answers."""
        try:
            return bool(await self.client.ping())
        except redis.RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    # Lists

    async def get_new_tokens(self) -> Optional[List[TokenRecord]]:
        """Ranked new tokens, or None if the list was never written."""
        return await self._get_list(NEW_TOKENS_KEY)

    async def set_new_tokens(self, tokens: List[TokenRecord]) -> None:
        """Replace the new tokens list."""
        await self._set_list(NEW_TOKENS_KEY, tokens)

    async def get_featured_tokens(self) -> Optional[List[TokenRecord]]:
        """Featured tokens, or None if the list was never written."""
        return await self._get_list(FEATURED_TOKENS_KEY)

    async def set_featured_tokens(self, tokens: List[TokenRecord]) -> None:
        """Replace the featured tokens list."""
        await self._set_list(FEATURED_TOKENS_KEY, tokens)

    async def ensure_featured_tokens(self) -> bool:
        """
        Create an empty featured list if none exists.

        Returns:
            True if the list was created
        """
        try:
            if await self.client.exists(FEATURED_TOKENS_KEY):
                return False
            await self.client.set(FEATURED_TOKENS_KEY, json.dumps([]))
        except redis.RedisError as e:
            raise CacheError(f"Failed to initialize {FEATURED_TOKENS_KEY}: {e}") from e
        logger.info("Initialized empty featured tokens list")
        return True

    async def _get_list(self, key: str) -> Optional[List[TokenRecord]]:
        try:
            raw = await self.client.get(key)
        except redis.RedisError as e:
            raise CacheError(f"Failed to read {key}: {e}") from e

        if raw is None:
            return None
        try:
            items = json.loads(raw)
            return [TokenRecord.model_validate(item) for item in items]
        except (TypeError, ValueError, PydanticValidationError) as e:
            raise CacheError(f"Corrupt value under {key}: {e}") from e

    async def _set_list(self, key: str, tokens: List[TokenRecord]) -> None:
        payload = json.dumps([t.to_public() for t in tokens])
        try:
            await self.client.set(key, payload)
        except redis.RedisError as e:
            raise CacheError(f"Failed to write {key}: {e}") from e

    # Per-address records

    async def save_token(self, token: TokenRecord) -> None:
        """Write (or overwrite fields of) a token record."""
        try:
            await self.client.hset(token_key(token.address), mapping=_encode_hash(token))
        except redis.RedisError as e:
            raise CacheError(f"Failed to save token {token.address}: {e}") from e

    async def get_token(self, address: str) -> Optional[TokenRecord]:
        """Load a token record, None when absent or incomplete."""
        try:
            data = await self.client.hgetall(token_key(address))
        except redis.RedisError as e:
            raise CacheError(f"Failed to read token {address}: {e}") from e

        if not data or not data.get("address"):
            return None
        try:
            return TokenRecord.model_validate(data)
        except (ValueError, PydanticValidationError) as e:
            logger.warning(
                f"Ignoring unreadable cached token {address}: {e}",
                extra={'extra_data': {'token_address': address}}
            )
            return None

    async def token_exists(self, address: str) -> bool:
        """Check if a record with this address has been stored."""
        try:
            return bool(await self.client.hexists(token_key(address), "address"))
        except redis.RedisError as e:
            raise CacheError(f"Failed to check token {address}: {e}") from e

    # Pub/sub

    async def publish(self, channel: str, message: str) -> int:
        """Publish a message on a Redis channel, returns receiver count."""
        try:
            return int(await self.client.publish(channel, message))
        except redis.RedisError as e:
            raise CacheError(f"Failed to publish on {channel}: {e}") from e


__all__ = [
    "TokenCache",
    "token_key",
    "NEW_TOKENS_KEY",
    "FEATURED_TOKENS_KEY",
]
