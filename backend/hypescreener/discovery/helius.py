"""
Helius token index client, the primary source of freshly created tokens.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional

import httpx

from ..core.exceptions import ProviderError
from ..core.logging import get_logger
from ..core.settings import Settings
from .models import text_or_none

logger = get_logger(__name__)

PROVIDER = "helius"


@dataclass
class HeliusToken:
    """Token descriptor returned by the Helius token index."""
    mint: str
    name: Optional[str] = None
    created_at: Any = None


class HeliusClient:
    """
    Client for the Helius REST token index and mint stream endpoint.
    """

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.api_url = settings.helius_api_url.rstrip("/")
        self.ws_url = settings.helius_ws_url.rstrip("/")
        self.api_key = settings.helius_api_key
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            headers={
                "User-Agent": f"{settings.app_name}/{settings.version}",
                "Accept": "application/json",
            },
        )

    @property
    def stream_url(self) -> str:
        """WebSocket URL for the mint event stream."""
        return f"{self.ws_url}/?api-key={self.api_key or ''}"

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self.client.aclose()

    async def fetch_recent_tokens(self, limit: int = 50) -> List[HeliusToken]:
        """
        Fetch the newest tokens known to the index.

        Args:
            limit: Maximum number of descriptors to return

        Returns:
            Token descriptors, newest first as delivered by the provider

        Raises:
            ProviderError: If the key is missing, the request fails or the
                payload is not a list of token objects
        """
        if not self.api_key:
            raise ProviderError(PROVIDER, "API key not configured", error_code="PROVIDER_NOT_CONFIGURED")

        try:
            response = await self.client.get(
                f"{self.api_url}/tokens",
                params={"api-key": self.api_key},
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise ProviderError(PROVIDER, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ProviderError(PROVIDER, f"request failed: {e!r}") from e
        except ValueError as e:
            raise ProviderError(PROVIDER, f"malformed JSON: {e}") from e

        if isinstance(payload, dict) and isinstance(payload.get("tokens"), list):
            payload = payload["tokens"]
        if not isinstance(payload, list):
            raise ProviderError(PROVIDER, "unexpected payload shape")

        tokens = []
        skipped = 0
        for item in payload[:limit]:
            if not isinstance(item, dict):
                skipped += 1
                continue
            mint = text_or_none(item.get("mint") or item.get("address"))
            if not mint:
                skipped += 1
                continue
            tokens.append(HeliusToken(
                mint=mint,
                name=text_or_none(item.get("name")) or None,
                created_at=item.get("createdAt"),
            ))

        logger.info(
            f"Helius returned {len(tokens)} tokens",
            extra={'extra_data': {'source': PROVIDER, 'received': len(payload), 'skipped': skipped}}
        )
        return tokens


__all__ = ["HeliusClient", "HeliusToken"]
