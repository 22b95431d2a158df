"""
Query service behind the REST API.

Reads the token cache, triggers discovery on demand, accepts manual
listings and resolves single-token searches across the cache and the
market data providers.
"""
from __future__ import annotations

from typing import List, Optional

from ..core.exceptions import ValidationError
from ..core.logging import get_logger
from ..core.settings import Settings
from ..discovery.dexscreener import DexscreenerClient, PairInfo
from ..discovery.enricher import TokenEnricher
from ..discovery.models import AGE_UNKNOWN, TokenRecord
from ..discovery.pipeline import DiscoveryPipeline
from ..storage.cache import TokenCache
from ..ws.hub import NotificationHub

logger = get_logger(__name__)

NOT_FOUND_NAME = "Not Found"


class QueryService:
    """Orchestrates reads and writes issued through the API."""

    def __init__(
        self,
        settings: Settings,
        cache: TokenCache,
        pipeline: DiscoveryPipeline,
        enricher: TokenEnricher,
        dexscreener: DexscreenerClient,
        hub: NotificationHub,
    ):
        self.cache = cache
        self.pipeline = pipeline
        self.enricher = enricher
        self.dexscreener = dexscreener
        self.hub = hub
        self.chain = settings.discovery_chain
        self.top_limit = settings.top_tokens_limit
        self.featured_channel = settings.featured_tokens_channel
        self.featured_event = settings.new_featured_event

    async def get_new_tokens(self, refresh: bool = False) -> List[TokenRecord]:
        """
        Ranked new tokens.

        Args:
            refresh: Run discovery before reading

        Returns:
            Cached list; a cache miss also triggers discovery
        """
        tokens = None if refresh else await self.cache.get_new_tokens()
        if tokens is None:
            logger.info("Running discovery on demand", extra={'extra_data': {'forced': refresh}})
            await self.pipeline.refresh()
            tokens = await self.cache.get_new_tokens()
        return tokens or []

    async def get_featured_tokens(self) -> List[TokenRecord]:
        """Manually listed tokens, newest first."""
        return await self.cache.get_featured_tokens() or []

    async def list_token(self, name: Optional[str], address: Optional[str]) -> TokenRecord:
        """
        Add a sponsored token to the featured list.

        Raises:
            ValidationError: If name or address is missing
        """
        name = (name or "").strip()
        address = (address or "").strip()
        if not name or not address:
            raise ValidationError("Name and address are required")

        token = TokenRecord(name=name, address=address, age=AGE_UNKNOWN, sponsored=True)
        await self.enricher.enrich(token)

        featured = await self.cache.get_featured_tokens() or []
        featured = [token, *featured][:self.top_limit]
        await self.cache.set_featured_tokens(featured)

        logger.info(
            f"Token listed: {token.name}",
            extra={'token_address': token.address}
        )
        await self.hub.publish(self.featured_channel, self.featured_event, token.to_public())
        return token

    async def search(self, query: Optional[str]) -> TokenRecord:
        """
        Look a token up by address.

        Order: cached record, Dexscreener token lookup, Dexscreener
        search on the discovery chain. A provider hit is scored and
        cached; a miss yields a placeholder that is not cached.

        Raises:
            ValidationError: If the query is empty
        """
        query = (query or "").strip()
        if not query:
            raise ValidationError("Query parameter 'q' is required")

        cached = await self.cache.get_token(query)
        if cached is not None:
            return cached

        pair = await self._lookup_pair(query)
        if pair is None:
            logger.info(f"Token not found: {query}", extra={'token_address': query})
            return TokenRecord(name=NOT_FOUND_NAME, address=query, age=AGE_UNKNOWN)

        token = TokenRecord(
            name=pair.base_token.name,
            address=pair.base_token.address or query,
            age=AGE_UNKNOWN,
        )
        self.enricher.apply_market_data(token, pair)
        self.enricher.score(token)
        await self.cache.save_token(token)
        return token

    async def _lookup_pair(self, query: str) -> Optional[PairInfo]:
        response = await self.dexscreener.get_token_pairs(query)
        if response.success and response.first_pair:
            return response.first_pair

        response = await self.dexscreener.search_pairs(query, chain=self.chain)
        if not response.success or not response.pairs:
            return None

        # Free-text hits on other tokens do not count as a match
        for pair in response.pairs:
            if pair.base_token.address == query:
                return pair
        return None


__all__ = ["QueryService", "NOT_FOUND_NAME"]
