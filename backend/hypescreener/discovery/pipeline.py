"""
New token discovery pipeline.

Pulls the newest tokens from Helius (falling back to a Dexscreener pair
search), keeps the ones created inside the freshness window, enriches
them concurrently and stores the top ranked tokens as the new tokens
list.

File: backend/hypescreener/discovery/pipeline.py
"""
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable, List, Optional

from ..core.exceptions import CacheError, ProviderError
from ..core.logging import get_logger
from ..core.settings import Settings
from ..storage.cache import TokenCache
from .dexscreener import DexscreenerClient
from .enricher import TokenEnricher
from .helius import HeliusClient
from .models import TokenRecord, age_in_hours, format_age, is_fresh, parse_timestamp, rank_tokens

logger = get_logger(__name__)


class DiscoveryPipeline:
    """
    Batch discovery of freshly created tokens.

    A refresh either replaces the cached new tokens list wholesale or
    leaves it untouched; there is no partial update.
    """

    def __init__(
        self,
        settings: Settings,
        helius: HeliusClient,
        dexscreener: DexscreenerClient,
        enricher: TokenEnricher,
        cache: TokenCache,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.helius = helius
        self.dexscreener = dexscreener
        self.enricher = enricher
        self.cache = cache
        self.chain = settings.discovery_chain
        self.batch_size = settings.discovery_batch_size
        self.freshness_window_hours = settings.freshness_window_hours
        self.top_limit = settings.top_tokens_limit
        self.clock = clock or (lambda: datetime.now(timezone.utc))

        # Stats
        self.refresh_count = 0
        self.failed_refresh_count = 0
        self.last_refresh_time: Optional[datetime] = None
        self.last_source: Optional[str] = None

    async def refresh(self) -> Optional[List[TokenRecord]]:
        """
        Run one discovery cycle.

        Returns:
            The ranked list written to the cache, or None when both
            discovery sources failed (the cached list is kept as is)
        """
        start_time = time.time()
        now = self.clock()

        try:
            candidates = await self.fetch_primary(now)
            source = "helius"
        except ProviderError as e:
            logger.warning(
                f"Primary discovery failed, falling back to Dexscreener search: {e.message}",
                extra={'source': 'helius'}
            )
            try:
                candidates = await self.fetch_fallback(now)
                source = "dexscreener"
            except ProviderError as fallback_error:
                self.failed_refresh_count += 1
                logger.error(
                    f"Discovery abandoned, both sources failed: {fallback_error.message}",
                    extra={'source': 'dexscreener'}
                )
                return None

        logger.info(
            f"Found {len(candidates)} new tokens",
            extra={'source': source, 'extra_data': {'window_hours': self.freshness_window_hours}}
        )

        results = await self.enricher.enrich_many(candidates)
        failures = sum(1 for r in results if not r.enriched)
        ranked = rank_tokens((r.token for r in results), limit=self.top_limit)

        try:
            await self.cache.set_new_tokens(ranked)
        except CacheError as e:
            self.failed_refresh_count += 1
            logger.error(f"Failed to store new tokens: {e.message}")
            return None

        self.refresh_count += 1
        self.last_refresh_time = now
        self.last_source = source

        logger.info(
            "Discovery refresh completed",
            extra={
                'source': source,
                'extra_data': {
                    'candidates': len(candidates),
                    'enrichment_failures': failures,
                    'stored': len(ranked),
                    'duration_ms': round((time.time() - start_time) * 1000, 2),
                }
            }
        )
        return ranked

    async def fetch_primary(self, now: datetime) -> List[TokenRecord]:
        """
        Fresh tokens from the Helius index.

        Raises:
            ProviderError: If Helius is unavailable
        """
        tokens = await self.helius.fetch_recent_tokens(limit=self.batch_size)

        fresh = []
        for item in tokens:
            created_at = parse_timestamp(item.created_at)
            if not is_fresh(created_at, self.freshness_window_hours, now):
                continue
            fresh.append(TokenRecord(
                name=item.name,
                address=item.mint,
                age=format_age(age_in_hours(created_at, now)),
            ))
        return fresh

    async def fetch_fallback(self, now: datetime) -> List[TokenRecord]:
        """
        Fresh tokens from a Dexscreener pair search on the discovery chain.

        Pairs without a base token name or address are dropped, as are
        repeated base tokens.

        Raises:
            ProviderError: If the search fails
        """
        response = await self.dexscreener.search_pairs(self.chain, chain=self.chain)
        if not response.success:
            raise ProviderError("dexscreener", response.error_message or "search failed")

        seen = set()
        fresh = []
        for pair in response.pairs[:self.batch_size]:
            base = pair.base_token
            if not base.name or not base.address or base.address in seen:
                continue
            created_at = parse_timestamp(pair.pair_created_at)
            if not is_fresh(created_at, self.freshness_window_hours, now):
                continue
            seen.add(base.address)
            fresh.append(TokenRecord(
                name=base.name,
                symbol=base.symbol or None,
                address=base.address,
                age=format_age(age_in_hours(created_at, now)),
            ))
        return fresh

    def get_stats(self) -> dict:
        """Counters for the health endpoint."""
        return {
            "refresh_count": self.refresh_count,
            "failed_refresh_count": self.failed_refresh_count,
            "last_refresh_time": self.last_refresh_time.isoformat() if self.last_refresh_time else None,
            "last_source": self.last_source,
        }


__all__ = ["DiscoveryPipeline"]
