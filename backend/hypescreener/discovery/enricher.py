"""
Token enrichment: merge live market data into a token and score it.
"""
from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import List, Optional

from ..core.exceptions import CacheError
from ..core.logging import get_logger
from ..storage.cache import TokenCache
from ..strategy.chart import synthesize_chart
from ..strategy.hype_scoring import compute_hype_score, compute_mentions, synthesize_holders
from .dexscreener import DexscreenerClient, PairInfo
from .models import TokenRecord

logger = get_logger(__name__)


@dataclass
class EnrichmentResult:
    """Outcome of enriching one token."""
    token: TokenRecord
    enriched: bool = False
    persisted: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        """True when the token was both enriched and stored."""
        return self.enriched and self.persisted


class TokenEnricher:
    """
    Augments bare tokens with Dexscreener market data, synthetic
    scores and a chart, then stores the result by address.
    """

    def __init__(
        self,
        dexscreener: DexscreenerClient,
        cache: TokenCache,
        rng: Optional[random.Random] = None,
    ):
        self.dexscreener = dexscreener
        self.cache = cache
        self.rng = rng or random.Random()

    async def enrich(self, token: TokenRecord) -> EnrichmentResult:
        """
        Enrich a token in place.

        Provider failures leave the token untouched and are reported in
        the result. A failed cache write is reported too, but the token
        keeps its freshly merged values.

        Args:
            token: Token with at least ``address`` set

        Returns:
            EnrichmentResult wrapping the same token object
        """
        response = await self.dexscreener.get_token_pairs(token.address)
        if not response.success:
            logger.warning(
                f"Enrichment skipped for {token.address}: {response.error_message}",
                extra={'token_address': token.address}
            )
            return EnrichmentResult(token=token, error=f"provider: {response.error_message}")

        self.apply_market_data(token, response.first_pair)
        self.score(token)

        try:
            await self.cache.save_token(token)
        except CacheError as e:
            logger.error(
                f"Failed to persist enriched token {token.address}: {e.message}",
                extra={'token_address': token.address}
            )
            return EnrichmentResult(token=token, enriched=True, error=f"cache: {e.message}")

        logger.debug(
            f"Token enriched: {token.name} ({token.address}) score={token.hype_score}",
            extra={'token_address': token.address}
        )
        return EnrichmentResult(token=token, enriched=True, persisted=True)

    async def enrich_many(self, tokens: List[TokenRecord]) -> List[EnrichmentResult]:
        """
        Enrich tokens concurrently and wait for all of them.

        Results keep the order of ``tokens``.
        """
        if not tokens:
            return []
        return list(await asyncio.gather(*(self.enrich(token) for token in tokens)))

    @staticmethod
    def apply_market_data(token: TokenRecord, pair: Optional[PairInfo]) -> None:
        """
        Overwrite market fields from the authoritative pair.

        Missing values reset to zero or empty; only the name survives
        when the provider has none.
        """
        if pair is None:
            token.symbol = ""
            token.market_cap = 0.0
            token.volume = 0.0
            token.liquidity = 0.0
            token.price = 0.0
            token.price_change = 0.0
            return

        token.name = pair.base_token.name or token.name
        token.symbol = pair.base_token.symbol or ""
        token.market_cap = pair.fdv if pair.fdv is not None else (pair.market_cap or 0.0)
        token.volume = pair.volume_24h or 0.0
        token.liquidity = pair.liquidity_usd or 0.0
        token.price = pair.price_usd or 0.0
        token.price_change = pair.price_change_24h or 0.0

    def score(self, token: TokenRecord) -> TokenRecord:
        """Fill in the synthetic and derived fields of a token."""
        token.holders = synthesize_holders(self.rng)
        token.hype_score = compute_hype_score(token, self.rng)
        token.x_mentions = compute_mentions(token, self.rng)
        token.chart_data = synthesize_chart(token.price_change, self.rng)
        return token


__all__ = ["TokenEnricher", "EnrichmentResult"]
