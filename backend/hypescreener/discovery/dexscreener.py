"""
Dexscreener API integration for market data enrichment and fallback discovery.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from ..core.logging import get_logger
from ..core.settings import Settings
from .models import parse_timestamp, text_or_none

logger = get_logger(__name__)


@dataclass
class TokenInfo:
    """Token information from Dexscreener."""
    address: str
    name: str
    symbol: str


@dataclass
class PairInfo:
    """Pair information from Dexscreener."""
    chain_id: str
    dex_id: str
    pair_address: str
    base_token: TokenInfo
    quote_token: TokenInfo
    price_usd: Optional[float] = None
    liquidity_usd: Optional[float] = None
    fdv: Optional[float] = None
    market_cap: Optional[float] = None
    volume_24h: Optional[float] = None
    price_change_24h: Optional[float] = None
    pair_created_at: Optional[int] = None


@dataclass
class DexscreenerResponse:
    """Response from Dexscreener API."""
    pairs: List[PairInfo] = field(default_factory=list)
    success: bool = True
    response_time_ms: float = 0.0
    error_message: Optional[str] = None

    @property
    def first_pair(self) -> Optional[PairInfo]:
        return self.pairs[0] if self.pairs else None


def _safe_float(value: Any) -> Optional[float]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


class DexscreenerClient:
    """
    Client for Dexscreener API integration.

    Looks up trading pairs for a token address (the enrichment source)
    and runs free-text pair searches (the fallback discovery source).
    Failures never raise: they come back as an unsuccessful response.
    """

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        """
        Initialize Dexscreener client.

        Args:
            settings: Application settings
            client: Optional shared HTTP client (owned by the caller)
        """
        self.base_url = settings.dexscreener_api_url.rstrip("/")
        self.chain = settings.discovery_chain
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            headers={
                "User-Agent": f"{settings.app_name}/{settings.version}",
                "Accept": "application/json",
            },
        )

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self.client.aclose()

    async def get_token_pairs(self, token_address: str) -> DexscreenerResponse:
        """
        Get all pairs trading a token.

        Args:
            token_address: Token mint address

        Returns:
            DexscreenerResponse: pairs in provider order, first is authoritative
        """
        return await self._fetch_pairs(
            f"{self.base_url}/dex/tokens/{token_address}",
            params=None,
            context={'token_address': token_address},
        )

    async def search_pairs(self, query: str, chain: Optional[str] = None) -> DexscreenerResponse:
        """
        Search pairs by free text.

        Args:
            query: Search text (symbol, name, address or chain name)
            chain: Optional chain id to keep; other chains are dropped

        Returns:
            DexscreenerResponse: matching pairs
        """
        result = await self._fetch_pairs(
            f"{self.base_url}/dex/search",
            params={"q": query},
            context={'query': query, 'chain': chain},
        )
        if chain and result.success:
            result.pairs = [p for p in result.pairs if p.chain_id == chain]
        return result

    async def _fetch_pairs(
        self,
        url: str,
        params: Optional[Dict[str, str]],
        context: Dict[str, Any],
    ) -> DexscreenerResponse:
        start_time = time.time()

        try:
            response = await self.client.get(url, params=params)
            response.raise_for_status()
            data = response.json()
            if not isinstance(data, dict):
                raise ValueError("response body is not an object")

            raw_pairs = data.get("pairs") or []
            if not isinstance(raw_pairs, list):
                raise ValueError("'pairs' is not a list")

            pairs = []
            for pair_data in raw_pairs:
                pair_info = self._parse_pair_data(pair_data)
                if pair_info:
                    pairs.append(pair_info)

            result = DexscreenerResponse(
                pairs=pairs,
                success=True,
                response_time_ms=(time.time() - start_time) * 1000
            )

            logger.debug(
                f"Dexscreener lookup completed: {len(pairs)} pairs",
                extra={
                    'extra_data': {
                        **context,
                        'pairs_found': len(pairs),
                        'response_time_ms': result.response_time_ms,
                    }
                }
            )
            return result

        except httpx.HTTPStatusError as e:
            message = f"HTTP {e.response.status_code}"
        except httpx.HTTPError as e:
            message = f"request failed: {e!r}"
        except ValueError as e:
            message = f"malformed response: {e}"

        logger.warning(
            f"Dexscreener API error: {message}",
            extra={'extra_data': context}
        )
        return DexscreenerResponse(
            pairs=[],
            success=False,
            response_time_ms=(time.time() - start_time) * 1000,
            error_message=message
        )

    def _parse_pair_data(self, pair_data: Any) -> Optional[PairInfo]:
        """Parse pair data from Dexscreener API response."""
        if not isinstance(pair_data, dict):
            logger.warning("Skipping non-object pair entry")
            return None

        base_token_data = _section(pair_data, "baseToken")
        quote_token_data = _section(pair_data, "quoteToken")

        created = pair_data.get("pairCreatedAt")
        created_at = parse_timestamp(created)

        return PairInfo(
            chain_id=text_or_none(pair_data.get("chainId")) or "",
            dex_id=text_or_none(pair_data.get("dexId")) or "",
            pair_address=text_or_none(pair_data.get("pairAddress")) or "",
            base_token=TokenInfo(
                address=text_or_none(base_token_data.get("address")) or "",
                name=text_or_none(base_token_data.get("name")) or "",
                symbol=text_or_none(base_token_data.get("symbol")) or "",
            ),
            quote_token=TokenInfo(
                address=text_or_none(quote_token_data.get("address")) or "",
                name=text_or_none(quote_token_data.get("name")) or "",
                symbol=text_or_none(quote_token_data.get("symbol")) or "",
            ),
            price_usd=_safe_float(pair_data.get("priceUsd")),
            liquidity_usd=_safe_float(_section(pair_data, "liquidity").get("usd")),
            fdv=_safe_float(pair_data.get("fdv")),
            market_cap=_safe_float(pair_data.get("marketCap")),
            volume_24h=_safe_float(_section(pair_data, "volume").get("h24")),
            price_change_24h=_safe_float(_section(pair_data, "priceChange").get("h24")),
            pair_created_at=int(created_at.timestamp() * 1000) if created_at else None,
        )
