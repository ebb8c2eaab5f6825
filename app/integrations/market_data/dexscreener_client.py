"""
DexScreener API Client

FREE - No API key required!
Bulk token lookup across DEX pairs; up to 30 addresses per call.

Author: Alphalert Team
Last Updated: 2026-10-17
"""

import asyncio
from typing import Any, Dict, List, Optional

import aiohttp

from app.integrations.market_data.base import MarketQuote, PriceProvider, TokenRef, to_float
from app.shared.exceptions import PriceProviderError
from app.utils.logger import get_logger

logger = get_logger(__name__)


def select_best_quotes(pairs: List[Dict[str, Any]], addresses: List[str]) -> Dict[str, MarketQuote]:
    """
    Pick the most liquid pair per requested token.

    Matching is case-insensitive (EVM addresses come back checksummed) and
    results are keyed by the address as requested. Pairs without a positive
    price are ignored.
    """
    requested = {address.lower(): address for address in addresses}
    results: Dict[str, MarketQuote] = {}

    for pair in pairs:
        base_address = (pair.get("baseToken") or {}).get("address")
        if not base_address:
            continue
        address = requested.get(base_address.lower())
        if address is None:
            continue

        price = to_float(pair.get("priceUsd"))
        if price is None or price <= 0:
            continue
        liquidity = to_float((pair.get("liquidity") or {}).get("usd")) or 0.0

        current = results.get(address)
        if current is None or liquidity > current.liquidity:
            results[address] = MarketQuote(price=price, liquidity=liquidity, source=DexScreenerClient.name)

    return results


class DexScreenerClient(PriceProvider):
    """
    DexScreener API Client

    Usage:
        async with DexScreenerClient() as client:
            quotes = await client.get_quotes([TokenRef("sol", "So1...")])
    """

    BASE_URL = "https://api.dexscreener.com"
    USER_AGENT = "Mozilla/5.0 (compatible; Alphalert/1.0; +https://alphalert.xyz)"

    name = "dexscreener"
    max_batch_size = 30

    def __init__(self, timeout: float = 15.0):
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None
        logger.info("DexScreener client initialized")

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session"""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"User-Agent": self.USER_AGENT},
            )
        return self.session

    async def close(self):
        """Close HTTP session"""
        if self.session and not self.session.closed:
            await self.session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def fetch_pairs(self, addresses: List[str]) -> List[Dict[str, Any]]:
        """
        Fetch all pairs for a batch of token addresses.

        Args:
            addresses: Up to max_batch_size token addresses

        Returns:
            Raw pair objects (empty list when DexScreener knows none)

        Raises:
            PriceProviderError: On HTTP errors, timeouts or unreadable bodies
        """
        if not addresses:
            return []
        if len(addresses) > self.max_batch_size:
            raise PriceProviderError(f"at most {self.max_batch_size} addresses per call", provider=self.name)

        session = await self._get_session()
        url = f"{self.BASE_URL}/latest/dex/tokens/{','.join(addresses)}"

        try:
            async with session.get(url) as response:
                if response.status != 200:
                    raise PriceProviderError(f"bulk price fetch failed: HTTP {response.status}", provider=self.name)
                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    raise PriceProviderError(f"invalid JSON: {str(e)}", provider=self.name)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise PriceProviderError(f"bulk price fetch error: {str(e) or type(e).__name__}", provider=self.name)

        if data is None:
            return []
        if not isinstance(data, dict):
            raise PriceProviderError(f"unexpected response body: {type(data).__name__}", provider=self.name)
        pairs = data.get("pairs") or []
        return [p for p in pairs if isinstance(p, dict)] if isinstance(pairs, list) else []

    async def get_quotes(self, tokens: List[TokenRef]) -> Dict[str, MarketQuote]:
        addresses = [token.address for token in tokens]
        pairs = await self.fetch_pairs(addresses)
        return select_best_quotes(pairs, addresses)

    async def get_quote(self, token: TokenRef) -> Optional[MarketQuote]:
        quotes = await self.get_quotes([token])
        return quotes.get(token.address)
