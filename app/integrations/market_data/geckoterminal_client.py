"""
GeckoTerminal API Client

FREE - No API key required!
Single-token lookups, used as the fallback price source.

Author: Alphalert Team
Last Updated: 2026-10-17
"""

import asyncio
from typing import Any, Dict, Optional

import aiohttp

from app.integrations.market_data.base import MarketQuote, PriceProvider, TokenRef, to_float
from app.shared.exceptions import PriceProviderError
from app.utils.logger import get_logger

logger = get_logger(__name__)


# Chain name -> GeckoTerminal network id
NETWORK_IDS = {
    "sol": "solana",
    "solana": "solana",
    "eth": "eth",
    "ethereum": "eth",
    "bsc": "bsc",
    "bnb": "bsc",
    "base": "base",
}


def parse_token_quote(data: Dict[str, Any]) -> Optional[MarketQuote]:
    """Build a quote from a /tokens/{address} response; None without a usable price."""
    token = data.get("data") if isinstance(data, dict) else None
    attributes = token.get("attributes") if isinstance(token, dict) else None
    if not isinstance(attributes, dict):
        return None
    price = to_float(attributes.get("price_usd"))
    if price is None or price <= 0:
        return None
    liquidity = to_float(attributes.get("total_reserve_in_usd")) or 0.0
    return MarketQuote(price=price, liquidity=liquidity, source=GeckoTerminalClient.name)


class GeckoTerminalClient(PriceProvider):
    """
    GeckoTerminal API Client

    Usage:
        async with GeckoTerminalClient() as client:
            quote = await client.get_quote(TokenRef("sol", "So1..."))
    """

    BASE_URL = "https://api.geckoterminal.com/api/v2"

    name = "geckoterminal"
    max_batch_size = 1

    def __init__(self, timeout: float = 15.0):
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None
        logger.info("GeckoTerminal client initialized")

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session"""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"Accept": "application/json;version=20230302"},
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

    async def get_quote(self, token: TokenRef) -> Optional[MarketQuote]:
        """
        Quote a single token.

        Returns:
            MarketQuote, or None for unknown chains and tokens

        Raises:
            PriceProviderError: On HTTP errors other than 404, and on timeouts
        """
        network = NETWORK_IDS.get((token.chain or "").lower())
        if network is None:
            logger.debug(f"No GeckoTerminal network for chain {token.chain}")
            return None

        session = await self._get_session()
        url = f"{self.BASE_URL}/networks/{network}/tokens/{token.address}"

        try:
            async with session.get(url) as response:
                if response.status == 404:
                    return None
                if response.status != 200:
                    raise PriceProviderError(f"HTTP {response.status} for {token.address}", provider=self.name)
                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    raise PriceProviderError(f"invalid JSON: {str(e)}", provider=self.name)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise PriceProviderError(f"fetch error: {str(e) or type(e).__name__}", provider=self.name)

        if data is not None and not isinstance(data, dict):
            raise PriceProviderError(f"unexpected response body: {type(data).__name__}", provider=self.name)
        return parse_token_quote(data)
