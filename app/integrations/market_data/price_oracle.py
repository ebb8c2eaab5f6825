"""
Price Oracle

Best-effort USD price + liquidity for a set of tokens:

1. Batched lookups against the primary provider, chunked to its per-call
   limit, with a fixed delay between chunks.
2. Tokens the primary missed are retried one at a time on the secondary.
3. Provider failures are logged; affected tokens are left out of the result.

Calls are awaited one after another to stay inside provider rate limits.

Author: Alphalert Team
Last Updated: 2026-10-17
"""

import asyncio
from typing import Awaitable, Callable, Dict, Iterable, List, Optional

from app.integrations.market_data.base import MarketQuote, PriceProvider, TokenRef
from app.shared.exceptions import PriceProviderError
from app.utils.logger import get_logger

logger = get_logger(__name__)


class PriceOracle:
    """
    Price Oracle

    Usage:
        oracle = PriceOracle(DexScreenerClient(), GeckoTerminalClient())
        quotes = await oracle.get_prices([TokenRef("sol", "So1..."), ...])
        quote = quotes.get("So1...")      # absent means "no price this cycle"
        await oracle.close()
    """

    def __init__(
        self,
        primary: PriceProvider,
        secondary: Optional[PriceProvider] = None,
        chunk_size: Optional[int] = None,
        chunk_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.primary = primary
        self.secondary = secondary
        self.chunk_size = min(chunk_size or primary.max_batch_size, primary.max_batch_size)
        self.chunk_delay = chunk_delay
        self._sleep = sleep

    async def get_prices(self, tokens: Iterable[TokenRef]) -> Dict[str, MarketQuote]:
        """
        Resolve quotes for tokens.

        Returns:
            Mapping of address -> MarketQuote, only for tokens with a valid price
        """
        unique: Dict[str, TokenRef] = {}
        for token in tokens:
            if token.address and token.address not in unique:
                unique[token.address] = token
        wanted: List[TokenRef] = list(unique.values())
        if not wanted:
            return {}

        results: Dict[str, MarketQuote] = {}
        chunks = [wanted[i:i + self.chunk_size] for i in range(0, len(wanted), self.chunk_size)]

        for index, chunk in enumerate(chunks):
            try:
                quotes = await self.primary.get_quotes(chunk)
                for address, quote in quotes.items():
                    if quote.is_valid:
                        results[address] = quote
            except PriceProviderError as e:
                logger.error(f"Primary price lookup failed for {len(chunk)} tokens: {e.message}")

            if index < len(chunks) - 1 and self.chunk_delay > 0:
                await self._sleep(self.chunk_delay)

        missing = [token for token in wanted if token.address not in results]
        if missing and self.secondary is not None:
            for token in missing:
                try:
                    quote = await self.secondary.get_quote(token)
                except PriceProviderError as e:
                    logger.warning(f"Fallback price lookup failed for {token.address}: {e.message}")
                    continue
                if quote is not None and quote.is_valid:
                    results[token.address] = quote

        for token in wanted:
            if token.address not in results:
                logger.warning(f"No price for {token.address} ({token.chain})")

        return results

    async def get_price(self, token: TokenRef) -> Optional[MarketQuote]:
        quotes = await self.get_prices([token])
        return quotes.get(token.address)

    async def close(self):
        await self.primary.close()
        if self.secondary is not None:
            await self.secondary.close()
