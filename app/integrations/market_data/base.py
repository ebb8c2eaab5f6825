"""
Market Data Provider Base Classes

Abstract interface for token price providers.
Allows easy swapping between DexScreener, GeckoTerminal, etc.

Author: Alphalert Team
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class TokenRef:
    """A token to price: chain name plus chain-scoped address"""
    chain: str
    address: str


@dataclass
class MarketQuote:
    """Standardized USD quote from any provider"""
    price: float
    liquidity: float = 0.0
    source: str = ""

    @property
    def is_valid(self) -> bool:
        """Zero, negative or non-finite prices mean "unavailable"."""
        return self.price is not None and math.isfinite(self.price) and self.price > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "price": self.price,
            "liquidity": self.liquidity,
            "source": self.source,
        }


def to_float(value: Any) -> Optional[float]:
    """Parse a provider number (often a string); None when absent or malformed."""
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class PriceProvider(ABC):
    """
    Abstract base class for price providers.

    Implementations: DexScreenerClient (batched), GeckoTerminalClient (single token).

    Usage:
        provider = DexScreenerClient()
        quotes = await provider.get_quotes([TokenRef("sol", "So1...")])
        await provider.close()
    """

    name: str = "provider"
    max_batch_size: int = 1

    @abstractmethod
    async def get_quote(self, token: TokenRef) -> Optional[MarketQuote]:
        """Quote for one token, or None if the provider has no market for it."""
        pass

    async def get_quotes(self, tokens: List[TokenRef]) -> Dict[str, MarketQuote]:
        """Quotes keyed by requested address. Batched providers override this."""
        results: Dict[str, MarketQuote] = {}
        for token in tokens:
            quote = await self.get_quote(token)
            if quote is not None:
                results[token.address] = quote
        return results

    @abstractmethod
    async def close(self) -> None:
        """Release network resources."""
        pass
