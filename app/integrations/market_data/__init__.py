"""Market data integrations (token prices and liquidity)."""

from app.integrations.market_data.base import MarketQuote, PriceProvider, TokenRef
from app.integrations.market_data.dexscreener_client import DexScreenerClient
from app.integrations.market_data.geckoterminal_client import GeckoTerminalClient
from app.integrations.market_data.price_oracle import PriceOracle

__all__ = [
    "MarketQuote",
    "PriceProvider",
    "TokenRef",
    "DexScreenerClient",
    "GeckoTerminalClient",
    "PriceOracle",
]
