"""
Slippage Model

Linear market-impact model: trading `trade_size` USD into a pool holding
`liquidity` USD moves the fill by trade_size / liquidity, capped at 50%.
A $250 trade against $25k of liquidity costs 1%.
"""

from typing import Optional

MAX_SLIPPAGE = 0.5


def get_slippage(trade_size: float, liquidity: Optional[float]) -> float:
    """
    Fractional price impact of a trade.

    Args:
        trade_size: USD notional of the fill
        liquidity: USD liquidity of the venue (None or <= 0 means unknown)

    Returns:
        Slippage fraction in [0, MAX_SLIPPAGE]
    """
    if not liquidity or liquidity <= 0 or trade_size <= 0:
        return 0.0
    return min(trade_size / liquidity, MAX_SLIPPAGE)


def exit_fill_price(quoted_price: float, slippage: float) -> float:
    """Realized sell price: the quote degraded by slippage."""
    return quoted_price * (1 - slippage)


def entry_fill_price(quoted_price: float, slippage: float) -> float:
    """Realized buy price: the quote pushed up by slippage."""
    return quoted_price * (1 + slippage)
