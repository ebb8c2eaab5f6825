"""
Price Oracle Tests

Chunking, fallback and failure handling with in-memory providers.

Author: Alphalert Team
Last Updated: 2026-10-17
"""

import pytest
from unittest.mock import AsyncMock, patch

from app.integrations.market_data.base import MarketQuote, TokenRef
from app.integrations.market_data.dexscreener_client import DexScreenerClient
from app.integrations.market_data.price_oracle import PriceOracle
from app.shared.exceptions import PriceProviderError


def tokens(*addresses):
    return [TokenRef("sol", address) for address in addresses]


class SleepRecorder:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds: float):
        self.calls.append(seconds)


# ==================== CHUNKING TESTS ====================

@pytest.mark.asyncio
async def test_get_prices_chunks_to_batch_size(make_provider):
    quotes = {f"So1{i}": MarketQuote(price=1.0 + i, liquidity=1_000) for i in range(5)}
    primary = make_provider(quotes, name="primary", batch=2)
    sleep = SleepRecorder()
    oracle = PriceOracle(primary, chunk_delay=1.5, sleep=sleep)

    result = await oracle.get_prices(tokens(*quotes))

    assert primary.requests == [["So10", "So11"], ["So12", "So13"], ["So14"]]
    assert set(result) == set(quotes)
    # Delay only between chunks
    assert sleep.calls == [1.5, 1.5]


@pytest.mark.asyncio
async def test_get_prices_dedupes_tokens(make_provider):
    primary = make_provider({"So1A": MarketQuote(price=1.0)})
    oracle = PriceOracle(primary, chunk_delay=0)

    result = await oracle.get_prices(tokens("So1A", "So1A", ""))

    assert primary.requests == [["So1A"]]
    assert list(result) == ["So1A"]


@pytest.mark.asyncio
async def test_get_prices_empty_input(make_provider):
    primary = make_provider()
    oracle = PriceOracle(primary)

    assert await oracle.get_prices([]) == {}
    assert primary.requests == []


def test_chunk_size_capped_by_provider(make_provider):
    oracle = PriceOracle(make_provider(batch=30), chunk_size=100)
    assert oracle.chunk_size == 30


# ==================== FALLBACK TESTS ====================

@pytest.mark.asyncio
async def test_fallback_only_for_missing_tokens(make_provider):
    primary = make_provider({"So1A": MarketQuote(price=1.0)}, name="primary")
    secondary = make_provider({"So1B": MarketQuote(price=2.0), "So1A": MarketQuote(price=9.9)}, name="secondary")
    oracle = PriceOracle(primary, secondary, chunk_delay=0)

    result = await oracle.get_prices(tokens("So1A", "So1B", "So1C"))

    assert result["So1A"].price == 1.0
    assert result["So1B"].price == 2.0
    assert "So1C" not in result
    assert secondary.requests == [["So1B"], ["So1C"]]


@pytest.mark.asyncio
async def test_zero_price_counts_as_missing(make_provider):
    primary = make_provider({"So1A": MarketQuote(price=0.0, liquidity=5_000)})
    secondary = make_provider({"So1A": MarketQuote(price=0.0)})
    oracle = PriceOracle(primary, secondary, chunk_delay=0)

    assert await oracle.get_prices(tokens("So1A")) == {}
    assert secondary.requests == [["So1A"]]


@pytest.mark.asyncio
async def test_primary_failure_falls_back(make_provider):
    class FailingProvider(make_provider):
        async def get_quotes(self, batch):
            self.requests.append([t.address for t in batch])
            raise PriceProviderError("HTTP 429", provider=self.name)

    primary = FailingProvider(name="primary")
    secondary = make_provider({"So1A": MarketQuote(price=3.0, liquidity=700)}, name="secondary")
    oracle = PriceOracle(primary, secondary, chunk_delay=0)

    result = await oracle.get_prices(tokens("So1A", "So1B"))

    assert result == {"So1A": MarketQuote(price=3.0, liquidity=700)}


@pytest.mark.asyncio
async def test_secondary_failure_is_skipped(make_provider):
    class FailingSingle(make_provider):
        async def get_quote(self, token):
            raise PriceProviderError("timeout", provider=self.name)

    primary = make_provider({"So1A": MarketQuote(price=1.0)})
    oracle = PriceOracle(primary, FailingSingle(), chunk_delay=0)

    result = await oracle.get_prices(tokens("So1A", "So1B"))

    assert list(result) == ["So1A"]


@pytest.mark.asyncio
async def test_unexpected_primary_body_falls_back(make_provider, mock_session):
    """Test a list body from DexScreener is a provider failure, not a crash"""
    primary = DexScreenerClient()
    secondary = make_provider({"So1A": MarketQuote(price=2.0, liquidity=300)}, name="secondary")
    oracle = PriceOracle(primary, secondary, chunk_delay=0)

    with patch.object(primary, "_get_session", new_callable=AsyncMock) as get_session:
        get_session.return_value = mock_session(200, [])

        result = await oracle.get_prices(tokens("So1A"))

    assert result == {"So1A": MarketQuote(price=2.0, liquidity=300)}


# ==================== LIFECYCLE TESTS ====================

@pytest.mark.asyncio
async def test_get_price_single(oracle, price_provider):
    price_provider.quotes["So1A"] = MarketQuote(price=4.2, liquidity=10)

    quote = await oracle.get_price(TokenRef("sol", "So1A"))

    assert quote.price == 4.2
    assert await oracle.get_price(TokenRef("sol", "So1Z")) is None


@pytest.mark.asyncio
async def test_close_closes_both_providers(make_provider):
    primary, secondary = make_provider(), make_provider()
    await PriceOracle(primary, secondary).close()

    assert primary.closed is True
    assert secondary.closed is True
