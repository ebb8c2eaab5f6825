"""
Position Poller

Drives open positions with live prices. One run performs several cycles
spaced by a fixed delay; each cycle:

1. reloads the document and lists open positions,
2. fetches prices for that snapshot (slow, rate-limited),
3. reloads again and applies the updates through gateway.mutate, touching
   only addresses still open in the fresh copy,
4. posts trail-activation and close notifications, one after another.

A save conflict that outlives the gateway's retries, or a store that rejects
the write (rate limit, overlapping edit), is logged and the cycle is skipped;
the next cycle carries the latest state forward. Foreign or corrupted
documents abort the run.

Author: Alphalert Team
Last Updated: 2026-10-17
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from app.infrastructure.state_gateway import StateStoreGateway
from app.integrations.market_data.base import MarketQuote, TokenRef
from app.integrations.market_data.price_oracle import PriceOracle
from app.integrations.notifications.base import NotificationSink
from app.modules.positions.engine import PositionEngine, SlippageAdjustment, UpdateAction, UpdateResult
from app.modules.positions.formatters import format_position_closed, format_trail_activated
from app.shared.exceptions import ConcurrentModificationError, StoreUnavailableError
from app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class PositionEvent:
    """A state change worth announcing"""
    result: UpdateResult
    adjustment: Optional[SlippageAdjustment] = None


@dataclass
class CycleResult:
    """Outcome of one poll cycle"""
    checked: int = 0
    closed: int = 0
    saved: bool = False
    events: List[PositionEvent] = field(default_factory=list)


def apply_quotes(engine: PositionEngine, quotes: Dict[str, MarketQuote]) -> List[PositionEvent]:
    """
    Feed quotes into the engine and collect announceable events.

    Quotes for addresses that are no longer open are ignored. Closed
    positions get their exit re-priced for slippage against the quote's
    liquidity.
    """
    events: List[PositionEvent] = []

    for address, quote in quotes.items():
        position = engine.get_position(address)
        if position is None or not position.is_open():
            continue

        result = engine.update_position(address, quote.price)
        if result is None:
            continue

        if result.action == UpdateAction.CLOSED:
            adjustment = engine.apply_exit_slippage(address, quote.liquidity)
            events.append(PositionEvent(result=result, adjustment=adjustment))
        elif result.action == UpdateAction.TRAIL_ACTIVATED:
            events.append(PositionEvent(result=result))

    return events


class PositionPoller:
    """
    Position Poller

    Usage:
        poller = PositionPoller(gateway, oracle, notifier)
        summary = await poller.run()
        # {"loops": 3, "checked": 4, "closed": 1, "stats": {...}}
    """

    def __init__(
        self,
        gateway: StateStoreGateway,
        oracle: PriceOracle,
        notifier: Optional[NotificationSink] = None,
        iterations: int = 3,
        delay_seconds: float = 20.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.gateway = gateway
        self.oracle = oracle
        self.notifier = notifier
        self.iterations = iterations
        self.delay_seconds = delay_seconds
        self._sleep = sleep
        self._engine: Optional[PositionEngine] = None

    async def run(self) -> Dict[str, Any]:
        """
        Run all poll cycles.

        Returns:
            Dict with loops, checked (open positions seen by the last cycle),
            closed (total across cycles) and the latest stats
        """
        checked = 0
        closed = 0

        for i in range(self.iterations):
            cycle = await self.run_cycle(i + 1)
            checked = cycle.checked
            closed += cycle.closed

            if i < self.iterations - 1:
                await self._sleep(self.delay_seconds)

        stats = self._engine.get_stats() if self._engine is not None else {}
        logger.info(f"Poll run finished: {self.iterations} loops, {checked} checked, {closed} closed")
        return {
            "loops": self.iterations,
            "checked": checked,
            "closed": closed,
            "stats": stats,
        }

    async def run_cycle(self, loop_number: int = 1) -> CycleResult:
        """Reload, price, apply, save and notify once."""
        document = await self.gateway.load()
        self._engine = self.gateway.new_engine(document)
        open_positions = self._engine.open_positions()

        if not open_positions:
            logger.info(f"Loop {loop_number}: no open positions")
            return CycleResult()

        logger.info(f"Loop {loop_number}: checking {len(open_positions)} positions")
        tokens = [TokenRef(chain=p.chain, address=p.address) for p in open_positions]
        quotes = await self.oracle.get_prices(tokens)
        cycle = CycleResult(checked=len(open_positions))

        if not quotes:
            logger.warning(f"Loop {loop_number}: no prices available")
            return cycle

        try:
            mutation = await self.gateway.mutate(lambda engine: apply_quotes(engine, quotes))
        except ConcurrentModificationError as e:
            logger.warning(f"Loop {loop_number}: skipping save after repeated conflicts: {e.message}")
            return cycle
        except StoreUnavailableError as e:
            logger.warning(f"Loop {loop_number}: store rejected the update, skipping cycle: {e.message}")
            return cycle

        self._engine = mutation.engine
        cycle.saved = mutation.saved
        cycle.events = mutation.value
        cycle.closed = sum(1 for event in cycle.events if event.result.action == UpdateAction.CLOSED)

        await self._notify(cycle.events)
        return cycle

    async def _notify(self, events: List[PositionEvent]):
        if self.notifier is None or not events:
            return
        config = self._engine.config

        # Trail activations first, then closes
        for event in events:
            if event.result.action == UpdateAction.TRAIL_ACTIVATED:
                await self.notifier.send(format_trail_activated(event.result.position, config))
        for event in events:
            if event.result.action == UpdateAction.CLOSED:
                await self.notifier.send(
                    format_position_closed(event.result.position, config, event.adjustment)
                )
