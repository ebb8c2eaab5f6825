"""
Simulator Service

Business operations behind the HTTP API, Celery task and scripts:
signal intake, position polling, stats, reset and backup restore.

Author: Alphalert Team
Last Updated: 2026-10-17
"""

import math
from typing import Any, Dict, List, Optional, Union

from app.infrastructure.state_gateway import StateStoreGateway
from app.integrations.market_data.base import TokenRef
from app.integrations.market_data.price_oracle import PriceOracle
from app.integrations.notifications.base import NotificationSink
from app.modules.positions.engine import PositionEngine
from app.modules.positions.formatters import format_new_position, format_reset, format_stats_report
from app.modules.positions.maintenance import merge_backup, parse_backup
from app.modules.positions.models import Position
from app.modules.positions.slippage import entry_fill_price, get_slippage
from app.services.position_poller import PositionPoller
from app.shared.exceptions import ConfigurationError, ValidationError
from app.utils.logger import get_logger

logger = get_logger(__name__)

RECENT_CLOSED_LIMIT = 10


def position_details(position: Position) -> Dict[str, Any]:
    """Open-position row for stats responses."""
    current = position.current_price if position.current_price is not None else position.entry_price
    return {
        "address": position.address,
        "symbol": position.symbol,
        "chain": position.chain,
        "status": position.status.value,
        "entryPrice": position.entry_price,
        "currentPrice": current,
        "peakPrice": position.peak_price,
        "trailPrice": position.trail_price,
        "multiplier": round(position.multiplier(current), 2),
        "pnl": round(position.pnl, 2),
        "entryTime": position.entry_time,
    }


def closed_details(position: Position) -> Dict[str, Any]:
    """Closed-position row for stats responses."""
    exit_price = position.exit_price or 0.0
    return {
        "address": position.address,
        "symbol": position.symbol,
        "chain": position.chain,
        "entryPrice": position.entry_price,
        "exitPrice": exit_price,
        "multiplier": round(exit_price / position.entry_price, 2),
        "pnl": round(position.pnl, 2),
        "exitReason": position.exit_reason.value if position.exit_reason else None,
        "exitTime": position.exit_time,
    }


class SimulatorService:
    """
    Simulator Service

    Usage:
        service = SimulatorService(gateway, oracle, notifier)

        await service.open_from_signal("So1...", entry_price=0.0012, chain="sol")
        await service.check_positions()
        report = await service.get_stats_report(post=True)
    """

    def __init__(
        self,
        gateway: StateStoreGateway,
        oracle: Optional[PriceOracle] = None,
        notifier: Optional[NotificationSink] = None,
        poll_iterations: int = 3,
        poll_delay_seconds: float = 20.0
    ):
        self.gateway = gateway
        self.oracle = oracle
        self.notifier = notifier
        self.poll_iterations = poll_iterations
        self.poll_delay_seconds = poll_delay_seconds

    async def close(self):
        if self.oracle is not None:
            await self.oracle.close()
        if self.notifier is not None:
            await self.notifier.close()

    async def _notify(self, text: str):
        if self.notifier is not None:
            await self.notifier.send(text)

    # ==================== INTAKE ====================

    async def _resolve_entry_price(self, token: TokenRef, supplied_price: float, size: float) -> float:
        """Live price pushed up by entry slippage, else the signal's price."""
        if self.oracle is None:
            return supplied_price

        quote = await self.oracle.get_price(token)
        if quote is None:
            logger.info(f"No live price for {token.address}, using signal price {supplied_price}")
            return supplied_price

        slippage = get_slippage(size, quote.liquidity)
        fill_price = entry_fill_price(quote.price, slippage)
        logger.info(
            f"Entry for {token.address}: live {quote.price} ({quote.source}), "
            f"slippage {slippage * 100:.2f}%, fill {fill_price}"
        )
        return fill_price

    async def open_from_signal(
        self,
        token_address: str,
        entry_price: Optional[float],
        chain: Optional[str] = None,
        symbol: Optional[str] = None,
        score: Optional[float] = None,
        signal_msg_id: Optional[Union[int, str]] = None
    ) -> Dict[str, Any]:
        """
        Open a position from an upstream signal.

        Returns:
            {"status": "exists", ...} when the token was already traded,
            otherwise {"status": "opened", "position": ..., "stats": ...}

        Raises:
            ValidationError: Missing address or non-positive entry price
            ConcurrentModificationError: Save kept conflicting
        """
        if not token_address:
            raise ValidationError("tokenAddress is required")
        if entry_price is None or not math.isfinite(entry_price) or entry_price <= 0:
            raise ValidationError("entryPrice must be a positive number")

        chain = chain or "SOL"
        symbol = symbol or token_address[:8]
        score = score or 0.0

        engine = self.gateway.new_engine(await self.gateway.load())
        if engine.has_touched(token_address):
            return self._exists_response(engine, token_address)

        token = TokenRef(chain=chain, address=token_address)
        fill_price = await self._resolve_entry_price(token, entry_price, engine.config.position_size)

        mutation = await self.gateway.mutate(lambda e: e.open_position(
            token_address,
            entry_price=fill_price,
            chain=chain,
            symbol=symbol,
            score=score,
            signal_msg_id=signal_msg_id,
            signal_price=entry_price,
        ))
        result = mutation.value
        if not result.opened:
            return self._exists_response(mutation.engine, token_address)

        await self._notify(format_new_position(result.position, mutation.engine.config))
        if self.notifier is not None:
            await self.notifier.forward_signal(token_address)

        return {
            "status": "opened",
            "position": result.position.model_dump(by_alias=True, mode="json"),
            "stats": mutation.engine.get_stats(),
        }

    def _exists_response(self, engine: PositionEngine, token_address: str) -> Dict[str, Any]:
        position = engine.get_position(token_address)
        if position is not None and position.is_open():
            message = "Position already open"
        else:
            message = "Token already traded"
        return {
            "status": "exists",
            "message": message,
            "position": position.model_dump(by_alias=True, mode="json") if position else None,
        }

    # ==================== POLLING ====================

    async def check_positions(self) -> Dict[str, Any]:
        """Run the poll cycles against live prices."""
        if self.oracle is None:
            raise ConfigurationError("No price oracle configured")
        poller = PositionPoller(
            self.gateway,
            self.oracle,
            self.notifier,
            iterations=self.poll_iterations,
            delay_seconds=self.poll_delay_seconds,
        )
        return await poller.run()

    # ==================== STATS ====================

    async def get_stats_report(self, post: bool = False) -> Dict[str, Any]:
        """
        Aggregate stats, open positions and the most recent closes.

        Args:
            post: Also send the formatted summary to the channel
        """
        engine = self.gateway.new_engine(await self.gateway.load())
        summary = engine.get_stats()
        open_rows = [position_details(p) for p in engine.open_positions()]

        closed = sorted(engine.closed_positions(), key=lambda p: p.exit_time or 0, reverse=True)
        recent: List[Dict[str, Any]] = [closed_details(p) for p in closed[:RECENT_CLOSED_LIMIT]]

        if post:
            await self._notify(format_stats_report(summary, open_rows))

        return {
            "summary": summary,
            "openPositions": open_rows,
            "recentClosed": recent,
        }

    # ==================== RESET / RESTORE ====================

    async def reset(self, confirm: Optional[str]) -> Dict[str, Any]:
        """
        Start over with an empty document.

        Raises:
            ConfirmationRequiredError: If confirm is not "RESET"
        """
        document = await self.gateway.reset(confirm)
        await self._notify(format_reset())
        return {
            "status": "reset",
            "stats": self.gateway.new_engine(document).get_stats(),
        }

    async def restore(self, backup: Any) -> Dict[str, Any]:
        """
        Merge an old backup into the live document.

        Raises:
            ValidationError: If the body is not a simulator document
        """
        old = parse_backup(backup)
        history_limit = self.gateway.history_limit

        def apply(engine: PositionEngine):
            # Fresh copy per attempt, mutate may run this more than once
            merged = merge_backup(engine.document, old.model_copy(deep=True), history_limit)
            engine.dirty = True
            return merged

        mutation = await self.gateway.mutate(apply)
        return {
            "restoredPositions": mutation.value.restored_positions,
            "mergedHistory": mutation.value.merged_history,
            "stats": mutation.engine.stats.model_dump(by_alias=True),
        }
