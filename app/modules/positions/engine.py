"""
Position Engine

State machine and bookkeeping for simulated positions. Pure logic over an
in-memory PortfolioDocument; persistence and price lookups live elsewhere.

Lifecycle:
    active --(mult >= trail_activation)--> trailing --(price <= trail)--> exited
    active/trailing --(mult <= 1 - stop_loss)--> exited

Every mutation updates the document's running stats in the same call, and
each stats change is a single replacement of the stats record.

Author: Alphalert Team
Last Updated: 2026-10-17
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Any, Union

from app.modules.positions.models import (
    ExitReason,
    HistoryEntry,
    PortfolioConfig,
    PortfolioDocument,
    PortfolioStats,
    Position,
    PositionStatus,
)
from app.modules.positions.slippage import exit_fill_price, get_slippage
from app.shared.exceptions import ValidationError
from app.utils.logger import get_logger
from app.utils.timeutils import now_ms

logger = get_logger(__name__)

HISTORY_LIMIT = 1000


# ==================== RESULTS ====================

class UpdateAction(str, Enum):
    """Outcome of a single position update"""
    UPDATE = "update"
    TRAIL_ACTIVATED = "trail_activated"
    CLOSED = "closed"


@dataclass
class UpdateResult:
    """Result of update_position / close_position"""
    action: UpdateAction
    position: Position
    previous_status: PositionStatus
    reason: Optional[ExitReason] = None


@dataclass
class OpenResult:
    """Result of open_position. `opened` is False for rejected re-entries."""
    opened: bool
    position: Optional[Position] = None
    reason: Optional[str] = None


@dataclass
class SlippageAdjustment:
    """Exit fill correction applied after a state-machine close"""
    address: str
    slippage: float
    quoted_price: float
    exit_price: float
    previous_pnl: float
    pnl: float


# ==================== ENGINE ====================

class PositionEngine:
    """
    Position Engine

    Owns the position state machine and the document's running statistics.

    Usage:
        engine = PositionEngine(document)

        result = engine.open_position("So1...", entry_price=0.0012, chain="sol", symbol="PEPE")
        update = engine.update_position("So1...", 0.0019)
        if update and update.action == UpdateAction.CLOSED:
            engine.apply_exit_slippage("So1...", liquidity=25_000)

        if engine.dirty:
            await gateway.save(engine.document)
    """

    def __init__(
        self,
        document: PortfolioDocument,
        history_limit: int = HISTORY_LIMIT,
        clock: Callable[[], int] = now_ms
    ):
        self.document = document
        self.history_limit = history_limit
        self.dirty = False
        self._clock = clock

    @property
    def config(self) -> PortfolioConfig:
        return self.document.config

    @property
    def stats(self) -> PortfolioStats:
        return self.document.stats

    # ==================== QUERIES ====================

    def get_position(self, address: str) -> Optional[Position]:
        return self.document.positions.get(address)

    def get_all_positions(self) -> Dict[str, Position]:
        return self.document.positions

    def open_positions(self) -> List[Position]:
        return [p for p in self.document.positions.values() if p.is_open()]

    def closed_positions(self) -> List[Position]:
        return [p for p in self.document.positions.values() if p.is_exited()]

    def in_history(self, address: str) -> bool:
        return any(entry.address == address for entry in self.document.history)

    def has_touched(self, address: str) -> bool:
        """True once a token has ever been opened; such tokens are never re-entered."""
        return address in self.document.positions or self.in_history(address)

    def deployed_capital(self) -> float:
        """USD notional currently committed to open positions."""
        return sum(p.size for p in self.open_positions())

    # ==================== OPEN ====================

    def open_position(
        self,
        address: str,
        entry_price: float,
        chain: str = "SOL",
        symbol: Optional[str] = None,
        score: float = 0.0,
        signal_msg_id: Optional[Union[int, str]] = None,
        signal_price: Optional[float] = None,
        size: Optional[float] = None
    ) -> OpenResult:
        """
        Open a position at `entry_price`.

        Rejects (without error) any address already present in positions or
        history, whatever its status.

        Raises:
            ValidationError: If address is empty or entry_price is not a positive number
        """
        if not address:
            raise ValidationError("tokenAddress is required")
        if entry_price is None or not math.isfinite(entry_price) or entry_price <= 0:
            raise ValidationError("entryPrice must be a positive number")

        existing = self.get_position(address)
        if existing is not None:
            logger.info(f"Skipping {address}: position already exists ({existing.status.value})")
            return OpenResult(opened=False, position=existing, reason="exists")

        if self.in_history(address):
            logger.info(f"Skipping {address}: token already traded")
            return OpenResult(opened=False, reason="history")

        now = self._clock()
        size = size or self.config.position_size
        position = Position(
            address=address,
            chain=chain,
            symbol=symbol or address[:8],
            status=PositionStatus.ACTIVE,
            entry_price=entry_price,
            signal_price=signal_price if signal_price is not None else entry_price,
            size=size,
            score=score,
            signal_msg_id=signal_msg_id,
            entry_time=now,
            peak_price=entry_price,
            peak_time=now,
            current_price=entry_price,
            last_update_time=now,
        )
        self.document.positions[address] = position

        stats = self.stats
        self.document.stats = stats.model_copy(update={
            "total_trades": stats.total_trades + 1,
            "open_positions": stats.open_positions + 1,
            "total_capital_deployed": stats.total_capital_deployed + size,
            "peak_capital_deployed": max(stats.peak_capital_deployed, self.deployed_capital()),
        })
        self.dirty = True

        logger.info(f"Opened {position.symbol} ({address}) at {entry_price} for ${size}")
        return OpenResult(opened=True, position=position)

    # ==================== UPDATE ====================

    def update_position(self, address: str, price: Optional[float]) -> Optional[UpdateResult]:
        """
        Apply a price observation to an open position.

        Order of checks: stop-loss, peak, trail activation, trail hit.
        Returns None (and changes nothing) for unknown or exited positions and
        for missing, zero or non-finite prices.
        """
        position = self.get_position(address)
        if position is None or position.is_exited():
            return None
        if price is None or not math.isfinite(price) or price <= 0:
            return None

        config = self.config
        now = self._clock()
        previous_status = position.status
        mult = price / position.entry_price

        position.current_price = price
        position.last_update_time = now
        self.dirty = True

        # Hard floor, wins over the trailing stop
        if mult <= 1 - config.stop_loss:
            stop_price = position.entry_price * (1 - config.stop_loss)
            return self.close_position(address, stop_price, ExitReason.STOP_LOSS)

        if price > position.peak_price:
            position.peak_price = price
            position.peak_time = now

        if position.status == PositionStatus.ACTIVE and mult >= config.trail_activation:
            position.status = PositionStatus.TRAILING
            position.trail_price = position.peak_price * (1 - config.trail_distance)

        if position.status == PositionStatus.TRAILING:
            trail_price = position.peak_price * (1 - config.trail_distance)
            position.trail_price = max(position.trail_price or 0.0, trail_price)

            if price <= position.trail_price:
                return self.close_position(address, position.trail_price, ExitReason.TRAIL)

        position.pnl = (mult - 1) * position.size

        if previous_status == PositionStatus.ACTIVE and position.status == PositionStatus.TRAILING:
            action = UpdateAction.TRAIL_ACTIVATED
        else:
            action = UpdateAction.UPDATE
        return UpdateResult(action=action, position=position, previous_status=previous_status)

    # ==================== CLOSE ====================

    def close_position(
        self,
        address: str,
        exit_price: float,
        reason: ExitReason
    ) -> Optional[UpdateResult]:
        """
        Close a position at `exit_price` and book the realized PnL.

        Returns None if the position is unknown or already exited.
        """
        position = self.get_position(address)
        if position is None or position.is_exited():
            return None

        now = self._clock()
        previous_status = position.status

        pnl = (exit_price / position.entry_price - 1) * position.size

        position.status = PositionStatus.EXITED
        position.exit_price = exit_price
        position.quoted_exit_price = exit_price
        position.slippage_applied = False
        position.exit_time = now
        position.exit_reason = reason
        position.pnl = pnl
        if reason == ExitReason.STOP_LOSS:
            position.trail_price = None

        stats = self.stats
        self.document.stats = stats.model_copy(update={
            "open_positions": stats.open_positions - 1,
            "closed_positions": stats.closed_positions + 1,
            "total_pnl": stats.total_pnl + pnl,
            "win_count": stats.win_count + (1 if pnl > 0 else 0),
            "loss_count": stats.loss_count + (0 if pnl > 0 else 1),
        })

        self.document.history.append(HistoryEntry(
            address=address,
            symbol=position.symbol,
            chain=position.chain,
            entry=position.entry_price,
            exit=exit_price,
            pnl=pnl,
            reason=reason.value,
            duration=now - position.entry_time,
            size=position.size,
        ))
        if len(self.document.history) > self.history_limit:
            self.document.history = self.document.history[-self.history_limit:]

        self.dirty = True
        logger.info(f"Closed {position.symbol} ({address}) via {reason.value} at {exit_price}, pnl {pnl:.2f}")
        return UpdateResult(
            action=UpdateAction.CLOSED,
            position=position,
            previous_status=previous_status,
            reason=reason
        )

    def apply_exit_slippage(self, address: str, liquidity: Optional[float]) -> Optional[SlippageAdjustment]:
        """
        Re-price a just-closed position's exit for market impact.

        Replaces the position's pnl and the matching history entry, and swaps
        the old pnl for the new one in the stats (moving the win/loss count if
        the sign flips) with one stats assignment. Evaluated at most once per
        close: the first call marks the position, even when the slippage is
        zero, and later calls return None.
        """
        position = self.get_position(address)
        if position is None or not position.is_exited() or position.slippage_applied:
            return None
        if position.quoted_exit_price is None or position.exit_price != position.quoted_exit_price:
            return None

        position.slippage_applied = True
        self.dirty = True

        slippage = get_slippage(position.size, liquidity)
        if slippage <= 0:
            return None

        quoted_price = position.quoted_exit_price
        exit_price = exit_fill_price(quoted_price, slippage)
        previous_pnl = position.pnl
        pnl = (exit_price / position.entry_price - 1) * position.size

        was_win = previous_pnl > 0
        is_win = pnl > 0
        stats = self.stats
        self.document.stats = stats.model_copy(update={
            "total_pnl": stats.total_pnl - previous_pnl + pnl,
            "win_count": stats.win_count - int(was_win) + int(is_win),
            "loss_count": stats.loss_count - int(not was_win) + int(not is_win),
        })

        position.exit_price = exit_price
        position.pnl = pnl

        for entry in reversed(self.document.history):
            if entry.address == address:
                entry.exit = exit_price
                entry.pnl = pnl
                break

        self.dirty = True
        return SlippageAdjustment(
            address=address,
            slippage=slippage,
            quoted_price=quoted_price,
            exit_price=exit_price,
            previous_pnl=previous_pnl,
            pnl=pnl
        )

    # ==================== STATS ====================

    def get_stats(self) -> Dict[str, Any]:
        """
        Stored cumulative stats plus the unrealized PnL of open positions.

        Returns:
            Dict with the stored counters plus realizedPnL, unrealizedPnL,
            totalPnL (realized + unrealized), winRate (percent) and activeCapital
        """
        stats = self.stats
        unrealized = sum(p.pnl for p in self.open_positions())
        closed = stats.closed_positions
        win_rate = round(stats.win_count / closed * 100, 1) if closed > 0 else 0.0

        summary = stats.model_dump(by_alias=True)
        summary.update({
            "realizedPnL": stats.total_pnl,
            "unrealizedPnL": unrealized,
            "totalPnL": stats.total_pnl + unrealized,
            "winRate": win_rate,
            "activeCapital": self.deployed_capital(),
        })
        return summary
