"""
Portfolio Maintenance

Operator utilities over a portfolio document:

- merge_backup: fold an old backup (e.g. from before an accidental reset)
  into the live document
- repair_stats: resync trade and capital counters from positions
- analyze_history: ROI and PnL breakdown of the closed-trade log

Author: Alphalert Team
Last Updated: 2026-10-17
"""

from dataclasses import dataclass
from typing import Any, Dict, List

from pydantic import ValidationError as PydanticValidationError

from app.modules.positions.engine import HISTORY_LIMIT
from app.modules.positions.models import HistoryEntry, PortfolioDocument
from app.shared.exceptions import ValidationError
from app.utils.logger import get_logger

logger = get_logger(__name__)

# Counters summed across live document and backup
CUMULATIVE_STATS = (
    "total_trades",
    "win_count",
    "loss_count",
    "closed_positions",
    "total_pnl",
    "total_capital_deployed",
)


@dataclass
class MergeResult:
    restored_positions: int
    merged_history: int


def parse_backup(backup: Any) -> PortfolioDocument:
    """
    Validate a backup body.

    Raises:
        ValidationError: If the backup is not a simulator document
    """
    if not isinstance(backup, dict) or not isinstance(backup.get("stats"), dict) \
            or not isinstance(backup.get("positions"), dict):
        raise ValidationError("Invalid DB backup provided. Body must be the JSON content of the old DB.")

    try:
        return PortfolioDocument.from_payload(backup)
    except PydanticValidationError as e:
        raise ValidationError(f"Backup failed validation: {e.error_count()} errors")


def merge_backup(
    document: PortfolioDocument,
    old: PortfolioDocument,
    history_limit: int = HISTORY_LIMIT
) -> MergeResult:
    """
    Merge an older backup into `document` in place.

    - cumulative counters are summed, peakCapitalDeployed takes the max,
      startingCapital comes from the backup when it has one
    - open positions whose address the live document does not know are restored
    - backup history goes before live history; the result is bounded
    - openPositions is recounted
    """
    stats = document.stats
    old_stats = old.stats
    update: Dict[str, Any] = {
        name: getattr(stats, name) + getattr(old_stats, name)
        for name in CUMULATIVE_STATS
    }
    update["peak_capital_deployed"] = max(stats.peak_capital_deployed, old_stats.peak_capital_deployed)
    if old_stats.starting_capital:
        update["starting_capital"] = old_stats.starting_capital

    restored = 0
    for address, position in old.positions.items():
        if address in document.positions or not position.is_open():
            continue
        document.positions[address] = position
        restored += 1
        logger.info(f"Restored open position {position.symbol} ({address})")

    merged_history: List[HistoryEntry] = list(old.history) + list(document.history)
    document.history = merged_history[-history_limit:]

    update["open_positions"] = sum(1 for p in document.positions.values() if p.is_open())
    document.stats = stats.model_copy(update=update)

    logger.info(f"Merged backup: {restored} positions restored, {len(old.history)} history items")
    return MergeResult(restored_positions=restored, merged_history=len(old.history))


def repair_stats(document: PortfolioDocument) -> Dict[str, Any]:
    """
    Resync totalTrades and totalCapitalDeployed from wins, losses and open positions.

    Returns:
        Dict with before/after values of the repaired counters
    """
    stats = document.stats
    open_count = sum(1 for p in document.positions.values() if p.is_open())
    total_trades = stats.win_count + stats.loss_count + open_count
    deployed = total_trades * document.config.position_size

    before = {
        "totalTrades": stats.total_trades,
        "totalCapitalDeployed": stats.total_capital_deployed,
        "openPositions": stats.open_positions,
    }
    document.stats = stats.model_copy(update={
        "total_trades": total_trades,
        "total_capital_deployed": deployed,
        "open_positions": open_count,
    })
    after = {
        "totalTrades": total_trades,
        "totalCapitalDeployed": deployed,
        "openPositions": open_count,
    }
    return {"before": before, "after": after}


def analyze_history(history: List[Dict[str, Any]], default_size: float = 250.0) -> Dict[str, Any]:
    """
    Summarize closed trades.

    Accepts raw history items (older exports used `realizedPnL` instead of
    `pnl`). Break-even trades count toward the total but are neither wins
    nor losses.
    """
    rois: List[float] = []
    wins = losses = 0
    win_roi = loss_roi = 0.0
    gross_profit = gross_loss = 0.0

    for trade in history:
        pnl = trade.get("realizedPnL")
        if pnl is None:
            pnl = trade.get("pnl") or 0.0
        size = trade.get("size") or default_size
        roi = pnl / size * 100
        rois.append(roi)

        if pnl > 0:
            wins += 1
            win_roi += roi
            gross_profit += pnl
        elif pnl < 0:
            losses += 1
            loss_roi += roi
            gross_loss += abs(pnl)

    total = len(history)
    return {
        "totalTrades": total,
        "wins": wins,
        "losses": losses,
        "winRate": round(wins / total * 100, 2) if total else 0.0,
        "avgRoi": sum(rois) / total if total else 0.0,
        "avgWinRoi": win_roi / wins if wins else 0.0,
        "avgLossRoi": loss_roi / losses if losses else 0.0,
        "profitFactor": gross_profit / gross_loss if gross_loss > 0 else gross_profit,
        "grossProfit": gross_profit,
        "grossLoss": gross_loss,
        "netPnL": gross_profit - gross_loss,
    }
