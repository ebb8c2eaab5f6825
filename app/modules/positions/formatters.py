"""
Notification Formatters

HTML message bodies for the simulator channel (Telegram parse_mode=HTML).
"""

import html
from typing import Any, Dict, List, Optional

from app.modules.positions.engine import PositionEngine, SlippageAdjustment
from app.modules.positions.models import ExitReason, PortfolioConfig, Position, PositionStatus
from app.utils.timeutils import format_ms, now_ms

CHAIN_TAGS = {"sol": "🟣", "eth": "🔷", "bsc": "🔶", "base": "🔵"}


def format_price(price: Optional[float]) -> str:
    """Dollar price with precision suited to micro-cap tokens."""
    if price is None:
        return "N/A"
    if price < 0.0001:
        return f"{price:.2e}"
    return f"{price:.6f}"


def format_usd(amount: float) -> str:
    """Signed dollar amount, e.g. +$12.50 / -$3.10."""
    sign = "+" if amount >= 0 else "-"
    return f"{sign}${abs(amount):.2f}"


def format_portfolio_caption(engine: PositionEngine, timestamp_ms: Optional[int] = None) -> str:
    """Live summary attached to the stored document."""
    stats = engine.stats
    open_positions = engine.open_positions()
    total_closed = stats.win_count + stats.loss_count
    win_rate = (stats.win_count / total_closed * 100) if total_closed > 0 else 0.0
    sign = "+" if stats.total_pnl >= 0 else ""

    return (
        "📊 <b>Live Portfolio Status</b>\n\n"
        f"💰 <b>Active Capital:</b> ${engine.deployed_capital():.2f}\n"
        f"📈 <b>Open Positions:</b> {len(open_positions)}\n"
        f"📉 <b>Realized PnL:</b> {sign}${stats.total_pnl:.2f}\n\n"
        f"🏆 <b>Wins:</b> {stats.win_count}\n"
        f"💀 <b>Losses:</b> {stats.loss_count}\n"
        f"🎯 <b>Win Rate:</b> {win_rate:.1f}%\n\n"
        f"<i>Last Updated: {format_ms(timestamp_ms or now_ms())} UTC</i>"
    )


def format_new_position(position: Position, config: PortfolioConfig) -> str:
    chain_tag = CHAIN_TAGS.get(position.chain.lower(), "📊")
    score = f"{position.score:.2f}" if position.score else "N/A"

    return (
        f"{chain_tag} <b>NEW POSITION</b>\n\n"
        f"<b>Token:</b> {html.escape(position.symbol)}\n"
        f"<b>Entry:</b> ${format_price(position.entry_price)}\n"
        f"<b>Size:</b> ${position.size:g}\n"
        f"<b>Score:</b> {score}\n\n"
        f"📍 Trail activates at {(config.trail_activation - 1) * 100:.0f}% gain\n"
        f"🛑 Trail stop: -{config.trail_distance * 100:.0f}% from peak\n"
        f"🧱 Hard stop: -{config.stop_loss * 100:.0f}%\n\n"
        f"<code>{html.escape(position.address)}</code>"
    )


def format_trail_activated(position: Position, config: PortfolioConfig) -> str:
    mult = position.multiplier()
    gain_usd = (mult - 1) * position.size
    locked_usd = ((position.trail_price or position.entry_price) / position.entry_price - 1) * position.size

    return (
        "🚀 <b>TRAIL ACTIVATED</b>\n\n"
        f"<b>{html.escape(position.symbol)}</b>\n"
        f"📥 Entry: ${format_price(position.entry_price)}\n"
        f"📊 Current: ${format_price(position.current_price)}\n"
        f"📈 Gain: <b>{mult:.2f}x ({(mult - 1) * 100:+.0f}% / {format_usd(gain_usd)})</b>\n\n"
        f"🛑 Trail stop: ${format_price(position.trail_price)} (-{config.trail_distance * 100:.0f}%)\n"
        f"🔒 Locked: {format_usd(locked_usd)} min\n\n"
        f"<code>{html.escape(position.address)}</code>"
    )


def format_position_closed(
    position: Position,
    config: PortfolioConfig,
    adjustment: Optional[SlippageAdjustment] = None
) -> str:
    exit_price = position.exit_price or 0.0
    mult = exit_price / position.entry_price
    slippage_pct = adjustment.slippage * 100 if adjustment else 0.0

    if position.exit_reason == ExitReason.STOP_LOSS:
        header = "🛑 <b>STOP LOSS HIT</b>"
        reason = f"Hard Stop (-{config.stop_loss * 100:.0f}%)"
    else:
        header = "💰 <b>POSITION CLOSED</b>" if position.pnl >= 0 else "📉 <b>POSITION CLOSED</b>"
        reason = position.exit_reason.value if position.exit_reason else "unknown"

    return (
        f"{header}\n\n"
        f"<b>Token:</b> {html.escape(position.symbol)}\n"
        f"<b>Entry:</b> ${format_price(position.entry_price)}\n"
        f"<b>Exit:</b> ${format_price(exit_price)} (Slip: {slippage_pct:.2f}%)\n"
        f"<b>Result:</b> {mult:.2f}x ({format_usd(position.pnl)})\n"
        f"<b>Reason:</b> {reason}\n\n"
        f"<code>{html.escape(position.address)}</code>"
    )


def format_stats_report(summary: Dict[str, Any], open_positions: List[Dict[str, Any]]) -> str:
    lines = [
        "📊 <b>PORTFOLIO STATS</b>",
        "",
        f"💰 Realized PnL: ${summary['realizedPnL']:.2f}",
        f"📈 Unrealized PnL: ${summary['unrealizedPnL']:.2f}",
        "",
        "📊 <b>Performance</b>",
        f"• Total Trades: {summary['closedPositions']}",
        f"• Win Rate: {summary['winRate']}%",
        f"• Wins: {summary['winCount']} | Losses: {summary['lossCount']}",
        "",
        f"📂 <b>Open Positions: {summary['openPositions']}</b>",
    ]
    if open_positions:
        lines.append("")
        for p in open_positions:
            emoji = "🚀" if p["status"] == PositionStatus.TRAILING.value else "⏳"
            lines.append(f"{emoji} {html.escape(p['symbol'])}: {p['multiplier']:.2f}x (${p['pnl']:.2f})")
    return "\n".join(lines)


def format_reset() -> str:
    return (
        "🔄 <b>SIMULATOR RESET</b>\n\n"
        "All positions cleared.\n"
        "Stats reset to zero.\n"
        "Ready for new trades."
    )
