"""
Portfolio Maintenance Tests

Backup merge, stats repair and history analysis.

Author: Alphalert Team
Last Updated: 2026-10-17
"""

import pytest

from app.modules.positions.engine import PositionEngine
from app.modules.positions.maintenance import analyze_history, merge_backup, parse_backup, repair_stats
from app.modules.positions.models import ExitReason, PortfolioDocument
from app.shared.exceptions import ValidationError


@pytest.fixture
def backup(clock) -> PortfolioDocument:
    """Old document: one open position, one closed winner"""
    engine = PositionEngine(PortfolioDocument.new(), clock=clock)
    engine.open_position("So1Old", entry_price=1.0)
    engine.open_position("So1OldWin", entry_price=1.0)
    engine.close_position("So1OldWin", 2.0, ExitReason.TRAIL)
    engine.document.stats = engine.stats.model_copy(update={
        "peak_capital_deployed": 2_000,
        "starting_capital": 5_000,
    })
    return engine.document


# ==================== PARSE TESTS ====================

def test_parse_backup_accepts_document(backup):
    parsed = parse_backup(backup.to_payload())
    assert set(parsed.positions) == {"So1Old", "So1OldWin"}


@pytest.mark.parametrize("body", [
    None,
    [],
    "backup",
    {"positions": {}},
    {"stats": {}, "positions": []},
    {"stats": {}, "positions": {"x": {"entryPrice": 0, "size": 250}}},
])
def test_parse_backup_rejects_invalid_bodies(body):
    with pytest.raises(ValidationError):
        parse_backup(body)


# ==================== MERGE TESTS ====================

def test_merge_backup_sums_counters(engine, backup):
    engine.open_position("So1Live", entry_price=1.0)
    engine.close_position("So1Live", 0.5, ExitReason.STOP_LOSS)
    live_stats = engine.stats

    result = merge_backup(engine.document, backup)

    stats = engine.stats
    assert result.restored_positions == 1
    assert result.merged_history == 1
    assert stats.total_trades == live_stats.total_trades + backup.stats.total_trades
    assert stats.win_count == 1
    assert stats.loss_count == 1
    assert stats.total_pnl == pytest.approx(250.0 - 125.0)
    assert stats.peak_capital_deployed == 2_000
    assert stats.starting_capital == 5_000


def test_merge_backup_restores_only_unknown_open_positions(engine, backup):
    engine.open_position("So1Old", entry_price=3.0)

    result = merge_backup(engine.document, backup)

    assert result.restored_positions == 0
    assert engine.get_position("So1Old").entry_price == 3.0
    assert "So1OldWin" not in engine.document.positions
    assert engine.stats.open_positions == 1


def test_merge_backup_puts_old_history_first(engine, backup):
    engine.open_position("So1Live", entry_price=1.0)
    engine.close_position("So1Live", 1.5, ExitReason.TRAIL)

    merge_backup(engine.document, backup)

    assert [entry.address for entry in engine.document.history] == ["So1OldWin", "So1Live"]


def test_merge_backup_bounds_history(engine, backup):
    engine.open_position("So1Live", entry_price=1.0)
    engine.close_position("So1Live", 1.5, ExitReason.TRAIL)

    merge_backup(engine.document, backup, history_limit=1)

    assert [entry.address for entry in engine.document.history] == ["So1Live"]


# ==================== REPAIR TESTS ====================

def test_repair_stats(engine):
    engine.open_position("So1A", entry_price=1.0)
    engine.open_position("So1B", entry_price=1.0)
    engine.close_position("So1B", 0.5, ExitReason.STOP_LOSS)
    engine.document.stats = engine.stats.model_copy(update={
        "total_trades": 17,
        "total_capital_deployed": 9_999,
    })

    report = repair_stats(engine.document)

    assert report["before"]["totalTrades"] == 17
    assert report["after"] == {"totalTrades": 2, "totalCapitalDeployed": 500, "openPositions": 1}
    assert engine.stats.total_trades == 2
    assert engine.stats.total_capital_deployed == 500


# ==================== ANALYSIS TESTS ====================

def test_analyze_history():
    history = [
        {"pnl": 100.0, "size": 250},
        {"pnl": -50.0},
        {"realizedPnL": 25.0, "pnl": 999},
        {"pnl": 0},
    ]

    report = analyze_history(history)

    assert report["totalTrades"] == 4
    assert report["wins"] == 2
    assert report["losses"] == 1
    assert report["winRate"] == 50.0
    assert report["avgWinRoi"] == pytest.approx(25.0)
    assert report["avgLossRoi"] == pytest.approx(-20.0)
    assert report["grossProfit"] == pytest.approx(125.0)
    assert report["grossLoss"] == pytest.approx(50.0)
    assert report["profitFactor"] == pytest.approx(2.5)
    assert report["netPnL"] == pytest.approx(75.0)


def test_analyze_empty_history():
    report = analyze_history([])

    assert report["totalTrades"] == 0
    assert report["winRate"] == 0.0
    assert report["profitFactor"] == 0.0
