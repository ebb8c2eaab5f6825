#!/usr/bin/env python3
"""
Trade history analysis.

Prints win rate, ROI and PnL statistics for the closed-trade log, either
from an exported document or from the live pinned copy.

Usage:
    python scripts/analyze_history.py path/to/simulator-db.json

    # Read the live document from the channel instead:
    python scripts/analyze_history.py --live
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List

# Add project root to Python path for imports
project_dir = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_dir))

from app.core.dependencies import build_simulator_service
from app.modules.positions.maintenance import analyze_history


async def load_live_history() -> List[Dict[str, Any]]:
    service = build_simulator_service()
    try:
        document = await service.gateway.load()
        return document.to_payload()["history"]
    finally:
        await service.close()


def print_report(report: Dict[str, Any]):
    print("\n--- 📊 Trade Analysis ---")
    print(f"Total Trades: {report['totalTrades']}")
    print(f"Win Rate: {report['winRate']:.2f}% ({report['wins']}W / {report['losses']}L)")
    print("\n--- 💰 ROI Stats ---")
    print(f"Avg ROI per trade: {report['avgRoi']:.2f}%")
    print(f"Avg Win ROI: {report['avgWinRoi']:.2f}%")
    print(f"Avg Loss ROI: {report['avgLossRoi']:.2f}%")
    print("\n--- 💵 PnL Stats ---")
    print(f"Profit Factor: {report['profitFactor']:.2f}")
    print(f"Gross Profit: ${report['grossProfit']:.2f}")
    print(f"Gross Loss: ${report['grossLoss']:.2f}")
    print(f"Net PnL: ${report['netPnL']:.2f}")


def main():
    parser = argparse.ArgumentParser(description="Analyze the simulator's closed-trade history")
    parser.add_argument("path", nargs="?", help="Exported simulator document (JSON)")
    parser.add_argument("--live", action="store_true", help="Read the live document from the channel")
    args = parser.parse_args()

    if args.live:
        history = asyncio.run(load_live_history())
    elif args.path:
        path = Path(args.path)
        if not path.exists():
            print(f"❌ File not found: {path}")
            sys.exit(1)
        history = json.loads(path.read_text(encoding="utf-8")).get("history") or []
    else:
        parser.error("give a document path or --live")

    print(f"Loaded {len(history)} trades from history.")
    print_report(analyze_history(history))


if __name__ == "__main__":
    main()
