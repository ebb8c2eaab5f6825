#!/usr/bin/env python3
"""
Resync portfolio counters.

Recomputes totalTrades (wins + losses + open positions), openPositions and
totalCapitalDeployed (trades x position size) on the live document.

Usage:
    python scripts/repair_stats.py

    # Dry run (no changes made):
    python scripts/repair_stats.py --dry-run
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to Python path for imports
project_dir = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_dir))

from app.core.dependencies import build_simulator_service
from app.modules.positions.maintenance import repair_stats
from app.shared.exceptions import AppException


async def repair(dry_run: bool = False) -> bool:
    print("🔌 Connecting to DB...")
    service = build_simulator_service()
    try:
        if dry_run:
            document = await service.gateway.load()
            report = repair_stats(document)
        else:
            def apply(engine):
                engine.dirty = True
                return repair_stats(engine.document)

            mutation = await service.gateway.mutate(apply)
            report = mutation.value
    except AppException as e:
        print(f"❌ Repair failed: {e.message}")
        return False
    finally:
        await service.close()

    before, after = report["before"], report["after"]
    print("\n📊 Current Stats:")
    print(f"- Trades: {before['totalTrades']} -> {after['totalTrades']}")
    print(f"- Open: {before['openPositions']} -> {after['openPositions']}")
    print(f"- Deployed: ${before['totalCapitalDeployed']:.2f} -> ${after['totalCapitalDeployed']:.2f}")

    if dry_run:
        print("\n🔍 Dry run, nothing saved")
    else:
        print("\n✅ Database repaired and saved!")
    return True


def main():
    parser = argparse.ArgumentParser(description="Resync simulator trade and capital counters")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only show what would be done, don't make changes"
    )
    args = parser.parse_args()

    success = asyncio.run(repair(dry_run=args.dry_run))
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
