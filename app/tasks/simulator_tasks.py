"""
Simulator Celery Tasks

Background task for the periodic position check.

Author: Alphalert Team
Last Updated: 2026-10-17
"""

import asyncio
from typing import Any, Dict

from celery import Task

from app.core.dependencies import build_simulator_service
from app.shared.exceptions import AppException
from app.tasks.celery_app import celery_app
from app.utils.logger import get_logger

logger = get_logger(__name__)


async def run_position_check() -> Dict[str, Any]:
    """Build a fresh service, run the poll cycles, release clients."""
    service = build_simulator_service()
    try:
        return await service.check_positions()
    finally:
        await service.close()


@celery_app.task(bind=True)
def check_positions_task(self: Task) -> Dict[str, Any]:
    """
    Celery task to poll open positions.

    Not retried: the next scheduled run picks up where this one stopped.

    Returns:
        Dict with loops, checked, closed and stats
    """
    try:
        result = asyncio.run(run_position_check())
        logger.info(f"Position check done: {result['checked']} checked, {result['closed']} closed")
        return {"success": True, **result}
    except AppException as e:
        logger.error(f"Position check failed: {e.message}")
        return {
            "success": False,
            "error": e.message,
            "code": e.code
        }
