"""
Simulator Router

FastAPI endpoints for signal intake, polling, stats, reset and restore.

Author: Alphalert Team
Last Updated: 2026-10-17
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, status

from app.core.dependencies import get_simulator_service
from app.core.responses import StandardResponse, app_exception_response, internal_error_response, success_response
from app.modules.positions.schemas import NewSignalRequest, ResetRequest
from app.modules.positions.service import SimulatorService
from app.shared.exceptions import AppException
from app.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["simulator"])


# ==================== INTAKE ====================

@router.post(
    "/new-signal",
    status_code=status.HTTP_200_OK,
    response_model=StandardResponse,
    response_description="Position opened or already known"
)
async def new_signal(
    signal: NewSignalRequest,
    service: SimulatorService = Depends(get_simulator_service)
):
    """
    Open a simulated position from an upstream signal.

    Answers `status: "exists"` (and changes nothing) for tokens that were
    already traded.
    """
    try:
        result = await service.open_from_signal(
            signal.token_address,
            entry_price=signal.entry_price,
            chain=signal.chain,
            symbol=signal.symbol,
            score=signal.score,
            signal_msg_id=signal.signal_msg_id,
        )
        message = "Position opened" if result["status"] == "opened" else result["message"]
        return success_response(status_code=status.HTTP_200_OK, message=message, data=result)
    except AppException as e:
        logger.warning(f"Signal for {signal.token_address} rejected: {e.message}")
        return app_exception_response(e, "Failed to open position")
    except Exception as e:
        logger.error(f"Unexpected error opening position: {str(e)}")
        return internal_error_response("Failed to open position")


# ==================== POLLING ====================

@router.get(
    "/check-positions",
    status_code=status.HTTP_200_OK,
    response_model=StandardResponse,
    response_description="Poll cycles completed"
)
async def check_positions(service: SimulatorService = Depends(get_simulator_service)):
    """Run the poll cycles: fetch prices, update open positions, post exits."""
    try:
        result = await service.check_positions()
        return success_response(status_code=status.HTTP_200_OK, message="Positions checked", data=result)
    except AppException as e:
        logger.error(f"Position check failed: {e.message}")
        return app_exception_response(e, "Failed to check positions")
    except Exception as e:
        logger.error(f"Unexpected error checking positions: {str(e)}")
        return internal_error_response("Failed to check positions")


# ==================== STATS ====================

@router.get(
    "/stats",
    status_code=status.HTTP_200_OK,
    response_model=StandardResponse,
    response_description="Portfolio stats retrieved"
)
async def get_stats(
    post: bool = Query(False, description="Also post the summary to the channel"),
    service: SimulatorService = Depends(get_simulator_service)
):
    """Aggregate stats, open positions and the 10 most recent closes."""
    try:
        result = await service.get_stats_report(post=post)
        return success_response(status_code=status.HTTP_200_OK, message="Stats retrieved", data=result)
    except AppException as e:
        logger.error(f"Stats query failed: {e.message}")
        return app_exception_response(e, "Failed to retrieve stats")
    except Exception as e:
        logger.error(f"Unexpected error getting stats: {str(e)}")
        return internal_error_response("Failed to retrieve stats")


# ==================== RESET / RESTORE ====================

@router.post(
    "/reset",
    status_code=status.HTTP_200_OK,
    response_model=StandardResponse,
    response_description="Portfolio reset"
)
async def reset(
    request: Optional[ResetRequest] = None,
    service: SimulatorService = Depends(get_simulator_service)
):
    """Replace the portfolio with an empty one. Requires `{"confirm": "RESET"}`."""
    try:
        result = await service.reset(request.confirm if request else None)
        return success_response(status_code=status.HTTP_200_OK, message="Simulator reset", data=result)
    except AppException as e:
        logger.warning(f"Reset refused: {e.message}")
        return app_exception_response(e, "Failed to reset simulator")
    except Exception as e:
        logger.error(f"Unexpected error resetting simulator: {str(e)}")
        return internal_error_response("Failed to reset simulator")


@router.post(
    "/restore-db",
    status_code=status.HTTP_200_OK,
    response_model=StandardResponse,
    response_description="Backup merged into the live portfolio"
)
async def restore_db(
    backup: Any = Body(...),
    service: SimulatorService = Depends(get_simulator_service)
):
    """Merge an old portfolio backup (the raw JSON document) into the live one."""
    try:
        result = await service.restore(backup)
        return success_response(status_code=status.HTTP_200_OK, message="DB Restored Successfully", data=result)
    except AppException as e:
        logger.error(f"Restore failed: {e.message}")
        return app_exception_response(e, "Failed to restore backup")
    except Exception as e:
        logger.error(f"Unexpected error restoring backup: {str(e)}")
        return internal_error_response("Failed to restore backup")
