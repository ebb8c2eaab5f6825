"""
Response envelope for the simulator API.

Every route answers `{status_code, message, data, error}`; `error` is null on
success and `data` is null on failure.
"""

from typing import Any, Optional
from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from app.shared.exceptions import AppException


class ErrorDetail(BaseModel):
    """Machine-readable error code plus the underlying message."""
    code: str = Field(..., description="Error code, e.g. CONCURRENT_MODIFICATION")
    message: str = Field(..., description="Detailed error message")


class StandardResponse(BaseModel):
    """Envelope shared by all simulator endpoints."""
    status_code: int = Field(..., description="HTTP status code")
    message: str = Field(..., description="Human-readable message")
    data: Optional[Any] = Field(default=None, description="Response data")
    error: Optional[ErrorDetail] = Field(default=None, description="Error details")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status_code": 200,
                "message": "Position opened",
                "data": {"status": "opened", "position": {"symbol": "PEPE", "entryPrice": 0.0012}},
                "error": None
            }
        }
    )


def success_response(status_code: int, message: str, data: Any = None) -> dict:
    """
    Success envelope.

    Example:
        >>> success_response(200, "Stats retrieved", {"openPositions": 3})
        {"status_code": 200, "message": "Stats retrieved", "data": {"openPositions": 3}, "error": None}
    """
    return {
        "status_code": status_code,
        "message": message,
        "data": data,
        "error": None
    }


def error_response(status_code: int, message: str, error_code: str, error_message: str) -> dict:
    """Failure envelope (400 confirmation, 409 conflict, 422 validation, 503 store...)."""
    return {
        "status_code": status_code,
        "message": message,
        "data": None,
        "error": {
            "code": error_code,
            "message": error_message
        }
    }


def error_json_response(status_code: int, message: str, error_code: str, error_message: str) -> JSONResponse:
    """Failure envelope sent with the matching HTTP status."""
    return JSONResponse(
        status_code=status_code,
        content=error_response(status_code, message, error_code, error_message)
    )


def app_exception_response(exc: AppException, message: str) -> JSONResponse:
    """Map an AppException onto the failure envelope."""
    return error_json_response(
        status_code=exc.status_code,
        message=message,
        error_code=exc.code,
        error_message=exc.message
    )


def internal_error_response(message: str) -> JSONResponse:
    """500 envelope for errors outside the AppException hierarchy."""
    return error_json_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message=message,
        error_code="INTERNAL_SERVER_ERROR",
        error_message="An unexpected error occurred"
    )
