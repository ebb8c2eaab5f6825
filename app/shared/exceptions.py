"""
Custom exception classes for the application.

All custom exceptions inherit from base AppException for consistent error handling.
"""

from typing import Optional


class AppException(Exception):
    """
    Base application exception.

    All custom exceptions should inherit from this class.

    Attributes:
        message: Error message
        code: Error code
        status_code: HTTP status code
    """

    def __init__(
        self,
        message: str,
        code: str = "APP_ERROR",
        status_code: int = 500
    ):
        """
        Initialize AppException.

        Args:
            message: Error message
            code: Error code
            status_code: HTTP status code
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(self.message)


# Validation Exceptions

class ValidationError(AppException):
    """Validation error."""

    def __init__(self, message: str = "Validation failed"):
        super().__init__(message=message, code="VALIDATION_ERROR", status_code=422)


class ConfirmationRequiredError(AppException):
    """Destructive operation called without its confirmation token."""

    def __init__(self, message: str = "Missing confirmation"):
        super().__init__(message=message, code="CONFIRMATION_REQUIRED", status_code=400)


class PositionNotFoundError(AppException):
    """Position not found in the portfolio document."""

    def __init__(self, message: str = "Position not found"):
        super().__init__(message=message, code="POSITION_NOT_FOUND", status_code=404)


class ConfigurationError(AppException):
    """Required configuration is missing."""

    def __init__(self, message: str = "Service is not configured"):
        super().__init__(message=message, code="CONFIGURATION_ERROR", status_code=500)


# Document Store Exceptions

class StoreError(AppException):
    """Base class for document store failures."""

    def __init__(
        self,
        message: str = "Document store error",
        code: str = "STORE_ERROR",
        status_code: int = 502
    ):
        super().__init__(message=message, code=code, status_code=status_code)


class StoreUnavailableError(StoreError):
    """The store could not be reached or answered with an unexpected error."""

    def __init__(self, message: str = "Document store unavailable"):
        super().__init__(message=message, code="STORE_UNAVAILABLE", status_code=503)


class DocumentGoneError(StoreError):
    """The stored copy being replaced no longer exists."""

    def __init__(self, message: str = "Stored document is gone"):
        super().__init__(message=message, code="DOCUMENT_GONE", status_code=410)


class ConcurrentModificationError(StoreError):
    """Another writer replaced the stored document since it was loaded."""

    def __init__(self, message: str = "Document was modified concurrently"):
        super().__init__(message=message, code="CONCURRENT_MODIFICATION", status_code=409)


class ForeignDocumentError(StoreError):
    """The persisted content does not belong to this service."""

    def __init__(self, message: str = "Persisted content is not a simulator document"):
        super().__init__(message=message, code="FOREIGN_DOCUMENT", status_code=503)


class CorruptedDocumentError(StoreError):
    """The persisted document looks like ours but cannot be parsed."""

    def __init__(self, message: str = "Persisted simulator document is corrupted"):
        super().__init__(message=message, code="CORRUPTED_DOCUMENT", status_code=503)


# External Service Exceptions

class PriceProviderError(AppException):
    """Market data provider error."""

    def __init__(self, message: str = "Price provider error", provider: Optional[str] = None):
        if provider:
            message = f"{provider}: {message}"
        super().__init__(message=message, code="PRICE_PROVIDER_ERROR", status_code=502)


class TelegramAPIError(AppException):
    """Telegram Bot API returned ok=false or an unusable response."""

    def __init__(self, method: str, description: str, error_code: Optional[int] = None):
        self.method = method
        self.description = description
        self.error_code = error_code
        super().__init__(
            message=f"TG API {method}: {description}",
            code="TELEGRAM_API_ERROR",
            status_code=502
        )


# General Exceptions

class BadRequestError(AppException):
    """Bad request."""

    def __init__(self, message: str = "Bad request"):
        super().__init__(message=message, code="BAD_REQUEST", status_code=400)


class InternalServerError(AppException):
    """Internal server error."""

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message=message, code="INTERNAL_SERVER_ERROR", status_code=500)
