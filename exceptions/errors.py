"""
Custom exception classes for the application.

Every error carries a machine-readable code, an HTTP status
and optional details for the API response body.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "SYNC_CONFIG_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# SYNC CONFIG ERRORS
# ===================

class SyncConfigNotFoundError(NotFoundError):
    """Catalog sync configuration not found."""

    def __init__(self, config_id: str):
        super().__init__(
            resource="Sync configuration",
            identifier=config_id,
            code="SYNC_CONFIG_NOT_FOUND"
        )


class MappingRulesError(ValidationError):
    """Mapping rules miss one or more required target fields."""

    def __init__(self, errors: list[str]):
        super().__init__(
            code="MAPPING_RULES_INVALID",
            message=f"Mapping rules are incomplete ({len(errors)} missing)",
            details={"errors": errors}
        )


class UnsupportedSyncTypeError(ValidationError):
    """Sync type cannot be run from the requested entry point."""

    def __init__(self, sync_type: str, reason: str):
        super().__init__(
            code="UNSUPPORTED_SYNC_TYPE",
            message=reason,
            details={"sync_type": sync_type}
        )


# ===================
# FEED ERRORS
# ===================

class CatalogFeedError(ExternalServiceError):
    """Seller's catalog feed could not be fetched or decoded."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            service="catalog_feed",
            message=message,
            details=details
        )


# ===================
# TELEGRAM ERRORS
# ===================

class TelegramError(AppError):
    """Telegram API error."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="TELEGRAM_ERROR",
            message=message,
            status_code=500,
            details=details
        )
