"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ExternalServiceError,
    DatabaseError,

    # Sync configuration
    SyncConfigNotFoundError,
    MappingRulesError,
    UnsupportedSyncTypeError,

    # Feeds
    CatalogFeedError,

    # Notifications
    TelegramError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ExternalServiceError",
    "DatabaseError",

    # Sync configuration
    "SyncConfigNotFoundError",
    "MappingRulesError",
    "UnsupportedSyncTypeError",

    # Feeds
    "CatalogFeedError",

    # Notifications
    "TelegramError",
]
