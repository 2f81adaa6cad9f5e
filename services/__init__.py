"""
Business logic services.

Each service handles one domain area.
"""

from services.catalog_reconciler import CatalogReconciler
from services.catalog_sync_service import CatalogSyncService, get_catalog_sync_service

__all__ = [
    "CatalogReconciler",
    "CatalogSyncService",
    "get_catalog_sync_service",
]
