"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.catalog_sync import router as catalog_sync_router

__all__ = [
    "catalog_sync_router",
]
