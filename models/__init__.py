"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
)
from models.product import (
    ProductStatus,
    MAPPABLE_FIELDS,
)
from models.catalog_sync import (
    SyncType,
    SyncSchedule,
    SyncConfigStatus,
    SyncLogStatus,
    ReconcileOutcome,
    REQUIRED_MAPPING_FIELDS,
    missing_mapping_errors,
    CatalogSyncConfigCreate,
    CatalogSyncConfigUpdate,
    CatalogSyncConfigResponse,
    SyncLog,
    SyncRunResult,
    MappingRulesRequest,
    MappingRulesValidationResponse,
    ParsedCatalogResponse,
    SellerSyncStatus,
)

__all__ = [
    # Base
    "BaseSchema",

    # Product
    "ProductStatus",
    "MAPPABLE_FIELDS",

    # Catalog sync
    "SyncType",
    "SyncSchedule",
    "SyncConfigStatus",
    "SyncLogStatus",
    "ReconcileOutcome",
    "REQUIRED_MAPPING_FIELDS",
    "missing_mapping_errors",
    "CatalogSyncConfigCreate",
    "CatalogSyncConfigUpdate",
    "CatalogSyncConfigResponse",
    "SyncLog",
    "SyncRunResult",
    "MappingRulesRequest",
    "MappingRulesValidationResponse",
    "ParsedCatalogResponse",
    "SellerSyncStatus",
]
