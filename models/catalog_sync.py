"""
Catalog sync schemas for validation and serialization.

Covers seller feed configurations, sync run logs and the
results returned by sync entry points.
"""

from pydantic import ConfigDict, Field, field_validator, model_validator
from dataclasses import dataclass
from typing import Any, Optional
from enum import Enum
from datetime import datetime, timezone

from models.base import BaseSchema
from exceptions import AppError


class SyncType(str, Enum):
    """Where a seller's feed comes from."""
    API = "api"
    CSV = "csv"
    XML = "xml"
    MANUAL = "manual"


class SyncSchedule(str, Enum):
    """How often the feed should be pulled."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    MANUAL = "manual"


class SyncConfigStatus(str, Enum):
    """Sync configuration status."""
    ACTIVE = "active"
    PAUSED = "paused"
    ERROR = "error"


class SyncLogStatus(str, Enum):
    """Sync run status. RUNNING is the only non-terminal state."""
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class ReconcileOutcome(str, Enum):
    """What reconciliation did with one mapped product."""
    CREATED = "created"
    UPDATED = "updated"


REQUIRED_MAPPING_FIELDS = ("title", "price", "category")


def missing_mapping_errors(mapping_rules: dict[str, str]) -> list[str]:
    """
    List a message per required target field with no mapping.

    Empty or blank source names count as missing.

    Args:
        mapping_rules: target field -> source field

    Returns:
        Error strings, empty when the rules are complete
    """
    return [
        f"Missing mapping for required field: {field}"
        for field in REQUIRED_MAPPING_FIELDS
        if not (mapping_rules.get(field) or "").strip()
    ]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ===================
# SYNC CONFIG SCHEMAS
# ===================

class CatalogSyncConfigCreate(BaseSchema):
    """
    Create a new sync configuration.

    Required: seller_id, sync_type, mapping_rules
    """

    seller_id: str = Field(
        ...,
        min_length=1,
        description="Seller that owns the feed"
    )
    sync_type: SyncType = Field(
        ...,
        description="Feed source type"
    )
    source_url: Optional[str] = Field(
        None,
        description="Feed URL for pull-style syncs"
    )
    api_key: Optional[str] = Field(
        None,
        description="Bearer token sent with API feed requests"
    )
    mapping_rules: dict[str, str] = Field(
        ...,
        description="Marketplace field -> feed field",
        examples=[{"title": "name", "price": "cost", "category": "type"}]
    )
    schedule: SyncSchedule = Field(
        SyncSchedule.MANUAL,
        description="Sync frequency"
    )
    status: SyncConfigStatus = Field(
        SyncConfigStatus.ACTIVE,
        description="Configuration status"
    )

    @field_validator("mapping_rules")
    @classmethod
    def mapping_rules_complete(cls, v: dict[str, str]) -> dict[str, str]:
        """Required fields must be mapped before a config is saved."""
        errors = missing_mapping_errors(v)
        if errors:
            raise ValueError("; ".join(errors))
        return v


class CatalogSyncConfigUpdate(BaseSchema):
    """
    Update existing sync configuration.

    All fields optional - only provided fields are updated.
    last_sync is not accepted; only a successful sync run sets it.
    """
    model_config = ConfigDict(extra="forbid")

    sync_type: Optional[SyncType] = None
    source_url: Optional[str] = None
    api_key: Optional[str] = None
    mapping_rules: Optional[dict[str, str]] = None
    schedule: Optional[SyncSchedule] = None
    status: Optional[SyncConfigStatus] = None

    @field_validator("mapping_rules")
    @classmethod
    def mapping_rules_complete(cls, v: Optional[dict[str, str]]) -> Optional[dict[str, str]]:
        if v is None:
            return v
        errors = missing_mapping_errors(v)
        if errors:
            raise ValueError("; ".join(errors))
        return v


class CatalogSyncConfigResponse(BaseSchema):
    """Sync configuration as stored."""

    id: str = Field(..., description="Config UUID")
    seller_id: str
    sync_type: SyncType
    source_url: Optional[str] = None
    # Needed to call the feed, never echoed back to clients
    api_key: Optional[str] = Field(None, exclude=True)
    mapping_rules: dict[str, str] = Field(default_factory=dict)
    schedule: SyncSchedule = SyncSchedule.MANUAL
    last_sync: Optional[datetime] = None
    status: SyncConfigStatus = SyncConfigStatus.ACTIVE
    created_at: Optional[datetime] = None


# ===================
# SYNC LOG
# ===================

class SyncLog(BaseSchema):
    """
    One sync run.

    Treated as a value: each step returns a new log instead of
    mutating counters in place. completed_at is set exactly when
    status is no longer RUNNING.
    """

    id: Optional[str] = Field(None, description="Set once persisted")
    config_id: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    status: SyncLogStatus = SyncLogStatus.RUNNING
    products_added: int = Field(0, ge=0)
    products_updated: int = Field(0, ge=0)
    # Never incremented: feeds carry no removal signal
    products_removed: int = Field(0, ge=0)
    error_message: Optional[str] = None

    @model_validator(mode="after")
    def completed_at_matches_status(self) -> "SyncLog":
        finished = self.status != SyncLogStatus.RUNNING
        if finished != (self.completed_at is not None):
            raise ValueError("completed_at must be set exactly when the run has finished")
        return self

    @classmethod
    def start(cls, config_id: str) -> "SyncLog":
        """Open a running log for a config."""
        return cls(config_id=config_id, started_at=utc_now())

    @property
    def is_finished(self) -> bool:
        return self.status != SyncLogStatus.RUNNING

    def with_outcome(self, outcome: ReconcileOutcome) -> "SyncLog":
        """Count one reconciled product."""
        if self.is_finished:
            raise ValueError("Cannot record outcomes on a finished sync log")
        if outcome == ReconcileOutcome.CREATED:
            return self.model_copy(update={"products_added": self.products_added + 1})
        return self.model_copy(update={"products_updated": self.products_updated + 1})

    def finish(
        self,
        status: SyncLogStatus,
        error_message: Optional[str] = None
    ) -> "SyncLog":
        """Close the run as SUCCESS or FAILED."""
        if self.is_finished:
            raise ValueError("Sync log is already finished")
        if status == SyncLogStatus.RUNNING:
            raise ValueError("A sync log can only finish as success or failed")
        return self.model_copy(update={
            "status": status,
            "completed_at": utc_now(),
            "error_message": error_message,
        })

    def to_row(self) -> dict[str, Any]:
        """Row for the sync_logs table."""
        return self.model_dump(mode="json", exclude={"id"})


@dataclass
class SyncRunResult:
    """
    Data/error pair returned by sync entry points.

    A failed run carries both its log and the error; configuration
    errors carry only the error.
    """
    log: Optional[SyncLog] = None
    error: Optional[AppError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        return {
            "log": self.log.model_dump(mode="json") if self.log else None,
            "error": self.error.to_dict()["error"] if self.error else None,
        }


# ===================
# API SCHEMAS
# ===================

class MappingRulesRequest(BaseSchema):
    """Mapping rules to check."""
    mapping_rules: dict[str, str] = Field(default_factory=dict)


class MappingRulesValidationResponse(BaseSchema):
    """Result of mapping rule validation."""
    valid: bool
    errors: list[str]


class ParsedCatalogResponse(BaseSchema):
    """Products decoded from an uploaded feed, not yet reconciled."""
    products: list[dict[str, Any]]
    count: int


class SellerSyncStatus(BaseSchema):
    """All of a seller's configs with their recent runs."""
    configs: list[CatalogSyncConfigResponse]
    recent_logs: list[SyncLog]
