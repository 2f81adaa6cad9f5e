"""
Catalog sync service.

Owns seller feed configurations and drives sync runs: fetch or
receive a feed, map it, reconcile every product, and record the run
in a SyncLog.
"""

from contextlib import contextmanager
from threading import Lock
from weakref import WeakValueDictionary
from typing import Any, Callable, Iterator, Optional
import structlog

from config import get_supabase_client, settings
from models.catalog_sync import (
    CatalogSyncConfigCreate,
    CatalogSyncConfigUpdate,
    CatalogSyncConfigResponse,
    SellerSyncStatus,
    SyncConfigStatus,
    SyncLog,
    SyncLogStatus,
    SyncRunResult,
    SyncType,
    missing_mapping_errors,
    utc_now,
)
from parsers import map_record, finalize_listing, parse_csv_catalog, parse_xml_catalog
from integrations.catalog_feed import fetch_catalog_feed
from integrations.telegram import send_sync_failure_alert
from services.catalog_reconciler import CatalogReconciler
from exceptions import (
    AppError,
    DatabaseError,
    MappingRulesError,
    SyncConfigNotFoundError,
    TelegramError,
    UnsupportedSyncTypeError,
    ValidationError,
)

logger = structlog.get_logger(__name__)

API_IMAGES_DELIMITER = ","
SELLER_STATUS_LOG_LIMIT = 20

# One lock per seller: runs for a seller never interleave in this process.
# An entry lives only while some run holds or waits on its lock.
_seller_locks: "WeakValueDictionary[str, Lock]" = WeakValueDictionary()
_seller_locks_guard = Lock()


@contextmanager
def seller_sync_lock(seller_id: str) -> Iterator[None]:
    """Hold the in-process sync lock for a seller."""
    with _seller_locks_guard:
        lock = _seller_locks.setdefault(seller_id, Lock())
    with lock:
        yield


class CatalogSyncService:
    """
    Catalog sync business logic.

    Config CRUD, feed parsing, sync runs and sync log queries.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.configs_table = "catalog_sync_configs"
        self.logs_table = "sync_logs"
        self.reconciler = CatalogReconciler()

    # ===================
    # CONFIG OPERATIONS
    # ===================

    def create_sync_config(self, data: CatalogSyncConfigCreate) -> CatalogSyncConfigResponse:
        """
        Create a sync configuration for a seller.

        Args:
            data: Validated config (required fields already mapped)

        Returns:
            Created CatalogSyncConfigResponse
        """
        logger.info(
            "creating_sync_config",
            seller_id=data.seller_id,
            sync_type=data.sync_type.value
        )

        try:
            result = (
                self.db.table(self.configs_table)
                .insert(data.model_dump(mode="json"))
                .execute()
            )

            config = CatalogSyncConfigResponse(**result.data[0])

            logger.info("sync_config_created", config_id=config.id)

            return config

        except Exception as e:
            logger.error(
                "create_sync_config_failed",
                seller_id=data.seller_id,
                error=str(e)
            )
            raise DatabaseError("insert", str(e))

    def get_sync_config(self, config_id: str) -> CatalogSyncConfigResponse:
        """
        Get a sync configuration by ID.

        Raises:
            SyncConfigNotFoundError: If config doesn't exist
        """
        logger.debug("getting_sync_config", config_id=config_id)

        try:
            result = (
                self.db.table(self.configs_table)
                .select("*")
                .eq("id", config_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("get_sync_config_failed", config_id=config_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise SyncConfigNotFoundError(config_id)

        return CatalogSyncConfigResponse(**result.data[0])

    def get_seller_sync_configs(self, seller_id: str) -> list[CatalogSyncConfigResponse]:
        """
        Get a seller's sync configurations, newest first.
        """
        logger.debug("getting_seller_sync_configs", seller_id=seller_id)

        try:
            result = (
                self.db.table(self.configs_table)
                .select("*")
                .eq("seller_id", seller_id)
                .order("created_at", desc=True)
                .execute()
            )

            return [CatalogSyncConfigResponse(**row) for row in result.data]

        except Exception as e:
            logger.error(
                "get_seller_sync_configs_failed",
                seller_id=seller_id,
                error=str(e)
            )
            raise DatabaseError("select", str(e))

    def update_sync_config(
        self,
        config_id: str,
        data: CatalogSyncConfigUpdate
    ) -> CatalogSyncConfigResponse:
        """
        Update a sync configuration.

        Only provided fields are updated.

        Raises:
            SyncConfigNotFoundError: If config doesn't exist
        """
        logger.info("updating_sync_config", config_id=config_id)

        existing = self.get_sync_config(config_id)

        update_data = data.model_dump(mode="json", exclude_unset=True)
        if not update_data:
            return existing

        self._patch_config(config_id, update_data)

        logger.info(
            "sync_config_updated",
            config_id=config_id,
            fields=list(update_data.keys())
        )

        return existing.model_copy(update=data.model_dump(exclude_unset=True))

    def _patch_config(self, config_id: str, fields: dict[str, Any]) -> None:
        """Write raw column values to a config row."""
        try:
            (
                self.db.table(self.configs_table)
                .update(fields)
                .eq("id", config_id)
                .execute()
            )
        except Exception as e:
            logger.error(
                "update_sync_config_failed",
                config_id=config_id,
                error=str(e)
            )
            raise DatabaseError("update", str(e))

    def schedule_sync(self, config: CatalogSyncConfigResponse) -> CatalogSyncConfigResponse:
        """
        Mark a config active for its schedule.

        No timer is installed here; periodic triggering is done by
        whatever runs trigger_manual_sync on the schedule.
        """
        self._patch_config(config.id, {"status": SyncConfigStatus.ACTIVE.value})

        logger.info(
            "sync_scheduled",
            config_id=config.id,
            schedule=config.schedule.value
        )

        return config.model_copy(update={"status": SyncConfigStatus.ACTIVE})

    # ===================
    # PARSING
    # ===================

    def parse_csv_catalog(
        self,
        csv_content: str,
        mapping_rules: dict[str, str]
    ) -> list[dict[str, Any]]:
        """Decode a CSV feed without touching the catalog."""
        return parse_csv_catalog(csv_content, mapping_rules)

    def parse_xml_catalog(
        self,
        xml_content: str,
        mapping_rules: dict[str, str]
    ) -> list[dict[str, Any]]:
        """Decode an XML feed without touching the catalog."""
        return parse_xml_catalog(xml_content, mapping_rules)

    @staticmethod
    def validate_mapping_rules(mapping_rules: dict[str, str]) -> list[str]:
        """
        Check that title, price and category are mapped.

        Returns:
            One message per missing field; empty means valid
        """
        return missing_mapping_errors(mapping_rules)

    # ===================
    # SYNC RUNS
    # ===================

    def sync_from_api(self, config: CatalogSyncConfigResponse) -> SyncRunResult:
        """
        Pull the seller's API feed and reconcile it.

        Returns:
            SyncRunResult; a failed run carries its log and the error
        """
        if not config.source_url:
            return SyncRunResult(error=ValidationError(
                "Source URL is required for API sync",
                code="SOURCE_URL_REQUIRED",
                details={"config_id": config.id}
            ))

        def load_products() -> list[dict[str, Any]]:
            records = fetch_catalog_feed(config.source_url, config.api_key)
            return [
                finalize_listing(
                    map_record(record, config.mapping_rules, images_delimiter=API_IMAGES_DELIMITER)
                )
                for record in records
            ]

        return self._run(config, load_products, source=SyncType.API.value)

    def sync_from_csv(self, config: CatalogSyncConfigResponse, csv_content: str) -> SyncRunResult:
        """Reconcile an uploaded CSV feed."""
        return self._run(
            config,
            lambda: parse_csv_catalog(csv_content, config.mapping_rules),
            source=SyncType.CSV.value
        )

    def sync_from_xml(self, config: CatalogSyncConfigResponse, xml_content: str) -> SyncRunResult:
        """Reconcile an uploaded XML feed."""
        return self._run(
            config,
            lambda: parse_xml_catalog(xml_content, config.mapping_rules),
            source=SyncType.XML.value
        )

    def trigger_manual_sync(self, config_id: str) -> SyncRunResult:
        """
        Run a stored config now.

        Only API configs can run from the config alone; CSV and XML
        feeds need an uploaded payload.
        """
        logger.info("manual_sync_triggered", config_id=config_id)

        try:
            config = self.get_sync_config(config_id)
        except AppError as e:
            logger.warning("manual_sync_config_unavailable", config_id=config_id, error=e.message)
            return SyncRunResult(error=e)

        if config.sync_type == SyncType.API:
            return self.sync_from_api(config)

        if config.sync_type in (SyncType.CSV, SyncType.XML):
            reason = f"{config.sync_type.value.upper()} sync requires file upload"
        else:
            reason = "Unsupported sync type"

        return SyncRunResult(error=UnsupportedSyncTypeError(config.sync_type.value, reason))

    def _run(
        self,
        config: CatalogSyncConfigResponse,
        load_products: Callable[[], list[dict[str, Any]]],
        source: str
    ) -> SyncRunResult:
        """
        Shared run envelope for every feed type.

        Products are reconciled one at a time. The first error ends
        the run as FAILED; writes already made are kept.
        """
        if settings.catalog_sync_require_valid_mapping:
            errors = missing_mapping_errors(config.mapping_rules)
            if errors:
                logger.warning(
                    "catalog_sync_rejected",
                    config_id=config.id,
                    errors=errors
                )
                return SyncRunResult(error=MappingRulesError(errors))

        error: Optional[AppError] = None

        with seller_sync_lock(config.seller_id):
            # Started once the lock is held, so queueing is not run time
            log = SyncLog.start(config.id)

            logger.info(
                "catalog_sync_started",
                config_id=config.id,
                seller_id=config.seller_id,
                source=source
            )

            try:
                for product in load_products():
                    outcome = self.reconciler.reconcile(product, config.seller_id)
                    log = log.with_outcome(outcome)

                self._patch_config(config.id, {"last_sync": utc_now().isoformat()})
                log = log.finish(SyncLogStatus.SUCCESS)

            except AppError as e:
                error = e
                log = log.finish(SyncLogStatus.FAILED, e.message)
            except Exception as e:
                logger.error(
                    "catalog_sync_unexpected_error",
                    config_id=config.id,
                    error=str(e),
                    error_type=type(e).__name__
                )
                error = AppError(code="CATALOG_SYNC_ERROR", message=str(e))
                log = log.finish(SyncLogStatus.FAILED, str(e))

        log = self._save_sync_log(log)

        logger.info(
            "catalog_sync_finished",
            config_id=config.id,
            status=log.status.value,
            added=log.products_added,
            updated=log.products_updated,
            error=log.error_message
        )

        if error is not None:
            self._on_sync_failed(config, log)

        return SyncRunResult(log=log, error=error)

    def _save_sync_log(self, log: SyncLog) -> SyncLog:
        """
        Persist a finished log.

        A failed insert does not change the run's outcome; the
        in-memory log is returned without an id.
        """
        try:
            result = self.db.table(self.logs_table).insert(log.to_row()).execute()
        except Exception as e:
            logger.error(
                "sync_log_persist_failed",
                config_id=log.config_id,
                error=str(e)
            )
            return log

        if result.data:
            return log.model_copy(update={"id": result.data[0].get("id")})
        return log

    def _on_sync_failed(self, config: CatalogSyncConfigResponse, log: SyncLog) -> None:
        """
        Failure hook.

        Moving the config to ERROR after repeated failures is left to
        an external policy; this only reports the failure.
        """
        logger.warning(
            "catalog_sync_failed",
            config_id=config.id,
            seller_id=config.seller_id,
            error=log.error_message
        )

        if not settings.telegram_configured:
            return

        try:
            send_sync_failure_alert(config, log)
        except TelegramError as e:
            logger.error(
                "sync_failure_alert_failed",
                config_id=config.id,
                error=e.message
            )

    # ===================
    # SYNC LOGS
    # ===================

    def get_sync_logs(self, config_id: str, limit: Optional[int] = None) -> list[SyncLog]:
        """
        Get a config's most recent sync logs, newest first.
        """
        limit = limit or settings.catalog_sync_log_limit

        try:
            result = (
                self.db.table(self.logs_table)
                .select("*")
                .eq("config_id", config_id)
                .order("started_at", desc=True)
                .limit(limit)
                .execute()
            )

            return [SyncLog(**row) for row in result.data]

        except Exception as e:
            logger.error("get_sync_logs_failed", config_id=config_id, error=str(e))
            raise DatabaseError("select", str(e))

    def get_seller_sync_status(self, seller_id: str) -> SellerSyncStatus:
        """
        A seller's configs plus their most recent runs.
        """
        configs = self.get_seller_sync_configs(seller_id)
        config_ids = [c.id for c in configs]

        if not config_ids:
            return SellerSyncStatus(configs=[], recent_logs=[])

        try:
            result = (
                self.db.table(self.logs_table)
                .select("*")
                .in_("config_id", config_ids)
                .order("started_at", desc=True)
                .limit(SELLER_STATUS_LOG_LIMIT)
                .execute()
            )
        except Exception as e:
            logger.error("get_seller_sync_status_failed", seller_id=seller_id, error=str(e))
            raise DatabaseError("select", str(e))

        return SellerSyncStatus(
            configs=configs,
            recent_logs=[SyncLog(**row) for row in result.data]
        )


# Singleton instance for convenience
_catalog_sync_service: Optional[CatalogSyncService] = None

def get_catalog_sync_service() -> CatalogSyncService:
    """Get or create CatalogSyncService instance."""
    global _catalog_sync_service
    if _catalog_sync_service is None:
        _catalog_sync_service = CatalogSyncService()
    return _catalog_sync_service
