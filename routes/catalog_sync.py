"""
Catalog sync API routes.

Seller feed configuration, sync triggers, uploads and sync history.
"""

from fastapi import APIRouter, Query, UploadFile, File, Form
from fastapi.responses import JSONResponse
import json
import structlog

from models.catalog_sync import (
    CatalogSyncConfigCreate,
    CatalogSyncConfigUpdate,
    CatalogSyncConfigResponse,
    MappingRulesRequest,
    MappingRulesValidationResponse,
    ParsedCatalogResponse,
    SellerSyncStatus,
    SyncLog,
    SyncRunResult,
)
from services.catalog_sync_service import CatalogSyncService, get_catalog_sync_service
from exceptions import AppError, ValidationError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/catalog-sync", tags=["Catalog Sync"])


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


def run_response(result: SyncRunResult) -> JSONResponse:
    """Sync run as JSON; failed runs keep their log in the body."""
    status_code = 200 if result.succeeded else result.error.status_code
    return JSONResponse(status_code=status_code, content=result.to_dict())


async def read_upload(file: UploadFile) -> str:
    """Uploaded feed as text."""
    content = await file.read()
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValidationError(
            "Feed file must be UTF-8 text",
            code="INVALID_FILE_ENCODING",
            details={"filename": file.filename}
        )


def parse_rules_field(raw: str) -> dict[str, str]:
    """Mapping rules sent as a JSON form field."""
    try:
        rules = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError("mapping_rules must be a JSON object", code="INVALID_MAPPING_RULES")

    if not isinstance(rules, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in rules.items()
    ):
        raise ValidationError(
            "mapping_rules must map field names to field names",
            code="INVALID_MAPPING_RULES"
        )
    return rules


# ===================
# CONFIG ROUTES
# ===================

@router.post("/configs", response_model=CatalogSyncConfigResponse, status_code=201)
async def create_sync_config(data: CatalogSyncConfigCreate):
    """
    Create a sync configuration.

    Raises:
        422: Mapping rules miss title, price or category
    """
    try:
        service = get_catalog_sync_service()
        return service.create_sync_config(data)

    except Exception as e:
        return handle_error(e)


@router.get("/configs", response_model=list[CatalogSyncConfigResponse])
async def list_seller_sync_configs(
    seller_id: str = Query(..., description="Seller whose configs to list")
):
    """List a seller's sync configurations, newest first."""
    try:
        service = get_catalog_sync_service()
        return service.get_seller_sync_configs(seller_id)

    except Exception as e:
        return handle_error(e)


@router.get("/configs/{config_id}", response_model=CatalogSyncConfigResponse)
async def get_sync_config(config_id: str):
    """
    Get a sync configuration.

    Raises:
        404: Config not found
    """
    try:
        service = get_catalog_sync_service()
        return service.get_sync_config(config_id)

    except Exception as e:
        return handle_error(e)


@router.patch("/configs/{config_id}", response_model=CatalogSyncConfigResponse)
async def update_sync_config(config_id: str, data: CatalogSyncConfigUpdate):
    """
    Update a sync configuration.

    Only provided fields are updated.
    """
    try:
        service = get_catalog_sync_service()
        return service.update_sync_config(config_id, data)

    except Exception as e:
        return handle_error(e)


@router.post("/configs/{config_id}/schedule", response_model=CatalogSyncConfigResponse)
async def schedule_sync(config_id: str):
    """Activate a config for scheduled syncing."""
    try:
        service = get_catalog_sync_service()
        config = service.get_sync_config(config_id)
        return service.schedule_sync(config)

    except Exception as e:
        return handle_error(e)


# ===================
# SYNC ROUTES
# ===================

@router.post("/configs/{config_id}/trigger")
async def trigger_manual_sync(config_id: str):
    """
    Run a stored config now.

    Only API configs can run without an upload.
    """
    try:
        service = get_catalog_sync_service()
        return run_response(service.trigger_manual_sync(config_id))

    except Exception as e:
        return handle_error(e)


@router.post("/configs/{config_id}/sync/api")
async def sync_from_api(config_id: str):
    """Pull and reconcile the config's API feed."""
    try:
        service = get_catalog_sync_service()
        config = service.get_sync_config(config_id)
        return run_response(service.sync_from_api(config))

    except Exception as e:
        return handle_error(e)


@router.post("/configs/{config_id}/sync/csv")
async def sync_from_csv(config_id: str, file: UploadFile = File(...)):
    """Reconcile an uploaded CSV feed."""
    try:
        service = get_catalog_sync_service()
        config = service.get_sync_config(config_id)
        content = await read_upload(file)
        return run_response(service.sync_from_csv(config, content))

    except Exception as e:
        return handle_error(e)


@router.post("/configs/{config_id}/sync/xml")
async def sync_from_xml(config_id: str, file: UploadFile = File(...)):
    """Reconcile an uploaded XML feed."""
    try:
        service = get_catalog_sync_service()
        config = service.get_sync_config(config_id)
        content = await read_upload(file)
        return run_response(service.sync_from_xml(config, content))

    except Exception as e:
        return handle_error(e)


@router.get("/configs/{config_id}/logs", response_model=list[SyncLog])
async def get_sync_logs(
    config_id: str,
    limit: int = Query(10, ge=1, le=100, description="Number of runs")
):
    """Most recent sync runs for a config."""
    try:
        service = get_catalog_sync_service()
        return service.get_sync_logs(config_id, limit=limit)

    except Exception as e:
        return handle_error(e)


@router.get("/sellers/{seller_id}/status", response_model=SellerSyncStatus)
async def get_seller_sync_status(seller_id: str):
    """A seller's configs with their recent runs."""
    try:
        service = get_catalog_sync_service()
        return service.get_seller_sync_status(seller_id)

    except Exception as e:
        return handle_error(e)


# ===================
# UTILITY ROUTES
# ===================

@router.post("/mapping-rules/validate", response_model=MappingRulesValidationResponse)
async def validate_mapping_rules(data: MappingRulesRequest):
    """Check that title, price and category are mapped."""
    errors = CatalogSyncService.validate_mapping_rules(data.mapping_rules)
    return MappingRulesValidationResponse(valid=not errors, errors=errors)


@router.post("/parse/csv", response_model=ParsedCatalogResponse)
async def parse_csv_catalog(
    file: UploadFile = File(...),
    mapping_rules: str = Form(..., description="JSON object: product field -> column")
):
    """Preview how a CSV feed maps, without writing to the catalog."""
    try:
        service = get_catalog_sync_service()
        rules = parse_rules_field(mapping_rules)
        content = await read_upload(file)
        products = service.parse_csv_catalog(content, rules)
        return ParsedCatalogResponse(products=products, count=len(products))

    except Exception as e:
        return handle_error(e)


@router.post("/parse/xml", response_model=ParsedCatalogResponse)
async def parse_xml_catalog(
    file: UploadFile = File(...),
    mapping_rules: str = Form(..., description="JSON object: product field -> tag")
):
    """Preview how an XML feed maps, without writing to the catalog."""
    try:
        service = get_catalog_sync_service()
        rules = parse_rules_field(mapping_rules)
        content = await read_upload(file)
        products = service.parse_xml_catalog(content, rules)
        return ParsedCatalogResponse(products=products, count=len(products))

    except Exception as e:
        return handle_error(e)
