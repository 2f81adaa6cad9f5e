"""
Seller API feed client.

Fetches a seller's product feed over HTTP. The body must be a JSON
array of product objects, or an object with a "products" array.
"""

from typing import Any, Optional
import requests
import structlog

from config.settings import settings
from exceptions import CatalogFeedError

logger = structlog.get_logger(__name__)


def build_headers(api_key: Optional[str]) -> dict[str, str]:
    """Bearer auth header when the config carries an API key."""
    if not api_key:
        return {}
    return {"Authorization": f"Bearer {api_key}"}


def extract_products(payload: Any) -> list[dict[str, Any]]:
    """
    Pull the product list out of a decoded feed body.

    Args:
        payload: Decoded JSON

    Returns:
        List of raw product records

    Raises:
        CatalogFeedError: If the body has neither shape
    """
    if isinstance(payload, list):
        products = payload
    elif isinstance(payload, dict):
        products = payload.get("products") or []
    else:
        raise CatalogFeedError(
            "Feed must be a JSON array or an object with a 'products' array",
            details={"payload_type": type(payload).__name__}
        )

    if not isinstance(products, list):
        raise CatalogFeedError(
            "Feed 'products' must be an array",
            details={"products_type": type(products).__name__}
        )

    records = [p for p in products if isinstance(p, dict)]
    if len(records) != len(products):
        logger.warning(
            "feed_non_object_records_ignored",
            ignored=len(products) - len(records)
        )
    return records


def fetch_catalog_feed(
    source_url: str,
    api_key: Optional[str] = None
) -> list[dict[str, Any]]:
    """
    GET a seller's feed and return its raw product records.

    Args:
        source_url: Feed URL
        api_key: Optional bearer token

    Returns:
        List of raw product records

    Raises:
        CatalogFeedError: On network failure, non-2xx status or bad body
    """
    logger.info("fetching_catalog_feed", url=source_url, authenticated=bool(api_key))

    try:
        response = requests.get(
            source_url,
            headers=build_headers(api_key),
            timeout=settings.catalog_feed_timeout_seconds
        )
    except requests.exceptions.RequestException as e:
        logger.error("catalog_feed_request_failed", url=source_url, error=str(e))
        raise CatalogFeedError(f"Failed to fetch feed: {e}", details={"url": source_url})

    # Redirects that were not followed count as failures too
    if not 200 <= response.status_code < 300:
        logger.error(
            "catalog_feed_bad_status",
            url=source_url,
            status_code=response.status_code
        )
        raise CatalogFeedError(
            f"API returned {response.status_code}",
            details={"url": source_url, "status_code": response.status_code}
        )

    try:
        payload = response.json()
    except ValueError as e:
        logger.error("catalog_feed_invalid_json", url=source_url, error=str(e))
        raise CatalogFeedError("Feed body is not valid JSON", details={"url": source_url})

    records = extract_products(payload)
    logger.info("catalog_feed_fetched", url=source_url, records=len(records))
    return records
