"""
Field mapping from raw feed records to marketplace products.

A raw record is a flat dict keyed by the feed's own field names.
Mapping rules say which feed field fills which product field.
"""

from typing import Any
import re

from models.product import MAPPABLE_FIELDS, TEXT_FIELDS, ProductStatus
from utils.pricing import derive_zetta_price

# Leading numeric prefix, so "12.50 USD" reads as 12.5
_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")


def _as_text(value: Any) -> str:
    """Feed value as a string; missing or null reads as empty."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def parse_price(value: Any) -> float:
    """Parse a price; anything unreadable is 0."""
    match = _FLOAT_PREFIX.match(_as_text(value))
    if not match:
        return 0
    return float(match.group(1))


def parse_whole_number(value: Any) -> int:
    """Parse an integer such as warranty months; anything unreadable is 0."""
    match = _INT_PREFIX.match(_as_text(value))
    if not match:
        return 0
    return int(match.group(1))


def resolve_source(raw: dict[str, Any], source_field: str) -> Any:
    """
    Read a source field from a raw record.

    A key that exists as written wins. Otherwise a dotted name such as
    "pricing.amount" walks nested objects, as JSON feeds send them.
    Anything missing along the way reads as None.
    """
    if source_field in raw:
        return raw[source_field]

    value: Any = raw
    for key in source_field.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def split_images(value: Any, delimiter: str) -> list[str]:
    """Split a delimited image list. JSON feeds may already send a list."""
    if isinstance(value, (list, tuple)):
        return [_as_text(v) for v in value]
    text = _as_text(value)
    if not text:
        return []
    return text.split(delimiter)


def map_record(
    raw: dict[str, Any],
    mapping_rules: dict[str, str],
    images_delimiter: str = ","
) -> dict[str, Any]:
    """
    Apply mapping rules to one raw record.

    Only mapped fields appear on the result. Target fields outside
    MAPPABLE_FIELDS are ignored. Condition is passed through as text.
    Source fields may be dotted paths into nested objects.

    Args:
        raw: Feed field -> value
        mapping_rules: Product field -> feed field
        images_delimiter: Separator for the images field

    Returns:
        Partial product dict
    """
    product: dict[str, Any] = {}

    for target_field, source_field in mapping_rules.items():
        if target_field not in MAPPABLE_FIELDS:
            continue

        value = resolve_source(raw, source_field)

        if target_field in TEXT_FIELDS:
            product[target_field] = _as_text(value)
        elif target_field == "price":
            product["price"] = parse_price(value)
        elif target_field == "images":
            product["images"] = split_images(value, images_delimiter)
        elif target_field == "warranty_duration":
            product["warranty_duration"] = parse_whole_number(value)

    return product


def finalize_listing(product: dict[str, Any]) -> dict[str, Any]:
    """
    Set the derived price and mark the product available.

    zetta_price is only set when the product has a non-zero price.
    """
    zetta_price = derive_zetta_price(product.get("price"))
    if zetta_price is not None:
        product["zetta_price"] = zetta_price

    product["status"] = ProductStatus.AVAILABLE.value
    return product
