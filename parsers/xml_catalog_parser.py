"""
XML catalog feed parser.

A flat scan for <product>...</product> blocks and, inside each, the
first <field>...</field> pair named by a mapping rule. This is an
approximation, not an XML parser: nested product tags, attributes,
namespaces, CDATA and entities are not understood.
"""

from typing import Any
import re
import structlog

from parsers.field_mapper import map_record, finalize_listing

logger = structlog.get_logger(__name__)

XML_IMAGES_DELIMITER = ","

_PRODUCT_BLOCK = re.compile(r"<product>[\s\S]*?</product>")


def _extract_tag(block: str, tag: str) -> str:
    """Text of the first <tag>...</tag> in block, stripped; empty if absent."""
    name = re.escape(tag)
    match = re.search(rf"<{name}>([\s\S]*?)</{name}>", block, re.IGNORECASE)
    return match.group(1).strip() if match else ""


def parse_xml_catalog(
    xml_content: str,
    mapping_rules: dict[str, str]
) -> list[dict[str, Any]]:
    """
    Parse XML text into mapped products.

    Args:
        xml_content: Raw XML text
        mapping_rules: Product field -> tag name

    Returns:
        List of partial product dicts with zetta_price and status set
    """
    products: list[dict[str, Any]] = []

    for block in _PRODUCT_BLOCK.findall(xml_content):
        raw = {
            source_field: _extract_tag(block, source_field)
            for source_field in mapping_rules.values()
        }
        product = map_record(raw, mapping_rules, images_delimiter=XML_IMAGES_DELIMITER)
        products.append(finalize_listing(product))

    logger.info("xml_catalog_parsed", products=len(products))

    return products
