"""
CSV catalog feed parser.

Format: first line is the header, one product per line, fields
separated by a bare comma. There is no quoting, so a comma inside a
value shifts the columns; such rows usually fail the column-count
check and are dropped.
"""

from typing import Any
import structlog

from parsers.field_mapper import map_record, finalize_listing

logger = structlog.get_logger(__name__)

CSV_IMAGES_DELIMITER = "|"


def parse_csv_catalog(
    csv_content: str,
    mapping_rules: dict[str, str]
) -> list[dict[str, Any]]:
    """
    Parse CSV text into mapped products.

    Rows whose field count differs from the header's are skipped
    without error.

    Args:
        csv_content: Raw CSV text
        mapping_rules: Product field -> CSV column name

    Returns:
        List of partial product dicts with zetta_price and status set
    """
    lines = csv_content.split("\n")
    headers = [h.strip() for h in lines[0].split(",")]

    products: list[dict[str, Any]] = []
    skipped = 0

    for line_number, line in enumerate(lines[1:], start=2):
        values = [v.strip() for v in line.split(",")]
        if len(values) != len(headers):
            skipped += 1
            logger.debug(
                "csv_row_skipped",
                line=line_number,
                expected_columns=len(headers),
                found_columns=len(values)
            )
            continue

        raw = dict(zip(headers, values))
        product = map_record(raw, mapping_rules, images_delimiter=CSV_IMAGES_DELIMITER)
        products.append(finalize_listing(product))

    logger.info(
        "csv_catalog_parsed",
        products=len(products),
        rows_skipped=skipped
    )

    return products
