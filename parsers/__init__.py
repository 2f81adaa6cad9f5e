"""
Catalog feed parsers.

Decode seller feeds into partial marketplace products.
"""

from parsers.field_mapper import (
    map_record,
    finalize_listing,
)
from parsers.csv_catalog_parser import parse_csv_catalog
from parsers.xml_catalog_parser import parse_xml_catalog

__all__ = [
    "map_record",
    "finalize_listing",
    "parse_csv_catalog",
    "parse_xml_catalog",
]
