"""
Marketplace product vocabulary.

Products are owned by the store; the catalog sync only creates and
updates them, so only the enums and field names it writes live here.
"""

from enum import Enum


class ProductStatus(str, Enum):
    """Listing availability."""
    AVAILABLE = "available"
    SOLD = "sold"
    PENDING = "pending"


# Target fields a mapping rule may point at
TEXT_FIELDS = ("title", "description", "category", "condition")
MAPPABLE_FIELDS = TEXT_FIELDS + ("price", "images", "warranty_duration")
