"""
Catalog reconciliation.

Decides, per mapped product, whether to create a new catalog entry
or update the seller's existing one with the same title.

The existence check and the write are two separate store calls, so
two runs for the same seller in parallel can both insert. Callers
serialize runs per seller.
"""

from typing import Any, Optional
import structlog

from config import get_supabase_client
from models.catalog_sync import ReconcileOutcome
from exceptions import DatabaseError

logger = structlog.get_logger(__name__)


class CatalogReconciler:
    """
    Create-or-update of mapped products in the products table.

    Match key is (seller_id, title), exact and case-sensitive.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "products"

    def find_existing(self, seller_id: str, title: Any) -> Optional[str]:
        """
        Find the seller's product with this exact title.

        Returns:
            Product id, or None if there is no match
        """
        try:
            result = (
                self.db.table(self.table)
                .select("id")
                .eq("seller_id", seller_id)
                .eq("title", title)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error(
                "find_existing_product_failed",
                seller_id=seller_id,
                title=title,
                error=str(e)
            )
            raise DatabaseError("select", str(e))

        if not result.data:
            return None
        return result.data[0]["id"]

    def reconcile(self, mapped_product: dict[str, Any], seller_id: str) -> ReconcileOutcome:
        """
        Write one mapped product to the catalog.

        Existing match: update only the fields present on the mapped
        product. No match: insert it with seller_id. Store failures
        raise and are not retried; earlier writes stay committed.

        Args:
            mapped_product: Partial product from the field mapper
            seller_id: Owning seller

        Returns:
            ReconcileOutcome.UPDATED or ReconcileOutcome.CREATED

        Raises:
            DatabaseError: If any store call fails
        """
        title = mapped_product.get("title")
        existing_id = self.find_existing(seller_id, title)

        if existing_id:
            try:
                (
                    self.db.table(self.table)
                    .update(mapped_product)
                    .eq("id", existing_id)
                    .execute()
                )
            except Exception as e:
                logger.error(
                    "update_synced_product_failed",
                    product_id=existing_id,
                    error=str(e)
                )
                raise DatabaseError("update", str(e))

            logger.debug(
                "product_reconciled",
                outcome=ReconcileOutcome.UPDATED.value,
                product_id=existing_id,
                fields=list(mapped_product.keys())
            )
            return ReconcileOutcome.UPDATED

        insert_data = {**mapped_product, "seller_id": seller_id}
        try:
            self.db.table(self.table).insert(insert_data).execute()
        except Exception as e:
            logger.error(
                "insert_synced_product_failed",
                seller_id=seller_id,
                title=title,
                error=str(e)
            )
            raise DatabaseError("insert", str(e))

        logger.debug(
            "product_reconciled",
            outcome=ReconcileOutcome.CREATED.value,
            seller_id=seller_id,
            title=title
        )
        return ReconcileOutcome.CREATED
