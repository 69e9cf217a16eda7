"""
SQLAlchemy Implementation of Sale Repository.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from fulfillment.domain.models.sale import Sale
from fulfillment.domain.repositories.sale_repository import SaleRepository
from fulfillment.infrastructure.repositories.base_repository import SQLAlchemyRepository


class SQLAlchemySaleRepository(SQLAlchemyRepository[Sale], SaleRepository):
    """Sale repository implementation using SQLAlchemy."""

    def lock_sale(self, sale_id: int, sku: str, user_id: int) -> Optional[Sale]:
        return (
            self.db.query(Sale)
            .filter(Sale.id == sale_id, Sale.sku == sku, Sale.user_id == user_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def mark_processed(self, sale: Sale, shipping_status: Optional[str] = None) -> Sale:
        now = datetime.now(timezone.utc)
        if sale.processed_at is None:
            sale.processed_at = now
        if shipping_status is not None:
            sale.shipping_status = shipping_status
        sale.updated_at = now
        self.db.flush()
        return sale

    def update_status(self, sale: Sale, shipping_status: str) -> Sale:
        sale.shipping_status = shipping_status
        sale.updated_at = datetime.now(timezone.utc)
        self.db.flush()
        return sale

    def insert_ignore_duplicates(self, rows: Sequence[Dict[str, Any]]) -> int:
        if not rows:
            return 0
        stmt = self.insert().values(list(rows)).on_conflict_do_nothing(
            index_elements=["id", "sku", "user_id"]
        )
        result = self.db.execute(stmt)
        return max(result.rowcount or 0, 0)

    def list_for_user(self, user_id: int) -> List[Sale]:
        return (
            self.db.query(Sale)
            .filter(Sale.user_id == user_id)
            .order_by(Sale.sale_date.desc(), Sale.id.desc())
            .all()
        )
