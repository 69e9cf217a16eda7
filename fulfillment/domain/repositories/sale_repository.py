"""
Sale Repository Interface.
Marketplace sales and their processing guard.
"""

from typing import Any, Dict, List, Optional, Sequence

from fulfillment.domain.repositories.base import BaseRepository
from fulfillment.domain.models.sale import Sale


class SaleRepository(BaseRepository[Sale]):
    """Interface for sale operations."""

    def lock_sale(self, sale_id: int, sku: str, user_id: int) -> Optional[Sale]:
        """Get and lock a sale row."""
        ...

    def mark_processed(self, sale: Sale, shipping_status: Optional[str] = None) -> Sale:
        """Set processed_at (once) and optionally the shipping status."""
        ...

    def update_status(self, sale: Sale, shipping_status: str) -> Sale:
        """Update only the shipping status."""
        ...

    def insert_ignore_duplicates(self, rows: Sequence[Dict[str, Any]]) -> int:
        """Multi-row insert skipping rows whose key already exists; returns rows inserted."""
        ...

    def list_for_user(self, user_id: int) -> List[Sale]:
        """Get sales of a user, newest first."""
        ...
