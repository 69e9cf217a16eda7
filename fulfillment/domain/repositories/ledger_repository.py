"""
Ledger Repository Interface.
Append-only stock movement log.
"""

from datetime import datetime
from typing import List, NamedTuple, Optional

from fulfillment.domain.repositories.base import BaseRepository
from fulfillment.domain.models.stock_movement import StockMovement


class SaleExit(NamedTuple):
    """A sale-driven exit in the billing period, resolved to its package type."""
    sku_id: int
    quantity: int
    package_type: Optional[str]


class LedgerRepository(BaseRepository[StockMovement]):
    """Interface for stock movement operations."""

    def append_movement(
        self,
        sku_id: int,
        user_id: int,
        movement_type: str,
        quantity: int,
        reason: str,
        related_sale_id: Optional[int] = None,
        created_at: Optional[datetime] = None,
    ) -> StockMovement:
        """Insert one ledger row in the current transaction."""
        ...

    def get_sale_driven_exits(self, user_id: int, start: datetime, end: datetime, reason_prefix: str) -> List[SaleExit]:
        """Get saida rows tagged as sale egress with created_at inside [start, end]."""
        ...

    def get_for_update(self, movement_id: int) -> Optional[StockMovement]:
        """Get and lock a movement."""
        ...

    def list_for_user(self, user_id: int) -> List[StockMovement]:
        """Get all movements of a user, newest first."""
        ...

    def delete_for_sku(self, sku_id: int) -> int:
        """Delete the history of a SKU."""
        ...
