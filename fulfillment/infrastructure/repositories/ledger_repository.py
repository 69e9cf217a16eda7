"""
SQLAlchemy Implementation of Ledger Repository.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import delete

from fulfillment.domain.models.service import PackageType
from fulfillment.domain.models.sku import Sku
from fulfillment.domain.models.stock_movement import MovementType, StockMovement
from fulfillment.domain.repositories.ledger_repository import LedgerRepository, SaleExit
from fulfillment.infrastructure.repositories.base_repository import SQLAlchemyRepository


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SQLAlchemyLedgerRepository(SQLAlchemyRepository[StockMovement], LedgerRepository):
    """Stock ledger implementation using SQLAlchemy."""

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
        movement = StockMovement(
            sku_id=sku_id,
            user_id=user_id,
            movement_type=movement_type,
            quantity_change=quantity,
            reason=reason,
            related_sale_id=related_sale_id,
            created_at=_utc(created_at) if created_at else datetime.now(timezone.utc),
        )
        self.db.add(movement)
        self.db.flush()
        return movement

    def get_sale_driven_exits(self, user_id: int, start: datetime, end: datetime, reason_prefix: str) -> List[SaleExit]:
        rows = (
            self.db.query(StockMovement.sku_id, StockMovement.quantity_change, PackageType.name)
            .join(Sku, StockMovement.sku_id == Sku.id)
            .outerjoin(PackageType, Sku.package_type_id == PackageType.id)
            .filter(StockMovement.user_id == user_id)
            .filter(StockMovement.movement_type == MovementType.SAIDA.value)
            .filter(StockMovement.reason.startswith(reason_prefix, autoescape=True))
            .filter(StockMovement.created_at.between(_utc(start), _utc(end)))
            .order_by(StockMovement.created_at.asc(), StockMovement.id.asc())
            .all()
        )
        return [SaleExit(sku_id, quantity, package_type) for sku_id, quantity, package_type in rows]

    def get_for_update(self, movement_id: int) -> Optional[StockMovement]:
        return (
            self.db.query(StockMovement)
            .filter(StockMovement.id == movement_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def list_for_user(self, user_id: int) -> List[StockMovement]:
        return (
            self.db.query(StockMovement)
            .filter(StockMovement.user_id == user_id)
            .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
            .all()
        )

    def list_for_sku(self, sku_id: int) -> List[StockMovement]:
        return (
            self.db.query(StockMovement)
            .filter(StockMovement.sku_id == sku_id)
            .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
            .all()
        )

    def delete_for_sku(self, sku_id: int) -> int:
        result = self.db.execute(delete(StockMovement).where(StockMovement.sku_id == sku_id))
        return result.rowcount or 0
