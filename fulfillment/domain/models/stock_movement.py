"""Stock ledger — append-only movements, maps to 'stock_movements'."""

import enum
from datetime import datetime, timezone

from sqlalchemy import BigInteger, CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text

from fulfillment.infrastructure.database import Base


class MovementType(str, enum.Enum):
    ENTRADA = "entrada"
    SAIDA = "saida"


class StockMovement(Base):
    __tablename__ = "stock_movements"
    __table_args__ = (CheckConstraint("quantity_change > 0", name="positive_quantity_change"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    sku_id = Column(Integer, ForeignKey("skus.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    movement_type = Column(String(20), nullable=False)
    quantity_change = Column(Integer, nullable=False)
    reason = Column(Text, nullable=True)
    related_sale_id = Column(BigInteger, nullable=True)
    # Dispatch timestamp: shipment billing filters on this column
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        default=lambda: datetime.now(timezone.utc),
    )

    @property
    def signed_quantity(self) -> int:
        if self.movement_type == MovementType.ENTRADA.value:
            return self.quantity_change
        return -self.quantity_change

    def __repr__(self):
        return f"<StockMovement {self.movement_type} sku={self.sku_id} qty={self.quantity_change}>"
