"""SKU and kit component models — map to 'skus' and 'sku_kit_components'."""

from sqlalchemy import (
    Boolean, CheckConstraint, Column, Date, DateTime, ForeignKey, Integer,
    Numeric, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from fulfillment.infrastructure.database import Base


class Sku(Base):
    __tablename__ = "skus"
    __table_args__ = (UniqueConstraint("user_id", "sku", name="unique_user_sku"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    sku = Column(String(255), nullable=False)
    descricao = Column(Text, nullable=True)
    # Kits keep this at 0; their availability is derived from components
    quantidade = Column(Integer, nullable=False, default=0)
    package_type_id = Column(Integer, ForeignKey("package_types.id", ondelete="SET NULL"), nullable=True)
    is_kit = Column(Boolean, nullable=False, default=False)
    ativo = Column(Boolean, nullable=False, default=True)

    # Per-SKU monthly storage billing
    is_monthly = Column(Boolean, nullable=False, default=False)
    monthly_price = Column(Numeric(10, 2), nullable=True)
    monthly_start_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    package_type = relationship("PackageType", lazy="joined")
    components = relationship(
        "SkuKitComponent",
        foreign_keys="SkuKitComponent.kit_sku_id",
        back_populates="kit",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Sku {self.sku} qty={self.quantidade}{' kit' if self.is_kit else ''}>"


class SkuKitComponent(Base):
    __tablename__ = "sku_kit_components"
    __table_args__ = (
        UniqueConstraint("kit_sku_id", "child_sku_id", name="unique_kit_child"),
        CheckConstraint("quantity_per_kit > 0", name="positive_quantity_per_kit"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    kit_sku_id = Column(Integer, ForeignKey("skus.id", ondelete="CASCADE"), nullable=False, index=True)
    child_sku_id = Column(Integer, ForeignKey("skus.id", ondelete="RESTRICT"), nullable=False, index=True)
    quantity_per_kit = Column(Integer, nullable=False, default=1)

    kit = relationship("Sku", foreign_keys=[kit_sku_id], back_populates="components")
    child = relationship("Sku", foreign_keys=[child_sku_id], lazy="joined")

    def __repr__(self):
        return f"<SkuKitComponent kit={self.kit_sku_id} child={self.child_sku_id} x{self.quantity_per_kit}>"
