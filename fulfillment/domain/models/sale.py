"""Sale — one item line of a marketplace order, maps to 'sales'."""

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Integer, String, Text, JSON
from sqlalchemy.dialects.postgresql import JSONB

from fulfillment.infrastructure.database import Base


class Sale(Base):
    __tablename__ = "sales"

    # Keyed by (external order id, seller sku, owner)
    id = Column(BigInteger, primary_key=True, autoincrement=False)
    sku = Column(String(255), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)

    seller_id = Column(BigInteger, nullable=True)
    channel = Column(String(50), nullable=True, default="ML")
    account_nickname = Column(String(255), nullable=True)
    sale_date = Column(DateTime(timezone=True), nullable=True)
    product_title = Column(Text, nullable=True)
    quantity = Column(Integer, nullable=True)
    shipping_mode = Column(String(255), nullable=True)
    shipping_limit_date = Column(DateTime(timezone=True), nullable=True)
    packages = Column(Integer, nullable=True)
    shipping_status = Column(String(100), nullable=True, default="pending")
    raw_api_data = Column(JSON().with_variant(JSONB, "postgresql"), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    # Set exactly once, when stock is deducted
    processed_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Sale {self.id}/{self.sku} processed={self.processed_at is not None}>"
