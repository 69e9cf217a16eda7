"""Invoice and invoice items — map to 'invoices' and 'invoice_items'."""

import enum

from sqlalchemy import (
    Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from fulfillment.infrastructure.database import Base


class InvoiceStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class InvoiceItemType(str, enum.Enum):
    STORAGE = "storage"
    SHIPMENT = "shipment"
    MANUAL = "manual"


AUTO_ITEM_TYPES = (InvoiceItemType.STORAGE.value, InvoiceItemType.SHIPMENT.value)


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (UniqueConstraint("user_id", "period", name="unique_user_period"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    period = Column(String(7), nullable=False)  # YYYY-MM
    due_date = Column(Date, nullable=False)
    payment_date = Column(Date, nullable=True)
    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(String(50), nullable=False, default=InvoiceStatus.PENDING.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.id",
    )

    def __repr__(self):
        return f"<Invoice {self.user_id} {self.period} total={self.total_amount}>"


class InvoiceItem(Base):
    __tablename__ = "invoice_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(Text, nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    type = Column(String(50), nullable=False)
    service_date = Column(Date, nullable=True)

    invoice = relationship("Invoice", back_populates="items")

    def __repr__(self):
        return f"<InvoiceItem {self.type} {self.description} {self.total_price}>"
