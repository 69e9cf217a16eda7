"""
SQLAlchemy Implementation of Invoice Repository.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import delete, func, update
from sqlalchemy.orm import selectinload

from fulfillment.core.money import round2, to_decimal
from fulfillment.domain.models.invoice import (
    AUTO_ITEM_TYPES, Invoice, InvoiceItem, InvoiceItemType, InvoiceStatus,
)
from fulfillment.domain.models.user import User, UserRole
from fulfillment.domain.repositories.invoice_repository import InvoiceRepository
from fulfillment.domain.schemas.billing import LineItem
from fulfillment.infrastructure.repositories.base_repository import SQLAlchemyRepository


class SQLAlchemyInvoiceRepository(SQLAlchemyRepository[Invoice], InvoiceRepository):
    """Invoice repository implementation using SQLAlchemy."""

    def upsert_header(self, user_id: int, period: str, due_date: date) -> int:
        stmt = self.insert().values(
            user_id=user_id,
            period=period,
            due_date=due_date,
            total_amount=0,
            status=InvoiceStatus.PENDING.value,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "period"],
            set_={"due_date": stmt.excluded.due_date, "status": InvoiceStatus.PENDING.value},
        )
        self.db.execute(stmt)
        return (
            self.db.query(Invoice.id)
            .filter(Invoice.user_id == user_id, Invoice.period == period)
            .scalar()
        )

    def replace_auto_items(self, invoice_id: int, items: Sequence[LineItem]) -> None:
        self.db.execute(
            delete(InvoiceItem)
            .where(InvoiceItem.invoice_id == invoice_id)
            .where(InvoiceItem.type.in_(AUTO_ITEM_TYPES))
        )
        self.db.add_all([self._to_row(invoice_id, item) for item in items])
        self.db.flush()

    def add_item(self, invoice_id: int, item: LineItem, service_date: Optional[date] = None) -> InvoiceItem:
        row = self._to_row(invoice_id, item, service_date)
        self.db.add(row)
        self.db.flush()
        return row

    def sum_manual_items(self, invoice_id: int) -> Decimal:
        value = (
            self.db.query(func.coalesce(func.sum(InvoiceItem.total_price), 0))
            .filter(InvoiceItem.invoice_id == invoice_id)
            .filter(InvoiceItem.type == InvoiceItemType.MANUAL.value)
            .scalar()
        )
        return round2(value)

    def sum_items(self, invoice_id: int) -> Decimal:
        value = (
            self.db.query(func.coalesce(func.sum(InvoiceItem.total_price), 0))
            .filter(InvoiceItem.invoice_id == invoice_id)
            .scalar()
        )
        return round2(value)

    def set_total(self, invoice_id: int, total: Decimal) -> None:
        self.db.execute(update(Invoice).where(Invoice.id == invoice_id).values(total_amount=total))

    def get_for_period(self, user_id: int, period: str) -> Optional[Invoice]:
        # Header and items may have been rewritten by Core statements in this session
        return (
            self.db.query(Invoice)
            .options(selectinload(Invoice.items))
            .filter(Invoice.user_id == user_id, Invoice.period == period)
            .populate_existing()
            .first()
        )

    def list_for_user(self, user_id: int) -> List[Invoice]:
        return (
            self.db.query(Invoice)
            .options(selectinload(Invoice.items))
            .filter(Invoice.user_id == user_id)
            .order_by(Invoice.period.desc())
            .populate_existing()
            .all()
        )

    def list_periods(self, user_id: int) -> List[str]:
        rows = (
            self.db.query(Invoice.period)
            .filter(Invoice.user_id == user_id)
            .distinct()
            .order_by(Invoice.period.asc())
            .all()
        )
        return [row[0] for row in rows]

    def users_with_invoices(self) -> List[int]:
        rows = (
            self.db.query(Invoice.user_id)
            .join(User, User.id == Invoice.user_id)
            .filter(User.role == UserRole.CUSTOMER.value)
            .distinct()
            .order_by(Invoice.user_id.asc())
            .all()
        )
        return [row[0] for row in rows]

    def summary(self) -> List[Dict[str, Any]]:
        customers = (
            self.db.query(User.id, User.email)
            .filter(User.role == UserRole.CUSTOMER.value)
            .order_by(User.email.asc())
            .all()
        )
        latest: Dict[int, Invoice] = {}
        invoices = self.db.query(Invoice).order_by(Invoice.user_id.asc(), Invoice.period.desc()).all()
        for invoice in invoices:
            latest.setdefault(invoice.user_id, invoice)

        rows = []
        for user_id, email in customers:
            invoice = latest.get(user_id)
            rows.append({
                "user_id": user_id,
                "email": email,
                "last_invoice_total": to_decimal(invoice.total_amount) if invoice else Decimal("0"),
                "last_invoice_status": invoice.status if invoice else None,
                "last_invoice_period": invoice.period if invoice else None,
            })
        return rows

    def manual_item_history(self) -> List[Dict[str, Any]]:
        rows = (
            self.db.query(InvoiceItem, Invoice.period, User.name, User.email)
            .join(Invoice, Invoice.id == InvoiceItem.invoice_id)
            .join(User, User.id == Invoice.user_id)
            .filter(InvoiceItem.type == InvoiceItemType.MANUAL.value)
            .order_by(InvoiceItem.service_date.desc(), InvoiceItem.id.desc())
            .all()
        )
        return [
            {
                "id": item.id,
                "service_date": item.service_date,
                "description": item.description,
                "quantity": item.quantity,
                "unit_price": to_decimal(item.unit_price),
                "total_price": to_decimal(item.total_price),
                "period": period,
                "client_name": name,
                "client_email": email,
            }
            for item, period, name, email in rows
        ]

    @staticmethod
    def _to_row(invoice_id: int, item: LineItem, service_date: Optional[date] = None) -> InvoiceItem:
        return InvoiceItem(
            invoice_id=invoice_id,
            description=item.description,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total_price=item.total_price,
            type=item.type,
            service_date=service_date,
        )
