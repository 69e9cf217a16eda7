"""Invoice assembler — storage, shipment and manual items folded into one invoice.

A computation runs Upsert header -> Replace automatic items -> Recompute total
inside a single transaction bounded by a deadline. Manual items are never
touched by a recomputation.
"""

from datetime import datetime, timezone
from typing import List, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fulfillment.config import get_settings
from fulfillment.core.exceptions import AppError, BusinessRuleViolationException, EntityNotFoundException
from fulfillment.core.money import ZERO, round2
from fulfillment.domain.models.contract import UserContract
from fulfillment.domain.models.invoice import Invoice, InvoiceItemType
from fulfillment.domain.models.service import Service, ServiceType
from fulfillment.domain.models.sku import Sku
from fulfillment.domain.models.stock_movement import StockMovement
from fulfillment.domain.models.user import User
from fulfillment.domain.schemas.billing import (
    BillingSummaryRow, InvoiceComputation, LineItem, ManualItemCreate, ManualItemHistoryRead,
    RecalculationFailure, RecalculationReport,
)
from fulfillment.infrastructure.database import Deadline, transaction
from fulfillment.infrastructure.repositories.catalog_repository import SQLAlchemyCatalogRepository
from fulfillment.infrastructure.repositories.contract_repository import SQLAlchemyContractRepository
from fulfillment.infrastructure.repositories.invoice_repository import SQLAlchemyInvoiceRepository
from fulfillment.infrastructure.repositories.ledger_repository import SQLAlchemyLedgerRepository
from fulfillment.infrastructure.repositories.sku_repository import SQLAlchemySkuRepository
from fulfillment.infrastructure.repositories.user_repository import SQLAlchemyUserRepository
from fulfillment.application.services.period import BillingPeriod, due_date, parse_period
from fulfillment.application.services.pricing import load_price_snapshot, select_tier_price
from fulfillment.application.services.proration import contract_storage_items, monthly_sku_items
from fulfillment.application.services.shipment_aggregator import shipment_items

settings = get_settings()
logger = structlog.get_logger(__name__)


def _assemble(db: Session, user_id: int, period: BillingPeriod, deadline: Deadline) -> InvoiceComputation:
    if SQLAlchemyUserRepository(db, User).get_by_id(user_id) is None:
        raise EntityNotFoundException("Usuário não encontrado.", {"user_id": user_id})

    invoices = SQLAlchemyInvoiceRepository(db, Invoice)
    prices = load_price_snapshot(SQLAlchemyCatalogRepository(db, Service))

    items: List[LineItem] = contract_storage_items(
        SQLAlchemyContractRepository(db, UserContract).get_storage_contracts(user_id), prices, period
    )
    items += monthly_sku_items(SQLAlchemySkuRepository(db, Sku).get_monthly_skus(user_id), period)
    deadline.check("storage")

    items += shipment_items(SQLAlchemyLedgerRepository(db, StockMovement), user_id, period, prices)
    deadline.check("shipments")

    invoice_id = invoices.upsert_header(user_id, period.label, due_date(period))
    invoices.replace_auto_items(invoice_id, items)

    auto_total = sum((item.total_price for item in items), ZERO)
    manual_total = invoices.sum_manual_items(invoice_id)
    total = auto_total + manual_total
    invoices.set_total(invoice_id, total)
    deadline.check("total")

    logger.info(
        "Invoice computed",
        user_id=user_id,
        period=period.label,
        invoice_id=invoice_id,
        auto_items=len(items),
        auto_total=str(auto_total),
        manual_total=str(manual_total),
        missing_prices=[w.key for w in prices.warnings],
    )
    return InvoiceComputation(
        invoice_id=invoice_id,
        user_id=user_id,
        period=period.label,
        due_date=due_date(period),
        auto_items=items,
        auto_total=auto_total,
        manual_total=manual_total,
        total=total,
        warnings=prices.warnings,
    )


def compute_invoice(db: Session, user_id: int, period: str, timeout: Optional[float] = None) -> InvoiceComputation:
    """Create or refresh the invoice of a user for a YYYY-MM period."""
    billing_period = parse_period(period)
    with transaction(db, timeout or settings.BILLING_TIMEOUT_SECONDS) as deadline:
        return _assemble(db, user_id, billing_period, deadline)


def get_invoices(db: Session, user_id: int, period: str) -> List[Invoice]:
    """Refresh the requested period, then list every invoice of the user."""
    compute_invoice(db, user_id, period)
    return SQLAlchemyInvoiceRepository(db, Invoice).list_for_user(user_id)


def get_invoice(db: Session, user_id: int, period: str) -> Invoice:
    invoice = SQLAlchemyInvoiceRepository(db, Invoice).get_for_period(user_id, period)
    if not invoice:
        raise EntityNotFoundException("Fatura não encontrada.", {"user_id": user_id, "period": period})
    return invoice


def _manual_line(service: Service, quantity: Optional[int]) -> LineItem:
    if service.type == ServiceType.AVULSO_QUANTIDADE.value:
        if not quantity or quantity < 1:
            raise BusinessRuleViolationException(
                "Quantidade inválida para serviço por quantidade.", {"service_id": service.id, "quantity": quantity}
            )
        unit_price = round2(select_tier_price(service.config, quantity))
    elif service.type == ServiceType.AVULSO_SIMPLES.value:
        quantity = 1
        unit_price = round2(service.price)
    else:
        raise BusinessRuleViolationException(
            "Tipo de serviço não permitido para lançamento manual.", {"service_id": service.id, "type": service.type}
        )

    return LineItem(
        description=service.name,
        quantity=quantity,
        unit_price=unit_price,
        total_price=round2(unit_price * quantity),
        type=InvoiceItemType.MANUAL.value,
    )


def add_manual_item(db: Session, data: ManualItemCreate, timeout: Optional[float] = None) -> Invoice:
    """Refresh the invoice, append a manual item and re-sum every item."""
    billing_period = parse_period(data.period)
    catalog = SQLAlchemyCatalogRepository(db, Service)
    invoices = SQLAlchemyInvoiceRepository(db, Invoice)

    with transaction(db, timeout or settings.BILLING_TIMEOUT_SECONDS) as deadline:
        service = catalog.get_service(data.service_id)
        if not service:
            raise EntityNotFoundException("Serviço não encontrado.", {"service_id": data.service_id})
        line = _manual_line(service, data.quantity)

        computation = _assemble(db, data.user_id, billing_period, deadline)
        invoices.add_item(computation.invoice_id, line, data.service_date)
        invoices.set_total(computation.invoice_id, invoices.sum_items(computation.invoice_id))

    logger.info(
        "Manual item added",
        user_id=data.user_id,
        period=billing_period.label,
        service=service.name,
        quantity=line.quantity,
        total_price=str(line.total_price),
    )
    return invoices.get_for_period(data.user_id, billing_period.label)


def list_manual_services(db: Session) -> List[Service]:
    return SQLAlchemyCatalogRepository(db, Service).list_manual_services()


def manual_item_history(db: Session) -> List[ManualItemHistoryRead]:
    rows = SQLAlchemyInvoiceRepository(db, Invoice).manual_item_history()
    return [ManualItemHistoryRead(**row) for row in rows]


def billing_summary(db: Session) -> List[BillingSummaryRow]:
    rows = SQLAlchemyInvoiceRepository(db, Invoice).summary()
    return [BillingSummaryRow(**row) for row in rows]


def _compute_collecting(db: Session, user_id: int, period: str, report: RecalculationReport) -> None:
    try:
        compute_invoice(db, user_id, period)
        report.processed_invoices += 1
    except AppError as exc:
        logger.warning("Invoice recalculation failed", user_id=user_id, period=period, error=exc.message)
        report.failures.append(RecalculationFailure(
            user_id=user_id, period=period, error=exc.message, code=exc.__class__.__name__,
        ))
    except SQLAlchemyError as exc:
        logger.exception("Invoice recalculation failed", user_id=user_id, period=period)
        report.failures.append(RecalculationFailure(
            user_id=user_id, period=period, error=exc.__class__.__name__, code="DatabaseError",
        ))


def recalculate_all(db: Session, user_ids: Optional[List[int]] = None) -> RecalculationReport:
    """Recompute every existing invoice period of every customer.

    Each period runs in its own transaction; failures are collected in the report.
    """
    invoices = SQLAlchemyInvoiceRepository(db, Invoice)
    report = RecalculationReport(started_at=datetime.now(timezone.utc))

    for user_id in user_ids if user_ids is not None else invoices.users_with_invoices():
        for period in invoices.list_periods(user_id):
            _compute_collecting(db, user_id, period, report)
        report.processed_users += 1

    report.finished_at = datetime.now(timezone.utc)
    logger.info(
        "Invoice recalculation finished",
        users=report.processed_users,
        invoices=report.processed_invoices,
        failures=len(report.failures),
    )
    return report


def recalculate_period(db: Session, period: str) -> RecalculationReport:
    """Compute one period for every active customer."""
    parse_period(period)
    report = RecalculationReport(started_at=datetime.now(timezone.utc))

    for user_id in SQLAlchemyUserRepository(db, User).active_customer_ids():
        _compute_collecting(db, user_id, period, report)
        report.processed_users += 1

    report.finished_at = datetime.now(timezone.utc)
    logger.info(
        "Period recalculation finished",
        period=period,
        users=report.processed_users,
        failures=len(report.failures),
    )
    return report
