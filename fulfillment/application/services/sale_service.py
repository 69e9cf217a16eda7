"""Sale service — dispatch-driven stock deduction guarded by Sale.processed_at."""

import re
from typing import Iterable, List

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fulfillment.config import get_settings
from fulfillment.core.exceptions import (
    AlreadyProcessed, AppError, BusinessRuleViolationException, EntityNotFoundException,
)
from fulfillment.domain.models.sale import Sale
from fulfillment.domain.models.sku import Sku
from fulfillment.domain.models.stock_movement import StockMovement
from fulfillment.domain.schemas.stock import (
    SaleBatchFailure, SaleBatchResult, SaleStatusUpdate, SaleToProcess,
)
from fulfillment.infrastructure.database import transaction
from fulfillment.infrastructure.repositories.ledger_repository import SQLAlchemyLedgerRepository
from fulfillment.infrastructure.repositories.sale_repository import SQLAlchemySaleRepository
from fulfillment.infrastructure.repositories.sku_repository import SQLAlchemySkuRepository
from fulfillment.application.services.kit_resolver import deduct_stock

settings = get_settings()
logger = structlog.get_logger(__name__)

DISPATCHED = re.compile(r"despachado", re.IGNORECASE)


def is_dispatched(shipping_status: str) -> bool:
    return bool(DISPATCHED.search(shipping_status or ""))


def sale_reason(sale_id: int) -> str:
    return f"{settings.SALE_REASON_PREFIX} - ID: {sale_id}"


def batch_sale_reason(sale_id: int) -> str:
    return f"{settings.SALE_REASON_PREFIX} em Lote - ID: {sale_id}"


def _deduct_for_sale(db: Session, sale: Sale, reason: str) -> List[StockMovement]:
    if not sale.quantity or sale.quantity <= 0:
        raise BusinessRuleViolationException("Quantidade da venda inválida.", {"sale_id": sale.id, "sku": sale.sku})

    skus = SQLAlchemySkuRepository(db, Sku)
    sku = skus.get_by_code(sale.user_id, sale.sku, for_update=True)
    if not sku:
        raise EntityNotFoundException(f"SKU '{sale.sku}' não encontrado.", {"sale_id": sale.id, "sku": sale.sku})

    return deduct_stock(skus, SQLAlchemyLedgerRepository(db, StockMovement), sku, sale.quantity, reason, sale.id)


def _lock_sale(sales: SQLAlchemySaleRepository, sale_id: int, sku: str, user_id: int) -> Sale:
    sale = sales.lock_sale(sale_id, sku, user_id)
    if not sale:
        raise EntityNotFoundException(
            "Venda não encontrada ou sem permissão.", {"sale_id": sale_id, "sku": sku, "user_id": user_id}
        )
    return sale


def update_sale_status(db: Session, data: SaleStatusUpdate) -> Sale:
    """Update a sale's shipping status; a dispatched status deducts stock exactly once."""
    sales = SQLAlchemySaleRepository(db, Sale)

    with transaction(db):
        sale = _lock_sale(sales, data.sale_id, data.sku.strip(), data.user_id)

        if not is_dispatched(data.shipping_status):
            return sales.update_status(sale, data.shipping_status)

        if sale.processed_at is not None:
            if not data.force:
                raise AlreadyProcessed(sale.id, sale.sku)
            # Forced re-update touches status only
            logger.info("Forced status update on processed sale", sale_id=sale.id, sku=sale.sku)
            return sales.update_status(sale, data.shipping_status)

        _deduct_for_sale(db, sale, sale_reason(sale.id))
        sales.mark_processed(sale, data.shipping_status)

    logger.info("Sale dispatched", sale_id=sale.id, sku=sale.sku, quantity=sale.quantity)
    return sale


def process_sales(db: Session, to_process: Iterable[SaleToProcess]) -> SaleBatchResult:
    """Deduct stock for many sales, one transaction each; failures are collected, not raised."""
    to_process = list(to_process)
    if not to_process:
        raise BusinessRuleViolationException("Nenhuma venda para processar.")
    if len(to_process) > settings.MAX_PROCESS_BATCH:
        raise BusinessRuleViolationException(
            f"Lote muito grande. Envie até {settings.MAX_PROCESS_BATCH} itens por requisição.",
            {"received": len(to_process), "max": settings.MAX_PROCESS_BATCH},
        )

    sales = SQLAlchemySaleRepository(db, Sale)
    result = SaleBatchResult()

    for item in to_process:
        sku_code = item.sku.strip()
        try:
            with transaction(db):
                sale = _lock_sale(sales, item.id, sku_code, item.user_id)
                if sale.processed_at is not None:
                    raise AlreadyProcessed(sale.id, sale.sku)
                _deduct_for_sale(db, sale, batch_sale_reason(sale.id))
                sales.mark_processed(sale)
            result.success.append(SaleToProcess(id=item.id, sku=sku_code, user_id=item.user_id))
        except AppError as exc:
            result.failed.append(SaleBatchFailure(
                sale_id=item.id, sku=sku_code, reason=exc.message, code=exc.__class__.__name__,
            ))
        except SQLAlchemyError as exc:
            logger.exception("Sale processing failed", sale_id=item.id, sku=sku_code)
            result.failed.append(SaleBatchFailure(
                sale_id=item.id, sku=sku_code, reason=str(exc.__class__.__name__), code="DatabaseError",
            ))

    logger.info("Sale batch processed", success=len(result.success), failed=len(result.failed))
    return result


def list_sales(db: Session, user_id: int) -> List[Sale]:
    return SQLAlchemySaleRepository(db, Sale).list_for_user(user_id)
