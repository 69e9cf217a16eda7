"""Stock service — manual movements, reversals, SKU removal and kit availability."""

from typing import List

import structlog
from sqlalchemy.orm import Session

from fulfillment.core.exceptions import (
    BusinessRuleViolationException, EntityNotFoundException, InsufficientStock,
)
from fulfillment.domain.models.sku import Sku
from fulfillment.domain.models.stock_movement import MovementType, StockMovement
from fulfillment.domain.schemas.stock import KitComponentRead, MovementCreate, SkuStockRead
from fulfillment.infrastructure.database import transaction
from fulfillment.infrastructure.repositories.ledger_repository import SQLAlchemyLedgerRepository
from fulfillment.infrastructure.repositories.sku_repository import SQLAlchemySkuRepository
from fulfillment.application.services.kit_resolver import deduct_stock

logger = structlog.get_logger(__name__)


def register_movement(db: Session, sku_code: str, data: MovementCreate) -> List[StockMovement]:
    """Record a manual entrada/saida on a SKU and apply it to the counter(s)."""
    skus = SQLAlchemySkuRepository(db, Sku)
    ledger = SQLAlchemyLedgerRepository(db, StockMovement)

    with transaction(db):
        sku = skus.get_by_code(data.user_id, sku_code, for_update=True)
        if not sku:
            raise EntityNotFoundException("SKU não encontrado ou pertence a outro usuário.", {"sku": sku_code})

        if not sku.is_kit and not data.force_component:
            kits = skus.kits_containing(sku.id)
            if kits:
                names = ", ".join(kit.sku for kit in kits)
                raise BusinessRuleViolationException(
                    f"Este SKU é componente do(s) kit(s): {names}. O estoque é controlado através do kit.",
                    {"sku": sku.sku, "kits": [kit.sku for kit in kits]},
                )

        if data.movement_type == MovementType.ENTRADA:
            if sku.is_kit:
                raise BusinessRuleViolationException(
                    "Kits não possuem estoque físico de entrada. Registre entradas nos SKUs filhos.",
                    {"sku": sku.sku},
                )
            movement = ledger.append_movement(
                sku.id, sku.user_id, MovementType.ENTRADA.value, data.quantity_change,
                data.reason, data.related_sale_id,
            )
            skus.adjust_quantity(sku, data.quantity_change)
            movements = [movement]
        else:
            movements = deduct_stock(skus, ledger, sku, data.quantity_change, data.reason, data.related_sale_id)

    logger.info(
        "Stock movement registered",
        sku=sku_code,
        user_id=data.user_id,
        movement_type=data.movement_type.value,
        quantity=data.quantity_change,
    )
    return movements


def reverse_movement(db: Session, movement_id: int) -> StockMovement:
    """Delete a movement and apply the inverse delta to its SKU.

    Kit rows never moved the kit counter, so removing them only drops the row.
    Rows tied to a sale are refused: the sale stays processed and owns its deduction.
    """
    skus = SQLAlchemySkuRepository(db, Sku)
    ledger = SQLAlchemyLedgerRepository(db, StockMovement)

    with transaction(db):
        movement = ledger.get_for_update(movement_id)
        if not movement:
            raise EntityNotFoundException("Movimentação não encontrada.", {"movement_id": movement_id})
        if movement.related_sale_id is not None:
            raise BusinessRuleViolationException(
                "Movimentação gerada por venda não pode ser estornada manualmente.",
                {"movement_id": movement.id, "related_sale_id": movement.related_sale_id},
            )

        sku = skus.lock([movement.sku_id])[0]
        if not sku.is_kit:
            if movement.movement_type == MovementType.ENTRADA.value:
                if sku.quantidade < movement.quantity_change:
                    raise InsufficientStock(sku.sku, sku.quantidade, movement.quantity_change)
                skus.adjust_quantity(sku, -movement.quantity_change)
            else:
                skus.adjust_quantity(sku, movement.quantity_change)

        ledger.delete(movement.id)

    logger.info("Stock movement reversed", movement_id=movement_id, sku=sku.sku)
    return movement


def delete_sku(db: Session, sku_id: int) -> None:
    skus = SQLAlchemySkuRepository(db, Sku)
    ledger = SQLAlchemyLedgerRepository(db, StockMovement)

    with transaction(db):
        locked = skus.lock([sku_id])
        if not locked:
            raise EntityNotFoundException("SKU não encontrado.", {"sku_id": sku_id})
        sku = locked[0]

        if sku.quantidade > 0:
            raise BusinessRuleViolationException(
                "Não é possível remover um SKU com estoque.", {"sku": sku.sku, "quantidade": sku.quantidade}
            )
        kits = skus.kits_containing(sku.id)
        if kits:
            raise BusinessRuleViolationException(
                "SKU é componente de kit(s) e não pode ser removido.",
                {"sku": sku.sku, "kits": [kit.sku for kit in kits]},
            )

        removed = ledger.delete_for_sku(sku.id)
        skus.delete(sku.id)

    logger.info("SKU deleted", sku_id=sku_id, movements_removed=removed)


def available_kit_quantity(sku: Sku) -> int:
    """Kits that can be assembled from current child stock."""
    if not sku.components:
        return 0
    return min(c.child.quantidade // c.quantity_per_kit for c in sku.components)


def list_stock(db: Session, user_id: int) -> List[SkuStockRead]:
    skus = SQLAlchemySkuRepository(db, Sku)
    rows = []
    for sku in skus.list_for_user(user_id):
        components = [
            KitComponentRead(
                child_sku_id=c.child_sku_id,
                child_sku=c.child.sku,
                quantity_per_kit=c.quantity_per_kit,
                child_quantity=c.child.quantidade,
            )
            for c in sku.components
        ] if sku.is_kit else []
        rows.append(SkuStockRead(
            id=sku.id,
            sku=sku.sku,
            descricao=sku.descricao,
            quantidade=sku.quantidade,
            is_kit=sku.is_kit,
            package_type=sku.package_type.name if sku.package_type else None,
            kit_components=components,
            available_kit_quantity=available_kit_quantity(sku) if sku.is_kit else None,
        ))
    return rows


def list_movements(db: Session, user_id: int) -> List[StockMovement]:
    return SQLAlchemyLedgerRepository(db, StockMovement).list_for_user(user_id)
