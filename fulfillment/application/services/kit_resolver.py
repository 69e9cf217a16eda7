"""Kit decomposition resolver — turns an exit of a SKU into counter and ledger changes.

Every counter change is paired with its ledger row in the caller's
transaction. The resolver itself is not idempotent: callers processing a
sale guard it with Sale.processed_at.
"""

from typing import List, Optional

import structlog

from fulfillment.core.exceptions import BusinessRuleViolationException, InsufficientStock, NoKitComponents
from fulfillment.domain.models.sku import Sku
from fulfillment.domain.models.stock_movement import MovementType, StockMovement
from fulfillment.domain.repositories.ledger_repository import LedgerRepository
from fulfillment.domain.repositories.sku_repository import SkuRepository

logger = structlog.get_logger(__name__)

SAIDA = MovementType.SAIDA.value


def kit_child_reason(kit_code: str, reason: str) -> str:
    return f"Saída por Kit ({kit_code}) - {reason}" if reason else f"Saída por Kit ({kit_code})"


def deduct_stock(
    skus: SkuRepository,
    ledger: LedgerRepository,
    sku: Sku,
    quantity: int,
    reason: str,
    related_sale_id: Optional[int] = None,
) -> List[StockMovement]:
    """Deduct `quantity` units of a plain SKU, or `quantity` kits from the kit's children."""
    if quantity <= 0:
        raise BusinessRuleViolationException(
            "Quantidade deve ser maior que zero.", {"sku": sku.sku, "quantity": quantity}
        )
    if sku.is_kit:
        return _deduct_kit(skus, ledger, sku, quantity, reason, related_sale_id)
    return _deduct_plain(skus, ledger, sku, quantity, reason, related_sale_id)


def _deduct_plain(skus, ledger, sku, quantity, reason, related_sale_id) -> List[StockMovement]:
    locked = skus.lock([sku.id])[0]
    if locked.quantidade < quantity:
        raise InsufficientStock(locked.sku, locked.quantidade, quantity)

    movement = ledger.append_movement(locked.id, locked.user_id, SAIDA, quantity, reason, related_sale_id)
    skus.adjust_quantity(locked, -quantity)
    return [movement]


def _deduct_kit(skus, ledger, kit, quantity, reason, related_sale_id) -> List[StockMovement]:
    components = skus.get_components(kit.id)
    if not components:
        raise NoKitComponents(kit.sku)

    children = {child.id: child for child in skus.lock([c.child_sku_id for c in components])}

    # Check every child before touching any
    required = []
    for component in components:
        child = children[component.child_sku_id]
        needed = component.quantity_per_kit * quantity
        if child.quantidade < needed:
            raise InsufficientStock(child.sku, child.quantidade, needed)
        required.append((child, needed))

    movements = []
    child_reason = kit_child_reason(kit.sku, reason)
    for child, needed in required:
        movements.append(
            ledger.append_movement(child.id, kit.user_id, SAIDA, needed, child_reason, related_sale_id)
        )
        skus.adjust_quantity(child, -needed)

    # Audit row on the kit itself; the kit counter stays untouched
    movements.append(ledger.append_movement(kit.id, kit.user_id, SAIDA, quantity, reason, related_sale_id))

    logger.info(
        "Kit decomposed",
        kit=kit.sku,
        kits=quantity,
        children={child.sku: needed for child, needed in required},
        related_sale_id=related_sale_id,
    )
    return movements
