"""Shipment aggregator — bills sale-driven exits by package type."""

from typing import Dict, Iterable, List

from fulfillment.config import get_settings
from fulfillment.core.money import round2
from fulfillment.domain.models.invoice import InvoiceItemType
from fulfillment.domain.repositories.ledger_repository import LedgerRepository, SaleExit
from fulfillment.domain.schemas.billing import LineItem
from fulfillment.application.services.period import BillingPeriod
from fulfillment.application.services.pricing import PriceSnapshot

settings = get_settings()


def aggregate_shipments(exits: Iterable[SaleExit], prices: PriceSnapshot) -> List[LineItem]:
    """Group exits by package type name; SKUs without a package type are not billed."""
    quantities: Dict[str, int] = {}
    for exit_row in exits:
        if not exit_row.package_type:
            continue
        quantities[exit_row.package_type] = quantities.get(exit_row.package_type, 0) + exit_row.quantity

    items: List[LineItem] = []
    for name, quantity in quantities.items():
        if quantity <= 0:
            continue
        unit_price = round2(prices.package_price(name))
        items.append(LineItem(
            description=name,
            quantity=quantity,
            unit_price=unit_price,
            total_price=round2(unit_price * quantity),
            type=InvoiceItemType.SHIPMENT.value,
        ))
    return items


def shipment_items(
    ledger: LedgerRepository, user_id: int, period: BillingPeriod, prices: PriceSnapshot
) -> List[LineItem]:
    exits = ledger.get_sale_driven_exits(user_id, period.start, period.end, settings.SALE_REASON_PREFIX)
    return aggregate_shipments(exits, prices)
