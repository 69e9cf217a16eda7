"""Proration engine — storage lines that may start mid-period."""

from datetime import date
from decimal import Decimal
from typing import Iterable, List, NamedTuple, Optional

from fulfillment.core.money import round2, to_decimal
from fulfillment.domain.models.invoice import InvoiceItemType
from fulfillment.domain.models.service import ServiceType
from fulfillment.domain.models.sku import Sku
from fulfillment.domain.repositories.contract_repository import StorageContractRow
from fulfillment.domain.schemas.billing import LineItem
from fulfillment.application.services.period import BillingPeriod
from fulfillment.application.services.pricing import PriceSnapshot


class ProratedCharge(NamedTuple):
    amount: Decimal
    days_covered: int
    start_day: Optional[int]  # set only when the charge is partial

    @property
    def partial(self) -> bool:
        return self.start_day is not None


def prorate(monthly_price: Decimal, billing_start: date, period: BillingPeriod) -> Optional[ProratedCharge]:
    """Charge for one month of a service starting at billing_start.

    Returns None when the service only starts after the period.
    """
    if billing_start > period.last_day:
        return None

    price = to_decimal(monthly_price)
    if billing_start < period.first_day or billing_start.day == 1:
        return ProratedCharge(round2(price), period.days_in_month, None)

    days_covered = period.days_in_month - billing_start.day + 1
    amount = round2(price / period.days_in_month * days_covered)
    return ProratedCharge(amount, days_covered, billing_start.day)


def describe(name: str, charge: ProratedCharge) -> str:
    if not charge.partial:
        return name
    return f"{name} - Proporcional {charge.days_covered} dias (entrada dia {charge.start_day})"


def _active(contract: StorageContractRow, period: BillingPeriod) -> bool:
    if contract.start_date > period.last_day:
        return False
    return contract.end_date is None or contract.end_date >= period.first_day


def contract_storage_items(
    contracts: Iterable[StorageContractRow], prices: PriceSnapshot, period: BillingPeriod
) -> List[LineItem]:
    items: List[LineItem] = []
    for contract in contracts:
        if not _active(contract, period):
            continue

        if contract.service_type == ServiceType.BASE_STORAGE.value:
            charge = prorate(prices.service_price(ServiceType.BASE_STORAGE.value), contract.start_date, period)
            if charge is None:
                continue
            items.append(LineItem(
                description=describe(contract.service_name, charge),
                quantity=1,
                unit_price=charge.amount,
                total_price=charge.amount,
                type=InvoiceItemType.STORAGE.value,
            ))

        elif contract.service_type == ServiceType.ADDITIONAL_STORAGE.value:
            volume = int(contract.volume or 0)
            if volume <= 0:
                continue
            # Billed per m³, never prorated
            unit_price = round2(prices.service_price(ServiceType.ADDITIONAL_STORAGE.value))
            items.append(LineItem(
                description=contract.service_name,
                quantity=volume,
                unit_price=unit_price,
                total_price=round2(unit_price * volume),
                type=InvoiceItemType.STORAGE.value,
            ))
    return items


def monthly_sku_items(skus: Iterable[Sku], period: BillingPeriod) -> List[LineItem]:
    items: List[LineItem] = []
    for sku in skus:
        charge = prorate(sku.monthly_price, sku.monthly_start_date, period)
        if charge is None:
            continue
        items.append(LineItem(
            description=describe(f"Armazenamento mensal - SKU {sku.sku}", charge),
            quantity=1,
            unit_price=charge.amount,
            total_price=charge.amount,
            type=InvoiceItemType.STORAGE.value,
        ))
    return items
