"""
Unit Tests - Proration Engine
"""
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from fulfillment.domain.repositories.contract_repository import StorageContractRow
from fulfillment.application.services.period import calculate_period
from fulfillment.application.services.pricing import PriceSnapshot
from fulfillment.application.services.proration import (
    contract_storage_items, monthly_sku_items, prorate,
)

PRICES = PriceSnapshot(service_prices={
    "base_storage": Decimal("397.00"),
    "additional_storage": Decimal("197.00"),
})
BASE = "Armazenamento Base (até 1m³)"


class TestProrate:
    """Tests for prorate"""

    def test_mid_month_start(self):
        """Test 397.00 starting on day 21 of a 31-day month"""
        charge = prorate(Decimal("397.00"), date(2024, 8, 21), calculate_period(2024, 8))

        assert charge.amount == Decimal("140.87")
        assert charge.days_covered == 11
        assert charge.start_day == 21
        assert charge.partial

    def test_start_on_first_day(self):
        """Test a start on day 1 charges the full month"""
        charge = prorate(Decimal("397.00"), date(2024, 8, 1), calculate_period(2024, 8))
        assert charge.amount == Decimal("397.00")
        assert not charge.partial

    def test_start_before_period(self):
        """Test an earlier start charges the full month"""
        charge = prorate(Decimal("397.00"), date(2024, 8, 21), calculate_period(2024, 9))
        assert charge.amount == Decimal("397.00")

    def test_start_after_period(self):
        """Test a future start yields no charge"""
        assert prorate(Decimal("397.00"), date(2024, 9, 2), calculate_period(2024, 8)) is None

    def test_last_day_of_month(self):
        """Test a start on the last day covers one day"""
        charge = prorate(Decimal("397.00"), date(2024, 8, 31), calculate_period(2024, 8))
        assert charge.days_covered == 1
        assert charge.amount == Decimal("12.81")

    def test_uses_actual_days_in_month(self):
        """Test leap February divides by 29"""
        charge = prorate(Decimal("290.00"), date(2024, 2, 20), calculate_period(2024, 2))
        assert charge.days_covered == 10
        assert charge.amount == Decimal("100.00")

    def test_half_up_rounding(self):
        """Test half-cent values round up"""
        # 0.14 / 28 * 1 = 0.005
        charge = prorate(Decimal("0.14"), date(2023, 2, 28), calculate_period(2023, 2))
        assert charge.amount == Decimal("0.01")


class TestContractStorageItems:
    """Tests for contract-based storage lines"""

    def test_prorated_base_description(self):
        """Test a partial month is labelled with days and start day"""
        contracts = [StorageContractRow("base_storage", BASE, None, date(2024, 8, 21))]

        items = contract_storage_items(contracts, PRICES, calculate_period(2024, 8))

        assert len(items) == 1
        item = items[0]
        assert "21" in item.description
        assert item.description == f"{BASE} - Proporcional 11 dias (entrada dia 21)"
        assert (item.quantity, item.unit_price, item.total_price) == (1, Decimal("140.87"), Decimal("140.87"))
        assert item.type == "storage"

    def test_full_month_following_period(self):
        """Test the month after the start is billed in full"""
        contracts = [StorageContractRow("base_storage", BASE, None, date(2024, 8, 21))]

        items = contract_storage_items(contracts, PRICES, calculate_period(2024, 9))

        assert items[0].description == BASE
        assert items[0].total_price == Decimal("397.00")

    def test_additional_storage_by_volume(self):
        """Test additional storage is price x volume and never prorated"""
        contracts = [StorageContractRow("additional_storage", "Metro Cúbico Adicional", 3, date(2024, 8, 21))]

        items = contract_storage_items(contracts, PRICES, calculate_period(2024, 8))

        assert (items[0].quantity, items[0].unit_price, items[0].total_price) == (
            3, Decimal("197.00"), Decimal("591.00"),
        )

    def test_additional_storage_without_volume(self):
        """Test zero volume produces no line"""
        contracts = [StorageContractRow("additional_storage", "Metro Cúbico Adicional", 0, date(2024, 1, 1))]
        assert contract_storage_items(contracts, PRICES, calculate_period(2024, 8)) == []

    def test_future_and_ended_contracts(self):
        """Test contracts outside the period produce nothing"""
        contracts = [
            StorageContractRow("base_storage", BASE, None, date(2024, 10, 1)),
            StorageContractRow("additional_storage", "Metro Cúbico Adicional", 2, date(2024, 1, 1), date(2024, 7, 31)),
        ]
        assert contract_storage_items(contracts, PRICES, calculate_period(2024, 8)) == []

    def test_missing_base_price(self):
        """Test a missing catalog price bills zero and warns"""
        prices = PriceSnapshot()
        contracts = [StorageContractRow("base_storage", BASE, None, date(2024, 1, 1))]

        items = contract_storage_items(contracts, prices, calculate_period(2024, 8))

        assert items[0].total_price == Decimal("0.00")
        assert [w.key for w in prices.warnings] == ["base_storage"]


class TestMonthlySkuItems:
    """Tests for per-SKU monthly storage"""

    def test_prorated_and_full(self):
        """Test per-SKU lines follow the same proration rule"""
        skus = [
            SimpleNamespace(sku="PALLET-1", monthly_price=Decimal("397.00"), monthly_start_date=date(2024, 8, 21)),
            SimpleNamespace(sku="PALLET-2", monthly_price=Decimal("100.00"), monthly_start_date=date(2024, 7, 3)),
            SimpleNamespace(sku="PALLET-3", monthly_price=Decimal("100.00"), monthly_start_date=date(2024, 9, 1)),
        ]

        items = monthly_sku_items(skus, calculate_period(2024, 8))

        assert [i.total_price for i in items] == [Decimal("140.87"), Decimal("100.00")]
        assert "PALLET-1" in items[0].description
        assert "entrada dia 21" in items[0].description
        assert items[1].description == "Armazenamento mensal - SKU PALLET-2"
