"""
Unit Tests - Shipment Aggregator
"""
from decimal import Decimal

from fulfillment.domain.repositories.ledger_repository import SaleExit
from fulfillment.application.services.pricing import PriceSnapshot
from fulfillment.application.services.shipment_aggregator import aggregate_shipments


def prices() -> PriceSnapshot:
    return PriceSnapshot(package_prices={
        "Expedição Comum": Decimal("2.97"),
        "Expedição Premium": Decimal("3.97"),
    })


class TestAggregateShipments:
    """Tests for aggregate_shipments"""

    def test_groups_by_package_type(self):
        """Test quantities are summed per package type"""
        exits = [
            SaleExit(1, 3, "Expedição Comum"),
            SaleExit(2, 1, "Expedição Premium"),
            SaleExit(1, 2, "Expedição Comum"),
        ]

        items = aggregate_shipments(exits, prices())

        assert [(i.description, i.quantity, i.unit_price, i.total_price) for i in items] == [
            ("Expedição Comum", 5, Decimal("2.97"), Decimal("14.85")),
            ("Expedição Premium", 1, Decimal("3.97"), Decimal("3.97")),
        ]
        assert {i.type for i in items} == {"shipment"}

    def test_skus_without_package_type_are_skipped(self):
        """Test exits of SKUs with no package type are not billed"""
        items = aggregate_shipments([SaleExit(1, 4, None), SaleExit(2, 1, "Expedição Comum")], prices())

        assert len(items) == 1
        assert items[0].quantity == 1

    def test_empty(self):
        """Test no exits yields no items"""
        assert aggregate_shipments([], prices()) == []

    def test_unknown_package_price(self):
        """Test a package type missing from the snapshot is zero-priced with a warning"""
        snapshot = prices()

        items = aggregate_shipments([SaleExit(1, 2, "Expedição Flex")], snapshot)

        assert items[0].total_price == Decimal("0.00")
        assert [(w.kind, w.key) for w in snapshot.warnings] == [("package_type", "Expedição Flex")]
