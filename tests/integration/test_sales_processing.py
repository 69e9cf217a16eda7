"""
Integration Tests - Sale Dispatch and Batch Processing
"""
import pytest

from fulfillment.core.exceptions import AlreadyProcessed, BusinessRuleViolationException, EntityNotFoundException
from fulfillment.domain.models.sale import Sale
from fulfillment.domain.models.sku import Sku
from fulfillment.domain.models.stock_movement import StockMovement
from fulfillment.domain.schemas.stock import SaleStatusUpdate, SaleToProcess
from fulfillment.application.services import sale_service
from fulfillment.application.services.sale_service import is_dispatched, process_sales, update_sale_status


def status_update(user, sale_id, sku, status, force=False):
    return SaleStatusUpdate(sale_id=sale_id, sku=sku, user_id=user.id, shipping_status=status, force=force)


def stock(db, code):
    db.expire_all()
    return db.query(Sku).filter(Sku.sku == code).one().quantidade


def sale_row(db, user, sale_id, sku):
    db.expire_all()
    return db.get(Sale, (sale_id, sku, user.id))


class TestIsDispatched:
    """Tests for dispatched status detection"""

    def test_variants(self):
        """Test case-insensitive match anywhere in the status"""
        assert is_dispatched("Despachado")
        assert is_dispatched("DESPACHADO - Coleta")
        assert not is_dispatched("Pronto para envio")
        assert not is_dispatched(None)


class TestUpdateSaleStatus:
    """Tests for update_sale_status"""

    def test_dispatch_deducts_once(self, db, customer, make_sku, make_sale):
        """Test the first dispatch deducts stock and stamps processed_at"""
        make_sku(customer, "SKU-1", quantidade=10)
        make_sale(customer, 1001, "SKU-1", 3)

        update_sale_status(db, status_update(customer, 1001, "SKU-1", "Despachado"))

        sale = sale_row(db, customer, 1001, "SKU-1")
        assert stock(db, "SKU-1") == 7
        assert sale.processed_at is not None
        assert sale.shipping_status == "Despachado"
        movement = db.query(StockMovement).one()
        assert movement.reason == "Saída por Venda - ID: 1001"
        assert movement.related_sale_id == 1001

    def test_second_dispatch_rejected(self, db, customer, make_sku, make_sale):
        """Test a processed sale raises AlreadyProcessed and stock is unchanged"""
        make_sku(customer, "SKU-1", quantidade=10)
        make_sale(customer, 1001, "SKU-1", 3)
        update_sale_status(db, status_update(customer, 1001, "SKU-1", "Despachado"))
        first_processed_at = sale_row(db, customer, 1001, "SKU-1").processed_at

        with pytest.raises(AlreadyProcessed):
            update_sale_status(db, status_update(customer, 1001, "SKU-1", "despachado"))

        assert stock(db, "SKU-1") == 7
        assert sale_row(db, customer, 1001, "SKU-1").processed_at == first_processed_at

    def test_forced_update_touches_status_only(self, db, customer, make_sku, make_sale):
        """Test force rewrites the status without deducting again"""
        make_sku(customer, "SKU-1", quantidade=10)
        make_sale(customer, 1001, "SKU-1", 3)
        update_sale_status(db, status_update(customer, 1001, "SKU-1", "Despachado"))

        update_sale_status(db, status_update(customer, 1001, "SKU-1", "Despachado - reenvio", force=True))

        assert stock(db, "SKU-1") == 7
        assert db.query(StockMovement).count() == 1
        assert sale_row(db, customer, 1001, "SKU-1").shipping_status == "Despachado - reenvio"

    def test_non_dispatched_status(self, db, customer, make_sku, make_sale):
        """Test other statuses never move stock"""
        make_sku(customer, "SKU-1", quantidade=10)
        make_sale(customer, 1001, "SKU-1", 3)

        update_sale_status(db, status_update(customer, 1001, "SKU-1", "Pronto para envio"))

        sale = sale_row(db, customer, 1001, "SKU-1")
        assert sale.shipping_status == "Pronto para envio"
        assert sale.processed_at is None
        assert stock(db, "SKU-1") == 10

    def test_sku_match_ignores_case_and_spaces(self, db, customer, make_sku, make_sale):
        """Test the sale SKU resolves to the catalog SKU case-insensitively"""
        make_sku(customer, "SKU-1", quantidade=10)
        make_sale(customer, 1001, "sku-1", 2)

        update_sale_status(db, status_update(customer, 1001, "sku-1", "Despachado"))

        assert stock(db, "SKU-1") == 8

    def test_status_update_strips_sale_sku(self, db, customer, make_sku, make_sale):
        """Test a padded SKU in a status update finds the stored sale"""
        make_sku(customer, "SKU-1", quantidade=10)
        make_sale(customer, 1001, "SKU-1", 2)

        sale = update_sale_status(db, status_update(customer, 1001, "  SKU-1 ", "Despachado"))

        assert sale.processed_at is not None
        assert stock(db, "SKU-1") == 8

    def test_insufficient_stock_rolls_back(self, db, customer, make_sku, make_sale):
        """Test a failed deduction leaves the sale unprocessed"""
        make_sku(customer, "SKU-1", quantidade=1)
        make_sale(customer, 1001, "SKU-1", 3, status="Pronto para envio")

        with pytest.raises(BusinessRuleViolationException):
            update_sale_status(db, status_update(customer, 1001, "SKU-1", "Despachado"))

        sale = sale_row(db, customer, 1001, "SKU-1")
        assert sale.processed_at is None
        assert sale.shipping_status == "Pronto para envio"

    def test_unknown_sale(self, db, customer):
        """Test missing sales are reported as not found"""
        with pytest.raises(EntityNotFoundException):
            update_sale_status(db, status_update(customer, 1, "X", "Despachado"))

    def test_sale_of_kit(self, db, customer, make_sku, make_sale, add_component):
        """Test dispatching a kit sale decomposes the kit"""
        kit = make_sku(customer, "KIT-1", is_kit=True)
        child = make_sku(customer, "CANECA", quantidade=10)
        add_component(kit, child, 2)
        make_sale(customer, 1001, "KIT-1", 2)

        update_sale_status(db, status_update(customer, 1001, "KIT-1", "Despachado"))

        assert stock(db, "CANECA") == 6
        reasons = sorted(m.reason for m in db.query(StockMovement).all())
        assert reasons == ["Saída por Kit (KIT-1) - Saída por Venda - ID: 1001", "Saída por Venda - ID: 1001"]


class TestProcessSales:
    """Tests for process_sales"""

    def test_collects_failures_per_sale(self, db, customer, make_sku, make_sale):
        """Test each sale commits or fails on its own"""
        make_sku(customer, "SKU-1", quantidade=10)
        make_sku(customer, "SKU-2", quantidade=1)
        make_sale(customer, 1, "SKU-1", 2)
        make_sale(customer, 2, "SKU-2", 5)
        make_sale(customer, 3, "SKU-1", 1)
        update_sale_status(db, status_update(customer, 3, "SKU-1", "Despachado"))

        result = process_sales(db, [
            SaleToProcess(id=1, sku="SKU-1 ", user_id=customer.id),
            SaleToProcess(id=2, sku="SKU-2", user_id=customer.id),
            SaleToProcess(id=3, sku="SKU-1", user_id=customer.id),
            SaleToProcess(id=4, sku="SKU-9", user_id=customer.id),
        ])

        assert [s.id for s in result.success] == [1]
        assert [(f.sale_id, f.code) for f in result.failed] == [
            (2, "InsufficientStock"),
            (3, "AlreadyProcessed"),
            (4, "EntityNotFoundException"),
        ]
        assert stock(db, "SKU-1") == 7
        assert stock(db, "SKU-2") == 1
        reasons = {m.reason for m in db.query(StockMovement).all()}
        assert "Saída por Venda em Lote - ID: 1" in reasons

    def test_empty_batch(self, db):
        """Test an empty batch is rejected"""
        with pytest.raises(BusinessRuleViolationException):
            process_sales(db, [])

    def test_batch_limit(self, db, customer, monkeypatch):
        """Test batches over MAX_PROCESS_BATCH are rejected"""
        monkeypatch.setattr(sale_service.settings, "MAX_PROCESS_BATCH", 2)
        items = [SaleToProcess(id=i, sku="SKU-1", user_id=customer.id) for i in range(3)]

        with pytest.raises(BusinessRuleViolationException) as exc_info:
            process_sales(db, items)

        assert exc_info.value.details == {"received": 3, "max": 2}
