"""
Integration Tests - SKU Catalog and Kit Components
"""
from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from fulfillment.core.exceptions import (
    BusinessRuleViolationException, DuplicateEntityException, EntityNotFoundException,
)
from fulfillment.domain.models.sku import Sku, SkuKitComponent
from fulfillment.domain.models.stock_movement import MovementType
from fulfillment.domain.schemas.stock import KitComponentIn, MovementCreate, SkuCreate, SkuUpdate
from fulfillment.application.services.sku_service import (
    add_kit_component, create_sku, remove_kit_component, update_sku,
)
from fulfillment.application.services.stock_service import list_stock, register_movement


def components_of(db, kit):
    db.expire_all()
    rows = db.query(SkuKitComponent).filter(SkuKitComponent.kit_sku_id == kit.id).all()
    return {row.child_sku_id: row.quantity_per_kit for row in rows}


@pytest.fixture
def children(customer, make_sku):
    return make_sku(customer, "CANECA", quantidade=10), make_sku(customer, "CAIXA", quantidade=3)


class TestCreateSku:
    """Tests for create_sku"""

    def test_plain_sku(self, db, customer):
        """Test a plain SKU keeps its initial stock and trimmed code"""
        sku = create_sku(db, customer.id, SkuCreate(sku="  LIVRO ", descricao="Livro", quantidade=7))

        assert sku.sku == "LIVRO"
        assert sku.quantidade == 7
        assert sku.is_monthly is False
        assert sku.monthly_price is None

    def test_kit_with_components(self, db, customer, children):
        """Test a kit starts at zero and is usable for exits right away"""
        caneca, caixa = children
        kit = create_sku(db, customer.id, SkuCreate(
            sku="KIT-1",
            descricao="Kit presente",
            quantidade=50,
            is_kit=True,
            kit_components=[
                KitComponentIn(child_sku_id=caneca.id, quantity_per_kit=2),
                KitComponentIn(child_sku_id=caixa.id),
            ],
        ))

        assert kit.quantidade == 0
        assert components_of(db, kit) == {caneca.id: 2, caixa.id: 1}
        listed = next(row for row in list_stock(db, customer.id) if row.is_kit)
        assert listed.available_kit_quantity == 3

        register_movement(db, "KIT-1", MovementCreate(
            user_id=customer.id, movement_type=MovementType.SAIDA, quantity_change=1, reason="Venda balcão",
        ))
        db.expire_all()
        assert db.get(Sku, caneca.id).quantidade == 8

    def test_duplicate_code(self, db, customer, make_sku):
        """Test codes are unique per user regardless of case"""
        make_sku(customer, "LIVRO")
        with pytest.raises(DuplicateEntityException):
            create_sku(db, customer.id, SkuCreate(sku="livro", descricao="Outro"))

    def test_same_code_for_other_user(self, db, customer, other_customer, make_sku):
        """Test another user's code does not collide"""
        make_sku(other_customer, "LIVRO")
        sku = create_sku(db, customer.id, SkuCreate(sku="LIVRO", descricao="Livro"))
        assert sku.user_id == customer.id

    def test_unknown_user(self, db):
        """Test SKUs need an existing owner"""
        with pytest.raises(EntityNotFoundException):
            create_sku(db, 999, SkuCreate(sku="LIVRO", descricao="Livro"))

    def test_unknown_package_type(self, db, customer):
        """Test package types are checked against the catalog"""
        with pytest.raises(EntityNotFoundException):
            create_sku(db, customer.id, SkuCreate(sku="LIVRO", descricao="Livro", package_type_id=999))

    def test_child_cannot_be_kit(self, db, customer, make_sku):
        """Test kits do not nest"""
        inner = make_sku(customer, "KIT-A", is_kit=True)
        with pytest.raises(BusinessRuleViolationException):
            create_sku(db, customer.id, SkuCreate(
                sku="KIT-B", descricao="Kit", is_kit=True,
                kit_components=[KitComponentIn(child_sku_id=inner.id)],
            ))
        assert db.query(Sku).filter(Sku.sku == "KIT-B").count() == 0

    def test_child_of_other_user(self, db, customer, other_customer, make_sku):
        """Test components must belong to the kit owner"""
        foreign = make_sku(other_customer, "CANECA", quantidade=10)
        with pytest.raises(EntityNotFoundException):
            create_sku(db, customer.id, SkuCreate(
                sku="KIT-1", descricao="Kit", is_kit=True,
                kit_components=[KitComponentIn(child_sku_id=foreign.id)],
            ))

    def test_repeated_child(self, db, customer, children):
        """Test a child appears once per kit"""
        caneca, _ = children
        with pytest.raises(BusinessRuleViolationException):
            create_sku(db, customer.id, SkuCreate(
                sku="KIT-1", descricao="Kit", is_kit=True,
                kit_components=[KitComponentIn(child_sku_id=caneca.id), KitComponentIn(child_sku_id=caneca.id)],
            ))

    def test_monthly_sku(self, db, customer):
        """Test a monthly SKU keeps its price and start date"""
        sku = create_sku(db, customer.id, SkuCreate(
            sku="PALETE", descricao="Palete", is_monthly=True,
            monthly_price=Decimal("89.90"), monthly_start_date=date(2024, 8, 10),
        ))
        assert sku.monthly_price == Decimal("89.90")
        assert sku.monthly_start_date == date(2024, 8, 10)

    @pytest.mark.parametrize("extra", [
        {"monthly_start_date": date(2024, 8, 10)},
        {"monthly_price": Decimal("0"), "monthly_start_date": date(2024, 8, 10)},
        {"monthly_price": Decimal("89.90")},
    ])
    def test_monthly_requires_price_and_start(self, extra):
        """Test monthly SKUs need a positive price and a start date"""
        with pytest.raises(ValidationError):
            SkuCreate(sku="PALETE", descricao="Palete", is_monthly=True, **extra)

    def test_components_only_on_kits(self):
        """Test plain SKUs reject component lists"""
        with pytest.raises(ValidationError):
            SkuCreate(sku="LIVRO", descricao="Livro", kit_components=[KitComponentIn(child_sku_id=1)])


class TestUpdateSku:
    """Tests for update_sku"""

    def test_partial_update(self, db, customer, make_sku):
        """Test only sent fields change"""
        sku = make_sku(customer, "LIVRO", quantidade=4)

        updated = update_sku(db, sku.id, SkuUpdate(descricao="Livro capa dura", ativo=False))

        assert updated.descricao == "Livro capa dura"
        assert updated.ativo is False
        assert updated.quantidade == 4

    def test_enable_monthly_needs_start_date(self, db, customer, make_sku):
        """Test turning a SKU monthly without a start date is refused"""
        sku = make_sku(customer, "PALETE")

        with pytest.raises(BusinessRuleViolationException):
            update_sku(db, sku.id, SkuUpdate(is_monthly=True, monthly_price=Decimal("50")))

        db.expire_all()
        assert db.get(Sku, sku.id).is_monthly is False

    def test_disable_monthly_clears_fields(self, db, customer, make_sku):
        """Test a SKU leaving monthly billing drops its price and date"""
        sku = make_sku(
            customer, "PALETE", is_monthly=True,
            monthly_price=Decimal("50"), monthly_start_date=date(2024, 8, 1),
        )

        updated = update_sku(db, sku.id, SkuUpdate(is_monthly=False))

        assert updated.monthly_price is None
        assert updated.monthly_start_date is None

    def test_replace_components(self, db, customer, make_sku, add_component, children):
        """Test a sent component list replaces the kit's links"""
        caneca, caixa = children
        kit = make_sku(customer, "KIT-1", is_kit=True)
        add_component(kit, caneca, 2)

        update_sku(db, kit.id, SkuUpdate(kit_components=[
            KitComponentIn(child_sku_id=caneca.id, quantity_per_kit=3),
            KitComponentIn(child_sku_id=caixa.id, quantity_per_kit=1),
        ]))

        assert components_of(db, kit) == {caneca.id: 3, caixa.id: 1}

    def test_components_on_plain_sku(self, db, customer, children):
        """Test plain SKUs cannot receive components"""
        caneca, caixa = children
        with pytest.raises(BusinessRuleViolationException):
            update_sku(db, caneca.id, SkuUpdate(kit_components=[KitComponentIn(child_sku_id=caixa.id)]))

    def test_unknown_sku(self, db):
        """Test unknown ids"""
        with pytest.raises(EntityNotFoundException):
            update_sku(db, 999, SkuUpdate(descricao="x"))


class TestKitComponentLinks:
    """Tests for add_kit_component and remove_kit_component"""

    def test_link_and_relink(self, db, customer, make_sku, children):
        """Test linking twice updates the quantity"""
        caneca, _ = children
        kit = make_sku(customer, "KIT-1", is_kit=True)

        add_kit_component(db, kit.id, caneca.id, 2)
        add_kit_component(db, kit.id, caneca.id, 4)

        assert components_of(db, kit) == {caneca.id: 4}

    def test_self_reference(self, db, customer, make_sku):
        """Test a kit cannot contain itself"""
        kit = make_sku(customer, "KIT-1", is_kit=True)
        with pytest.raises(BusinessRuleViolationException):
            add_kit_component(db, kit.id, kit.id, 1)

    def test_target_must_be_kit(self, db, customer, children):
        """Test plain SKUs cannot receive links"""
        caneca, caixa = children
        with pytest.raises(EntityNotFoundException):
            add_kit_component(db, caneca.id, caixa.id, 1)

    def test_non_positive_quantity(self, db, customer, make_sku, children):
        """Test quantity per kit must be positive"""
        caneca, _ = children
        kit = make_sku(customer, "KIT-1", is_kit=True)
        with pytest.raises(BusinessRuleViolationException):
            add_kit_component(db, kit.id, caneca.id, 0)

    def test_unlink(self, db, customer, make_sku, add_component, children):
        """Test removing a link keeps both SKUs"""
        caneca, caixa = children
        kit = make_sku(customer, "KIT-1", is_kit=True)
        add_component(kit, caneca, 2)
        add_component(kit, caixa, 1)

        remove_kit_component(db, kit.id, caneca.id)

        assert components_of(db, kit) == {caixa.id: 1}
        assert db.get(Sku, caneca.id) is not None

    def test_unlink_missing(self, db, customer, make_sku, children):
        """Test removing an absent link"""
        caneca, _ = children
        kit = make_sku(customer, "KIT-1", is_kit=True)
        with pytest.raises(EntityNotFoundException):
            remove_kit_component(db, kit.id, caneca.id)
