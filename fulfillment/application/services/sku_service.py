"""SKU catalog service: SKU/kit creation, updates and kit component links."""

from typing import Iterable

import structlog
from sqlalchemy.orm import Session

from fulfillment.core.exceptions import (
    BusinessRuleViolationException, DuplicateEntityException, EntityNotFoundException,
)
from fulfillment.domain.models.service import Service
from fulfillment.domain.models.sku import Sku, SkuKitComponent
from fulfillment.domain.models.user import User
from fulfillment.domain.schemas.stock import KitComponentIn, SkuCreate, SkuUpdate
from fulfillment.infrastructure.database import transaction
from fulfillment.infrastructure.repositories.catalog_repository import SQLAlchemyCatalogRepository
from fulfillment.infrastructure.repositories.sku_repository import SQLAlchemySkuRepository
from fulfillment.infrastructure.repositories.user_repository import SQLAlchemyUserRepository

logger = structlog.get_logger(__name__)

# Fields an update may explicitly clear
NULLABLE_FIELDS = {"package_type_id", "monthly_price", "monthly_start_date"}


def _check_monthly(sku: Sku) -> None:
    if not sku.is_monthly:
        return
    if sku.monthly_price is None or sku.monthly_price <= 0:
        raise BusinessRuleViolationException("Preço mensal é obrigatório para SKUs mensais.", {"sku": sku.sku})
    if sku.monthly_start_date is None:
        raise BusinessRuleViolationException("Data de início é obrigatória para SKUs mensais.", {"sku": sku.sku})


def _check_package_type(db: Session, package_type_id) -> None:
    if package_type_id is None:
        return
    catalog = SQLAlchemyCatalogRepository(db, Service)
    if catalog.get_package_type(package_type_id) is None:
        raise EntityNotFoundException("Tipo de pacote não encontrado.", {"package_type_id": package_type_id})


def _valid_child(skus: SQLAlchemySkuRepository, kit: Sku, child_sku_id: int) -> Sku:
    """A child must be a plain SKU of the kit's owner, other than the kit."""
    if child_sku_id == kit.id:
        raise BusinessRuleViolationException("Um kit não pode conter a si mesmo.", {"kit_sku": kit.sku})
    child = skus.get_by_id(child_sku_id)
    if child is None or child.user_id != kit.user_id:
        raise EntityNotFoundException(
            f"SKU filho com ID {child_sku_id} não encontrado.", {"child_sku_id": child_sku_id}
        )
    if child.is_kit:
        raise BusinessRuleViolationException(
            "Um kit não pode ser componente de outro kit.", {"kit_sku": kit.sku, "child_sku": child.sku}
        )
    return child


def _attach_components(
    skus: SQLAlchemySkuRepository, kit: Sku, components: Iterable[KitComponentIn]
) -> None:
    seen = set()
    for item in components:
        if item.child_sku_id in seen:
            raise BusinessRuleViolationException(
                "Componente repetido no kit.", {"kit_sku": kit.sku, "child_sku_id": item.child_sku_id}
            )
        seen.add(item.child_sku_id)
        child = _valid_child(skus, kit, item.child_sku_id)
        skus.add_component(kit, child, item.quantity_per_kit)


def create_sku(db: Session, user_id: int, data: SkuCreate) -> Sku:
    """Create a SKU or a kit; kits start with no physical stock."""
    skus = SQLAlchemySkuRepository(db, Sku)

    with transaction(db):
        if SQLAlchemyUserRepository(db, User).get_by_id(user_id) is None:
            raise EntityNotFoundException("Usuário não encontrado.", {"user_id": user_id})
        if skus.get_by_code(user_id, data.sku):
            raise DuplicateEntityException(
                f"O SKU '{data.sku}' já existe para este usuário.", {"sku": data.sku, "user_id": user_id}
            )
        _check_package_type(db, data.package_type_id)

        sku = skus.create({
            "user_id": user_id,
            "sku": data.sku,
            "descricao": data.descricao,
            "quantidade": 0 if data.is_kit else data.quantidade,
            "package_type_id": data.package_type_id,
            "is_kit": data.is_kit,
            "ativo": data.ativo,
            "is_monthly": data.is_monthly,
            "monthly_price": data.monthly_price if data.is_monthly else None,
            "monthly_start_date": data.monthly_start_date if data.is_monthly else None,
        })
        _check_monthly(sku)
        if data.is_kit:
            _attach_components(skus, sku, data.kit_components)

    logger.info(
        "SKU created",
        sku=sku.sku,
        user_id=user_id,
        is_kit=sku.is_kit,
        components=len(data.kit_components),
    )
    return sku


def update_sku(db: Session, sku_id: int, data: SkuUpdate) -> Sku:
    skus = SQLAlchemySkuRepository(db, Sku)
    changes = {
        field: value
        for field, value in data.model_dump(exclude_unset=True, exclude={"kit_components"}).items()
        if value is not None or field in NULLABLE_FIELDS
    }

    with transaction(db):
        locked = skus.lock([sku_id])
        if not locked:
            raise EntityNotFoundException("SKU não encontrado.", {"sku_id": sku_id})
        sku = locked[0]

        if "package_type_id" in changes:
            _check_package_type(db, changes["package_type_id"])
        for field, value in changes.items():
            setattr(sku, field, value)
        if not sku.is_monthly:
            sku.monthly_price = None
            sku.monthly_start_date = None
        _check_monthly(sku)

        if data.kit_components is not None:
            if not sku.is_kit and data.kit_components:
                raise BusinessRuleViolationException("Apenas kits possuem componentes.", {"sku": sku.sku})
            skus.clear_components(sku)
            _attach_components(skus, sku, data.kit_components)
        db.flush()

    logger.info(
        "SKU updated",
        sku_id=sku_id,
        fields=sorted(changes),
        components_replaced=data.kit_components is not None,
    )
    return sku


def add_kit_component(
    db: Session, kit_sku_id: int, child_sku_id: int, quantity_per_kit: int
) -> SkuKitComponent:
    """Link a child to a kit, or change the quantity of an existing link."""
    if quantity_per_kit <= 0:
        raise BusinessRuleViolationException(
            "Quantidade por kit deve ser positiva.", {"quantity_per_kit": quantity_per_kit}
        )
    skus = SQLAlchemySkuRepository(db, Sku)

    with transaction(db):
        kit = skus.get_by_id(kit_sku_id)
        if kit is None or not kit.is_kit:
            raise EntityNotFoundException(f"Kit com ID {kit_sku_id} não encontrado.", {"kit_sku_id": kit_sku_id})
        child = _valid_child(skus, kit, child_sku_id)

        component = skus.get_component(kit.id, child.id)
        if component is None:
            component = skus.add_component(kit, child, quantity_per_kit)
        else:
            component.quantity_per_kit = quantity_per_kit
            db.flush()

    logger.info("Kit component linked", kit=kit.sku, child=child.sku, quantity_per_kit=quantity_per_kit)
    return component


def remove_kit_component(db: Session, kit_sku_id: int, child_sku_id: int) -> None:
    skus = SQLAlchemySkuRepository(db, Sku)

    with transaction(db):
        component = skus.get_component(kit_sku_id, child_sku_id)
        if component is None:
            raise EntityNotFoundException(
                "Conexão não encontrada.", {"kit_sku_id": kit_sku_id, "child_sku_id": child_sku_id}
            )
        skus.remove_component(component.kit, component)

    logger.info("Kit component unlinked", kit_sku_id=kit_sku_id, child_sku_id=child_sku_id)
