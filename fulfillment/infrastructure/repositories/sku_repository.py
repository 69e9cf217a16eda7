"""
SQLAlchemy Implementation of SKU Repository.
"""

from typing import List, Optional, Sequence

from sqlalchemy import func

from fulfillment.domain.models.sku import Sku, SkuKitComponent
from fulfillment.domain.repositories.sku_repository import SkuRepository
from fulfillment.infrastructure.repositories.base_repository import SQLAlchemyRepository


class SQLAlchemySkuRepository(SQLAlchemyRepository[Sku], SkuRepository):
    """SKU repository implementation using SQLAlchemy."""

    def get_by_code(self, user_id: int, code: str, for_update: bool = False) -> Optional[Sku]:
        query = (
            self.db.query(Sku)
            .filter(Sku.user_id == user_id)
            .filter(func.upper(func.trim(Sku.sku)) == code.strip().upper())
        )
        if for_update:
            # Sku.package_type is eager-joined; lock only the skus row
            query = query.with_for_update(of=Sku).populate_existing()
        return query.first()

    def lock(self, sku_ids: Sequence[int]) -> List[Sku]:
        if not sku_ids:
            return []
        # Ascending id order keeps concurrent lockers from deadlocking
        return (
            self.db.query(Sku)
            .filter(Sku.id.in_(sorted(set(sku_ids))))
            .order_by(Sku.id.asc())
            .with_for_update(of=Sku)
            .populate_existing()
            .all()
        )

    def get_components(self, kit_sku_id: int) -> List[SkuKitComponent]:
        return (
            self.db.query(SkuKitComponent)
            .filter(SkuKitComponent.kit_sku_id == kit_sku_id)
            .order_by(SkuKitComponent.child_sku_id.asc())
            .all()
        )

    def kits_containing(self, child_sku_id: int) -> List[Sku]:
        return (
            self.db.query(Sku)
            .join(SkuKitComponent, SkuKitComponent.kit_sku_id == Sku.id)
            .filter(SkuKitComponent.child_sku_id == child_sku_id)
            .order_by(Sku.sku.asc())
            .all()
        )

    def adjust_quantity(self, sku: Sku, delta: int) -> Sku:
        sku.quantidade = (sku.quantidade or 0) + delta
        self.db.flush()
        return sku

    def get_monthly_skus(self, user_id: int) -> List[Sku]:
        return (
            self.db.query(Sku)
            .filter(Sku.user_id == user_id)
            .filter(Sku.ativo.is_(True))
            .filter(Sku.is_monthly.is_(True))
            .filter(Sku.monthly_price.isnot(None))
            .filter(Sku.monthly_start_date.isnot(None))
            .order_by(Sku.sku.asc())
            .all()
        )

    def list_for_user(self, user_id: int) -> List[Sku]:
        return (
            self.db.query(Sku)
            .filter(Sku.user_id == user_id)
            .order_by(Sku.is_kit.asc(), Sku.sku.asc())
            .all()
        )

    def get_component(self, kit_sku_id: int, child_sku_id: int) -> Optional[SkuKitComponent]:
        return (
            self.db.query(SkuKitComponent)
            .filter(SkuKitComponent.kit_sku_id == kit_sku_id, SkuKitComponent.child_sku_id == child_sku_id)
            .first()
        )

    def add_component(self, kit: Sku, child: Sku, quantity_per_kit: int) -> SkuKitComponent:
        component = SkuKitComponent(child=child, quantity_per_kit=quantity_per_kit)
        kit.components.append(component)
        self.db.flush()
        return component

    def remove_component(self, kit: Sku, component: SkuKitComponent) -> None:
        # delete-orphan cascade drops the row
        kit.components.remove(component)
        self.db.flush()

    def clear_components(self, kit: Sku) -> int:
        removed = len(kit.components)
        kit.components.clear()
        self.db.flush()
        return removed
