"""
SQLAlchemy Implementation of Catalog Repository.
"""

from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from fulfillment.core.money import to_decimal
from fulfillment.domain.models.service import MANUAL_SERVICE_TYPES, PackageType, Service
from fulfillment.domain.repositories.catalog_repository import CatalogRepository
from fulfillment.infrastructure.repositories.base_repository import SQLAlchemyRepository


class SQLAlchemyCatalogRepository(SQLAlchemyRepository[Service], CatalogRepository):
    """Catalog repository implementation using SQLAlchemy."""

    def get_prices(self, types: Sequence[str]) -> Dict[str, Decimal]:
        rows = (
            self.db.query(Service.type, Service.price)
            .filter(Service.type.in_(list(types)))
            .order_by(Service.id.asc())
            .all()
        )
        prices: Dict[str, Decimal] = {}
        for service_type, price in rows:
            # One master price per type; the oldest entry wins
            prices.setdefault(service_type, to_decimal(price))
        return prices

    def get_package_prices(self) -> Dict[str, Decimal]:
        rows = self.db.query(PackageType.name, PackageType.price).all()
        return {name: to_decimal(price) for name, price in rows}

    def get_service(self, service_id: int) -> Optional[Service]:
        return self.get_by_id(service_id)

    def list_manual_services(self) -> List[Service]:
        return (
            self.db.query(Service)
            .filter(Service.type.in_(MANUAL_SERVICE_TYPES))
            .order_by(Service.name.asc())
            .all()
        )

    def get_package_type(self, package_type_id: int) -> Optional[PackageType]:
        return self.db.get(PackageType, package_type_id)
