"""Service catalog and package types — maps to 'services' and 'package_types'."""

import enum

from sqlalchemy import Column, Integer, String, Numeric, Text, JSON
from sqlalchemy.dialects.postgresql import JSONB

from fulfillment.infrastructure.database import Base


class ServiceType(str, enum.Enum):
    BASE_STORAGE = "base_storage"
    ADDITIONAL_STORAGE = "additional_storage"
    PROPORTIONAL_STORAGE = "proportional_storage"
    AVULSO_SIMPLES = "avulso_simples"          # flat one-off
    AVULSO_QUANTIDADE = "avulso_quantidade"    # tiered one-off by quantity


STORAGE_SERVICE_TYPES = (ServiceType.BASE_STORAGE.value, ServiceType.ADDITIONAL_STORAGE.value)
MANUAL_SERVICE_TYPES = (ServiceType.AVULSO_SIMPLES.value, ServiceType.AVULSO_QUANTIDADE.value)


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    description = Column(Text, nullable=True)
    type = Column(String(50), nullable=True, index=True)
    # {"tiers": [{"from": 1, "to": 100, "price": 1.49}, ...]}
    config = Column(JSON().with_variant(JSONB, "postgresql"), nullable=True)

    def __repr__(self):
        return f"<Service {self.type} - {self.name}>"


class PackageType(Base):
    """Shipment/package type billed per unit dispatched."""

    __tablename__ = "package_types"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True)
    price = Column(Numeric(10, 2), nullable=False)

    def __repr__(self):
        return f"<PackageType {self.name}>"
