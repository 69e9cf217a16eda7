"""Default catalog — package types and billable services."""

from decimal import Decimal

import structlog
from sqlalchemy.orm import Session

from fulfillment.domain.models.service import PackageType, Service, ServiceType

logger = structlog.get_logger(__name__)

DEFAULT_PACKAGE_TYPES = [
    {"name": "Expedição Comum", "price": Decimal("2.97")},
    {"name": "Expedição Premium", "price": Decimal("3.97")},
]

MONTAGEM_FULL_TIERS = {
    "tiers": [
        {"from": 1, "to": 100, "price": 1.49},
        {"from": 101, "to": 300, "price": 1.29},
        {"from": 301, "to": None, "price": 1.09},
    ]
}

DEFAULT_SERVICES = [
    {
        "name": "Armazenamento Base (até 1m³)",
        "price": Decimal("397.00"),
        "description": "Taxa base de armazenamento para o primeiro metro cúbico.",
        "type": ServiceType.BASE_STORAGE.value,
    },
    {
        "name": "Metro Cúbico Adicional",
        "price": Decimal("197.00"),
        "description": "Custo por cada metro cúbico adicional utilizado.",
        "type": ServiceType.ADDITIONAL_STORAGE.value,
    },
    {
        "name": "Coleta CyberSegura",
        "price": Decimal("50.00"),
        "description": "Serviço de coleta avulso.",
        "type": ServiceType.AVULSO_SIMPLES.value,
    },
    {
        "name": "Transbordo Full CyberSeguro",
        "price": Decimal("75.00"),
        "description": "Serviço de transbordo avulso.",
        "type": ServiceType.AVULSO_SIMPLES.value,
    },
    {
        "name": "Montagem de Full",
        "price": Decimal("0"),
        "description": "Montagem de pacotes para envio Full. O preço varia com a quantidade.",
        "type": ServiceType.AVULSO_QUANTIDADE.value,
        "config": MONTAGEM_FULL_TIERS,
    },
]


def seed_catalog(db: Session) -> int:
    """Insert missing package types and services by name; returns rows created."""
    created = 0
    existing_packages = {name for (name,) in db.query(PackageType.name).all()}
    for data in DEFAULT_PACKAGE_TYPES:
        if data["name"] not in existing_packages:
            db.add(PackageType(**data))
            created += 1

    existing_services = {name for (name,) in db.query(Service.name).all()}
    for data in DEFAULT_SERVICES:
        if data["name"] not in existing_services:
            db.add(Service(**data))
            created += 1

    db.commit()
    if created:
        logger.info("Default catalog seeded", created=created)
    return created
