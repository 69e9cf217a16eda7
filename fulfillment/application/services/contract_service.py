"""Storage contracts: which storage services a customer is billed for."""

from typing import List

import structlog
from sqlalchemy.orm import Session

from fulfillment.core.exceptions import (
    BusinessRuleViolationException, DuplicateEntityException, EntityNotFoundException,
)
from fulfillment.domain.models.contract import UserContract
from fulfillment.domain.models.service import STORAGE_SERVICE_TYPES, Service, ServiceType
from fulfillment.domain.models.user import User
from fulfillment.domain.schemas.billing import ContractCreate
from fulfillment.infrastructure.database import transaction
from fulfillment.infrastructure.repositories.catalog_repository import SQLAlchemyCatalogRepository
from fulfillment.infrastructure.repositories.contract_repository import SQLAlchemyContractRepository
from fulfillment.infrastructure.repositories.user_repository import SQLAlchemyUserRepository

logger = structlog.get_logger(__name__)


def create_contract(db: Session, user_id: int, data: ContractCreate) -> UserContract:
    """Bind a customer to a storage service; one contract per service."""
    contracts = SQLAlchemyContractRepository(db, UserContract)

    with transaction(db):
        if SQLAlchemyUserRepository(db, User).get_by_id(user_id) is None:
            raise EntityNotFoundException("Usuário não encontrado.", {"user_id": user_id})
        service = SQLAlchemyCatalogRepository(db, Service).get_service(data.service_id)
        if service is None:
            raise EntityNotFoundException("Serviço não encontrado no catálogo.", {"service_id": data.service_id})
        if service.type not in STORAGE_SERVICE_TYPES:
            raise BusinessRuleViolationException(
                "Apenas serviços de armazenamento podem ser contratados.",
                {"service_id": service.id, "type": service.type},
            )
        if service.type == ServiceType.ADDITIONAL_STORAGE.value and not data.volume:
            raise BusinessRuleViolationException(
                "Volume é obrigatório para armazenamento adicional.", {"service_id": service.id}
            )
        if contracts.get_for_service(user_id, service.id):
            raise DuplicateEntityException(
                "Este serviço já foi contratado por este usuário.",
                {"user_id": user_id, "service_id": service.id},
            )

        contract = contracts.create({
            "user_id": user_id,
            "service_id": service.id,
            "volume": data.volume,
            "start_date": data.start_date,
            "end_date": data.end_date,
        })

    logger.info("Contract created", user_id=user_id, service_type=service.type, volume=data.volume)
    return contract


def delete_contract(db: Session, user_id: int, contract_id: int) -> None:
    contracts = SQLAlchemyContractRepository(db, UserContract)

    with transaction(db):
        contract = contracts.get_by_id(contract_id)
        if contract is None or contract.user_id != user_id:
            raise EntityNotFoundException(
                "Contrato não encontrado ou não pertence a este usuário.",
                {"user_id": user_id, "contract_id": contract_id},
            )
        contracts.delete(contract.id)

    logger.info("Contract deleted", user_id=user_id, contract_id=contract_id)


def list_contracts(db: Session, user_id: int) -> List[UserContract]:
    return SQLAlchemyContractRepository(db, UserContract).list_for_user(user_id)
