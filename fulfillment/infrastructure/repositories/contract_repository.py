"""
SQLAlchemy Implementation of Contract Repository.
"""

from typing import List, Optional

from fulfillment.domain.models.contract import UserContract
from fulfillment.domain.models.service import Service, STORAGE_SERVICE_TYPES
from fulfillment.domain.repositories.contract_repository import ContractRepository, StorageContractRow
from fulfillment.infrastructure.repositories.base_repository import SQLAlchemyRepository


class SQLAlchemyContractRepository(SQLAlchemyRepository[UserContract], ContractRepository):
    """Contract repository implementation using SQLAlchemy."""

    def get_storage_contracts(self, user_id: int) -> List[StorageContractRow]:
        rows = (
            self.db.query(
                Service.type,
                Service.name,
                UserContract.volume,
                UserContract.start_date,
                UserContract.end_date,
            )
            .join(Service, UserContract.service_id == Service.id)
            .filter(UserContract.user_id == user_id)
            .filter(Service.type.in_(STORAGE_SERVICE_TYPES))
            .order_by(UserContract.start_date.asc(), UserContract.id.asc())
            .all()
        )
        return [StorageContractRow(*row) for row in rows]

    def get_for_service(self, user_id: int, service_id: int) -> Optional[UserContract]:
        return (
            self.db.query(UserContract)
            .filter(UserContract.user_id == user_id, UserContract.service_id == service_id)
            .first()
        )

    def list_for_user(self, user_id: int) -> List[UserContract]:
        return (
            self.db.query(UserContract)
            .filter(UserContract.user_id == user_id)
            .order_by(UserContract.start_date.asc(), UserContract.id.asc())
            .all()
        )
