"""
Contract Repository Interface.
Storage contracts binding a customer to base/additional storage services.
"""

from datetime import date
from typing import List, NamedTuple, Optional

from fulfillment.domain.repositories.base import BaseRepository
from fulfillment.domain.models.contract import UserContract


class StorageContractRow(NamedTuple):
    service_type: str
    service_name: str
    volume: Optional[int]
    start_date: date
    end_date: Optional[date] = None


class ContractRepository(BaseRepository[UserContract]):
    """Interface for contract lookups used by billing."""

    def get_storage_contracts(self, user_id: int) -> List[StorageContractRow]:
        """Get base/additional storage contracts of a user."""
        ...

    def get_for_service(self, user_id: int, service_id: int) -> Optional[UserContract]:
        """Get the user's contract for a service, if any."""
        ...

    def list_for_user(self, user_id: int) -> List[UserContract]:
        """Get every contract of a user, oldest first."""
        ...
