"""
Catalog Repository Interface.
Read access to service prices, tier configs and package types.
"""

from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from fulfillment.domain.repositories.base import BaseRepository
from fulfillment.domain.models.service import PackageType, Service


class CatalogRepository(BaseRepository[Service]):
    """Interface for the pricing catalog."""

    def get_prices(self, types: Sequence[str]) -> Dict[str, Decimal]:
        """Get the current price of each requested service type (absent types are omitted)."""
        ...

    def get_package_prices(self) -> Dict[str, Decimal]:
        """Get package/shipment type prices keyed by display name."""
        ...

    def get_service(self, service_id: int) -> Optional[Service]:
        """Get a service by id."""
        ...

    def list_manual_services(self) -> List[Service]:
        """Get services that can be launched manually on an invoice."""
        ...

    def get_package_type(self, package_type_id: int) -> Optional[PackageType]:
        """Get a package type by id."""
        ...
