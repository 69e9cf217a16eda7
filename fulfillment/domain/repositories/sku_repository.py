"""
SKU Repository Interface.
SKU counters, kit components and monthly-billed SKUs.
"""

from typing import List, Optional, Sequence

from fulfillment.domain.repositories.base import BaseRepository
from fulfillment.domain.models.sku import Sku, SkuKitComponent


class SkuRepository(BaseRepository[Sku]):
    """Interface for SKU-specific operations."""

    def get_by_code(self, user_id: int, code: str, for_update: bool = False) -> Optional[Sku]:
        """Get a SKU by code (trimmed, case-insensitive), optionally locking it."""
        ...

    def lock(self, sku_ids: Sequence[int]) -> List[Sku]:
        """Lock SKU rows in id order and return them."""
        ...

    def get_components(self, kit_sku_id: int) -> List[SkuKitComponent]:
        """Get the components of a kit."""
        ...

    def kits_containing(self, child_sku_id: int) -> List[Sku]:
        """Get kits that use the SKU as a component."""
        ...

    def adjust_quantity(self, sku: Sku, delta: int) -> Sku:
        """Apply a signed delta to the SKU counter."""
        ...

    def get_monthly_skus(self, user_id: int) -> List[Sku]:
        """Get active SKUs billed monthly (price and start date set)."""
        ...

    def list_for_user(self, user_id: int) -> List[Sku]:
        """Get all SKUs of a user, plain items first."""
        ...

    def get_component(self, kit_sku_id: int, child_sku_id: int) -> Optional[SkuKitComponent]:
        """Get one kit-child link."""
        ...

    def add_component(self, kit: Sku, child: Sku, quantity_per_kit: int) -> SkuKitComponent:
        """Link a child SKU to a kit."""
        ...

    def remove_component(self, kit: Sku, component: SkuKitComponent) -> None:
        """Unlink one component from a kit."""
        ...

    def clear_components(self, kit: Sku) -> int:
        """Unlink every component of a kit; returns links removed."""
        ...
