"""Pricing catalog reader and tiered price lookup."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Sequence

import structlog
from pydantic import ValidationError

from fulfillment.core.exceptions import NoMatchingTier
from fulfillment.core.money import ZERO
from fulfillment.domain.models.service import ServiceType
from fulfillment.domain.repositories.catalog_repository import CatalogRepository
from fulfillment.domain.schemas.billing import MissingPriceWarning, TierConfig

logger = structlog.get_logger(__name__)

STORAGE_PRICE_TYPES = (
    ServiceType.BASE_STORAGE.value,
    ServiceType.ADDITIONAL_STORAGE.value,
    ServiceType.PROPORTIONAL_STORAGE.value,
)


@dataclass
class PriceSnapshot:
    """Prices read once at the start of a computation.

    A lookup that misses returns zero and records a MissingPriceWarning.
    """

    service_prices: Dict[str, Decimal] = field(default_factory=dict)
    package_prices: Dict[str, Decimal] = field(default_factory=dict)
    warnings: List[MissingPriceWarning] = field(default_factory=list)

    def service_price(self, service_type: str) -> Decimal:
        return self._lookup(self.service_prices, service_type, "service_type")

    def package_price(self, name: str) -> Decimal:
        return self._lookup(self.package_prices, name, "package_type")

    def _lookup(self, prices: Dict[str, Decimal], key: str, kind: str) -> Decimal:
        if key in prices:
            return prices[key]
        if not any(w.key == key and w.kind == kind for w in self.warnings):
            logger.warning("Missing catalog price, defaulting to zero", key=key, kind=kind)
            self.warnings.append(MissingPriceWarning(key=key, kind=kind))
        return ZERO


def load_price_snapshot(catalog: CatalogRepository, types: Sequence[str] = STORAGE_PRICE_TYPES) -> PriceSnapshot:
    return PriceSnapshot(
        service_prices=catalog.get_prices(types),
        package_prices=catalog.get_package_prices(),
    )


def select_tier_price(config: Any, quantity: int) -> Decimal:
    """Pick the unit price for a quantity.

    The first bounded band containing the quantity wins. The open-ended band
    only applies past the last bounded band; anything else is NoMatchingTier.
    """
    if isinstance(config, list):
        config = {"tiers": config}
    try:
        tiers = TierConfig.model_validate(config or {}).tiers
    except ValidationError as exc:
        raise NoMatchingTier(quantity, {"reason": "invalid_tier_config", "errors": [e["msg"] for e in exc.errors()]}) from exc

    open_band = None
    highest_bound = None
    for band in tiers:
        if band.to is None:
            open_band = band
            continue
        if band.from_ <= quantity <= band.to:
            return band.price
        highest_bound = band.to if highest_bound is None else max(highest_bound, band.to)

    if open_band is not None:
        above_bounded = highest_bound is None or quantity > highest_bound
        above_floor = quantity >= open_band.from_
        if above_bounded and above_floor:
            return open_band.price

    raise NoMatchingTier(quantity)
