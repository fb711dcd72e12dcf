"""Carrier selection for supplier orders.

Pure functions over the carrier list the supplier offers for a destination.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Carrier:
    """A carrier offered for a destination.

    ``countries`` empty means the supplier did not restrict it beyond the lookup.
    """

    name: str
    excluded_skus: frozenset[str] = frozenset()
    countries: frozenset[str] = frozenset()

    def ships_to(self, country: str) -> bool:
        return not self.countries or country.upper() in self.countries

    def accepts(self, skus: Iterable[str]) -> bool:
        return not self.excluded_skus.intersection(skus)


@dataclass(frozen=True)
class CarrierPolicy:
    """Preferred carrier names (first match wins) and the fallback identifier."""

    priority: tuple[str, ...] = field(default_factory=tuple)
    fallback: str = "standard shipment"


def eligible_carriers(carriers: Iterable[Carrier], skus: Iterable[str], country: str) -> list[Carrier]:
    skus = list(skus)
    return [carrier for carrier in carriers if carrier.ships_to(country) and carrier.accepts(skus)]


def select_carrier(carriers: Iterable[Carrier], skus: Iterable[str], country: str, policy: CarrierPolicy) -> str:
    """Pick the carrier name for an order.

    Carriers that exclude an ordered SKU or do not ship to ``country`` are
    dropped. The first name in ``policy.priority`` matching an eligible
    carrier (case-insensitive) wins. With no priority list the first eligible
    carrier is used. When nothing matches, ``policy.fallback`` is returned
    rather than failing the placement.
    """
    eligible = eligible_carriers(carriers, skus, country)
    by_name = {carrier.name.lower(): carrier for carrier in reversed(eligible)}

    for preferred in policy.priority:
        carrier = by_name.get(preferred.strip().lower())
        if carrier is not None:
            return carrier.name.lower()

    if not policy.priority and eligible:
        return eligible[0].name.lower()

    logger.info(
        "carrier_fallback_used",
        country=country,
        offered=[carrier.name for carrier in eligible],
        fallback=policy.fallback,
    )
    return policy.fallback
