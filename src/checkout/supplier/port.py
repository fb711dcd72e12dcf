"""Fulfillment supplier port: abstract interface for the dropshipping supplier.

Adapters implement the three raw calls (check, carrier lookup, create). The
two-phase placement protocol built on top of them lives here in
``place_order`` so every adapter follows it the same way:

1. Check: submit the tentative order for validation. Structural errors stop
   here, before anything billable happens.
2. Carrier selection: list carriers for the destination and pick one.
3. Create: submit the order with the selected carrier. This call is billable
   and is made at most once per placement.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import structlog

from checkout.supplier.carriers import Carrier, CarrierPolicy, select_carrier
from checkout.supplier.payload import build_order_payload

logger = structlog.get_logger(__name__)

STAGE_CHECK = "check"
STAGE_CARRIERS = "carriers"
STAGE_CREATE = "create"


class SupplierError(Exception):
    """A supplier call failed: network error, timeout, or a non-2xx response."""


@dataclass(frozen=True)
class SupplierLineItem:
    sku: str
    quantity: int


@dataclass(frozen=True)
class SupplierCustomer:
    email: str | None
    name: str | None = None


@dataclass(frozen=True)
class SupplierResponse:
    """Body of a 2xx supplier response. ``errors`` lists structural problems, if any."""

    data: dict = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class PlacementResult:
    """Outcome of ``place_order``. ``stage`` names the phase that failed."""

    success: bool
    supplier_order_reference: str | None = None
    carrier: str | None = None
    reason: str | None = None
    stage: str | None = None


class FulfillmentSupplier(ABC):
    """Abstract interface for dropshipping supplier adapters."""

    @abstractmethod
    def check_order(self, payload: dict) -> SupplierResponse:
        """Validate a tentative order. Raises SupplierError when the call itself fails."""
        ...

    @abstractmethod
    def list_carriers(self, country: str, postal_code: str) -> list[Carrier]:
        """Carriers available for a destination. Raises SupplierError on failure."""
        ...

    @abstractmethod
    def create_order(self, payload: dict) -> SupplierResponse:
        """Create the (billable) supplier order. Raises SupplierError on failure."""
        ...

    @staticmethod
    def extract_reference(response: SupplierResponse) -> str | None:
        """Pull the supplier's order reference out of a create response."""
        data = response.data or {}
        orders = data.get("orders")
        if isinstance(orders, list) and orders and isinstance(orders[0], dict):
            reference = orders[0].get("reference") or orders[0].get("id")
            if reference:
                return str(reference)
        reference = data.get("reference") or data.get("id")
        return str(reference) if reference else None

    def place_order(
        self,
        order_ref: str,
        customer: SupplierCustomer,
        shipping_address: dict,
        items: list[SupplierLineItem],
        policy: CarrierPolicy,
    ) -> PlacementResult:
        payload = build_order_payload(order_ref, customer, shipping_address, items)
        log = logger.bind(order_ref=order_ref, supplier=type(self).__name__)

        try:
            checked = self.check_order(payload)
        except SupplierError as exc:
            log.warning("supplier_check_unavailable", error=str(exc))
            return PlacementResult(success=False, reason=str(exc), stage=STAGE_CHECK)
        if not checked.ok:
            log.warning("supplier_check_rejected", errors=checked.errors)
            return PlacementResult(success=False, reason="; ".join(checked.errors), stage=STAGE_CHECK)

        country = shipping_address.get("country") or ""
        try:
            carriers = self.list_carriers(country, shipping_address.get("postal_code") or "")
        except SupplierError as exc:
            log.warning("supplier_carrier_lookup_failed", error=str(exc))
            return PlacementResult(success=False, reason=str(exc), stage=STAGE_CARRIERS)

        carrier = select_carrier(
            carriers,
            skus=[item.sku for item in items],
            country=country,
            policy=policy,
        )
        payload["order"]["carriers"] = [{"name": carrier}]

        try:
            created = self.create_order(payload)
        except SupplierError as exc:
            log.error("supplier_create_failed", carrier=carrier, error=str(exc))
            return PlacementResult(success=False, carrier=carrier, reason=str(exc), stage=STAGE_CREATE)
        if not created.ok:
            log.error("supplier_create_rejected", carrier=carrier, errors=created.errors)
            return PlacementResult(
                success=False,
                carrier=carrier,
                reason="; ".join(created.errors),
                stage=STAGE_CREATE,
            )

        reference = self.extract_reference(created)
        if not reference:
            # The order exists on the supplier side; it is findable by our internal reference
            log.warning("supplier_create_missing_reference", carrier=carrier)
            reference = order_ref

        log.info("supplier_order_created", carrier=carrier, supplier_order_reference=reference)
        return PlacementResult(success=True, supplier_order_reference=reference, carrier=carrier)
