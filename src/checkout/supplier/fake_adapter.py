"""Configurable fake supplier for development and testing.

Stands in for the supplier when its sandbox cannot take real orders. Check
and create outcomes, the carrier list and the returned reference can all be
configured at runtime, via /checkout/supplier/configure or directly in tests.
"""

from uuid import uuid4

from checkout.supplier.carriers import Carrier
from checkout.supplier.port import FulfillmentSupplier, SupplierError, SupplierResponse

DEFAULT_CARRIERS = (Carrier(name="gls"), Carrier(name="dhl"))


class FakeSupplier(FulfillmentSupplier):
    """Fake supplier that accepts every order by default."""

    def __init__(self) -> None:
        self.check_succeeds: bool = True
        self.create_succeeds: bool = True
        self.carriers_available: bool = True
        self.raise_on_create: bool = False
        self.failure_reason: str = "Product not available"
        self.carriers: list[Carrier] = list(DEFAULT_CARRIERS)
        self.order_reference: str | None = None
        self.calls: list[dict] = []

    def configure(
        self,
        check_succeeds: bool = True,
        create_succeeds: bool = True,
        carriers_available: bool = True,
        raise_on_create: bool = False,
        failure_reason: str = "Product not available",
        carriers: list[Carrier] | None = None,
        order_reference: str | None = None,
    ) -> None:
        """Configure supplier behavior.

        ``raise_on_create`` simulates a network failure or timeout on the
        billable call; ``create_succeeds=False`` simulates an errors list in
        a 200 body.
        """
        self.check_succeeds = check_succeeds
        self.create_succeeds = create_succeeds
        self.carriers_available = carriers_available
        self.raise_on_create = raise_on_create
        self.failure_reason = failure_reason
        self.carriers = list(DEFAULT_CARRIERS) if carriers is None else list(carriers)
        self.order_reference = order_reference

    def calls_to(self, method: str) -> list[dict]:
        return [call for call in self.calls if call["method"] == method]

    def check_order(self, payload: dict) -> SupplierResponse:
        self.calls.append({"method": "check_order", "payload": payload})
        if not self.check_succeeds:
            return SupplierResponse(errors=[self.failure_reason])
        return SupplierResponse(data={"status": "ok"})

    def list_carriers(self, country: str, postal_code: str) -> list[Carrier]:
        self.calls.append({"method": "list_carriers", "country": country, "postal_code": postal_code})
        if not self.carriers_available:
            raise SupplierError(self.failure_reason)
        return list(self.carriers)

    def create_order(self, payload: dict) -> SupplierResponse:
        self.calls.append({"method": "create_order", "payload": payload})
        if self.raise_on_create:
            raise SupplierError(self.failure_reason)
        if not self.create_succeeds:
            return SupplierResponse(errors=[self.failure_reason])

        reference = self.order_reference or f"FAKE-{uuid4().hex[:10].upper()}"
        return SupplierResponse(data={"orders": [{"reference": reference}]})
