"""Supplier placement outcomes: commands and handlers.

Every handler reloads the Order and checks its persisted state before
writing, so a stale copy held by a concurrent delivery cannot overwrite a
newer outcome.
"""

from protean import handle
from protean.fields import String
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.order.order import FulfillmentStatus, Order, PaymentStatus


@checkout.command(part_of="Order")
class ClaimSupplierAttempt:
    """Reserve the single supplier attempt for an Order."""

    payment_session_id: String(required=True, max_length=255)


@checkout.command(part_of="Order")
class RecordSupplierSuccess:
    payment_session_id: String(required=True, max_length=255)
    supplier_order_reference: String(required=True, max_length=255)
    carrier: String(max_length=100)


@checkout.command(part_of="Order")
class RecordFulfillmentFailure:
    """Record a failed fulfillment and how the payment authorization was released."""

    payment_session_id: String(required=True, max_length=255)
    fulfillment_status: String(required=True, choices=FulfillmentStatus)
    reason: String(required=True, max_length=500)
    payment_status: String(required=True, choices=PaymentStatus)
    payment_failure_reason: String(max_length=500)


@checkout.command_handler(part_of=Order)
class SupplierPlacementHandler:
    @handle(ClaimSupplierAttempt)
    def claim_supplier_attempt(self, command):
        """Return True if this caller won the claim, False if it was already taken."""
        repo = current_domain.repository_for(Order)
        order = repo.get(command.payment_session_id)
        if not order.is_awaiting_supplier():
            return False

        order.claim_supplier_attempt()
        repo.add(order)
        return True

    @handle(RecordSupplierSuccess)
    def record_supplier_success(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.payment_session_id)
        order.record_supplier_success(
            supplier_order_reference=command.supplier_order_reference,
            carrier=command.carrier,
        )
        repo.add(order)

    @handle(RecordFulfillmentFailure)
    def record_fulfillment_failure(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.payment_session_id)
        order.record_fulfillment_failure(
            fulfillment_status=FulfillmentStatus(command.fulfillment_status),
            reason=command.reason,
            payment_status=PaymentStatus(command.payment_status),
            payment_failure_reason=command.payment_failure_reason,
        )
        repo.add(order)
