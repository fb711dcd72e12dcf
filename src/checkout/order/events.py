"""Domain events for the Order aggregate.

Each event records one step of the checkout-to-fulfillment reconciliation
and together they form the audit trail of money movement for a session.
"""

from protean.fields import DateTime, Integer, String

from checkout.domain import checkout


@checkout.event(part_of="Order")
class OrderMaterialized:
    """A completed checkout was turned into a durable Order."""

    __version__ = 1

    payment_session_id = String(required=True)
    payment_intent_id = String()
    customer_email = String(required=True)
    total_amount = Integer(required=True)
    currency = String(required=True)
    item_count = Integer(required=True)
    materialized_at = DateTime(required=True)


@checkout.event(part_of="Order")
class SupplierAttemptClaimed:
    """The supplier is about to be called for this Order; further deliveries must not call it."""

    __version__ = 1

    payment_session_id = String(required=True)
    claimed_at = DateTime(required=True)


@checkout.event(part_of="Order")
class SupplierOrderPlaced:
    """The supplier confirmed the purchase order."""

    __version__ = 1

    payment_session_id = String(required=True)
    supplier_order_reference = String(required=True)
    carrier = String()
    placed_at = DateTime(required=True)


@checkout.event(part_of="Order")
class FulfillmentFailed:
    """The Order could not be fulfilled and the payment authorization was released."""

    __version__ = 1

    payment_session_id = String(required=True)
    fulfillment_status = String(required=True)
    reason = String(required=True)
    payment_status = String(required=True)
    payment_failure_reason = String()
    failed_at = DateTime(required=True)


@checkout.event(part_of="Order")
class PaymentCaptured:
    """The authorization was captured after the supplier confirmed the order."""

    __version__ = 1

    payment_session_id = String(required=True)
    payment_intent_id = String(required=True)
    amount = Integer(required=True)
    currency = String(required=True)
    captured_at = DateTime(required=True)


@checkout.event(part_of="Order")
class PaymentCaptureFailed:
    """Capture failed after the supplier accepted the order. Needs a human."""

    __version__ = 1

    payment_session_id = String(required=True)
    supplier_order_reference = String()
    reason = String(required=True)
    failed_at = DateTime(required=True)


@checkout.event(part_of="Order")
class CustomerNotified:
    """The customer email step ran (sent, failed to send, or skipped)."""

    __version__ = 1

    payment_session_id = String(required=True)
    outcome = String(required=True)
    notified_at = DateTime(required=True)
