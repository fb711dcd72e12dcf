"""Order aggregate (CQRS): the durable record of one completed checkout.

An Order is keyed by the payment gateway's checkout session id, which makes
the session id the idempotency key for webhook redelivery. The aggregate
tracks two sides of one transaction: the payment authorization and the
supplier purchase order.

State Machine (fulfillment side):
    PENDING → SENT
    PENDING → FAILED / CHECK_FAILED / ERROR   (payment released in the same change)

State Machine (payment side):
    AUTHORIZED → PAID            (only after SENT)
    AUTHORIZED → CAPTURE_FAILED  (after SENT, needs manual reconciliation)
    AUTHORIZED → CANCELED / REFUNDED / CANCEL_FAILED / ERROR   (with a fulfillment failure)
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Integer, String, ValueObject

from checkout.domain import checkout
from checkout.order.events import (
    CustomerNotified,
    FulfillmentFailed,
    OrderMaterialized,
    PaymentCaptured,
    PaymentCaptureFailed,
    SupplierAttemptClaimed,
    SupplierOrderPlaced,
)

# Stored when the gateway reports no customer email; the email step is skipped
MISSING_EMAIL = "unknown"

NO_FULFILLABLE_ITEMS = "no fulfillable items"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class PaymentStatus(Enum):
    AUTHORIZED = "authorized"
    PAID = "paid"
    CANCELED = "canceled"
    REFUNDED = "refunded"
    CAPTURE_FAILED = "capture_failed"
    CANCEL_FAILED = "cancel_failed"
    ERROR = "error"


class FulfillmentStatus(Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
    CHECK_FAILED = "check_failed"
    ERROR = "error"


class NotificationOutcome(Enum):
    SENT = "sent"
    SEND_FAILED = "send_failed"
    SKIPPED = "skipped"


FULFILLMENT_FAILURES = frozenset(
    {
        FulfillmentStatus.FAILED,
        FulfillmentStatus.CHECK_FAILED,
        FulfillmentStatus.ERROR,
    }
)

# Payment states reachable together with a fulfillment failure
PAYMENT_RELEASE_OUTCOMES = frozenset(
    {
        PaymentStatus.CANCELED,
        PaymentStatus.REFUNDED,
        PaymentStatus.CANCEL_FAILED,
        PaymentStatus.ERROR,
    }
)

_PAYMENT_TRANSITIONS = {
    PaymentStatus.AUTHORIZED: {
        PaymentStatus.PAID,
        PaymentStatus.CAPTURE_FAILED,
        *PAYMENT_RELEASE_OUTCOMES,
    },
    PaymentStatus.PAID: set(),  # terminal
    PaymentStatus.CANCELED: set(),  # terminal
    PaymentStatus.REFUNDED: set(),  # terminal
    PaymentStatus.CAPTURE_FAILED: set(),  # terminal, manual reconciliation
    PaymentStatus.CANCEL_FAILED: set(),  # terminal, manual reconciliation
    PaymentStatus.ERROR: set(),  # terminal, manual reconciliation
}

_FULFILLMENT_TRANSITIONS = {
    FulfillmentStatus.PENDING: {FulfillmentStatus.SENT, *FULFILLMENT_FAILURES},
    FulfillmentStatus.SENT: set(),
    FulfillmentStatus.FAILED: set(),
    FulfillmentStatus.CHECK_FAILED: set(),
    FulfillmentStatus.ERROR: set(),
}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@checkout.value_object(part_of="Order")
class ShippingAddress:
    """Where the supplier ships the parcel."""

    name = String(max_length=255)
    line1 = String(max_length=255)
    line2 = String(max_length=255)
    city = String(max_length=100)
    postal_code = String(max_length=20)
    country = String(max_length=2)
    phone = String(max_length=50)

    def is_complete(self) -> bool:
        return all((self.line1, self.city, self.postal_code, self.country))


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@checkout.entity(part_of="Order")
class OrderLine:
    """A purchased line as reported by the gateway. Amounts are minor units."""

    description = String(required=True, max_length=500)
    quantity = Integer(required=True, min_value=1)
    unit_amount = Integer(required=True, min_value=0)
    amount_total = Integer(min_value=0)
    product_id = String(max_length=100)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@checkout.aggregate
class Order:
    payment_session_id = String(identifier=True, required=True, max_length=255)
    payment_intent_id = String(max_length=255)
    customer_email = String(max_length=254, default=MISSING_EMAIL)
    customer_name = String(max_length=255)
    shipping_address = ValueObject(ShippingAddress)
    total_amount = Integer(required=True, min_value=0)
    currency = String(required=True, max_length=3)
    items = HasMany(OrderLine)
    payment_status = String(
        choices=PaymentStatus,
        default=PaymentStatus.AUTHORIZED.value,
    )
    fulfillment_status = String(
        choices=FulfillmentStatus,
        default=FulfillmentStatus.PENDING.value,
    )
    supplier_order_reference = String(max_length=255)
    carrier = String(max_length=100)
    failure_reason = String(max_length=500)
    payment_failure_reason = String(max_length=500)
    supplier_attempted_at = DateTime()
    notification_outcome = String(max_length=20, choices=NotificationOutcome)
    notified_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def paid_orders_must_have_been_sent(self):
        if self.payment_status == PaymentStatus.PAID.value and self.fulfillment_status != FulfillmentStatus.SENT.value:
            raise ValidationError({"payment_status": ["Payment cannot be captured before the supplier order is sent"]})

    @invariant.post
    def failed_fulfillment_must_release_payment(self):
        if FulfillmentStatus(self.fulfillment_status) in FULFILLMENT_FAILURES and self.payment_status in (
            PaymentStatus.AUTHORIZED.value,
            PaymentStatus.PAID.value,
        ):
            raise ValidationError({"payment_status": ["A failed fulfillment cannot keep the payment authorized or paid"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def materialize(
        cls,
        payment_session_id: str,
        payment_intent_id: str | None,
        customer_email: str | None,
        customer_name: str | None,
        shipping_address: dict | None,
        total_amount: int,
        currency: str,
        lines: list[dict],
    ):
        """Create the Order for a completed checkout session."""
        now = datetime.now(UTC)
        order = cls(
            payment_session_id=payment_session_id,
            payment_intent_id=payment_intent_id or None,
            customer_email=customer_email or MISSING_EMAIL,
            customer_name=customer_name or None,
            shipping_address=ShippingAddress(**shipping_address) if shipping_address else None,
            total_amount=total_amount,
            currency=(currency or "").upper(),
            payment_status=PaymentStatus.AUTHORIZED.value,
            fulfillment_status=FulfillmentStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        for line in lines:
            order.add_items(OrderLine(**line))

        order.raise_(
            OrderMaterialized(
                payment_session_id=payment_session_id,
                payment_intent_id=payment_intent_id or "",
                customer_email=order.customer_email,
                total_amount=total_amount,
                currency=order.currency,
                item_count=len(lines),
                materialized_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def has_contact_email(self) -> bool:
        return bool(self.customer_email) and self.customer_email != MISSING_EMAIL

    def is_awaiting_supplier(self) -> bool:
        """True only for Orders nobody has called the supplier for yet."""
        return FulfillmentStatus(self.fulfillment_status) == FulfillmentStatus.PENDING and (
            self.supplier_attempted_at is None
        )

    def is_supplier_attempt_in_flight(self) -> bool:
        return FulfillmentStatus(self.fulfillment_status) == FulfillmentStatus.PENDING and (
            self.supplier_attempted_at is not None
        )

    def is_awaiting_capture(self) -> bool:
        return (
            FulfillmentStatus(self.fulfillment_status) == FulfillmentStatus.SENT
            and PaymentStatus(self.payment_status) == PaymentStatus.AUTHORIZED
        )

    def is_settled(self) -> bool:
        """Both sides reached a terminal state."""
        fulfillment_status = FulfillmentStatus(self.fulfillment_status)
        if fulfillment_status == FulfillmentStatus.PENDING:
            return False
        return not self.is_awaiting_capture()

    def is_fulfilled(self) -> bool:
        return FulfillmentStatus(self.fulfillment_status) == FulfillmentStatus.SENT

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    def _assert_payment_can_transition(self, target: PaymentStatus) -> None:
        current = PaymentStatus(self.payment_status)
        if target not in _PAYMENT_TRANSITIONS.get(current, set()):
            raise ValidationError({"payment_status": [f"Cannot transition from {current.value} to {target.value}"]})

    def _assert_fulfillment_can_transition(self, target: FulfillmentStatus) -> None:
        current = FulfillmentStatus(self.fulfillment_status)
        if target not in _FULFILLMENT_TRANSITIONS.get(current, set()):
            raise ValidationError(
                {"fulfillment_status": [f"Cannot transition from {current.value} to {target.value}"]}
            )

    # -------------------------------------------------------------------
    # Supplier side
    # -------------------------------------------------------------------
    def claim_supplier_attempt(self) -> None:
        """Mark that the supplier is about to be called.

        The create call is billable, so a claimed Order is never handed to the
        supplier again, even if the outcome was never recorded.
        """
        if not self.is_awaiting_supplier():
            raise ValidationError({"fulfillment_status": ["Supplier has already been attempted for this order"]})

        now = datetime.now(UTC)
        self.supplier_attempted_at = now
        self.updated_at = now
        self.raise_(
            SupplierAttemptClaimed(
                payment_session_id=str(self.payment_session_id),
                claimed_at=now,
            )
        )

    def record_supplier_success(self, supplier_order_reference: str, carrier: str | None = None) -> None:
        """Record the supplier's confirmation. Payment stays authorized until captured."""
        self._assert_fulfillment_can_transition(FulfillmentStatus.SENT)
        now = datetime.now(UTC)
        self.fulfillment_status = FulfillmentStatus.SENT.value
        self.supplier_order_reference = supplier_order_reference
        self.carrier = carrier
        self.updated_at = now
        self.raise_(
            SupplierOrderPlaced(
                payment_session_id=str(self.payment_session_id),
                supplier_order_reference=supplier_order_reference,
                carrier=carrier or "",
                placed_at=now,
            )
        )

    def record_fulfillment_failure(
        self,
        fulfillment_status: FulfillmentStatus,
        reason: str,
        payment_status: PaymentStatus,
        payment_failure_reason: str | None = None,
    ) -> None:
        """Record a failed fulfillment together with the outcome of releasing the payment."""
        if fulfillment_status not in FULFILLMENT_FAILURES:
            raise ValidationError({"fulfillment_status": [f"{fulfillment_status.value} is not a failure status"]})
        if payment_status not in PAYMENT_RELEASE_OUTCOMES:
            raise ValidationError(
                {"payment_status": [f"{payment_status.value} does not release the payment authorization"]}
            )
        self._assert_fulfillment_can_transition(fulfillment_status)
        self._assert_payment_can_transition(payment_status)

        now = datetime.now(UTC)
        with atomic_change(self):
            self.fulfillment_status = fulfillment_status.value
            self.payment_status = payment_status.value
            self.failure_reason = reason
            self.payment_failure_reason = payment_failure_reason
            self.updated_at = now

        self.raise_(
            FulfillmentFailed(
                payment_session_id=str(self.payment_session_id),
                fulfillment_status=fulfillment_status.value,
                reason=reason,
                payment_status=payment_status.value,
                payment_failure_reason=payment_failure_reason or "",
                failed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Payment side
    # -------------------------------------------------------------------
    def record_payment_captured(self) -> None:
        if FulfillmentStatus(self.fulfillment_status) != FulfillmentStatus.SENT:
            raise ValidationError({"payment_status": ["Payment can only be captured after the supplier order is sent"]})
        self._assert_payment_can_transition(PaymentStatus.PAID)

        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.PAID.value
        self.updated_at = now
        self.raise_(
            PaymentCaptured(
                payment_session_id=str(self.payment_session_id),
                payment_intent_id=self.payment_intent_id or "",
                amount=self.total_amount,
                currency=self.currency,
                captured_at=now,
            )
        )

    def record_capture_failure(self, reason: str) -> None:
        if FulfillmentStatus(self.fulfillment_status) != FulfillmentStatus.SENT:
            raise ValidationError({"payment_status": ["Capture is only attempted after the supplier order is sent"]})
        self._assert_payment_can_transition(PaymentStatus.CAPTURE_FAILED)

        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.CAPTURE_FAILED.value
        self.payment_failure_reason = reason
        self.updated_at = now
        self.raise_(
            PaymentCaptureFailed(
                payment_session_id=str(self.payment_session_id),
                supplier_order_reference=self.supplier_order_reference or "",
                reason=reason,
                failed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Customer notification
    # -------------------------------------------------------------------
    def record_notification(self, outcome: NotificationOutcome) -> None:
        if not self.is_settled():
            raise ValidationError({"notification_outcome": ["Customer is notified only once the order has settled"]})
        if self.notification_outcome is not None:
            raise ValidationError({"notification_outcome": ["Customer has already been notified"]})

        now = datetime.now(UTC)
        self.notification_outcome = outcome.value
        self.notified_at = now
        self.updated_at = now
        self.raise_(
            CustomerNotified(
                payment_session_id=str(self.payment_session_id),
                outcome=outcome.value,
                notified_at=now,
            )
        )
