"""Fulfillment orchestrator: drives one checkout through the Order state machine.

For each verified checkout-completed event:

1. Materialize the Order (created once per session, redeliveries find it).
2. If nobody has tried the supplier yet, claim the attempt and place the
   supplier order: map lines to SKUs, then check, pick a carrier, create.
3. Supplier failure releases the payment (cancel, or refund if the intent
   was already captured) in the same transition as the fulfillment failure.
4. Supplier success is recorded first, then the authorization is captured.
5. Once both sides are terminal, the customer gets exactly one email.

Each step reloads the Order and acts only on its persisted state, so a
redelivered event resumes where the previous delivery stopped and never
repeats a billable call. Steps for one session are serialized in-process by
a per-session lock.
"""

import json
import threading
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from enum import Enum

import structlog
from protean.utils.globals import current_domain

from checkout.catalog.port import CatalogStore, CatalogUnavailable
from checkout.fulfillment.mapping import map_supplier_items
from checkout.gateway.port import (
    CHECKOUT_COMPLETED,
    INTENT_CANCELED,
    INTENT_REQUIRES_CAPTURE,
    INTENT_SUCCEEDED,
    CheckoutCompleted,
    PaymentGateway,
)
from checkout.notification.port import STATUS_SENT, NotificationSender
from checkout.notification.templates import (
    OrderConfirmationTemplate,
    OrderFailureTemplate,
    order_context,
)
from checkout.order.materialization import MaterializeOrder
from checkout.order.notification import RecordCustomerNotified
from checkout.order.order import (
    NO_FULFILLABLE_ITEMS,
    FulfillmentStatus,
    NotificationOutcome,
    Order,
    PaymentStatus,
)
from checkout.order.payment import RecordCaptureFailure, RecordPaymentCaptured
from checkout.order.placement import (
    ClaimSupplierAttempt,
    RecordFulfillmentFailure,
    RecordSupplierSuccess,
)
from checkout.supplier.carriers import CarrierPolicy
from checkout.supplier.port import STAGE_CHECK, FulfillmentSupplier, SupplierCustomer

logger = structlog.get_logger(__name__)

INCOMPLETE_ADDRESS = "incomplete shipping address"
MISSING_INTENT = "checkout session has no payment intent"


class HandlingStatus(Enum):
    PROCESSED = "processed"  # first delivery, Order created and driven
    RESUMED = "resumed"  # redelivery that completed outstanding steps
    DUPLICATE = "duplicate"  # redelivery with nothing left to do
    IN_PROGRESS = "in_progress"  # supplier claimed by an earlier delivery, outcome unknown
    IGNORED = "ignored"  # not a checkout-completed event


@dataclass(frozen=True)
class HandlingOutcome:
    status: str
    event_type: str
    payment_session_id: str | None = None
    payment_status: str | None = None
    fulfillment_status: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


class _SessionLocks:
    """One lock per payment session, dropped once no delivery holds it."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, tuple[threading.Lock, int]] = {}

    @contextmanager
    def hold(self, key: str):
        with self._guard:
            lock, users = self._locks.get(key, (threading.Lock(), 0))
            self._locks[key] = (lock, users + 1)
        try:
            with lock:
                yield
        finally:
            with self._guard:
                _, users = self._locks[key]
                if users <= 1:
                    del self._locks[key]
                else:
                    self._locks[key] = (lock, users - 1)


_session_locks = _SessionLocks()


class FulfillmentOrchestrator:
    def __init__(
        self,
        gateway: PaymentGateway,
        supplier: FulfillmentSupplier,
        catalog: CatalogStore,
        sender: NotificationSender,
        carrier_policy: CarrierPolicy | None = None,
    ) -> None:
        self.gateway = gateway
        self.supplier = supplier
        self.catalog = catalog
        self.sender = sender
        self.carrier_policy = carrier_policy or CarrierPolicy()

    # -------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------
    def handle(self, raw_body: bytes, signature: str) -> HandlingOutcome:
        """Verify and handle one webhook delivery.

        Raises WebhookVerificationError before anything is read or written
        when the signature does not verify.
        """
        event = self.gateway.verify_and_parse(raw_body, signature)
        if event.event_type != CHECKOUT_COMPLETED or event.checkout is None:
            logger.info("webhook_event_ignored", event_id=event.event_id, event_type=event.event_type)
            return HandlingOutcome(status=HandlingStatus.IGNORED.value, event_type=event.event_type)

        return self.process_checkout(event.checkout)

    def process_checkout(self, checkout: CheckoutCompleted) -> HandlingOutcome:
        session_id = checkout.payment_session_id
        log = logger.bind(payment_session_id=session_id)

        with _session_locks.hold(session_id):
            created = self._materialize(checkout)
            acted = False

            order = self._load(session_id)
            if order.is_supplier_attempt_in_flight():
                log.warning("supplier_attempt_in_flight", claimed_at=str(order.supplier_attempted_at))
                return self._outcome(HandlingStatus.IN_PROGRESS, order)

            if order.is_awaiting_supplier() and self._claim(session_id):
                self._fulfill(order)
                acted = True

            order = self._load(session_id)
            if order.is_awaiting_capture():
                self._capture(order)
                acted = True

            order = self._load(session_id)
            if order.is_settled() and order.notification_outcome is None:
                self._notify(order)
                acted = True

            order = self._load(session_id)

        if created:
            status = HandlingStatus.PROCESSED
        elif acted:
            status = HandlingStatus.RESUMED
        else:
            status = HandlingStatus.DUPLICATE
        log.info(
            "checkout_handled",
            status=status.value,
            payment_status=order.payment_status,
            fulfillment_status=order.fulfillment_status,
        )
        return self._outcome(status, order)

    # -------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------
    def _materialize(self, checkout: CheckoutCompleted) -> bool:
        return current_domain.process(
            MaterializeOrder(
                payment_session_id=checkout.payment_session_id,
                payment_intent_id=checkout.payment_intent_id,
                customer_email=checkout.customer_email,
                customer_name=checkout.customer_name,
                shipping_address=json.dumps(checkout.shipping_address) if checkout.shipping_address else None,
                total_amount=checkout.total_amount,
                currency=checkout.currency,
                lines=json.dumps([asdict(line) for line in checkout.lines]),
            ),
            asynchronous=False,
        )

    def _claim(self, session_id: str) -> bool:
        return current_domain.process(ClaimSupplierAttempt(payment_session_id=session_id), asynchronous=False)

    def _fulfill(self, order: Order) -> None:
        session_id = order.payment_session_id
        log = logger.bind(payment_session_id=session_id)

        try:
            mapping = map_supplier_items(order.items, self.catalog)
        except CatalogUnavailable as exc:
            log.error("catalog_unavailable", error=str(exc))
            self._fail(order, FulfillmentStatus.ERROR, f"catalog unavailable: {exc}")
            return

        if mapping.is_empty:
            log.warning("no_fulfillable_items", dropped=len(mapping.dropped))
            self._fail(order, FulfillmentStatus.FAILED, NO_FULFILLABLE_ITEMS)
            return

        address = order.shipping_address
        if address is None or not address.is_complete():
            log.warning("incomplete_shipping_address")
            self._fail(order, FulfillmentStatus.FAILED, INCOMPLETE_ADDRESS)
            return

        placement = self.supplier.place_order(
            order_ref=session_id,
            customer=SupplierCustomer(
                email=order.customer_email if order.has_contact_email() else None,
                name=order.customer_name,
            ),
            shipping_address=address.to_dict(),
            items=mapping.items,
            policy=self.carrier_policy,
        )

        if placement.success:
            current_domain.process(
                RecordSupplierSuccess(
                    payment_session_id=session_id,
                    supplier_order_reference=placement.supplier_order_reference,
                    carrier=placement.carrier,
                ),
                asynchronous=False,
            )
            return

        status = FulfillmentStatus.CHECK_FAILED if placement.stage == STAGE_CHECK else FulfillmentStatus.FAILED
        self._fail(order, status, placement.reason or "supplier rejected the order")

    def _fail(self, order: Order, fulfillment_status: FulfillmentStatus, reason: str) -> None:
        """Release the payment, then record both outcomes in one transition."""
        payment_status, payment_failure_reason = self._release_payment(order)
        if payment_status in (PaymentStatus.CANCEL_FAILED, PaymentStatus.ERROR):
            logger.error(
                "payment_release_failed",
                payment_session_id=order.payment_session_id,
                payment_status=payment_status.value,
                reason=payment_failure_reason,
            )

        current_domain.process(
            RecordFulfillmentFailure(
                payment_session_id=order.payment_session_id,
                fulfillment_status=fulfillment_status.value,
                reason=reason,
                payment_status=payment_status.value,
                payment_failure_reason=payment_failure_reason,
            ),
            asynchronous=False,
        )

    def _release_payment(self, order: Order) -> tuple[PaymentStatus, str | None]:
        """Cancel the authorization, or refund it when it was already captured."""
        intent_id = order.payment_intent_id
        if not intent_id:
            return PaymentStatus.ERROR, MISSING_INTENT

        lookup = self.gateway.retrieve_intent_status(intent_id)
        if lookup.success:
            if lookup.status == INTENT_CANCELED:
                return PaymentStatus.CANCELED, None
            if lookup.status == INTENT_SUCCEEDED:
                refund = self.gateway.refund(intent_id)
                if refund.success:
                    return PaymentStatus.REFUNDED, None
                return PaymentStatus.CANCEL_FAILED, refund.failure_reason
            if lookup.status != INTENT_REQUIRES_CAPTURE:
                return PaymentStatus.ERROR, f"unexpected payment intent status: {lookup.status}"
        else:
            # Cancel still fails safely if the intent turns out to be captured
            logger.warning(
                "intent_lookup_failed",
                payment_session_id=order.payment_session_id,
                reason=lookup.failure_reason,
            )

        cancel = self.gateway.cancel_authorization(intent_id)
        if cancel.success:
            return PaymentStatus.CANCELED, None
        return PaymentStatus.CANCEL_FAILED, cancel.failure_reason

    def _capture(self, order: Order) -> None:
        session_id = order.payment_session_id
        if order.payment_intent_id:
            result = self.gateway.capture(order.payment_intent_id)
            success, reason = result.success, result.failure_reason
        else:
            success, reason = False, MISSING_INTENT

        if success:
            current_domain.process(RecordPaymentCaptured(payment_session_id=session_id), asynchronous=False)
            return

        logger.error(
            "capture_failed_after_supplier_success",
            payment_session_id=session_id,
            supplier_order_reference=order.supplier_order_reference,
            reason=reason,
        )
        current_domain.process(
            RecordCaptureFailure(payment_session_id=session_id, reason=reason or "capture failed"),
            asynchronous=False,
        )

    def _notify(self, order: Order) -> None:
        outcome = self._send_email(order)
        current_domain.process(
            RecordCustomerNotified(payment_session_id=order.payment_session_id, outcome=outcome.value),
            asynchronous=False,
        )

    def _send_email(self, order: Order) -> NotificationOutcome:
        log = logger.bind(payment_session_id=order.payment_session_id)
        if not order.has_contact_email():
            log.info("customer_email_skipped")
            return NotificationOutcome.SKIPPED

        template = OrderConfirmationTemplate if order.is_fulfilled() else OrderFailureTemplate
        message = template.render(order_context(order))
        try:
            result = self.sender.send(order.customer_email, message["subject"], message["body"])
        except Exception:
            log.exception("customer_email_failed", template=template.__name__)
            return NotificationOutcome.SEND_FAILED

        if result.get("status") != STATUS_SENT:
            log.warning("customer_email_failed", template=template.__name__, error=result.get("error"))
            return NotificationOutcome.SEND_FAILED

        log.info("customer_email_sent", template=template.__name__)
        return NotificationOutcome.SENT

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _load(self, session_id: str) -> Order:
        return current_domain.repository_for(Order).get(session_id)

    @staticmethod
    def _outcome(status: HandlingStatus, order: Order) -> HandlingOutcome:
        return HandlingOutcome(
            status=status.value,
            event_type=CHECKOUT_COMPLETED,
            payment_session_id=order.payment_session_id,
            payment_status=order.payment_status,
            fulfillment_status=order.fulfillment_status,
        )


def build_orchestrator() -> FulfillmentOrchestrator:
    """Wire the orchestrator from the configured adapters."""
    from checkout.catalog import get_catalog
    from checkout.gateway import get_gateway
    from checkout.notification import get_sender
    from checkout.supplier import carrier_policy, get_supplier

    return FulfillmentOrchestrator(
        gateway=get_gateway(),
        supplier=get_supplier(),
        catalog=get_catalog(),
        sender=get_sender(),
        carrier_policy=carrier_policy(),
    )
