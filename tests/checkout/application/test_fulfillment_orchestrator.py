"""Orchestrator tests: one webhook delivery driven through supplier, payment and email."""

import json

import pytest
from protean import current_domain

from checkout.fulfillment.orchestrator import HandlingStatus, build_orchestrator
from checkout.gateway.port import WebhookVerificationError
from checkout.order.materialization import MaterializeOrder
from checkout.order.order import (
    MISSING_EMAIL,
    NO_FULFILLABLE_ITEMS,
    FulfillmentStatus,
    NotificationOutcome,
    Order,
    PaymentStatus,
)
from checkout.order.placement import ClaimSupplierAttempt, RecordSupplierSuccess
from checkout.order.repository import find_order


def _order(session_id="cs_test_001"):
    return current_domain.repository_for(Order).get(session_id)


class TestHappyPath:
    def test_order_is_sent_and_paid(self, deliver, supplier, gateway, sender):
        outcome = deliver()

        assert outcome.status == HandlingStatus.PROCESSED.value
        order = _order()
        assert order.fulfillment_status == FulfillmentStatus.SENT.value
        assert order.payment_status == PaymentStatus.PAID.value
        assert order.carrier == "gls"
        assert order.supplier_order_reference

        assert len(supplier.calls_to("check_order")) == 1
        assert len(supplier.calls_to("create_order")) == 1
        assert len(gateway.calls_to("capture")) == 1
        assert gateway.calls_to("cancel_authorization") == []

    def test_confirmation_email_sent_once(self, deliver, sender):
        deliver()
        assert len(sender.sent_emails) == 1
        email = sender.sent_emails[0]
        assert email["to"] == "ana@example.com"
        assert email["subject"] == "Your order confirmation"
        assert _order().notification_outcome == NotificationOutcome.SENT.value

    def test_supplier_payload_carries_skus_and_carrier(self, deliver, supplier, make_line):
        deliver(lines=[make_line("p-lamp", 2), make_line("p-mug", 1)])
        payload = supplier.calls_to("create_order")[0]["payload"]["order"]
        assert payload["internalReference"] == "cs_test_001"
        assert sorted(payload["products"], key=lambda p: p["reference"]) == [
            {"reference": "BB-LAMP", "quantity": 2},
            {"reference": "BB-MUG", "quantity": 1},
        ]
        assert payload["carriers"] == [{"name": "gls"}]
        assert payload["shippingAddress"]["country"] == "HR"

    def test_unmappable_lines_are_dropped(self, deliver, supplier, make_line):
        deliver(lines=[make_line("p-lamp"), make_line("p-gift"), make_line(None)])
        payload = supplier.calls_to("create_order")[0]["payload"]["order"]
        assert payload["products"] == [{"reference": "BB-LAMP", "quantity": 1}]
        assert _order().fulfillment_status == FulfillmentStatus.SENT.value
        # the Order keeps every purchased line
        assert len(_order().items) == 3

    def test_capture_happens_after_supplier_create(self, deliver, supplier, gateway):
        deliver()
        assert supplier.calls[-1]["method"] == "create_order"
        assert gateway.calls[-1]["method"] == "capture"


class TestSupplierRejection:
    def test_check_failure_cancels_payment(self, deliver, supplier, gateway, sender):
        supplier.configure(check_succeeds=False, failure_reason="SKU discontinued")
        deliver()

        order = _order()
        assert order.fulfillment_status == FulfillmentStatus.CHECK_FAILED.value
        assert order.payment_status == PaymentStatus.CANCELED.value
        assert order.failure_reason == "SKU discontinued"
        assert supplier.calls_to("create_order") == []
        assert len(gateway.calls_to("cancel_authorization")) == 1
        assert gateway.calls_to("capture") == []
        assert sender.sent_emails[0]["subject"] == "We could not complete your order"

    def test_create_rejection_cancels_payment(self, deliver, supplier):
        supplier.configure(create_succeeds=False, failure_reason="Out of stock")
        deliver()
        order = _order()
        assert order.fulfillment_status == FulfillmentStatus.FAILED.value
        assert order.payment_status == PaymentStatus.CANCELED.value

    def test_create_timeout_cancels_payment(self, deliver, supplier, gateway):
        supplier.configure(raise_on_create=True, failure_reason="timed out")
        deliver()
        order = _order()
        assert order.fulfillment_status == FulfillmentStatus.FAILED.value
        assert order.payment_status == PaymentStatus.CANCELED.value
        assert len(supplier.calls_to("create_order")) == 1
        assert gateway.calls_to("capture") == []

    def test_carrier_lookup_failure(self, deliver, supplier):
        supplier.configure(carriers_available=False)
        deliver()
        assert _order().fulfillment_status == FulfillmentStatus.FAILED.value
        assert supplier.calls_to("create_order") == []

    def test_no_fulfillable_items(self, deliver, supplier, make_line):
        deliver(lines=[make_line("p-gift")])
        order = _order()
        assert order.fulfillment_status == FulfillmentStatus.FAILED.value
        assert order.failure_reason == NO_FULFILLABLE_ITEMS
        assert order.payment_status == PaymentStatus.CANCELED.value
        assert supplier.calls == []

    def test_incomplete_shipping_address(self, deliver, supplier):
        deliver(shipping={"name": "Ana", "address": {"line1": "Ilica 1", "country": "HR"}})
        assert _order().fulfillment_status == FulfillmentStatus.FAILED.value
        assert supplier.calls == []

    def test_catalog_unavailable_is_an_error(self, deliver, catalog, supplier):
        catalog.configure(available=False)
        deliver()
        order = _order()
        assert order.fulfillment_status == FulfillmentStatus.ERROR.value
        assert order.payment_status == PaymentStatus.CANCELED.value
        assert supplier.calls == []


class TestPaymentRelease:
    def test_refunds_when_already_captured(self, deliver, supplier, gateway):
        supplier.configure(check_succeeds=False)
        gateway.configure(intent_status="succeeded")
        deliver()
        assert _order().payment_status == PaymentStatus.REFUNDED.value
        assert len(gateway.calls_to("refund")) == 1
        assert gateway.calls_to("cancel_authorization") == []

    def test_refund_failure(self, deliver, supplier, gateway):
        supplier.configure(check_succeeds=False)
        gateway.configure(intent_status="succeeded", refund_succeeds=False, failure_reason="Refund limit")
        deliver()
        order = _order()
        assert order.payment_status == PaymentStatus.CANCEL_FAILED.value
        assert order.payment_failure_reason == "Refund limit"

    def test_already_canceled_intent(self, deliver, supplier, gateway):
        supplier.configure(check_succeeds=False)
        gateway.configure(intent_status="canceled")
        deliver()
        assert _order().payment_status == PaymentStatus.CANCELED.value
        assert gateway.calls_to("cancel_authorization") == []

    def test_cancel_failure(self, deliver, supplier, gateway):
        supplier.configure(check_succeeds=False)
        gateway.configure(cancel_succeeds=False, failure_reason="Gateway timeout")
        deliver()
        order = _order()
        assert order.fulfillment_status == FulfillmentStatus.CHECK_FAILED.value
        assert order.payment_status == PaymentStatus.CANCEL_FAILED.value
        assert order.payment_failure_reason == "Gateway timeout"

    def test_failed_lookup_still_cancels(self, deliver, supplier, gateway):
        supplier.configure(check_succeeds=False)
        gateway.configure(intent_status=None)
        deliver()
        assert _order().payment_status == PaymentStatus.CANCELED.value
        assert len(gateway.calls_to("cancel_authorization")) == 1

    def test_unexpected_intent_status_is_an_error(self, deliver, supplier, gateway):
        supplier.configure(check_succeeds=False)
        gateway.configure(intent_status="processing")
        deliver()
        assert _order().payment_status == PaymentStatus.ERROR.value
        assert gateway.calls_to("cancel_authorization") == []

    def test_missing_intent_is_an_error(self, deliver, supplier, gateway):
        supplier.configure(check_succeeds=False)
        deliver(payment_intent=None)
        assert _order().payment_status == PaymentStatus.ERROR.value
        assert gateway.calls_to("retrieve_intent_status") == []


class TestCaptureFailure:
    def test_supplier_order_stands(self, deliver, gateway, sender):
        gateway.configure(capture_succeeds=False, failure_reason="Authorization expired")
        deliver()
        order = _order()
        assert order.fulfillment_status == FulfillmentStatus.SENT.value
        assert order.payment_status == PaymentStatus.CAPTURE_FAILED.value
        assert order.payment_failure_reason == "Authorization expired"
        assert gateway.calls_to("cancel_authorization") == []
        assert sender.sent_emails[0]["subject"] == "Your order confirmation"

    def test_missing_intent_after_supplier_success(self, deliver, gateway):
        deliver(payment_intent=None)
        assert _order().payment_status == PaymentStatus.CAPTURE_FAILED.value
        assert gateway.calls_to("capture") == []


class TestCustomerEmail:
    def test_missing_email_skips_notification(self, deliver, sender):
        deliver(email=None)
        order = _order()
        assert order.customer_email == MISSING_EMAIL
        assert order.notification_outcome == NotificationOutcome.SKIPPED.value
        assert sender.sent_emails == []

    def test_send_failure_does_not_change_order_outcome(self, deliver, sender):
        sender.configure(should_succeed=False)
        outcome = deliver()
        order = _order()
        assert outcome.status == HandlingStatus.PROCESSED.value
        assert order.payment_status == PaymentStatus.PAID.value
        assert order.notification_outcome == NotificationOutcome.SEND_FAILED.value

    def test_sender_exception_is_recorded(self, deliver, sender):
        sender.configure(raise_error=True)
        deliver()
        assert _order().notification_outcome == NotificationOutcome.SEND_FAILED.value

    def test_failed_email_is_not_retried_on_redelivery(self, deliver, sender):
        sender.configure(should_succeed=False)
        deliver()
        sender.configure(should_succeed=True)
        deliver()
        assert sender.sent_emails == []


class TestRedelivery:
    def test_duplicate_after_completion(self, deliver, supplier, gateway, sender):
        deliver()
        outcome = deliver()
        assert outcome.status == HandlingStatus.DUPLICATE.value
        assert len(supplier.calls_to("create_order")) == 1
        assert len(gateway.calls_to("capture")) == 1
        assert len(sender.sent_emails) == 1

    def test_duplicate_after_failure(self, deliver, supplier, gateway):
        supplier.configure(check_succeeds=False)
        deliver()
        supplier.configure(check_succeeds=True)
        outcome = deliver()
        assert outcome.status == HandlingStatus.DUPLICATE.value
        assert _order().fulfillment_status == FulfillmentStatus.CHECK_FAILED.value
        assert len(supplier.calls_to("check_order")) == 1
        assert len(gateway.calls_to("cancel_authorization")) == 1

    def test_claimed_attempt_is_not_repeated(self, deliver, supplier):
        current_domain.process(
            MaterializeOrder(
                payment_session_id="cs_claimed",
                payment_intent_id="pi_claimed",
                customer_email="ana@example.com",
                total_amount=1500,
                currency="EUR",
                lines=json.dumps([{"description": "Lamp", "quantity": 1, "unit_amount": 1500,
                                   "amount_total": 1500, "product_id": "p-lamp"}]),
            ),
            asynchronous=False,
        )
        current_domain.process(ClaimSupplierAttempt(payment_session_id="cs_claimed"), asynchronous=False)

        outcome = deliver(session_id="cs_claimed", payment_intent="pi_claimed")

        assert outcome.status == HandlingStatus.IN_PROGRESS.value
        assert supplier.calls == []
        assert _order("cs_claimed").fulfillment_status == FulfillmentStatus.PENDING.value

    def test_resumes_capture_after_interrupted_delivery(self, deliver, supplier, gateway, sender):
        current_domain.process(
            MaterializeOrder(
                payment_session_id="cs_test_001",
                payment_intent_id="pi_test_001",
                customer_email="ana@example.com",
                total_amount=3000,
                currency="EUR",
                lines=json.dumps([{"description": "Lamp", "quantity": 2, "unit_amount": 1500,
                                   "amount_total": 3000, "product_id": "p-lamp"}]),
            ),
            asynchronous=False,
        )
        current_domain.process(ClaimSupplierAttempt(payment_session_id="cs_test_001"), asynchronous=False)
        current_domain.process(
            RecordSupplierSuccess(payment_session_id="cs_test_001", supplier_order_reference="SUP-9", carrier="dhl"),
            asynchronous=False,
        )

        outcome = deliver()

        assert outcome.status == HandlingStatus.RESUMED.value
        assert supplier.calls == []
        assert len(gateway.calls_to("capture")) == 1
        assert _order().payment_status == PaymentStatus.PAID.value
        assert len(sender.sent_emails) == 1


class TestVerification:
    def test_bad_signature_creates_nothing(self, orchestrator, webhook_body, supplier, gateway):
        with pytest.raises(WebhookVerificationError):
            orchestrator.handle(webhook_body(), "forged")
        assert find_order("cs_test_001") is None
        assert supplier.calls == []
        assert gateway.calls_to("capture") == []

    def test_malformed_body_rejected(self, orchestrator):
        with pytest.raises(WebhookVerificationError):
            orchestrator.handle(b"not json", "test-signature")

    def test_other_event_types_are_ignored(self, deliver, supplier):
        outcome = deliver(event_type="payment_intent.created")
        assert outcome.status == HandlingStatus.IGNORED.value
        assert find_order("cs_test_001") is None
        assert supplier.calls == []


class TestBuildOrchestrator:
    def test_uses_registered_adapters(self, gateway, supplier, catalog, sender):
        orchestrator = build_orchestrator()
        assert orchestrator.gateway is gateway
        assert orchestrator.supplier is supplier
        assert orchestrator.catalog is catalog
        assert orchestrator.sender is sender
