"""Stripe payment gateway adapter.

Uses the stripe-python SDK through a per-adapter ``StripeClient`` so the API
key and HTTP timeout are not process globals. Checkout sessions are created
with ``capture_method=manual``: the customer's card is only authorized until
the supplier confirms the order.

Every SDK error from a payment call is turned into a failure result here, so
the orchestrator never sees a raised ``StripeError``.
"""

import json

import stripe
import structlog

from checkout.gateway.parsing import parse_checkout_session
from checkout.gateway.port import (
    CHECKOUT_COMPLETED,
    CancelResult,
    CaptureResult,
    GatewayError,
    GatewayEvent,
    IntentStatusResult,
    PaymentGateway,
    RefundResult,
    SessionLine,
    SessionResult,
    WebhookVerificationError,
)

logger = structlog.get_logger(__name__)

LINE_ITEMS_PAGE_SIZE = 100


class StripeGateway(PaymentGateway):
    """Production Stripe gateway adapter."""

    def __init__(self, api_key: str, webhook_secret: str, timeout: float = 15.0, client=None) -> None:
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.client = client or stripe.StripeClient(
            api_key,
            http_client=stripe.RequestsClient(timeout=timeout),
            max_network_retries=0,
        )

    def verify_and_parse(self, raw_body: bytes, signature: str) -> GatewayEvent:
        try:
            event = stripe.Webhook.construct_event(raw_body, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as exc:
            raise WebhookVerificationError(f"Invalid signature: {exc}") from exc
        except ValueError as exc:
            raise WebhookVerificationError(f"Invalid payload: {exc}") from exc

        if event["type"] != CHECKOUT_COMPLETED:
            return GatewayEvent(event_id=event["id"], event_type=event["type"])

        # The verified body is plain JSON, so decode it directly instead of walking SDK objects
        session = json.loads(raw_body)["data"]["object"]
        return GatewayEvent(
            event_id=event["id"],
            event_type=event["type"],
            checkout=parse_checkout_session(session, self._list_line_items(session["id"])),
        )

    def _list_line_items(self, session_id: str) -> list[dict]:
        """Fetch every line item with ``price.product`` expanded for the catalog product id.

        Raises GatewayError when the lookup fails; the webhook then answers
        non-200 and the provider redelivers the event.
        """
        try:
            page = self.client.checkout.sessions.list_line_items(
                session_id,
                params={"limit": LINE_ITEMS_PAGE_SIZE, "expand": ["data.price.product"]},
            )
            return [item.to_dict() for item in page.auto_paging_iter()]
        except stripe.StripeError as exc:
            raise GatewayError(f"Could not list line items for {session_id}: {exc}") from exc

    def capture(self, payment_intent_id: str) -> CaptureResult:
        try:
            intent = self.client.payment_intents.capture(payment_intent_id)
        except stripe.StripeError as exc:
            logger.warning("stripe_capture_failed", payment_intent_id=payment_intent_id, error=str(exc))
            return CaptureResult(success=False, failure_reason=exc.user_message or str(exc))
        return CaptureResult(success=True, gateway_status=intent.status)

    def cancel_authorization(self, payment_intent_id: str) -> CancelResult:
        try:
            intent = self.client.payment_intents.cancel(payment_intent_id)
        except stripe.StripeError as exc:
            logger.warning("stripe_cancel_failed", payment_intent_id=payment_intent_id, error=str(exc))
            return CancelResult(success=False, failure_reason=exc.user_message or str(exc))
        return CancelResult(success=True, gateway_status=intent.status)

    def refund(self, payment_intent_id: str) -> RefundResult:
        try:
            refund = self.client.refunds.create(params={"payment_intent": payment_intent_id})
        except stripe.StripeError as exc:
            logger.warning("stripe_refund_failed", payment_intent_id=payment_intent_id, error=str(exc))
            return RefundResult(success=False, failure_reason=exc.user_message or str(exc))
        return RefundResult(success=True, gateway_refund_id=refund.id, gateway_status=refund.status)

    def retrieve_intent_status(self, payment_intent_id: str) -> IntentStatusResult:
        try:
            intent = self.client.payment_intents.retrieve(payment_intent_id)
        except stripe.StripeError as exc:
            logger.warning("stripe_intent_lookup_failed", payment_intent_id=payment_intent_id, error=str(exc))
            return IntentStatusResult(success=False, failure_reason=exc.user_message or str(exc))
        return IntentStatusResult(success=True, status=intent.status)

    def create_checkout_session(
        self,
        lines: list[SessionLine],
        currency: str,
        success_url: str,
        cancel_url: str,
        shipping_countries: list[str],
    ) -> SessionResult:
        line_items = [
            {
                "price_data": {
                    "currency": currency.lower(),
                    "product_data": {
                        "name": line.name,
                        "images": line.image_urls[:8],
                        "metadata": {"productId": line.product_id},
                    },
                    "unit_amount": line.unit_amount,
                },
                "quantity": line.quantity,
            }
            for line in lines
        ]
        try:
            session = self.client.checkout.sessions.create(
                params={
                    "mode": "payment",
                    "payment_method_types": ["card"],
                    "line_items": line_items,
                    "payment_intent_data": {"capture_method": "manual"},
                    "shipping_address_collection": {"allowed_countries": list(shipping_countries)},
                    "phone_number_collection": {"enabled": True},
                    "success_url": success_url,
                    "cancel_url": cancel_url,
                }
            )
        except stripe.StripeError as exc:
            logger.error("stripe_session_create_failed", error=str(exc))
            return SessionResult(success=False, failure_reason=exc.user_message or str(exc))
        return SessionResult(success=True, session_id=session.id, url=session.url)
