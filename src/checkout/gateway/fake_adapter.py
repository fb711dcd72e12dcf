"""Configurable fake payment gateway for development and testing.

This adapter simulates the payment provider without any external calls.
It can be configured at runtime to succeed or fail, making it useful for:
- Manual API testing via /checkout/gateway/configure
- Automated tests with predictable outcomes
- Development without real gateway credentials

Webhook bodies use the provider's event JSON shape, with the session's line
items embedded under ``line_items`` since there is no API to expand them from.
"""

import json
from uuid import uuid4

from checkout.gateway.parsing import parse_checkout_session
from checkout.gateway.port import (
    CHECKOUT_COMPLETED,
    INTENT_REQUIRES_CAPTURE,
    CancelResult,
    CaptureResult,
    GatewayEvent,
    IntentStatusResult,
    PaymentGateway,
    RefundResult,
    SessionLine,
    SessionResult,
    WebhookVerificationError,
)

TEST_SIGNATURE = "test-signature"


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Card declined"
        self.capture_succeeds: bool | None = None
        self.cancel_succeeds: bool | None = None
        self.refund_succeeds: bool | None = None
        self.intent_status: str | None = INTENT_REQUIRES_CAPTURE
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Card declined",
        capture_succeeds: bool | None = None,
        cancel_succeeds: bool | None = None,
        refund_succeeds: bool | None = None,
        intent_status: str | None = INTENT_REQUIRES_CAPTURE,
    ) -> None:
        """Configure gateway behavior at runtime.

        Per-operation flags override ``should_succeed``. An ``intent_status``
        of None makes the intent lookup itself fail.
        """
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.capture_succeeds = capture_succeeds
        self.cancel_succeeds = cancel_succeeds
        self.refund_succeeds = refund_succeeds
        self.intent_status = intent_status

    def _succeeds(self, override: bool | None) -> bool:
        return self.should_succeed if override is None else override

    def calls_to(self, method: str) -> list[dict]:
        return [call for call in self.calls if call["method"] == method]

    def verify_and_parse(self, raw_body: bytes, signature: str) -> GatewayEvent:
        self.calls.append({"method": "verify_and_parse", "signature": signature})
        if signature != TEST_SIGNATURE:
            raise WebhookVerificationError("Invalid signature")

        try:
            payload = json.loads(raw_body)
        except ValueError as exc:
            raise WebhookVerificationError(f"Invalid payload: {exc}") from exc
        if not isinstance(payload, dict) or "type" not in payload:
            raise WebhookVerificationError("Invalid payload: missing event type")

        event_type = payload["type"]
        if event_type != CHECKOUT_COMPLETED:
            return GatewayEvent(event_id=payload.get("id"), event_type=event_type)

        session = (payload.get("data") or {}).get("object") or {}
        if not session.get("id"):
            raise WebhookVerificationError("Invalid payload: missing checkout session id")
        line_items = session.get("line_items") or []
        if isinstance(line_items, dict):
            line_items = line_items.get("data") or []

        return GatewayEvent(
            event_id=payload.get("id"),
            event_type=event_type,
            checkout=parse_checkout_session(session, line_items),
        )

    def capture(self, payment_intent_id: str) -> CaptureResult:
        self.calls.append({"method": "capture", "payment_intent_id": payment_intent_id})
        if self._succeeds(self.capture_succeeds):
            return CaptureResult(success=True, gateway_status="succeeded")
        return CaptureResult(success=False, failure_reason=self.failure_reason)

    def cancel_authorization(self, payment_intent_id: str) -> CancelResult:
        self.calls.append({"method": "cancel_authorization", "payment_intent_id": payment_intent_id})
        if self._succeeds(self.cancel_succeeds):
            return CancelResult(success=True, gateway_status="canceled")
        return CancelResult(success=False, failure_reason=self.failure_reason)

    def refund(self, payment_intent_id: str) -> RefundResult:
        self.calls.append({"method": "refund", "payment_intent_id": payment_intent_id})
        if self._succeeds(self.refund_succeeds):
            return RefundResult(
                success=True,
                gateway_refund_id=f"fake_re_{uuid4().hex[:12]}",
                gateway_status="succeeded",
            )
        return RefundResult(success=False, failure_reason=self.failure_reason)

    def retrieve_intent_status(self, payment_intent_id: str) -> IntentStatusResult:
        self.calls.append({"method": "retrieve_intent_status", "payment_intent_id": payment_intent_id})
        if self.intent_status is None:
            return IntentStatusResult(success=False, failure_reason=self.failure_reason)
        return IntentStatusResult(success=True, status=self.intent_status)

    def create_checkout_session(
        self,
        lines: list[SessionLine],
        currency: str,
        success_url: str,
        cancel_url: str,
        shipping_countries: list[str],
    ) -> SessionResult:
        self.calls.append(
            {
                "method": "create_checkout_session",
                "lines": lines,
                "currency": currency,
                "success_url": success_url,
                "cancel_url": cancel_url,
                "shipping_countries": shipping_countries,
            }
        )
        if not self.should_succeed:
            return SessionResult(success=False, failure_reason=self.failure_reason)

        session_id = f"cs_fake_{uuid4().hex[:16]}"
        return SessionResult(
            success=True,
            session_id=session_id,
            url=f"https://checkout.fake.local/pay/{session_id}",
        )
