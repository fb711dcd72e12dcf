"""Payment gateway port (abstract interface).

Defines the contract that all payment gateway adapters must implement.
Checkout sessions are created with manual capture, so a completed checkout
leaves an authorization that the orchestrator later captures, cancels or
refunds depending on the supplier outcome.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

CHECKOUT_COMPLETED = "checkout.session.completed"

# Payment intent statuses the release path branches on
INTENT_REQUIRES_CAPTURE = "requires_capture"
INTENT_SUCCEEDED = "succeeded"
INTENT_CANCELED = "canceled"


class WebhookVerificationError(Exception):
    """The webhook body or signature could not be verified."""


class GatewayError(Exception):
    """The gateway could not be reached for a call that has no failure result."""


@dataclass(frozen=True)
class CheckoutLine:
    """One purchased line. Amounts are minor units."""

    description: str
    quantity: int
    unit_amount: int
    amount_total: int
    product_id: str | None = None


@dataclass(frozen=True)
class CheckoutCompleted:
    """A verified, decoded checkout-completed event."""

    payment_session_id: str
    payment_intent_id: str | None
    customer_email: str | None
    customer_name: str | None
    shipping_address: dict | None
    total_amount: int
    currency: str
    lines: tuple[CheckoutLine, ...] = ()


@dataclass(frozen=True)
class GatewayEvent:
    """Any verified webhook event. ``checkout`` is set only for completed checkouts."""

    event_id: str | None
    event_type: str
    checkout: CheckoutCompleted | None = None


@dataclass(frozen=True)
class CaptureResult:
    success: bool
    gateway_status: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class CancelResult:
    success: bool
    gateway_status: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class RefundResult:
    success: bool
    gateway_refund_id: str | None = None
    gateway_status: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class IntentStatusResult:
    success: bool
    status: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class SessionLine:
    """A priced line for a new checkout session."""

    product_id: str
    name: str
    unit_amount: int
    quantity: int
    image_urls: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SessionResult:
    success: bool
    session_id: str | None = None
    url: str | None = None
    failure_reason: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def verify_and_parse(self, raw_body: bytes, signature: str) -> GatewayEvent:
        """Verify the webhook signature and decode the event.

        Raises WebhookVerificationError when verification fails.
        """
        ...

    @abstractmethod
    def capture(self, payment_intent_id: str) -> CaptureResult:
        """Capture a manual-capture authorization."""
        ...

    @abstractmethod
    def cancel_authorization(self, payment_intent_id: str) -> CancelResult:
        """Release an authorization that was never captured."""
        ...

    @abstractmethod
    def refund(self, payment_intent_id: str) -> RefundResult:
        """Refund an intent that was already captured."""
        ...

    @abstractmethod
    def retrieve_intent_status(self, payment_intent_id: str) -> IntentStatusResult:
        """Look up the current status of a payment intent."""
        ...

    @abstractmethod
    def create_checkout_session(
        self,
        lines: list[SessionLine],
        currency: str,
        success_url: str,
        cancel_url: str,
        shipping_countries: list[str],
    ) -> SessionResult:
        """Create a hosted checkout session that only authorizes the payment."""
        ...
