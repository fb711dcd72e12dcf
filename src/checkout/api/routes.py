"""FastAPI routes for the Checkout domain: webhook intake, order status, sessions."""

from datetime import UTC, datetime, timedelta

import structlog
from fastapi import APIRouter, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from checkout.api.schemas import (
    ConfigureGatewayRequest,
    ConfigureSupplierRequest,
    CreateSessionRequest,
    CreateSessionResponse,
    GatewayConfigResponse,
    OrderLineResponse,
    OrderStatusResponse,
    ReconciliationResponse,
    SupplierConfigResponse,
    WebhookAckResponse,
)
from checkout.catalog import get_catalog
from checkout.catalog.port import CatalogUnavailable
from checkout.catalog.pricing import CartLine, PricingError, price_cart
from checkout.config import get_settings
from checkout.fulfillment.orchestrator import build_orchestrator
from checkout.gateway import get_gateway
from checkout.gateway.fake_adapter import FakeGateway
from checkout.gateway.port import GatewayError, WebhookVerificationError
from checkout.order.order import Order
from checkout.order.repository import find_order, orders_needing_reconciliation
from checkout.supplier import get_supplier
from checkout.supplier.carriers import Carrier
from checkout.supplier.fake_adapter import FakeSupplier

logger = structlog.get_logger(__name__)


def _order_response(order: Order) -> OrderStatusResponse:
    return OrderStatusResponse(
        payment_session_id=order.payment_session_id,
        customer_email=order.customer_email,
        customer_name=order.customer_name,
        total_amount=order.total_amount,
        currency=order.currency,
        payment_status=order.payment_status,
        fulfillment_status=order.fulfillment_status,
        supplier_order_reference=order.supplier_order_reference,
        carrier=order.carrier,
        failure_reason=order.failure_reason,
        payment_failure_reason=order.payment_failure_reason,
        notification_outcome=order.notification_outcome,
        items=[
            OrderLineResponse(
                description=item.description,
                quantity=item.quantity,
                unit_amount=item.unit_amount,
                amount_total=item.amount_total,
                product_id=item.product_id,
            )
            for item in order.items
        ],
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


# ---------------------------------------------------------------------------
# Webhook Router
# ---------------------------------------------------------------------------
webhook_router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@webhook_router.post("/payments", response_model=WebhookAckResponse)
async def payment_webhook(
    request: Request,
    stripe_signature: str = Header(default=""),
) -> WebhookAckResponse:
    """Receive the payment provider's webhook.

    The raw body is required for signature verification. Recorded failure
    outcomes still answer 200; only verification failures (400) and faults
    that leave the event unhandled (5xx) make the provider redeliver.

    Handling makes blocking gateway, supplier and SMTP calls, so it runs in
    the threadpool.
    """
    raw_body = await request.body()
    try:
        outcome = await run_in_threadpool(build_orchestrator().handle, raw_body, stripe_signature)
    except WebhookVerificationError as exc:
        logger.warning("webhook_verification_failed", error=str(exc))
        raise HTTPException(status_code=400, detail=f"Webhook Error: {exc}") from exc
    except GatewayError as exc:
        logger.error("webhook_gateway_unavailable", error=str(exc))
        raise HTTPException(status_code=503, detail="Payment gateway unavailable") from exc

    return WebhookAckResponse(received=True, **outcome.to_dict())


# ---------------------------------------------------------------------------
# Orders Router
# ---------------------------------------------------------------------------
orders_router = APIRouter(prefix="/orders", tags=["orders"])


@orders_router.get("/reconciliation", response_model=ReconciliationResponse)
async def reconciliation_queue() -> ReconciliationResponse:
    """Orders that need a human: payment-side faults, errors and stale supplier claims."""
    stale_before = datetime.now(UTC) - timedelta(seconds=get_settings().stale_claim_seconds)
    orders = orders_needing_reconciliation(stale_before)
    return ReconciliationResponse(count=len(orders), orders=[_order_response(order) for order in orders])


@orders_router.get("/{payment_session_id}", response_model=OrderStatusResponse)
async def get_order(payment_session_id: str) -> OrderStatusResponse:
    """Order status for the storefront's success/failure page to poll."""
    order = find_order(payment_session_id)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order {payment_session_id} not found")
    return _order_response(order)


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post("/sessions", status_code=201, response_model=CreateSessionResponse)
async def create_checkout_session(body: CreateSessionRequest) -> CreateSessionResponse:
    """Create a manual-capture checkout session priced from the catalog."""
    settings = get_settings()
    try:
        lines = price_cart(
            [CartLine(product_id=item.product_id, quantity=item.quantity) for item in body.items],
            get_catalog(),
        )
    except PricingError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except CatalogUnavailable as exc:
        raise HTTPException(status_code=503, detail="Catalog unavailable") from exc

    result = await run_in_threadpool(
        get_gateway().create_checkout_session,
        lines=lines,
        currency=settings.currency,
        success_url=f"{settings.frontend_url}/success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{settings.frontend_url}/cancel",
        shipping_countries=list(settings.shipping_countries),
    )
    if not result.success:
        raise HTTPException(status_code=502, detail=result.failure_reason or "Failed to create checkout session")
    return CreateSessionResponse(session_id=result.session_id, url=result.url)


def _ensure_configurable() -> None:
    if get_settings().is_production:
        raise HTTPException(status_code=403, detail="Adapter configuration not available in production")


@checkout_router.post("/gateway/configure", response_model=GatewayConfigResponse)
async def configure_gateway(body: ConfigureGatewayRequest) -> GatewayConfigResponse:
    """Configure the FakeGateway behavior (non-production only)."""
    _ensure_configurable()
    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeGateway")

    gateway.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
        capture_succeeds=body.capture_succeeds,
        cancel_succeeds=body.cancel_succeeds,
        refund_succeeds=body.refund_succeeds,
        intent_status=body.intent_status,
    )
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        should_succeed=gateway.should_succeed,
        failure_reason=gateway.failure_reason,
        capture_succeeds=gateway.capture_succeeds,
        cancel_succeeds=gateway.cancel_succeeds,
        refund_succeeds=gateway.refund_succeeds,
        intent_status=gateway.intent_status,
    )


@checkout_router.post("/supplier/configure", response_model=SupplierConfigResponse)
async def configure_supplier(body: ConfigureSupplierRequest) -> SupplierConfigResponse:
    """Configure the FakeSupplier behavior (non-production only)."""
    _ensure_configurable()
    supplier = get_supplier()
    if not isinstance(supplier, FakeSupplier):
        raise HTTPException(status_code=400, detail="Supplier configuration only available for FakeSupplier")

    carriers = None
    if body.carriers is not None:
        carriers = [
            Carrier(
                name=carrier.name,
                excluded_skus=frozenset(carrier.excluded_skus),
                countries=frozenset(country.upper() for country in carrier.countries),
            )
            for carrier in body.carriers
        ]
    supplier.configure(
        check_succeeds=body.check_succeeds,
        create_succeeds=body.create_succeeds,
        carriers_available=body.carriers_available,
        raise_on_create=body.raise_on_create,
        failure_reason=body.failure_reason,
        carriers=carriers,
        order_reference=body.order_reference,
    )
    return SupplierConfigResponse(
        supplier=type(supplier).__name__,
        check_succeeds=supplier.check_succeeds,
        create_succeeds=supplier.create_succeeds,
        carriers_available=supplier.carriers_available,
        raise_on_create=supplier.raise_on_create,
        failure_reason=supplier.failure_reason,
        carriers=[carrier.name for carrier in supplier.carriers],
    )
