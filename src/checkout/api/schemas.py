"""Pydantic request/response schemas for the Checkout API.

These are external contracts (anti-corruption layer), kept separate from
internal Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Webhook
# ---------------------------------------------------------------------------
class WebhookAckResponse(BaseModel):
    received: bool = True
    status: str
    event_type: str
    payment_session_id: str | None = None
    payment_status: str | None = None
    fulfillment_status: str | None = None


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class OrderLineResponse(BaseModel):
    description: str
    quantity: int
    unit_amount: int
    amount_total: int | None = None
    product_id: str | None = None


class OrderStatusResponse(BaseModel):
    payment_session_id: str
    customer_email: str
    customer_name: str | None = None
    total_amount: int
    currency: str
    payment_status: str
    fulfillment_status: str
    supplier_order_reference: str | None = None
    carrier: str | None = None
    failure_reason: str | None = None
    payment_failure_reason: str | None = None
    notification_outcome: str | None = None
    items: list[OrderLineResponse] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ReconciliationResponse(BaseModel):
    count: int
    orders: list[OrderStatusResponse]


# ---------------------------------------------------------------------------
# Checkout sessions
# ---------------------------------------------------------------------------
class CartLineSchema(BaseModel):
    product_id: str
    quantity: int = Field(ge=1)


class CreateSessionRequest(BaseModel):
    items: list[CartLineSchema] = Field(min_length=1)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [
                        {"product_id": "prod-001", "quantity": 2},
                    ]
                }
            ]
        }
    }


class CreateSessionResponse(BaseModel):
    session_id: str
    url: str | None = None


# ---------------------------------------------------------------------------
# Fake adapter controls
# ---------------------------------------------------------------------------
class ConfigureGatewayRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Card declined"
    capture_succeeds: bool | None = None
    cancel_succeeds: bool | None = None
    refund_succeeds: bool | None = None
    intent_status: str | None = "requires_capture"


class GatewayConfigResponse(BaseModel):
    gateway: str
    should_succeed: bool
    failure_reason: str
    capture_succeeds: bool | None = None
    cancel_succeeds: bool | None = None
    refund_succeeds: bool | None = None
    intent_status: str | None = None


class CarrierSchema(BaseModel):
    name: str
    excluded_skus: list[str] = Field(default_factory=list)
    countries: list[str] = Field(default_factory=list)


class ConfigureSupplierRequest(BaseModel):
    check_succeeds: bool = True
    create_succeeds: bool = True
    carriers_available: bool = True
    raise_on_create: bool = False
    failure_reason: str = "Product not available"
    carriers: list[CarrierSchema] | None = None
    order_reference: str | None = None


class SupplierConfigResponse(BaseModel):
    supplier: str
    check_succeeds: bool
    create_succeeds: bool
    carriers_available: bool
    raise_on_create: bool
    failure_reason: str
    carriers: list[str]
