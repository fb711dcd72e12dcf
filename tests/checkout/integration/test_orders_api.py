"""Integration tests for the Order status and reconciliation endpoints."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from checkout.api.routes import orders_router
from checkout.config import Settings, set_settings
from checkout.gateway.fake_adapter import TEST_SIGNATURE


@pytest.fixture()
def client(gateway, supplier, catalog, sender):
    app = FastAPI()
    app.include_router(orders_router)
    return TestClient(app)


class TestOrderStatus:
    def test_returns_order(self, client, orchestrator, webhook_body, make_line):
        orchestrator.handle(webhook_body(lines=[make_line("p-lamp", 2)]), TEST_SIGNATURE)

        response = client.get("/orders/cs_test_001")

        assert response.status_code == 200
        data = response.json()
        assert data["payment_session_id"] == "cs_test_001"
        assert data["payment_status"] == "paid"
        assert data["fulfillment_status"] == "sent"
        assert data["total_amount"] == 3000
        assert data["currency"] == "EUR"
        assert data["carrier"] == "gls"
        assert data["notification_outcome"] == "sent"
        assert data["items"][0]["quantity"] == 2

    def test_unknown_order_returns_404(self, client):
        response = client.get("/orders/cs_missing")
        assert response.status_code == 404


class TestReconciliation:
    def test_empty_queue(self, client):
        response = client.get("/orders/reconciliation")
        assert response.status_code == 200
        assert response.json() == {"count": 0, "orders": []}

    def test_lists_orders_needing_attention(self, client, orchestrator, webhook_body, gateway, supplier):
        orchestrator.handle(webhook_body(session_id="cs_ok"), TEST_SIGNATURE)

        gateway.configure(capture_succeeds=False)
        orchestrator.handle(webhook_body(session_id="cs_capture_failed"), TEST_SIGNATURE)

        gateway.configure(cancel_succeeds=False)
        supplier.configure(check_succeeds=False)
        orchestrator.handle(webhook_body(session_id="cs_cancel_failed"), TEST_SIGNATURE)

        response = client.get("/orders/reconciliation")

        data = response.json()
        assert data["count"] == 2
        statuses = {order["payment_session_id"]: order["payment_status"] for order in data["orders"]}
        assert statuses == {"cs_capture_failed": "capture_failed", "cs_cancel_failed": "cancel_failed"}

    def test_stale_claim_window_comes_from_settings(self, client):
        from protean import current_domain

        from checkout.order.materialization import MaterializeOrder
        from checkout.order.placement import ClaimSupplierAttempt

        current_domain.process(
            MaterializeOrder(
                payment_session_id="cs_stuck",
                payment_intent_id="pi_stuck",
                total_amount=1500,
                currency="EUR",
                lines="[]",
            ),
            asynchronous=False,
        )
        current_domain.process(ClaimSupplierAttempt(payment_session_id="cs_stuck"), asynchronous=False)

        assert client.get("/orders/reconciliation").json()["count"] == 0

        set_settings(Settings(stale_claim_seconds=0))
        assert client.get("/orders/reconciliation").json()["count"] == 1
