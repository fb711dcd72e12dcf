"""Domain fixture plus the fake adapters and webhook bodies shared by checkout tests."""

import json
import threading

import pytest
from protean.integrations.pytest import DomainFixture

from checkout.catalog import set_catalog
from checkout.catalog.memory import InMemoryCatalog
from checkout.catalog.port import CatalogProduct
from checkout.fulfillment.orchestrator import FulfillmentOrchestrator
from checkout.gateway import set_gateway
from checkout.gateway.fake_adapter import TEST_SIGNATURE, FakeGateway
from checkout.gateway.port import CHECKOUT_COMPLETED
from checkout.notification import set_sender
from checkout.notification.fake_email import FakeEmailSender
from checkout.supplier import set_supplier
from checkout.supplier.carriers import CarrierPolicy
from checkout.supplier.fake_adapter import FakeSupplier


@pytest.fixture(scope="session")
def checkout_bed():
    from checkout.domain import checkout

    bed = DomainFixture(checkout)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(checkout_bed):
    with checkout_bed.domain_context():
        yield

        from protean import current_domain

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()

    from checkout.catalog import reset_catalog
    from checkout.config import reset_settings
    from checkout.gateway import reset_gateway
    from checkout.notification import reset_sender
    from checkout.supplier import reset_supplier

    reset_gateway()
    reset_supplier()
    reset_catalog()
    reset_sender()
    reset_settings()


DEFAULT_ADDRESS = {
    "name": "Ana Horvat",
    "address": {
        "line1": "Ilica 1",
        "line2": None,
        "city": "Zagreb",
        "postal_code": "10000",
        "country": "HR",
    },
}


def line_item(product_id, quantity=1, unit_amount=1500, description=None):
    return {
        "description": description or f"Product {product_id}",
        "quantity": quantity,
        "amount_total": unit_amount * quantity,
        "price": {
            "unit_amount": unit_amount,
            "product": {"id": f"prod_{product_id}", "metadata": {"productId": product_id} if product_id else {}},
        },
    }


@pytest.fixture()
def gateway():
    fake = FakeGateway()
    set_gateway(fake)
    return fake


@pytest.fixture()
def supplier():
    fake = FakeSupplier()
    set_supplier(fake)
    return fake


class HeldSupplier(FakeSupplier):
    """Fake supplier whose check call blocks until the test releases it."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = threading.Event()
        self.released = threading.Event()

    def check_order(self, payload: dict):
        self.entered.set()
        self.released.wait(timeout=5)
        return super().check_order(payload)


@pytest.fixture()
def held_supplier(supplier):
    held = HeldSupplier()
    set_supplier(held)
    yield held
    held.released.set()


@pytest.fixture()
def catalog():
    store = InMemoryCatalog(
        [
            CatalogProduct(product_id="p-lamp", name="Desk lamp", price=1500, supplier_sku="BB-LAMP"),
            CatalogProduct(product_id="p-mug", name="Mug", price=800, supplier_sku="BB-MUG"),
            CatalogProduct(product_id="p-gift", name="Gift card", price=2500),
        ]
    )
    set_catalog(store)
    return store


@pytest.fixture()
def sender():
    fake = FakeEmailSender()
    set_sender(fake)
    return fake


@pytest.fixture()
def orchestrator(gateway, supplier, catalog, sender):
    return FulfillmentOrchestrator(
        gateway=gateway,
        supplier=supplier,
        catalog=catalog,
        sender=sender,
        carrier_policy=CarrierPolicy(priority=("gls", "dhl")),
    )


@pytest.fixture()
def webhook_body():
    """Factory for checkout-completed webhook bodies in the provider's event shape."""

    def _build(
        session_id="cs_test_001",
        payment_intent="pi_test_001",
        email="ana@example.com",
        lines=None,
        shipping=DEFAULT_ADDRESS,
        event_type=CHECKOUT_COMPLETED,
    ) -> bytes:
        lines = [line_item("p-lamp", 2)] if lines is None else lines
        session = {
            "id": session_id,
            "object": "checkout.session",
            "payment_intent": payment_intent,
            "amount_total": sum(line["amount_total"] for line in lines),
            "currency": "eur",
            "customer_details": {"email": email, "name": "Ana Horvat", "phone": "+38591000000"},
            "collected_information": {"shipping_details": shipping} if shipping else None,
            "line_items": {"data": lines},
        }
        return json.dumps({"id": f"evt_{session_id}", "type": event_type, "data": {"object": session}}).encode()

    return _build


@pytest.fixture()
def deliver(orchestrator, webhook_body):
    """Deliver a signed checkout-completed webhook to the orchestrator."""

    def _deliver(**kwargs):
        return orchestrator.handle(webhook_body(**kwargs), TEST_SIGNATURE)

    return _deliver


@pytest.fixture()
def make_line():
    return line_item
