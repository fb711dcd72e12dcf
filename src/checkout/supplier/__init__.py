"""Fulfillment supplier factory.

Provides get_supplier() / set_supplier() to swap implementations:
- FakeSupplier for development, testing and a non-functional sandbox
- BigBuySupplier for the real supplier API

The default is chosen by the ``SUPPLIER_ADAPTER`` setting.
"""

from checkout.config import get_settings
from checkout.supplier.carriers import CarrierPolicy
from checkout.supplier.fake_adapter import FakeSupplier
from checkout.supplier.port import FulfillmentSupplier

_current_supplier: FulfillmentSupplier | None = None


def build_supplier() -> FulfillmentSupplier:
    settings = get_settings()
    if settings.supplier_adapter == "bigbuy":
        from checkout.supplier.bigbuy_adapter import BigBuySupplier

        return BigBuySupplier(
            api_key=settings.bigbuy_api_key,
            use_sandbox=settings.bigbuy_use_sandbox,
            timeout=settings.external_call_timeout,
        )
    if settings.supplier_adapter == "fake":
        return FakeSupplier()
    raise ValueError(f"Unknown supplier adapter: {settings.supplier_adapter}")


def carrier_policy() -> CarrierPolicy:
    settings = get_settings()
    return CarrierPolicy(priority=settings.carrier_priority, fallback=settings.fallback_carrier)


def get_supplier() -> FulfillmentSupplier:
    """Return the current supplier, building it from settings on first use."""
    global _current_supplier
    if _current_supplier is None:
        _current_supplier = build_supplier()
    return _current_supplier


def set_supplier(supplier: FulfillmentSupplier) -> None:
    """Override the active supplier (useful for tests)."""
    global _current_supplier
    _current_supplier = supplier


def reset_supplier() -> None:
    global _current_supplier
    _current_supplier = None
