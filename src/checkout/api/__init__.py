"""Checkout domain API package."""

from checkout.api.routes import checkout_router, orders_router, webhook_router

__all__ = ["webhook_router", "orders_router", "checkout_router"]
