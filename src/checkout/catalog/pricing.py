"""Pricing of cart lines for new checkout sessions."""

from dataclasses import dataclass

from checkout.catalog.port import CatalogStore
from checkout.gateway.port import SessionLine


class PricingError(Exception):
    """A cart line cannot be priced: unknown product, bad quantity or bad price."""


@dataclass(frozen=True)
class CartLine:
    product_id: str
    quantity: int


def price_cart(lines: list[CartLine], catalog: CatalogStore) -> list[SessionLine]:
    """Price each cart line from the catalog, never from client-supplied amounts."""
    if not lines:
        raise PricingError("Cart is empty")

    priced = []
    for line in lines:
        if line.quantity < 1:
            raise PricingError(f"Invalid quantity for product {line.product_id}")
        product = catalog.get_product(line.product_id)
        if product is None:
            raise PricingError(f"Product not found: {line.product_id}")
        unit_amount = product.unit_price()
        if unit_amount <= 0:
            raise PricingError(f"Invalid price for product: {product.name}")
        priced.append(
            SessionLine(
                product_id=product.product_id,
                name=product.name,
                unit_amount=unit_amount,
                quantity=line.quantity,
                image_urls=list(product.image_urls),
            )
        )
    return priced
