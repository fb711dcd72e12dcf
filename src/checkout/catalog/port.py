"""Catalog store port: read-only product lookup for checkout and fulfillment."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class CatalogUnavailable(Exception):
    """The catalog could not be read at all (as opposed to a product being absent)."""


@dataclass(frozen=True)
class CatalogProduct:
    """A product as checkout sees it. ``price`` is in minor units."""

    product_id: str
    name: str
    price: int
    supplier_sku: str | None = None
    sale_percentage: int = 0
    stock_quantity: int | None = None
    image_urls: tuple[str, ...] = ()

    def unit_price(self) -> int:
        """Price after the sale discount, rounded half-up to a whole minor unit."""
        if not self.sale_percentage:
            return self.price
        return (self.price * (100 - self.sale_percentage) + 50) // 100


class CatalogStore(ABC):
    @abstractmethod
    def get_product(self, product_id: str) -> CatalogProduct | None:
        """Return the product, or None when it does not exist.

        Raises CatalogUnavailable when the store cannot be queried.
        """
        ...
