"""In-memory catalog store, optionally seeded from a JSON file.

The file holds a list of products::

    [{"product_id": "p1", "name": "Lamp", "price": 2999, "supplier_sku": "BB-123"}]
"""

import json
from pathlib import Path

from checkout.catalog.port import CatalogProduct, CatalogStore, CatalogUnavailable


class InMemoryCatalog(CatalogStore):
    def __init__(self, products: list[CatalogProduct] | None = None) -> None:
        self.products: dict[str, CatalogProduct] = {}
        self.available = True
        for product in products or []:
            self.add(product)

    @classmethod
    def from_file(cls, path: str | Path) -> "InMemoryCatalog":
        with open(path, encoding="utf-8") as handle:
            records = json.load(handle)
        return cls(
            [
                CatalogProduct(
                    product_id=str(record["product_id"]),
                    name=record["name"],
                    price=int(record["price"]),
                    supplier_sku=record.get("supplier_sku") or None,
                    sale_percentage=int(record.get("sale_percentage") or 0),
                    stock_quantity=record.get("stock_quantity"),
                    image_urls=tuple(record.get("image_urls") or ()),
                )
                for record in records
            ]
        )

    def add(self, product: CatalogProduct) -> None:
        self.products[product.product_id] = product

    def configure(self, available: bool = True) -> None:
        """Simulate the catalog being unreachable."""
        self.available = available

    def get_product(self, product_id: str) -> CatalogProduct | None:
        if not self.available:
            raise CatalogUnavailable("Catalog store is unavailable")
        return self.products.get(str(product_id))
