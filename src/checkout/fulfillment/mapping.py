"""Cross-reference of purchased lines to supplier SKUs."""

from dataclasses import dataclass, field

import structlog

from checkout.catalog.port import CatalogStore
from checkout.supplier.port import SupplierLineItem

logger = structlog.get_logger(__name__)

DROP_NO_PRODUCT_ID = "no product id"
DROP_PRODUCT_NOT_FOUND = "product not found"
DROP_NO_SUPPLIER_SKU = "no supplier sku"


@dataclass(frozen=True)
class DroppedLine:
    description: str
    product_id: str | None
    reason: str


@dataclass(frozen=True)
class MappingResult:
    items: list[SupplierLineItem] = field(default_factory=list)
    dropped: list[DroppedLine] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.items


def map_supplier_items(lines, catalog: CatalogStore) -> MappingResult:
    """Resolve each Order line to a supplier line item.

    Lines with no product id, no catalog product, or no supplier SKU are
    dropped and logged; the rest of the order carries on. CatalogUnavailable
    from the store propagates to the caller.
    """
    items: list[SupplierLineItem] = []
    dropped: list[DroppedLine] = []

    for line in lines:
        reason = None
        product = None
        if not line.product_id:
            reason = DROP_NO_PRODUCT_ID
        else:
            product = catalog.get_product(line.product_id)
            if product is None:
                reason = DROP_PRODUCT_NOT_FOUND
            elif not product.supplier_sku:
                reason = DROP_NO_SUPPLIER_SKU

        if reason:
            logger.warning(
                "line_dropped_from_supplier_order",
                description=line.description,
                product_id=line.product_id,
                reason=reason,
            )
            dropped.append(DroppedLine(description=line.description, product_id=line.product_id, reason=reason))
            continue

        items.append(SupplierLineItem(sku=product.supplier_sku, quantity=line.quantity))

    return MappingResult(items=items, dropped=dropped)
