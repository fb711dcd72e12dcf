"""Checkout bounded context: checkout-to-fulfillment reconciliation.

Turns a completed checkout reported by the payment gateway into a durable
Order, places the matching purchase order with the dropshipping supplier,
and captures or releases the customer's payment authorization depending on
the supplier's answer. Customers are emailed once the Order settles.
"""

import structlog
from protean.domain import Domain

checkout = Domain(name="checkout")

logger = structlog.get_logger(__name__)
