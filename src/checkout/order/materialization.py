"""Order materialization: command and handler.

Turns a verified checkout-completed event into an Order. Redelivered events
find the existing Order and leave it untouched.
"""

import json

import structlog
from protean import handle
from protean.fields import Integer, String, Text
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.order.order import Order
from checkout.order.repository import find_order

logger = structlog.get_logger(__name__)


@checkout.command(part_of="Order")
class MaterializeOrder:
    """Create the Order for a completed checkout session, if it does not exist yet."""

    payment_session_id: String(required=True, max_length=255)
    payment_intent_id: String(max_length=255)
    customer_email: String(max_length=254)
    customer_name: String(max_length=255)
    shipping_address: Text()  # JSON {name, line1, line2, city, postal_code, country, phone}
    total_amount: Integer(required=True, min_value=0)
    currency: String(required=True, max_length=3)
    lines: Text(required=True)  # JSON list of {description, quantity, unit_amount, amount_total, product_id}


@checkout.command_handler(part_of=Order)
class MaterializeOrderHandler:
    @handle(MaterializeOrder)
    def materialize_order(self, command):
        """Return True when a new Order was created, False on redelivery."""
        if find_order(command.payment_session_id) is not None:
            logger.info(
                "order_redelivered",
                payment_session_id=command.payment_session_id,
            )
            return False

        order = Order.materialize(
            payment_session_id=command.payment_session_id,
            payment_intent_id=command.payment_intent_id,
            customer_email=command.customer_email,
            customer_name=command.customer_name,
            shipping_address=json.loads(command.shipping_address) if command.shipping_address else None,
            total_amount=command.total_amount,
            currency=command.currency,
            lines=json.loads(command.lines),
        )
        current_domain.repository_for(Order).add(order)

        logger.info(
            "order_materialized",
            payment_session_id=command.payment_session_id,
            total_amount=command.total_amount,
            currency=order.currency,
            line_count=len(order.items),
        )
        return True
