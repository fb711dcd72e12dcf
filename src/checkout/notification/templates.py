"""Customer email templates for settled orders."""

from checkout.utils.money import format_minor_units


def order_context(order) -> dict:
    """Flatten an Order into the values the templates render."""
    address = order.shipping_address
    return {
        "payment_session_id": order.payment_session_id,
        "customer_name": order.customer_name or (address.name if address else None) or "there",
        "total": format_minor_units(order.total_amount, order.currency),
        "items": [
            {
                "description": item.description,
                "quantity": item.quantity,
                "amount": format_minor_units(item.amount_total or item.unit_amount * item.quantity, order.currency),
            }
            for item in order.items
        ],
        "shipping_lines": [
            line
            for line in (
                address.name if address else None,
                address.line1 if address else None,
                address.line2 if address else None,
                f"{address.postal_code or ''} {address.city or ''}".strip() if address else None,
                address.country if address else None,
            )
            if line
        ],
        "supplier_order_reference": order.supplier_order_reference,
        "payment_status": order.payment_status,
    }


class OrderConfirmationTemplate:
    """Sent when the supplier accepted the order."""

    @staticmethod
    def render(context: dict) -> dict:
        items = "\n".join(f"- {i['description']} (x{i['quantity']}) {i['amount']}" for i in context.get("items", []))
        shipping = "\n".join(context.get("shipping_lines", []))
        return {
            "subject": "Your order confirmation",
            "body": (
                f"Thank you for your purchase, {context.get('customer_name', 'there')}!\n\n"
                "Your order has been received and passed on for shipping.\n\n"
                f"Order details:\n{items}\n\n"
                f"Total: {context.get('total', '')}\n\n"
                f"Shipping address:\n{shipping}\n\n"
                "We'll notify you once your order has shipped."
            ),
        }


class OrderFailureTemplate:
    """Sent when the order could not be fulfilled."""

    @staticmethod
    def render(context: dict) -> dict:
        if context.get("payment_status") in ("canceled", "refunded"):
            money_line = "No charge was made: the payment authorization on your card has been released."
            if context.get("payment_status") == "refunded":
                money_line = "Your payment has been refunded in full."
        else:
            money_line = "We are reviewing your payment and will make sure you are not charged."
        return {
            "subject": "We could not complete your order",
            "body": (
                f"Hi {context.get('customer_name', 'there')},\n\n"
                "Unfortunately we were unable to place your order with our supplier.\n\n"
                f"{money_line}\n\n"
                f"Order total: {context.get('total', '')}\n\n"
                "We're sorry for the inconvenience."
            ),
        }
