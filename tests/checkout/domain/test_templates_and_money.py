"""Tests for minor-unit money helpers and customer email templates."""

from checkout.notification.templates import OrderConfirmationTemplate, OrderFailureTemplate, order_context
from checkout.order.order import Order
from checkout.utils.money import format_minor_units

class TestMoney:
    def test_format_two_decimal_currency(self):
        assert format_minor_units(1999, "eur") == "EUR 19.99"

    def test_format_zero_decimal_currency(self):
        assert format_minor_units(500, "JPY") == "JPY 500"

def _order():
    return Order.materialize(
        payment_session_id="cs_tpl",
        payment_intent_id="pi_tpl",
        customer_email="ana@example.com",
        customer_name="Ana",
        shipping_address={"name": "Ana", "line1": "Ilica 1", "city": "Zagreb", "postal_code": "10000", "country": "HR"},
        total_amount=3199,
        currency="EUR",
        lines=[{"description": "Lamp", "quantity": 2, "unit_amount": 1500, "amount_total": 3000, "product_id": "p1"}],
    )

class TestTemplates:
    def test_context_formats_amounts(self):
        context = order_context(_order())
        assert context["total"] == "EUR 31.99"
        assert context["items"][0]["amount"] == "EUR 30.00"
        assert "10000 Zagreb" in context["shipping_lines"]

    def test_confirmation_lists_items_and_total(self):
        message = OrderConfirmationTemplate.render(order_context(_order()))
        assert message["subject"] == "Your order confirmation"
        assert "Lamp (x2) EUR 30.00" in message["body"]
        assert "Total: EUR 31.99" in message["body"]

    def test_failure_states_no_charge_when_canceled(self):
        context = order_context(_order())
        context["payment_status"] = "canceled"
        message = OrderFailureTemplate.render(context)
        assert "No charge was made" in message["body"]

    def test_failure_mentions_refund(self):
        context = order_context(_order())
        context["payment_status"] = "refunded"
        assert "refunded" in OrderFailureTemplate.render(context)["body"]
