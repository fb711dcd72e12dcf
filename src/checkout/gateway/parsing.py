"""Decoding of checkout session payloads shared by the gateway adapters.

Both adapters hand this module plain dicts shaped like the provider's JSON:
a checkout session object and its line items with ``price.product`` expanded.
"""

from checkout.gateway.port import CheckoutCompleted, CheckoutLine

ADDRESS_FIELDS = ("line1", "line2", "city", "postal_code", "country")


def _shipping_source(session: dict) -> dict | None:
    collected = session.get("collected_information") or {}
    return collected.get("shipping_details") or session.get("shipping_details") or session.get("customer_details")


def parse_shipping_address(session: dict) -> dict | None:
    source = _shipping_source(session)
    if not source:
        return None

    address = source.get("address") or {}
    customer = session.get("customer_details") or {}
    parsed = {key: address.get(key) for key in ADDRESS_FIELDS}
    parsed["name"] = source.get("name") or customer.get("name")
    parsed["phone"] = source.get("phone") or customer.get("phone")
    if not any(parsed.values()):
        return None
    return parsed


def _product_id(line: dict) -> str | None:
    price = line.get("price") or {}
    product = price.get("product")
    if isinstance(product, dict):
        metadata = product.get("metadata") or {}
        product_id = metadata.get("productId") or metadata.get("product_id")
        return str(product_id) if product_id else None
    return None


def parse_line(line: dict) -> CheckoutLine:
    quantity = int(line.get("quantity") or 1)
    amount_total = int(line.get("amount_total") or 0)
    price = line.get("price") or {}
    unit_amount = price.get("unit_amount")
    if unit_amount is None:
        unit_amount = amount_total // quantity if quantity else 0

    return CheckoutLine(
        description=line.get("description") or "Item",
        quantity=quantity,
        unit_amount=int(unit_amount),
        amount_total=amount_total,
        product_id=_product_id(line),
    )


def parse_checkout_session(session: dict, line_items: list[dict]) -> CheckoutCompleted:
    customer = session.get("customer_details") or {}
    intent = session.get("payment_intent")
    if isinstance(intent, dict):
        intent = intent.get("id")

    return CheckoutCompleted(
        payment_session_id=session["id"],
        payment_intent_id=intent or None,
        customer_email=customer.get("email") or session.get("customer_email") or None,
        customer_name=customer.get("name") or None,
        shipping_address=parse_shipping_address(session),
        total_amount=int(session.get("amount_total") or 0),
        currency=(session.get("currency") or "").upper(),
        lines=tuple(parse_line(line) for line in line_items),
    )
