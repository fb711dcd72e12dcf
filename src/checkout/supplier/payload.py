"""Supplier order payload, shared by the check and create calls."""

LANGUAGE = "en"
PAYMENT_METHOD = "moneybox"


def split_name(name: str | None) -> tuple[str, str]:
    parts = (name or "").split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def build_order_payload(order_ref: str, customer, shipping_address: dict, items) -> dict:
    """Build the multishipping order body.

    ``carriers`` is left empty here; it is filled in once a carrier has been
    selected, before the create call.
    """
    first_name, last_name = split_name(shipping_address.get("name") or customer.name)
    street = ", ".join(part for part in (shipping_address.get("line1"), shipping_address.get("line2")) if part)

    return {
        "order": {
            "internalReference": order_ref,
            "language": LANGUAGE,
            "paymentMethod": PAYMENT_METHOD,
            "carriers": [],
            "shippingAddress": {
                "firstName": first_name,
                "lastName": last_name,
                "country": (shipping_address.get("country") or "").upper(),
                "postcode": shipping_address.get("postal_code") or "",
                "town": shipping_address.get("city") or "",
                "address": street,
                "phone": shipping_address.get("phone") or "",
                "email": customer.email or "",
                "comment": "",
            },
            "products": [{"reference": item.sku, "quantity": item.quantity} for item in items],
        }
    }
