"""Order lookups used by the orchestrator and the operator-facing API."""

from datetime import UTC, datetime

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from checkout.order.order import FulfillmentStatus, Order, PaymentStatus

NEEDS_ATTENTION_PAYMENT_STATUSES = [
    PaymentStatus.CAPTURE_FAILED.value,
    PaymentStatus.CANCEL_FAILED.value,
    PaymentStatus.ERROR.value,
]


def find_order(payment_session_id: str) -> Order | None:
    try:
        return current_domain.repository_for(Order).get(payment_session_id)
    except ObjectNotFoundError:
        return None


def _as_utc(value: datetime) -> datetime:
    # SQL providers hand back naive datetimes that were stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def orders_needing_reconciliation(stale_before: datetime) -> list[Order]:
    """Orders an operator has to resolve by hand, oldest first.

    Covers payment-side faults, fulfillment errors, and supplier claims older
    than ``stale_before`` that never recorded an outcome.
    """
    dao = current_domain.repository_for(Order)._dao

    found: dict[str, Order] = {}
    for order in dao.query.filter(payment_status__in=NEEDS_ATTENTION_PAYMENT_STATUSES).limit(None).all().items:
        found[order.payment_session_id] = order
    for order in dao.query.filter(fulfillment_status=FulfillmentStatus.ERROR.value).limit(None).all().items:
        found[order.payment_session_id] = order
    for order in dao.query.filter(fulfillment_status=FulfillmentStatus.PENDING.value).limit(None).all().items:
        if order.supplier_attempted_at and _as_utc(order.supplier_attempted_at) <= stale_before:
            found[order.payment_session_id] = order

    return sorted(
        found.values(),
        key=lambda o: _as_utc(o.created_at) if o.created_at else datetime.min.replace(tzinfo=UTC),
    )
