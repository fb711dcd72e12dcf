"""Shared BDD fixtures and step definitions for checkout fulfillment."""

from datetime import UTC, datetime, timedelta

from protean import current_domain
from pytest_bdd import given, parsers, then, when

from checkout.order.order import Order
from checkout.order.repository import orders_needing_reconciliation


def _order(session_id):
    return current_domain.repository_for(Order).get(session_id)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a completed checkout "{checkout_id}"'), target_fixture="session_id")
def _completed_checkout(checkout_id, gateway, supplier, sender):
    return checkout_id


@given(parsers.cfparse('the supplier check rejects the order with "{reason}"'))
def _check_rejects(supplier, reason):
    supplier.configure(check_succeeds=False, failure_reason=reason)


@given("the supplier create call times out")
def _create_times_out(supplier):
    supplier.configure(raise_on_create=True, failure_reason="BigBuy create timed out")


@given("the payment intent was already captured")
def _intent_captured(gateway):
    gateway.configure(intent_status="succeeded")


@given("the gateway cannot capture")
def _capture_fails(gateway):
    gateway.configure(capture_succeeds=False, failure_reason="Authorization expired")


@given("the gateway cannot cancel")
def _cancel_fails(gateway):
    gateway.configure(cancel_succeeds=False, failure_reason="Gateway timeout")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("the webhook is delivered", target_fixture="outcome")
def _deliver_webhook(deliver, session_id):
    return deliver(session_id=session_id, payment_intent=f"pi_{session_id}")


@when("the webhook is delivered again", target_fixture="outcome")
def _redeliver_webhook(deliver, session_id):
    return deliver(session_id=session_id, payment_intent=f"pi_{session_id}")


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the webhook outcome is "{status}"'))
def _webhook_outcome(outcome, status):
    assert outcome.status == status


@then(parsers.cfparse('the fulfillment status is "{status}"'))
def _fulfillment_status(session_id, status):
    assert _order(session_id).fulfillment_status == status


@then(parsers.cfparse('the payment status is "{status}"'))
def _payment_status(session_id, status):
    assert _order(session_id).payment_status == status


@then(parsers.re(r"the supplier received (?P<count>\d+) create calls?"))
def _create_calls(supplier, count):
    assert len(supplier.calls_to("create_order")) == int(count)


@then(parsers.re(r'the gateway made (?P<count>\d+) "(?P<method>\w+)" calls?'))
def _gateway_calls(gateway, count, method):
    assert len(gateway.calls_to(method)) == int(count)


@then(parsers.cfparse('the customer received "{subject}"'))
def _customer_received(sender, subject):
    assert [email["subject"] for email in sender.sent_emails] == [subject]


@then(parsers.re(r"the customer received (?P<count>\d+) emails?"))
def _customer_email_count(sender, count):
    assert len(sender.sent_emails) == int(count)


@then("the order needs reconciliation")
def _needs_reconciliation(session_id):
    stale_before = datetime.now(UTC) - timedelta(minutes=15)
    assert session_id in [order.payment_session_id for order in orders_needing_reconciliation(stale_before)]
