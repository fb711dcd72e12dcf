"""Customer notification outcome: command and handler."""

from protean import handle
from protean.fields import String
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.order.order import NotificationOutcome, Order


@checkout.command(part_of="Order")
class RecordCustomerNotified:
    payment_session_id: String(required=True, max_length=255)
    outcome: String(required=True, choices=NotificationOutcome)


@checkout.command_handler(part_of=Order)
class CustomerNotificationHandler:
    @handle(RecordCustomerNotified)
    def record_customer_notified(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.payment_session_id)
        order.record_notification(NotificationOutcome(command.outcome))
        repo.add(order)
