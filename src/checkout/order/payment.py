"""Payment capture outcomes: commands and handlers."""

from protean import handle
from protean.fields import String
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.order.order import Order


@checkout.command(part_of="Order")
class RecordPaymentCaptured:
    payment_session_id: String(required=True, max_length=255)


@checkout.command(part_of="Order")
class RecordCaptureFailure:
    """Capture failed after the supplier accepted the order."""

    payment_session_id: String(required=True, max_length=255)
    reason: String(required=True, max_length=500)


@checkout.command_handler(part_of=Order)
class PaymentCaptureHandler:
    @handle(RecordPaymentCaptured)
    def record_payment_captured(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.payment_session_id)
        order.record_payment_captured()
        repo.add(order)

    @handle(RecordCaptureFailure)
    def record_capture_failure(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.payment_session_id)
        order.record_capture_failure(reason=command.reason)
        repo.add(order)
