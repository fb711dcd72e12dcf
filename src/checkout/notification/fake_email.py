"""Fake email sender: records sent emails for testing."""

from uuid import uuid4

from checkout.notification.port import STATUS_FAILED, STATUS_SENT, NotificationSender


class FakeEmailSender(NotificationSender):
    """Email sender that records messages in memory for test assertions."""

    def __init__(self):
        self.sent_emails: list[dict] = []
        self.should_succeed = True
        self.raise_error = False
        self.failure_reason = "Email delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Email delivery failed", raise_error=False):
        """Configure the fake sender. ``raise_error`` makes ``send`` raise instead of reporting failure."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.raise_error = raise_error

    def send(self, to: str, subject: str, body: str) -> dict:
        if self.raise_error:
            raise ConnectionError(self.failure_reason)
        if not self.should_succeed:
            return {"message_id": None, "status": STATUS_FAILED, "error": self.failure_reason}

        message_id = f"email-{uuid4().hex[:12]}"
        self.sent_emails.append(
            {
                "message_id": message_id,
                "to": to,
                "subject": subject,
                "body": body,
            }
        )
        return {"message_id": message_id, "status": STATUS_SENT}

    def reset(self):
        """Clear sent emails (useful between tests)."""
        self.sent_emails.clear()
        self.should_succeed = True
        self.raise_error = False
        self.failure_reason = "Email delivery failed"
