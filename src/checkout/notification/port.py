"""Notification sender port: abstract interface for customer email dispatch."""

from abc import ABC, abstractmethod

STATUS_SENT = "sent"
STATUS_FAILED = "failed"


class NotificationSender(ABC):
    """Abstract interface for email senders."""

    @abstractmethod
    def send(self, to: str, subject: str, body: str) -> dict:
        """Send an email message.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...
