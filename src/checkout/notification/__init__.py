"""Notification sender factory.

Provides get_sender() / set_sender(). The default is chosen by the
``NOTIFICATION_SENDER`` setting: ``fake`` records emails in memory, ``smtp``
delivers them through the configured mail server.
"""

from checkout.config import get_settings
from checkout.notification.fake_email import FakeEmailSender
from checkout.notification.port import NotificationSender

_current_sender: NotificationSender | None = None


def build_sender() -> NotificationSender:
    settings = get_settings()
    if settings.notification_sender == "smtp":
        from checkout.notification.smtp_email import SmtpEmailSender

        return SmtpEmailSender(
            host=settings.email_host,
            port=settings.email_port,
            username=settings.email_user,
            password=settings.email_password,
            from_address=settings.email_from,
            timeout=settings.external_call_timeout,
        )
    if settings.notification_sender == "fake":
        return FakeEmailSender()
    raise ValueError(f"Unknown notification sender: {settings.notification_sender}")


def get_sender() -> NotificationSender:
    global _current_sender
    if _current_sender is None:
        _current_sender = build_sender()
    return _current_sender


def set_sender(sender: NotificationSender) -> None:
    """Override the active sender (useful for tests)."""
    global _current_sender
    _current_sender = sender


def reset_sender() -> None:
    global _current_sender
    _current_sender = None
