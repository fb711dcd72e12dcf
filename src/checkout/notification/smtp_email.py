"""SMTP email sender (STARTTLS submission, e.g. port 587)."""

import smtplib
from email.message import EmailMessage
from email.utils import make_msgid

import structlog

from checkout.notification.port import STATUS_FAILED, STATUS_SENT, NotificationSender

logger = structlog.get_logger(__name__)


class SmtpEmailSender(NotificationSender):
    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        from_address: str = "",
        timeout: float = 15.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_address = from_address or username
        self.timeout = timeout

    def build_message(self, to: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.from_address
        message["To"] = to
        message["Subject"] = subject
        message["Message-ID"] = make_msgid()
        message.set_content(body)
        return message

    def send(self, to: str, subject: str, body: str) -> dict:
        message = self.build_message(to, subject, body)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("smtp_send_failed", host=self.host, error=str(exc))
            return {"message_id": None, "status": STATUS_FAILED, "error": str(exc)}

        return {"message_id": message["Message-ID"], "status": STATUS_SENT}
