import email.utils
import smtplib
from email.mime.text import MIMEText

from .ports import Notification, Notifier


class EmailNotifier(Notifier):
    """Adapter: alert the owner by email (SMTP send only)."""

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        smtp_user: str,
        smtp_password: str,
        owner_email: str,
        base_url: str = "",
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.owner_email = owner_email
        self.base_url = base_url.rstrip("/")

    def build_message(self, notification: Notification) -> MIMEText:
        text = f"{notification.body}\n\n{self.base_url}{notification.url}"
        msg = MIMEText(text, _charset="utf-8")
        msg["Subject"] = notification.title
        msg["From"] = self.smtp_user
        msg["To"] = self.owner_email
        msg["Message-ID"] = email.utils.make_msgid(domain="booking-inbox")
        return msg

    async def notify_all(self, notification: Notification) -> None:
        msg = self.build_message(notification)
        with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
            server.starttls()
            server.login(self.smtp_user, self.smtp_password)
            server.send_message(msg)
