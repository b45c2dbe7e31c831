import os

from .ports import Notifier


def create_notifier(channel: str | None = None) -> Notifier:
    """
    Factory: create the right adapter based on config.

    The channel can be passed explicitly or read from the
    NOTIFY_CHANNEL env var. Defaults to "console".
    """
    channel = channel or os.environ.get("NOTIFY_CHANNEL", "console")

    if channel == "push":
        from .push_notifier import HttpPushNotifier

        return HttpPushNotifier(
            relay_url=os.environ["PUSH_RELAY_URL"],
            token=os.environ.get("PUSH_RELAY_TOKEN"),
        )

    if channel == "email":
        from .email_notifier import EmailNotifier

        return EmailNotifier(
            smtp_host=os.environ.get("EMAIL_SMTP_HOST", "smtp.gmail.com"),
            smtp_port=int(os.environ.get("EMAIL_SMTP_PORT", "587")),
            smtp_user=os.environ["EMAIL_USER"],
            smtp_password=os.environ["EMAIL_PASSWORD"],
            owner_email=os.environ["OWNER_EMAIL"],
            base_url=os.environ.get("PUBLIC_BASE_URL", ""),
        )

    if channel == "console":
        from .console_notifier import ConsoleNotifier

        return ConsoleNotifier()

    raise ValueError(f"Unknown notify channel: {channel!r}")
