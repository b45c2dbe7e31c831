import requests

from .ports import Notification, Notifier


class HttpPushNotifier(Notifier):
    """
    Adapter: hand notifications to a web-push relay over HTTP.

    The relay owns the device subscriptions; we POST
    {"title", "body", "url"} and it fans out.
    """

    def __init__(self, relay_url: str, token: str | None = None, timeout: float = 5.0):
        self.relay_url = relay_url
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if token:
            self.session.headers.update({"Authorization": f"Bearer {token}"})

    async def notify_all(self, notification: Notification) -> None:
        resp = self.session.post(
            self.relay_url,
            json={"title": notification.title, "body": notification.body, "url": notification.url},
            timeout=self.timeout,
        )
        resp.raise_for_status()
