from .ports import Notification, Notifier


class ConsoleNotifier(Notifier):
    """Adapter: print to console and keep a copy in memory. For dev/testing."""

    def __init__(self, quiet: bool = False):
        self.sent: list[Notification] = []
        self._quiet = quiet

    async def notify_all(self, notification: Notification) -> None:
        self.sent.append(notification)
        if self._quiet:
            return

        print(f"\n{'=' * 60}")
        print(f"  {notification.title}")
        print(f"  -> {notification.url}")
        print(f"{'=' * 60}")
        print(notification.body)
        print(f"{'=' * 60}\n")
