from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class Notification:
    """What we push to the business owner."""

    title: str  # "📩 New booking message"
    body: str   # "+15551234567: Board my dog from Nov 7..."
    url: str    # "/booking/12" or "/"


class Notifier(ABC):
    """
    Port: how the owner hears about new messages.

    The intake pipeline never calls this directly; it goes through the
    NotificationOutbox, so a failing channel can never fail an intake.
    Implementations may raise; the outbox catches and retries.
    """

    @abstractmethod
    async def notify_all(self, notification: Notification) -> None:
        """Deliver to every subscribed device / recipient."""
        ...
