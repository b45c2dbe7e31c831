"""
NotificationOutbox — best-effort delivery, decoupled from the intake write.

The pipeline enqueues; dispatch() delivers.  A failed event stays queued for
the next dispatch() and is logged, never raised.
"""

import logging
from collections import deque

from .ports import Notification, Notifier

log = logging.getLogger(__name__)


class NotificationOutbox:

    def __init__(self, notifier: Notifier, max_pending: int = 500):
        self._notifier = notifier
        self._pending: deque[Notification] = deque(maxlen=max_pending)

    @property
    def pending(self) -> list[Notification]:
        return list(self._pending)

    def enqueue(self, notification: Notification) -> None:
        self._pending.append(notification)

    async def dispatch(self) -> int:
        """Try every queued event once; returns how many were delivered."""
        delivered = 0
        for _ in range(len(self._pending)):
            notification = self._pending.popleft()
            try:
                await self._notifier.notify_all(notification)
            except Exception as exc:
                log.warning("notification %r not delivered, kept for retry: %s", notification.title, exc)
                self._pending.append(notification)
            else:
                delivered += 1
        return delivered
