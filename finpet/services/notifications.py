# finpet/services/notifications.py
from abc import ABC, abstractmethod
from collections import deque
from typing import List, Optional

import structlog

from finpet.models.notification import Notification, NotificationSeverity

log = structlog.get_logger(__name__)


class NotificationSink(ABC):
    """Fire-and-forget destination for user-facing messages."""

    @abstractmethod
    def notify(self, notification: Notification) -> None:
        pass


class LoggingNotificationSink(NotificationSink):
    def notify(self, notification: Notification) -> None:
        level = log.warning if notification.severity == NotificationSeverity.DESTRUCTIVE else log.info
        level("pet_notification", title=notification.title, description=notification.description)


class NotificationFeed(NotificationSink):
    """Keeps the most recent notifications for clients that poll, optionally forwarding each one."""

    def __init__(self, maxlen: int = 50, forward_to: Optional[NotificationSink] = None):
        self._items = deque(maxlen=maxlen)
        self._forward_to = forward_to

    def notify(self, notification: Notification) -> None:
        self._items.append(notification)
        if self._forward_to is not None:
            self._forward_to.notify(notification)

    def recent(self, limit: Optional[int] = None) -> List[Notification]:
        items = list(self._items)
        if limit is not None:
            items = items[-limit:] if limit > 0 else []
        return items
