"""
User-facing notifications carried over the event bus.

Notifications are published as ``notification:created`` events instead of
going through a separate observer list, so they share the bus's delivery
and error isolation.
"""

from __future__ import annotations

import logging
import uuid
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum

from .event_bus import EventBus, Unsubscribe
from .types import Event, EventType, NotificationPayload

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    INFO = "info"


@dataclass(frozen=True)
class Notification:
    id: str
    type: NotificationType
    title: str
    message: str
    timestamp: datetime
    is_read: bool = False
    action_url: str | None = None

    @classmethod
    def from_payload(cls, payload: NotificationPayload) -> Notification:
        return cls(
            id=payload.notification_id,
            type=NotificationType(payload.type),
            title=payload.title,
            message=payload.message,
            timestamp=payload.timestamp,
            action_url=payload.action_url,
        )


class NotificationCenter:
    """Keeps a bounded notification history and fans new notifications out over the bus."""

    def __init__(self, bus: EventBus, history_limit: int = 50):
        self._bus = bus
        self._history: deque[Notification] = deque(maxlen=history_limit)
        self._unsubscribers: list[Unsubscribe] = []

    def notify(
        self,
        type: NotificationType | str,
        title: str,
        message: str,
        action_url: str | None = None,
    ) -> str:
        """Record a notification and deliver it to subscribers. Returns its id."""
        notification = Notification(
            id=str(uuid.uuid4()),
            type=NotificationType(type),
            title=title,
            message=message,
            timestamp=datetime.now(timezone.utc),
            action_url=action_url,
        )
        self._history.append(notification)
        logger.info(f"Notification [{notification.type.value}] {title}: {message}")

        self._bus.publish_sync(
            EventType.NOTIFICATION_CREATED,
            NotificationPayload(
                notification_id=notification.id,
                type=notification.type.value,
                title=title,
                message=message,
                timestamp=notification.timestamp,
                action_url=action_url,
            ),
        )
        return notification.id

    def subscribe(self, callback: Callable[[Notification], None]) -> Unsubscribe:
        """Receive every new notification."""

        def on_notification(event: Event) -> None:
            callback(Notification.from_payload(event.payload))

        unsubscribe = self._bus.subscribe(EventType.NOTIFICATION_CREATED, on_notification)
        self._unsubscribers.append(unsubscribe)
        return unsubscribe

    def get_all(self) -> list[Notification]:
        return list(self._history)

    def unread(self) -> list[Notification]:
        return [n for n in self._history if not n.is_read]

    def mark_as_read(self, notification_id: str) -> bool:
        for index, notification in enumerate(self._history):
            if notification.id == notification_id:
                self._history[index] = replace(notification, is_read=True)
                return True
        return False

    def close(self) -> None:
        """Drop subscriptions made through this center and clear the history."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        self._history.clear()
