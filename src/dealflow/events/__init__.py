"""
Event-driven coordination components.

This package provides:
- In-process event bus with ordered queued delivery and synchronous fan-out
- Closed set of event types with one payload class per event family
- Notifications delivered over the bus
- Domain publishers for each event family
"""

from .event_bus import (
    EventBus,
    EventHandler,
    OverflowPolicy,
    Subscription,
    SubscriptionRegistry,
    Unsubscribe,
    event_bus_context,
)
from .exceptions import (
    EventBusClosedError,
    EventBusError,
    EventDroppedError,
    EventValidationError,
    QueueOverflowError,
)
from .notifications import Notification, NotificationCenter, NotificationType
from .publishers import (
    CreditApplicationEvents,
    DealStructuringEvents,
    FileLockEvents,
    TransactionEvents,
    WorkflowEvents,
)
from .types import (
    PAYLOAD_REGISTRY,
    CreditApplicationPayload,
    DealStructuringPayload,
    DocumentStatusPayload,
    Event,
    EventPayload,
    EventPayloadRegistry,
    EventType,
    FileLockPayload,
    NotificationPayload,
    TransactionPayload,
    WorkflowPayload,
)

__all__ = [
    # Bus
    "EventBus",
    "EventHandler",
    "OverflowPolicy",
    "Subscription",
    "SubscriptionRegistry",
    "Unsubscribe",
    "event_bus_context",
    # Event types
    "PAYLOAD_REGISTRY",
    "Event",
    "EventPayload",
    "EventPayloadRegistry",
    "EventType",
    "CreditApplicationPayload",
    "DealStructuringPayload",
    "DocumentStatusPayload",
    "FileLockPayload",
    "NotificationPayload",
    "TransactionPayload",
    "WorkflowPayload",
    # Notifications
    "Notification",
    "NotificationCenter",
    "NotificationType",
    # Publishers
    "CreditApplicationEvents",
    "DealStructuringEvents",
    "FileLockEvents",
    "TransactionEvents",
    "WorkflowEvents",
    # Exceptions
    "EventBusError",
    "EventBusClosedError",
    "EventDroppedError",
    "EventValidationError",
    "QueueOverflowError",
]
