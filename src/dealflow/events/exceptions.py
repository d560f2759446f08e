"""
Event Bus Exceptions

Custom exceptions for event publishing operations.
"""

from ..exceptions import DealflowError


class EventBusError(DealflowError):
    """Base exception for event bus errors."""

    def __init__(self, message: str, event_type: str | None = None, error_code: str | None = None):
        super().__init__(message, error_code=error_code, details={"event_type": event_type} if event_type else None)
        self.event_type = event_type


class EventValidationError(EventBusError):
    """Raised when a payload does not belong to the event type it is published under."""

    def __init__(self, message: str, event_type: str | None = None):
        super().__init__(message, event_type=event_type, error_code="EVENT_VALIDATION")


class QueueOverflowError(EventBusError):
    """Raised when the dispatch queue is full and the overflow policy rejects."""

    def __init__(self, message: str, event_type: str | None = None):
        super().__init__(message, event_type=event_type, error_code="QUEUE_OVERFLOW")


class EventBusClosedError(EventBusError):
    """Raised when publishing on a bus that has been closed."""

    def __init__(self, message: str = "Event bus is closed", event_type: str | None = None):
        super().__init__(message, event_type=event_type, error_code="BUS_CLOSED")


class EventDroppedError(QueueOverflowError):
    """Raised to the publisher of a queued event discarded to make room for a newer one."""

    def __init__(self, message: str, event_type: str | None = None):
        EventBusError.__init__(self, message, event_type=event_type, error_code="EVENT_DROPPED")
