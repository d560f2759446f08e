"""
Event Types and Payload Registry

Defines the closed set of event tags carried by the bus and the payload
class bound to each tag. A payload only carries the fields relevant to its
event family; serialized payloads omit unset fields instead of emitting nulls.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar

from .exceptions import EventValidationError


class EventType(str, Enum):
    """Closed set of event tags."""

    CREDIT_APPLICATION_SUBMITTED = "credit-application:submitted"
    CREDIT_APPLICATION_UPDATED = "credit-application:updated"
    CREDIT_APPLICATION_APPROVED = "credit-application:approved"
    CREDIT_APPLICATION_DOCUMENT_UPLOADED = "credit-application:document-uploaded"

    DEAL_STRUCTURING_INITIATED = "deal-structuring:initiated"
    DEAL_STRUCTURING_OPTION_SELECTED = "deal-structuring:option-selected"
    DEAL_STRUCTURING_TERM_SHEET_GENERATED = "deal-structuring:term-sheet-generated"
    DEAL_STRUCTURING_APPROVED = "deal-structuring:approved"

    FILELOCK_DOCUMENT_UPLOADED = "filelock:document-uploaded"
    FILELOCK_DOCUMENT_SHARED = "filelock:document-shared"
    FILELOCK_DOCUMENT_SIGNED = "filelock:document-signed"
    FILELOCK_DOCUMENTS_REQUESTED = "filelock:documents-requested"

    WORKFLOW_STAGE_CHANGED = "workflow:stage-changed"

    TRANSACTION_CREATED = "transaction:created"
    TRANSACTION_UPDATED = "transaction:updated"

    NOTIFICATION_CREATED = "notification:created"
    DOCUMENT_STATUS_CHANGED = "document:status-changed"

    @property
    def family(self) -> str:
        """Return the event family prefix, e.g. ``filelock``."""
        return self.value.split(":", 1)[0]


class EventPayload:
    """Base class for payloads. Subclasses are frozen dataclasses."""

    payload_key: ClassVar[str] = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialize under the payload's domain key, omitting unset fields."""
        body: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if hasattr(value, "to_dict"):
                value = value.to_dict()
            elif isinstance(value, tuple):
                value = list(value)
            body[f.name] = value
        return {self.payload_key: body}


@dataclass(frozen=True)
class CreditApplicationPayload(EventPayload):
    payload_key: ClassVar[str] = "creditApplication"

    application_id: str
    status: str | None = None
    applicant_name: str | None = None
    amount: float | None = None
    document_id: str | None = None
    document_type: str | None = None


@dataclass(frozen=True)
class DealStructuringPayload(EventPayload):
    payload_key: ClassVar[str] = "dealStructuring"

    transaction_id: str
    status: str | None = None
    option_id: str | None = None
    selected_option: dict[str, Any] | None = None
    term_sheet: Any = None


@dataclass(frozen=True)
class FileLockPayload(EventPayload):
    payload_key: ClassVar[str] = "filelock"

    action: str
    document_id: str | None = None
    document_name: str | None = None
    document_type: str | None = None
    transaction_id: str | None = None
    application_id: str | None = None
    participant_id: str | None = None
    recipients: tuple[str, ...] | None = None


@dataclass(frozen=True)
class WorkflowPayload(EventPayload):
    payload_key: ClassVar[str] = "workflow"

    transaction_id: str
    stage: str
    previous_stage: str | None = None


@dataclass(frozen=True)
class TransactionPayload(EventPayload):
    payload_key: ClassVar[str] = "transaction"

    transaction_id: str
    status: str | None = None
    data: dict[str, Any] | None = None


@dataclass(frozen=True)
class NotificationPayload(EventPayload):
    payload_key: ClassVar[str] = "notification"

    notification_id: str
    type: str
    title: str
    message: str
    timestamp: datetime
    action_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data[self.payload_key]["timestamp"] = self.timestamp.isoformat()
        return data


@dataclass(frozen=True)
class DocumentStatusPayload(EventPayload):
    payload_key: ClassVar[str] = "document"

    document_id: str
    transaction_id: str
    status: str
    update_type: str
    is_funding_eligible: bool
    participant_id: str | None = None
    new_status: str | None = None


class EventPayloadRegistry:
    """Registry binding each event type to its payload class."""

    def __init__(self):
        self._payloads: dict[EventType, type[EventPayload]] = {}

    def register(self, payload_class: type[EventPayload], *event_types: EventType) -> None:
        """Bind one or more event types to a payload class."""
        for event_type in event_types:
            self._payloads[EventType(event_type)] = payload_class

    def get(self, event_type: EventType | str) -> type[EventPayload] | None:
        """Get the payload class for an event type."""
        try:
            return self._payloads.get(EventType(event_type))
        except ValueError:
            return None

    def list_types(self) -> list[EventType]:
        """List all registered event types."""
        return list(self._payloads.keys())

    def validate(self, event_type: EventType | str, payload: EventPayload) -> EventType:
        """Return the normalized event type, or raise if the payload does not match it."""
        try:
            normalized = EventType(event_type)
        except ValueError as e:
            raise EventValidationError(f"Unknown event type: {event_type}", event_type=str(event_type)) from e

        expected = self._payloads.get(normalized)
        if expected is None:
            raise EventValidationError(
                f"No payload registered for event type {normalized.value}", event_type=normalized.value
            )
        if not isinstance(payload, expected):
            raise EventValidationError(
                f"Event {normalized.value} expects {expected.__name__}, got {type(payload).__name__}",
                event_type=normalized.value,
            )
        return normalized


PAYLOAD_REGISTRY = EventPayloadRegistry()

PAYLOAD_REGISTRY.register(
    CreditApplicationPayload,
    EventType.CREDIT_APPLICATION_SUBMITTED,
    EventType.CREDIT_APPLICATION_UPDATED,
    EventType.CREDIT_APPLICATION_APPROVED,
    EventType.CREDIT_APPLICATION_DOCUMENT_UPLOADED,
)
PAYLOAD_REGISTRY.register(
    DealStructuringPayload,
    EventType.DEAL_STRUCTURING_INITIATED,
    EventType.DEAL_STRUCTURING_OPTION_SELECTED,
    EventType.DEAL_STRUCTURING_TERM_SHEET_GENERATED,
    EventType.DEAL_STRUCTURING_APPROVED,
)
PAYLOAD_REGISTRY.register(
    FileLockPayload,
    EventType.FILELOCK_DOCUMENT_UPLOADED,
    EventType.FILELOCK_DOCUMENT_SHARED,
    EventType.FILELOCK_DOCUMENT_SIGNED,
    EventType.FILELOCK_DOCUMENTS_REQUESTED,
)
PAYLOAD_REGISTRY.register(WorkflowPayload, EventType.WORKFLOW_STAGE_CHANGED)
PAYLOAD_REGISTRY.register(TransactionPayload, EventType.TRANSACTION_CREATED, EventType.TRANSACTION_UPDATED)
PAYLOAD_REGISTRY.register(NotificationPayload, EventType.NOTIFICATION_CREATED)
PAYLOAD_REGISTRY.register(DocumentStatusPayload, EventType.DOCUMENT_STATUS_CHANGED)


@dataclass(frozen=True)
class Event:
    """An immutable published event."""

    event_type: EventType
    payload: EventPayload
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "type": self.event_type.value,
            "timestamp": self.timestamp.isoformat(),
            "payload": self.payload.to_dict(),
        }
