"""
Tests for event tags, payload serialization and the payload registry.
"""

from datetime import datetime, timezone

import pytest

from dealflow.events import (
    PAYLOAD_REGISTRY,
    CreditApplicationPayload,
    DealStructuringPayload,
    Event,
    EventPayloadRegistry,
    EventType,
    EventValidationError,
    FileLockPayload,
    NotificationPayload,
    TransactionPayload,
    WorkflowPayload,
)


@pytest.mark.unit
class TestEventType:
    """Test suite for the closed set of event tags."""

    def test_tags_use_family_prefix(self):
        assert EventType("filelock:document-signed") is EventType.FILELOCK_DOCUMENT_SIGNED
        assert EventType.FILELOCK_DOCUMENT_SIGNED.family == "filelock"
        assert EventType.CREDIT_APPLICATION_DOCUMENT_UPLOADED.family == "credit-application"

    def test_unknown_tag_rejected(self):
        with pytest.raises(ValueError):
            EventType("filelock:document-burned")

    def test_every_tag_has_a_payload_class(self):
        assert set(PAYLOAD_REGISTRY.list_types()) == set(EventType)


@pytest.mark.unit
class TestPayloads:
    """Test suite for payload serialization."""

    def test_unset_fields_are_omitted(self):
        payload = FileLockPayload(action="signed", document_id="doc-1", participant_id="p-1")

        assert payload.to_dict() == {
            "filelock": {"action": "signed", "document_id": "doc-1", "participant_id": "p-1"}
        }

    def test_recipients_serialized_as_list(self):
        payload = FileLockPayload(action="shared", document_id="doc-1", recipients=("a@x.com", "b@x.com"))

        assert payload.to_dict()["filelock"]["recipients"] == ["a@x.com", "b@x.com"]

    def test_each_family_has_its_own_key(self):
        assert list(CreditApplicationPayload(application_id="app-1").to_dict()) == ["creditApplication"]
        assert list(DealStructuringPayload(transaction_id="TX-1").to_dict()) == ["dealStructuring"]
        assert list(WorkflowPayload(transaction_id="TX-1", stage="funding").to_dict()) == ["workflow"]
        assert list(TransactionPayload(transaction_id="TX-1").to_dict()) == ["transaction"]

    def test_nested_term_sheet_serialized(self):
        class TermSheet:
            def to_dict(self):
                return {"rate": 7.5}

        payload = DealStructuringPayload(transaction_id="TX-1", term_sheet=TermSheet())

        assert payload.to_dict()["dealStructuring"]["term_sheet"] == {"rate": 7.5}

    def test_notification_timestamp_serialized_as_iso(self):
        stamp = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        payload = NotificationPayload(
            notification_id="n-1", type="info", title="Hi", message="There", timestamp=stamp
        )

        assert payload.to_dict()["notification"]["timestamp"] == "2024-01-02T03:04:05+00:00"

    def test_payloads_are_immutable(self):
        payload = FileLockPayload(action="signed", document_id="doc-1")

        with pytest.raises(AttributeError):
            payload.document_id = "doc-2"


@pytest.mark.unit
class TestEventPayloadRegistry:
    """Test suite for payload validation."""

    def test_validate_normalizes_string_tag(self):
        event_type = PAYLOAD_REGISTRY.validate(
            "credit-application:approved", CreditApplicationPayload(application_id="app-1")
        )

        assert event_type is EventType.CREDIT_APPLICATION_APPROVED

    def test_validate_rejects_mismatched_payload(self):
        with pytest.raises(EventValidationError) as exc_info:
            PAYLOAD_REGISTRY.validate(
                EventType.WORKFLOW_STAGE_CHANGED, TransactionPayload(transaction_id="TX-1")
            )

        assert exc_info.value.event_type == "workflow:stage-changed"
        assert exc_info.value.error_code == "EVENT_VALIDATION"

    def test_validate_rejects_unknown_tag(self):
        with pytest.raises(EventValidationError):
            PAYLOAD_REGISTRY.validate("workflow:exploded", WorkflowPayload(transaction_id="TX-1", stage="x"))

    def test_empty_registry_rejects_everything(self):
        registry = EventPayloadRegistry()

        assert registry.get(EventType.TRANSACTION_CREATED) is None
        assert registry.get("not-a-tag") is None
        with pytest.raises(EventValidationError):
            registry.validate(EventType.TRANSACTION_CREATED, TransactionPayload(transaction_id="TX-1"))

    def test_register_binds_several_tags(self):
        registry = EventPayloadRegistry()
        registry.register(TransactionPayload, EventType.TRANSACTION_CREATED, EventType.TRANSACTION_UPDATED)

        assert registry.get("transaction:updated") is TransactionPayload
        assert registry.list_types() == [EventType.TRANSACTION_CREATED, EventType.TRANSACTION_UPDATED]


@pytest.mark.unit
class TestEvent:
    def test_event_gets_identity_and_timestamp(self):
        first = Event(event_type=EventType.TRANSACTION_CREATED, payload=TransactionPayload(transaction_id="TX-1"))
        second = Event(event_type=EventType.TRANSACTION_CREATED, payload=TransactionPayload(transaction_id="TX-1"))

        assert first.event_id != second.event_id
        assert first.timestamp.tzinfo is not None

    def test_to_dict(self):
        event = Event(
            event_type=EventType.TRANSACTION_CREATED,
            payload=TransactionPayload(transaction_id="TX-1", status="open"),
        )

        data = event.to_dict()

        assert data["type"] == "transaction:created"
        assert data["event_id"] == event.event_id
        assert data["payload"] == {"transaction": {"transaction_id": "TX-1", "status": "open"}}
