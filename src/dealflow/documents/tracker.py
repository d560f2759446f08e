"""
Document lifecycle tracker.

Owns the registered term sheet documents, applies signature and
verification updates to their participants, derives the aggregate document
status and keeps an append-only audit log per document. When attached to an
event bus it reacts to signing events and announces every change with a
``document:status-changed`` event, so readers can subscribe instead of poll.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from ..events.event_bus import EventBus, Unsubscribe
from ..events.types import (
    DealStructuringPayload,
    DocumentStatusPayload,
    Event,
    EventType,
    FileLockPayload,
)
from .eligibility import evaluate
from .exceptions import ParticipantNotFoundError
from .models import (
    DEFAULT_VALIDITY_DAYS,
    Document,
    DocumentStatus,
    EligibilityResult,
    Participant,
    SignatureStatus,
    StatusUpdateLogEntry,
    TrackingResult,
    UpdateType,
    VerificationKind,
    VerificationStatus,
    derive_document_status,
)

if TYPE_CHECKING:
    from ..config import DealflowSettings

logger = logging.getLogger(__name__)

REGISTRATION_MESSAGE = "Term sheet generated and sent for signatures"

_SIGNATURE_MESSAGES = {
    SignatureStatus.PENDING: "Signature pending from {label}",
    SignatureStatus.SENT: "Signature request sent to {label}",
    SignatureStatus.SIGNED: "Document signed by {label}",
    SignatureStatus.EXPIRED: "Signature request expired for {label}",
}

_VERIFICATION_MESSAGES = {
    VerificationStatus.PENDING: "{kind} verification pending for {label}",
    VerificationStatus.IN_PROGRESS: "{kind} verification in progress for {label}",
    VerificationStatus.VERIFIED: "{kind} verification completed for {label}",
    VerificationStatus.FAILED: "{kind} verification failed for {label}",
}


class DocumentTracker:
    """Tracks signature and verification readiness of multi-party documents."""

    def __init__(self, bus: EventBus | None = None, validity_days: int = DEFAULT_VALIDITY_DAYS):
        self.validity_days = validity_days
        self._documents: dict[str, Document] = {}
        self._status_updates: dict[str, list[StatusUpdateLogEntry]] = {}
        self._bus: EventBus | None = None
        self._unsubscribers: list[Unsubscribe] = []

        if bus is not None:
            self.attach(bus)

    @classmethod
    def from_settings(cls, settings: DealflowSettings, bus: EventBus | None = None) -> DocumentTracker:
        return cls(bus=bus, validity_days=settings.document_validity_days)

    # Lifecycle

    def attach(self, bus: EventBus) -> None:
        """Subscribe to the domain events that drive document state."""
        if self._bus is bus:
            return
        self.detach()
        self._bus = bus
        self._unsubscribers = [
            bus.subscribe(EventType.FILELOCK_DOCUMENT_SIGNED, self._on_document_signed),
            bus.subscribe(EventType.DEAL_STRUCTURING_TERM_SHEET_GENERATED, self._on_term_sheet_generated),
        ]
        logger.info("Document tracker attached to event bus")

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self._bus = None

    def close(self) -> None:
        """Drop bus subscriptions and forget every tracked document."""
        self.detach()
        self._documents.clear()
        self._status_updates.clear()

    # Mutations

    def register_document(self, document: Document) -> None:
        """Start tracking a document that has been sent out for signatures.

        Registering an id twice replaces the earlier document and its log.
        """
        if document.id in self._documents:
            logger.warning(f"Document {document.id} is already registered; replacing it")

        tracked = document.snapshot()
        tracked.status = DocumentStatus.PENDING_SIGNATURES
        self._documents[tracked.id] = tracked
        self._status_updates[tracked.id] = []
        self._append(tracked.id, UpdateType.STATUS_CHANGE, tracked.status.value, REGISTRATION_MESSAGE)
        # Participants may arrive with signatures already collected
        self._refresh_status(tracked)

        logger.info(
            f"Registered document {tracked.id} for transaction {tracked.transaction_id} "
            f"with {len(tracked.participants)} participants"
        )
        self._announce(tracked, UpdateType.STATUS_CHANGE, None, tracked.status.value)

    def update_signature_status(
        self,
        document_id: str,
        participant_id: str,
        new_status: SignatureStatus | str,
    ) -> TrackingResult | None:
        """Set a participant's signature status. Returns None for an unknown document."""
        status = SignatureStatus(new_status)
        document = self._documents.get(document_id)
        if document is None:
            logger.warning(f"Cannot update signature: document {document_id} not found")
            return None

        participant = self._participant(document, participant_id)
        participant.signature_status = status
        self._append(
            document_id,
            UpdateType.SIGNATURE,
            status.value,
            _SIGNATURE_MESSAGES[status].format(label=participant.label),
            participant_id,
        )
        self._refresh_status(document)
        self._announce(document, UpdateType.SIGNATURE, participant_id, status.value)
        return self._tracking_result(document)

    def update_verification_status(
        self,
        document_id: str,
        participant_id: str,
        kind: VerificationKind | str,
        new_status: VerificationStatus | str,
    ) -> TrackingResult | None:
        """Set a participant's KYC or KYB status. Returns None for an unknown document."""
        kind = VerificationKind(kind)
        status = VerificationStatus(new_status)
        document = self._documents.get(document_id)
        if document is None:
            logger.warning(f"Cannot update {kind.value}: document {document_id} not found")
            return None

        participant = self._participant(document, participant_id)
        if kind is VerificationKind.KYC:
            participant.kyc_status = status
            update_type = UpdateType.KYC
        else:
            participant.kyb_status = status
            update_type = UpdateType.KYB

        self._append(
            document_id,
            update_type,
            status.value,
            _VERIFICATION_MESSAGES[status].format(kind=kind.value.upper(), label=participant.label),
            participant_id,
        )
        self._announce(document, update_type, participant_id, status.value)
        return self._tracking_result(document)

    # Queries

    def get_document_status(self, document_id: str) -> TrackingResult | None:
        """Current tracking view of a document, recomputed on every call."""
        document = self._documents.get(document_id)
        if document is None:
            logger.info(f"Document {document_id} not found")
            return None
        return self._tracking_result(document)

    def check_funding_eligibility(self, document_id: str) -> EligibilityResult | None:
        document = self._documents.get(document_id)
        if document is None:
            logger.info(f"Document {document_id} not found")
            return None
        return evaluate(document)

    def get_status_updates(self, document_id: str) -> list[StatusUpdateLogEntry]:
        return list(self._status_updates.get(document_id, ()))

    def get_all_documents(self) -> list[Document]:
        return [document.snapshot() for document in self._documents.values()]

    def get_documents_by_transaction(self, transaction_id: str) -> list[Document]:
        return [
            document.snapshot()
            for document in self._documents.values()
            if document.transaction_id == transaction_id
        ]

    def watch(self, document_id: str, callback: Callable[[TrackingResult], None]) -> Unsubscribe:
        """Call ``callback`` with a fresh tracking result whenever the document changes."""
        if self._bus is None:
            raise RuntimeError("Document tracker is not attached to an event bus")

        def on_change(event: Event) -> None:
            if event.payload.document_id != document_id:
                return
            result = self.get_document_status(document_id)
            if result is not None:
                callback(result)

        unsubscribe = self._bus.subscribe(EventType.DOCUMENT_STATUS_CHANGED, on_change)
        self._unsubscribers.append(unsubscribe)
        return unsubscribe

    # Bus handlers

    def _on_document_signed(self, event: Event) -> None:
        payload: FileLockPayload = event.payload
        if not payload.document_id or not payload.participant_id:
            logger.debug(f"Ignoring signed event {event.event_id} without document or participant")
            return
        if payload.document_id not in self._documents:
            logger.debug(f"Ignoring signed event for untracked document {payload.document_id}")
            return
        self.update_signature_status(payload.document_id, payload.participant_id, SignatureStatus.SIGNED)

    def _on_term_sheet_generated(self, event: Event) -> None:
        payload: DealStructuringPayload = event.payload
        term_sheet = payload.term_sheet
        if not isinstance(term_sheet, Document):
            return
        if term_sheet.id in self._documents:
            logger.debug(f"Term sheet {term_sheet.id} already tracked")
            return
        self.register_document(term_sheet)

    # Private methods

    def _participant(self, document: Document, participant_id: str) -> Participant:
        participant = document.participant(participant_id)
        if participant is None:
            logger.error(f"Participant {participant_id} not found on document {document.id}")
            raise ParticipantNotFoundError(document.id, participant_id)
        return participant

    def _refresh_status(self, document: Document) -> None:
        new_status = derive_document_status(document.participants, document.status)
        if new_status is document.status:
            return
        previous = document.status
        document.status = new_status
        self._append(
            document.id,
            UpdateType.STATUS_CHANGE,
            new_status.value,
            f"Document status changed to {new_status.value.replace('_', ' ')}",
        )
        logger.info(f"Document {document.id} status {previous.value} -> {new_status.value}")

    def _append(
        self,
        document_id: str,
        update_type: UpdateType,
        new_status: str,
        message: str,
        participant_id: str | None = None,
    ) -> None:
        self._status_updates[document_id].append(
            StatusUpdateLogEntry(
                document_id=document_id,
                update_type=update_type,
                new_status=new_status,
                message=message,
                participant_id=participant_id,
            )
        )

    def _tracking_result(self, document: Document) -> TrackingResult:
        eligibility = evaluate(document)
        return TrackingResult(
            document=document.snapshot(),
            status_updates=tuple(self._status_updates[document.id]),
            is_funding_eligible=eligibility.eligible,
            pending_items=eligibility.pending_items,
            completed_items=eligibility.completed_items,
            is_expired=document.is_expired(),
        )

    def _announce(
        self,
        document: Document,
        update_type: UpdateType,
        participant_id: str | None,
        new_status: str,
    ) -> None:
        if self._bus is None or self._bus.closed:
            return
        self._bus.publish_sync(
            EventType.DOCUMENT_STATUS_CHANGED,
            DocumentStatusPayload(
                document_id=document.id,
                transaction_id=document.transaction_id,
                status=document.status.value,
                update_type=update_type.value,
                is_funding_eligible=evaluate(document).eligible,
                participant_id=participant_id,
                new_status=new_status,
            ),
        )
