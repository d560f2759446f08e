"""
Term sheet workflow.

Drives a generated term sheet from content generation to the point where it
is tracked and waiting on signatures and verifications. Content generation,
secure storage, e-signature and identity verification are external
collaborators reached through the protocols below.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from ..events.event_bus import EventBus
from ..events.notifications import NotificationCenter, NotificationType
from ..events.publishers import DealStructuringEvents, FileLockEvents
from ..exceptions import WorkflowError
from .models import (
    DEFAULT_VALIDITY_DAYS,
    Document,
    Participant,
    VerificationKind,
    VerificationStatus,
)
from .tracker import DocumentTracker

logger = logging.getLogger(__name__)


@dataclass
class TermSheetData:
    """Commercial terms the term sheet is generated from."""

    transaction_id: str
    transaction_type: str
    borrower_name: str
    loan_amount: float
    down_payment: float
    residual_value: float
    residual_percent: float
    term: int
    rate: float
    payment_amount: float
    financing_type: str
    borrower_address: str | None = None
    borrower_email: str | None = None
    borrower_phone: str | None = None
    asset_description: str | None = None
    closing_conditions: list[str] = field(default_factory=list)
    special_provisions: list[str] = field(default_factory=list)
    broker_name: str | None = None
    broker_company: str | None = None
    vendor_name: str | None = None


@dataclass
class DealParticipants:
    borrower: Participant
    broker: Participant | None = None
    vendor: Participant | None = None
    guarantors: list[Participant] = field(default_factory=list)
    asset_sellers: list[Participant] = field(default_factory=list)

    def ordered(self) -> list[Participant]:
        """Borrower first, then broker, vendor, guarantors and asset sellers."""
        participants = [self.borrower]
        if self.broker is not None:
            participants.append(self.broker)
        if self.vendor is not None:
            participants.append(self.vendor)
        participants.extend(self.guarantors)
        participants.extend(self.asset_sellers)
        return participants


@dataclass(frozen=True)
class GeneratedFile:
    file_id: str
    file_url: str


@dataclass(frozen=True)
class StoredFile:
    id: str
    secure_path: str


@dataclass(frozen=True)
class SignatureRequest:
    signature_request_id: str
    status: str


@dataclass(frozen=True)
class VerificationTicket:
    verification_id: str
    status: str


class DocumentGenerator(Protocol):
    async def generate_term_sheet(self, data: TermSheetData) -> GeneratedFile: ...


class SecureStorage(Protocol):
    async def upload(self, file_id: str, file_name: str, file_data: Any, transaction_id: str) -> StoredFile: ...


class SignatureService(Protocol):
    async def send_for_signature(self, document: Document, participants: list[Participant]) -> SignatureRequest: ...


class VerificationService(Protocol):
    async def initiate_verification(
        self, participant_id: str, email: str, kind: VerificationKind
    ) -> VerificationTicket: ...


class TermSheetWorkflow:
    """Generates, secures and sends a term sheet, then starts tracking it."""

    def __init__(
        self,
        bus: EventBus,
        tracker: DocumentTracker,
        notifications: NotificationCenter,
        generator: DocumentGenerator,
        storage: SecureStorage,
        signatures: SignatureService,
        verifications: VerificationService,
        validity_days: int = DEFAULT_VALIDITY_DAYS,
    ):
        self._tracker = tracker
        self._notifications = notifications
        self._generator = generator
        self._storage = storage
        self._signatures = signatures
        self._verifications = verifications
        self._validity_days = validity_days
        self._deal_events = DealStructuringEvents(bus)
        self._filelock_events = FileLockEvents(bus)

    async def run(self, data: TermSheetData, participants: DealParticipants) -> Document:
        """Run the whole workflow and return the tracked document.

        A failing collaborator raises ``WorkflowError`` chained to the
        original exception, after an error notification has been sent.
        """
        try:
            generated = await self._generator.generate_term_sheet(data)
            self._notifications.notify(
                NotificationType.SUCCESS,
                "Term Sheet Generated",
                f"Term sheet for {data.borrower_name} has been successfully generated",
                action_url="/deal-structuring",
            )

            document = Document.create(
                name=f"Term Sheet - {data.borrower_name} - {data.transaction_id}",
                transaction_id=data.transaction_id,
                participants=participants.ordered(),
                validity_days=self._validity_days,
                file_url=generated.file_url,
                borrower_name=data.borrower_name,
            )

            await self._storage.upload(
                generated.file_id,
                document.name,
                {"term_sheet": data, "file_url": generated.file_url},
                data.transaction_id,
            )
            self._notifications.notify(
                NotificationType.INFO,
                "Document Secured",
                "Term sheet securely uploaded to Filelock vault",
                action_url=f"/documents/{document.id}",
            )

            await self._signatures.send_for_signature(document, document.participants)
            self._notifications.notify(
                NotificationType.INFO,
                "Signature Request Sent",
                f"E-signature request sent for {document.name}",
                action_url=f"/documents/{document.id}",
            )

            self._tracker.register_document(document)

            for participant in document.participants:
                await self._start_verification(document, participant, VerificationKind.KYC)
                if participant.requires_kyb:
                    await self._start_verification(document, participant, VerificationKind.KYB)

        except Exception as e:
            logger.exception(f"Term sheet workflow failed for transaction {data.transaction_id}")
            self._notifications.notify(
                NotificationType.ERROR,
                "Term Sheet Generation Failed",
                "There was an error generating the term sheet. Please try again.",
            )
            raise WorkflowError(
                f"Term sheet workflow failed for transaction {data.transaction_id}: {e}",
                error_code="TERM_SHEET_WORKFLOW_FAILED",
                details={"transaction_id": data.transaction_id},
            ) from e

        tracked = self._tracker.get_document_status(document.id).document
        await self._deal_events.generate_term_sheet(data.transaction_id, tracked)
        await self._filelock_events.upload_document(
            document_id=document.id,
            document_name=document.name,
            document_type="term_sheet",
            transaction_id=data.transaction_id,
        )
        return tracked

    async def _start_verification(
        self, document: Document, participant: Participant, kind: VerificationKind
    ) -> None:
        ticket = await self._verifications.initiate_verification(participant.id, participant.email, kind)
        logger.debug(f"{kind.value.upper()} verification {ticket.verification_id} started for {participant.id}")
        self._tracker.update_verification_status(
            document.id, participant.id, kind, VerificationStatus.IN_PROGRESS
        )
