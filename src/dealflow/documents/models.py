"""
Document tracking models.

Participants, term sheet documents, the audit log entries recorded against
them and the read models handed back to callers.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

DEFAULT_VALIDITY_DAYS = 30


class ParticipantRole(str, Enum):
    BORROWER = "borrower"
    BROKER = "broker"
    VENDOR = "vendor"
    GUARANTOR = "guarantor"
    ASSET_SELLER = "asset_seller"
    LENDER = "lender"


class SignatureStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    SIGNED = "signed"
    EXPIRED = "expired"


class VerificationStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    VERIFIED = "verified"
    FAILED = "failed"


class VerificationKind(str, Enum):
    KYC = "kyc"
    KYB = "kyb"


class DocumentStatus(str, Enum):
    DRAFT = "draft"
    PENDING_SIGNATURES = "pending_signatures"
    PARTIALLY_SIGNED = "partially_signed"
    FULLY_SIGNED = "fully_signed"
    EXPIRED = "expired"


class UpdateType(str, Enum):
    SIGNATURE = "signature"
    KYC = "kyc"
    KYB = "kyb"
    STATUS_CHANGE = "status_change"


# Forward-only ordering of the signature lifecycle
_STATUS_RANK = {
    DocumentStatus.DRAFT: 0,
    DocumentStatus.PENDING_SIGNATURES: 1,
    DocumentStatus.PARTIALLY_SIGNED: 2,
    DocumentStatus.FULLY_SIGNED: 3,
}


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class Participant:
    """One party to a document and its signature/verification progress."""

    id: str
    name: str
    email: str
    role: ParticipantRole
    signature_status: SignatureStatus = SignatureStatus.PENDING
    kyc_status: VerificationStatus = VerificationStatus.PENDING
    kyb_status: VerificationStatus = VerificationStatus.PENDING

    def __post_init__(self):
        self.role = ParticipantRole(self.role)
        self.signature_status = SignatureStatus(self.signature_status)
        self.kyc_status = VerificationStatus(self.kyc_status)
        self.kyb_status = VerificationStatus(self.kyb_status)

    @property
    def requires_kyb(self) -> bool:
        """Business verification applies to every role except the borrower."""
        return self.role is not ParticipantRole.BORROWER

    @property
    def label(self) -> str:
        return f"{self.name} ({self.role.value})"

    def verification_status(self, kind: VerificationKind) -> VerificationStatus:
        return self.kyc_status if kind is VerificationKind.KYC else self.kyb_status

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "signature_status": self.signature_status.value,
            "kyc_status": self.kyc_status.value,
            "kyb_status": self.kyb_status.value,
        }


@dataclass
class Document:
    """A term sheet and the participants whose signatures it needs."""

    id: str
    name: str
    transaction_id: str
    created_at: datetime
    expires_at: datetime
    status: DocumentStatus = DocumentStatus.DRAFT
    participants: list[Participant] = field(default_factory=list)
    file_url: str | None = None
    borrower_name: str | None = None

    def __post_init__(self):
        self.status = DocumentStatus(self.status)
        self.created_at = _as_utc(self.created_at)
        self.expires_at = _as_utc(self.expires_at)

    @classmethod
    def create(
        cls,
        name: str,
        transaction_id: str,
        participants: Iterable[Participant],
        validity_days: int = DEFAULT_VALIDITY_DAYS,
        document_id: str | None = None,
        created_at: datetime | None = None,
        file_url: str | None = None,
        borrower_name: str | None = None,
    ) -> Document:
        """Create a draft document expiring ``validity_days`` after creation."""
        created_at = created_at or datetime.now(timezone.utc)
        return cls(
            id=document_id or str(uuid.uuid4()),
            name=name,
            transaction_id=transaction_id,
            created_at=created_at,
            expires_at=created_at + timedelta(days=validity_days),
            participants=list(participants),
            file_url=file_url,
            borrower_name=borrower_name,
        )

    def participant(self, participant_id: str) -> Participant | None:
        for participant in self.participants:
            if participant.id == participant_id:
                return participant
        return None

    def is_expired(self, now: datetime | None = None) -> bool:
        """Read-time expiry check; nothing sweeps expired documents."""
        return _as_utc(now or datetime.now(timezone.utc)) >= self.expires_at

    def effective_status(self, now: datetime | None = None) -> DocumentStatus:
        """Status as seen by readers: unsigned documents past their validity window read as expired."""
        if self.status is not DocumentStatus.FULLY_SIGNED and self.is_expired(now):
            return DocumentStatus.EXPIRED
        return self.status

    def snapshot(self) -> Document:
        """Copy that shares no mutable state with this document."""
        return replace(self, participants=[replace(p) for p in self.participants])

    def to_dict(self) -> dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "transaction_id": self.transaction_id,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "status": self.status.value,
            "participants": [p.to_dict() for p in self.participants],
        }
        if self.file_url is not None:
            data["file_url"] = self.file_url
        if self.borrower_name is not None:
            data["borrower_name"] = self.borrower_name
        return data


@dataclass(frozen=True)
class StatusUpdateLogEntry:
    """Append-only audit record of one change to a document."""

    document_id: str
    update_type: UpdateType
    new_status: str
    message: str
    participant_id: str | None = None
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class EligibilityResult:
    eligible: bool
    pending_items: tuple[str, ...]
    completed_items: tuple[str, ...]


@dataclass(frozen=True)
class TrackingResult:
    """Point-in-time view of a document, its audit log and funding readiness."""

    document: Document
    status_updates: tuple[StatusUpdateLogEntry, ...]
    is_funding_eligible: bool
    pending_items: tuple[str, ...]
    completed_items: tuple[str, ...]
    is_expired: bool = False


def derive_document_status(participants: Iterable[Participant], current: DocumentStatus) -> DocumentStatus:
    """Aggregate signature state into a document status.

    All participants signed gives ``fully_signed``, some gives
    ``partially_signed``, none gives ``pending_signatures`` (``draft`` is kept
    until the document has been sent). The result never moves backwards.
    """
    participants = list(participants)
    signed = sum(1 for p in participants if p.signature_status is SignatureStatus.SIGNED)

    if participants and signed == len(participants):
        derived = DocumentStatus.FULLY_SIGNED
    elif signed:
        derived = DocumentStatus.PARTIALLY_SIGNED
    elif current is DocumentStatus.DRAFT:
        derived = DocumentStatus.DRAFT
    else:
        derived = DocumentStatus.PENDING_SIGNATURES

    if _STATUS_RANK.get(current, 0) > _STATUS_RANK[derived]:
        return current
    return derived
