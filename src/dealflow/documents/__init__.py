"""
Document lifecycle tracking.

This package provides:
- Participant and document models with the audit log entry type
- Funding eligibility evaluation
- The document tracker that applies updates and derives document status
- The term sheet workflow that hands new documents to the tracker
"""

from .eligibility import evaluate
from .exceptions import DocumentTrackingError, ParticipantNotFoundError
from .models import (
    DEFAULT_VALIDITY_DAYS,
    Document,
    DocumentStatus,
    EligibilityResult,
    Participant,
    ParticipantRole,
    SignatureStatus,
    StatusUpdateLogEntry,
    TrackingResult,
    UpdateType,
    VerificationKind,
    VerificationStatus,
    derive_document_status,
)
from .tracker import DocumentTracker
from .workflow import (
    DealParticipants,
    DocumentGenerator,
    GeneratedFile,
    SecureStorage,
    SignatureRequest,
    SignatureService,
    StoredFile,
    TermSheetData,
    TermSheetWorkflow,
    VerificationService,
    VerificationTicket,
)

__all__ = [
    "DEFAULT_VALIDITY_DAYS",
    "Document",
    "DocumentStatus",
    "EligibilityResult",
    "Participant",
    "ParticipantRole",
    "SignatureStatus",
    "StatusUpdateLogEntry",
    "TrackingResult",
    "UpdateType",
    "VerificationKind",
    "VerificationStatus",
    "derive_document_status",
    "evaluate",
    "DocumentTracker",
    "DocumentTrackingError",
    "ParticipantNotFoundError",
    "DealParticipants",
    "DocumentGenerator",
    "GeneratedFile",
    "SecureStorage",
    "SignatureRequest",
    "SignatureService",
    "StoredFile",
    "TermSheetData",
    "TermSheetWorkflow",
    "VerificationService",
    "VerificationTicket",
]
