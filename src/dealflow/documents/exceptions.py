"""Document tracking exceptions."""

from ..exceptions import DealflowError


class DocumentTrackingError(DealflowError):
    """Base exception for document tracking errors."""


class ParticipantNotFoundError(DocumentTrackingError):
    """Raised when an update names a participant the document does not have."""

    def __init__(self, document_id: str, participant_id: str):
        super().__init__(
            f"Participant {participant_id} not found on document {document_id}",
            error_code="PARTICIPANT_NOT_FOUND",
            details={"document_id": document_id, "participant_id": participant_id},
        )
        self.document_id = document_id
        self.participant_id = participant_id
