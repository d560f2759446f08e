"""Funding eligibility derived purely from participant state."""

from __future__ import annotations

from .models import Document, EligibilityResult, SignatureStatus, VerificationStatus


def evaluate(document: Document) -> EligibilityResult:
    """List what is still pending and what is done for every participant.

    A document is eligible for funding once nothing is pending: every
    participant has signed and passed KYC, and every non-borrower has also
    passed KYB.
    """
    pending: list[str] = []
    completed: list[str] = []

    for participant in document.participants:
        label = participant.label

        if participant.signature_status is SignatureStatus.SIGNED:
            completed.append(f"Signature received from {label}")
        else:
            pending.append(f"Signature required from {label}")

        if participant.kyc_status is VerificationStatus.VERIFIED:
            completed.append(f"KYC verified for {label}")
        else:
            pending.append(f"KYC verification required for {label}")

        if participant.requires_kyb:
            if participant.kyb_status is VerificationStatus.VERIFIED:
                completed.append(f"KYB verified for {label}")
            else:
                pending.append(f"KYB verification required for {label}")

    return EligibilityResult(
        eligible=not pending,
        pending_items=tuple(pending),
        completed_items=tuple(completed),
    )
