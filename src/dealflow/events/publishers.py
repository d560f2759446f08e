"""
Domain event publishers.

Small helpers that build the right payload for each event family and put it
on the bus, so producers never assemble payloads by hand.
"""

from __future__ import annotations

from typing import Any

from .event_bus import EventBus
from .types import (
    CreditApplicationPayload,
    DealStructuringPayload,
    Event,
    EventType,
    FileLockPayload,
    TransactionPayload,
    WorkflowPayload,
)


class CreditApplicationEvents:
    def __init__(self, bus: EventBus):
        self._bus = bus

    async def submit(self, application_id: str, applicant_name: str | None = None, amount: float | None = None) -> Event:
        return await self._bus.publish(
            EventType.CREDIT_APPLICATION_SUBMITTED,
            CreditApplicationPayload(
                application_id=application_id, status="submitted", applicant_name=applicant_name, amount=amount
            ),
        )

    async def update(self, application_id: str, status: str | None = None) -> Event:
        return await self._bus.publish(
            EventType.CREDIT_APPLICATION_UPDATED,
            CreditApplicationPayload(application_id=application_id, status=status),
        )

    async def approve(self, application_id: str) -> Event:
        return await self._bus.publish(
            EventType.CREDIT_APPLICATION_APPROVED,
            CreditApplicationPayload(application_id=application_id, status="approved"),
        )

    async def upload_document(self, application_id: str, document_id: str, document_type: str | None = None) -> Event:
        return await self._bus.publish(
            EventType.CREDIT_APPLICATION_DOCUMENT_UPLOADED,
            CreditApplicationPayload(
                application_id=application_id, document_id=document_id, document_type=document_type
            ),
        )


class DealStructuringEvents:
    def __init__(self, bus: EventBus):
        self._bus = bus

    async def initiate_deal(self, transaction_id: str) -> Event:
        return await self._bus.publish(
            EventType.DEAL_STRUCTURING_INITIATED,
            DealStructuringPayload(transaction_id=transaction_id, status="initiated"),
        )

    async def select_option(self, transaction_id: str, option_id: str, selected_option: dict[str, Any] | None = None) -> Event:
        return await self._bus.publish(
            EventType.DEAL_STRUCTURING_OPTION_SELECTED,
            DealStructuringPayload(
                transaction_id=transaction_id, status="option_selected", option_id=option_id,
                selected_option=selected_option,
            ),
        )

    async def generate_term_sheet(self, transaction_id: str, term_sheet: Any) -> Event:
        return await self._bus.publish(
            EventType.DEAL_STRUCTURING_TERM_SHEET_GENERATED,
            DealStructuringPayload(transaction_id=transaction_id, status="generated", term_sheet=term_sheet),
        )

    async def approve_deal(self, transaction_id: str, selected_option: dict[str, Any] | None = None) -> Event:
        return await self._bus.publish(
            EventType.DEAL_STRUCTURING_APPROVED,
            DealStructuringPayload(transaction_id=transaction_id, status="approved", selected_option=selected_option),
        )


class FileLockEvents:
    def __init__(self, bus: EventBus):
        self._bus = bus

    async def upload_document(
        self,
        document_id: str,
        document_name: str,
        document_type: str | None = None,
        transaction_id: str | None = None,
        application_id: str | None = None,
    ) -> Event:
        return await self._bus.publish(
            EventType.FILELOCK_DOCUMENT_UPLOADED,
            FileLockPayload(
                document_id=document_id, action="uploaded", document_name=document_name,
                document_type=document_type, transaction_id=transaction_id, application_id=application_id,
            ),
        )

    async def share_document(
        self,
        document_id: str,
        recipients: list[str],
        document_name: str | None = None,
        transaction_id: str | None = None,
    ) -> Event:
        return await self._bus.publish(
            EventType.FILELOCK_DOCUMENT_SHARED,
            FileLockPayload(
                document_id=document_id, action="shared", document_name=document_name,
                transaction_id=transaction_id, recipients=tuple(recipients),
            ),
        )

    async def sign_document(
        self,
        document_id: str,
        participant_id: str,
        document_type: str = "term_sheet",
        transaction_id: str | None = None,
    ) -> Event:
        return await self._bus.publish(
            EventType.FILELOCK_DOCUMENT_SIGNED,
            FileLockPayload(
                document_id=document_id, action="signed", document_type=document_type,
                transaction_id=transaction_id, participant_id=participant_id,
            ),
        )

    async def request_documents(self, document_type: str, transaction_id: str | None = None, application_id: str | None = None) -> Event:
        return await self._bus.publish(
            EventType.FILELOCK_DOCUMENTS_REQUESTED,
            FileLockPayload(
                action="requested", document_type=document_type,
                transaction_id=transaction_id, application_id=application_id,
            ),
        )


class WorkflowEvents:
    def __init__(self, bus: EventBus):
        self._bus = bus

    async def change_stage(self, transaction_id: str, stage: str, previous_stage: str | None = None) -> Event:
        return await self._bus.publish(
            EventType.WORKFLOW_STAGE_CHANGED,
            WorkflowPayload(transaction_id=transaction_id, stage=stage, previous_stage=previous_stage),
        )


class TransactionEvents:
    def __init__(self, bus: EventBus):
        self._bus = bus

    async def create(self, transaction_id: str, data: dict[str, Any] | None = None) -> Event:
        return await self._bus.publish(
            EventType.TRANSACTION_CREATED,
            TransactionPayload(transaction_id=transaction_id, status="created", data=data),
        )

    async def update(self, transaction_id: str, status: str | None = None, data: dict[str, Any] | None = None) -> Event:
        return await self._bus.publish(
            EventType.TRANSACTION_UPDATED,
            TransactionPayload(transaction_id=transaction_id, status=status, data=data),
        )
