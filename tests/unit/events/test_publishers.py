"""
Tests for the domain event publishers.
"""

import pytest

from dealflow.events import (
    CreditApplicationEvents,
    DealStructuringEvents,
    EventType,
    FileLockEvents,
    TransactionEvents,
    WorkflowEvents,
)


@pytest.fixture
def recorded(bus):
    """Record every event published on the bus, whatever its type."""
    events = []
    bus.subscribe_multiple(list(EventType), events.append)
    return events


@pytest.mark.unit
@pytest.mark.asyncio
class TestCreditApplicationEvents:
    async def test_submit(self, bus, recorded):
        event = await CreditApplicationEvents(bus).submit("app-1", applicant_name="Ada", amount=250000.0)

        assert recorded == [event]
        assert event.event_type is EventType.CREDIT_APPLICATION_SUBMITTED
        assert event.payload.to_dict() == {
            "creditApplication": {
                "application_id": "app-1",
                "status": "submitted",
                "applicant_name": "Ada",
                "amount": 250000.0,
            }
        }

    async def test_approve_and_upload(self, bus, recorded):
        publisher = CreditApplicationEvents(bus)

        await publisher.approve("app-1")
        await publisher.upload_document("app-1", "doc-9", document_type="bank_statement")

        assert [e.event_type for e in recorded] == [
            EventType.CREDIT_APPLICATION_APPROVED,
            EventType.CREDIT_APPLICATION_DOCUMENT_UPLOADED,
        ]
        assert recorded[0].payload.status == "approved"
        assert recorded[1].payload.document_type == "bank_statement"

    async def test_update(self, bus, recorded):
        event = await CreditApplicationEvents(bus).update("app-1", status="in_review")

        assert event.event_type is EventType.CREDIT_APPLICATION_UPDATED
        assert event.payload.status == "in_review"


@pytest.mark.unit
@pytest.mark.asyncio
class TestDealStructuringEvents:
    async def test_deal_flow(self, bus, recorded):
        publisher = DealStructuringEvents(bus)

        await publisher.initiate_deal("TX-1")
        await publisher.select_option("TX-1", "opt-2", selected_option={"term": 60})
        await publisher.generate_term_sheet("TX-1", {"rate": 7.5})
        await publisher.approve_deal("TX-1")

        assert [e.event_type for e in recorded] == [
            EventType.DEAL_STRUCTURING_INITIATED,
            EventType.DEAL_STRUCTURING_OPTION_SELECTED,
            EventType.DEAL_STRUCTURING_TERM_SHEET_GENERATED,
            EventType.DEAL_STRUCTURING_APPROVED,
        ]
        assert recorded[1].payload.option_id == "opt-2"
        assert recorded[2].payload.term_sheet == {"rate": 7.5}
        assert all(e.payload.transaction_id == "TX-1" for e in recorded)


@pytest.mark.unit
@pytest.mark.asyncio
class TestFileLockEvents:
    async def test_sign_document_defaults_to_term_sheet(self, bus, recorded):
        event = await FileLockEvents(bus).sign_document("doc-1", "p-1")

        assert event.event_type is EventType.FILELOCK_DOCUMENT_SIGNED
        assert event.payload.action == "signed"
        assert event.payload.document_type == "term_sheet"
        assert event.payload.participant_id == "p-1"

    async def test_share_document(self, bus, recorded):
        event = await FileLockEvents(bus).share_document("doc-1", ["a@x.com", "b@x.com"])

        assert event.payload.recipients == ("a@x.com", "b@x.com")
        assert event.payload.to_dict()["filelock"]["action"] == "shared"

    async def test_upload_document(self, bus, recorded):
        event = await FileLockEvents(bus).upload_document(
            "doc-1", "Term Sheet.pdf", document_type="term_sheet", transaction_id="TX-1"
        )

        assert event.event_type is EventType.FILELOCK_DOCUMENT_UPLOADED
        assert event.payload.document_name == "Term Sheet.pdf"

    async def test_request_documents_has_no_document_id(self, bus, recorded):
        event = await FileLockEvents(bus).request_documents("tax_return", application_id="app-1")

        assert event.payload.to_dict() == {
            "filelock": {"action": "requested", "document_type": "tax_return", "application_id": "app-1"}
        }


@pytest.mark.unit
@pytest.mark.asyncio
class TestWorkflowAndTransactionEvents:
    async def test_change_stage(self, bus, recorded):
        event = await WorkflowEvents(bus).change_stage("TX-1", "funding", previous_stage="documents")

        assert event.event_type is EventType.WORKFLOW_STAGE_CHANGED
        assert event.payload.previous_stage == "documents"

    async def test_transaction_lifecycle(self, bus, recorded):
        publisher = TransactionEvents(bus)

        await publisher.create("TX-1", data={"amount": 100})
        await publisher.update("TX-1", status="funded")

        assert [e.payload.status for e in recorded] == ["created", "funded"]
        assert recorded[0].payload.data == {"amount": 100}
