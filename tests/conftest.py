"""
Global pytest configuration and fixtures for dealflow testing.

This module provides shared fixtures that can be used across all test
modules: settings, an isolated event bus per test, a tracker and a
two-party term sheet.
"""

import pytest
import pytest_asyncio

from dealflow.config import DealflowSettings
from dealflow.documents import Document, DocumentTracker, Participant, ParticipantRole
from dealflow.events import EventBus


@pytest.fixture
def settings() -> DealflowSettings:
    """Provide test configuration independent of the environment."""
    return DealflowSettings(
        _env_file=None,
        environment="test",
        log_level="DEBUG",
        log_format="console",
        max_queue_size=100,
        handler_timeout=5.0,
    )


@pytest_asyncio.fixture
async def bus():
    """Provide a fresh event bus, closed after the test."""
    event_bus = EventBus(handler_timeout=5.0)
    yield event_bus
    await event_bus.close()


@pytest.fixture
def tracker():
    """Provide a document tracker with no bus attached."""
    document_tracker = DocumentTracker()
    yield document_tracker
    document_tracker.close()


@pytest.fixture
def borrower() -> Participant:
    return Participant(
        id="p-borrower",
        name="Ada Lovelace",
        email="ada@example.com",
        role=ParticipantRole.BORROWER,
    )


@pytest.fixture
def broker() -> Participant:
    return Participant(
        id="p-broker",
        name="Brook Broker",
        email="brook@brokerage.example.com",
        role=ParticipantRole.BROKER,
    )


@pytest.fixture
def term_sheet(borrower, broker) -> Document:
    """Two-party term sheet with everything still pending."""
    return Document.create(
        name="Term Sheet - Ada Lovelace - TX-100",
        transaction_id="TX-100",
        participants=[borrower, broker],
        document_id="doc-100",
    )
