"""
Tests for settings loading and service construction.
"""

import json
import logging

import pytest
import structlog
from pydantic import ValidationError

from dealflow import create_services, dealflow_context
from dealflow.config import DealflowSettings, get_settings
from dealflow.documents import DocumentTracker
from dealflow.events import EventBus, OverflowPolicy
from dealflow.observability import configure_logging, get_logger


@pytest.mark.unit
class TestDealflowSettings:
    """Test suite for DealflowSettings."""

    def test_defaults(self, monkeypatch):
        for name in ("DEALFLOW_LOG_LEVEL", "DEALFLOW_MAX_QUEUE_SIZE", "DEALFLOW_OVERFLOW_POLICY"):
            monkeypatch.delenv(name, raising=False)

        settings = DealflowSettings(_env_file=None)

        assert settings.service_name == "dealflow"
        assert settings.log_level == "INFO"
        assert settings.max_queue_size == 1000
        assert settings.overflow_policy is OverflowPolicy.REJECT
        assert settings.handler_timeout == 30.0
        assert settings.document_validity_days == 30
        assert settings.notification_history_limit == 50

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("DEALFLOW_LOG_LEVEL", "debug")
        monkeypatch.setenv("DEALFLOW_MAX_QUEUE_SIZE", "5")
        monkeypatch.setenv("DEALFLOW_OVERFLOW_POLICY", "drop_oldest")
        monkeypatch.setenv("DEALFLOW_DOCUMENT_VALIDITY_DAYS", "14")

        settings = DealflowSettings(_env_file=None)

        assert settings.log_level == "DEBUG"
        assert settings.max_queue_size == 5
        assert settings.overflow_policy is OverflowPolicy.DROP_OLDEST
        assert settings.document_validity_days == 14

    def test_get_settings_is_cached(self, monkeypatch):
        get_settings.cache_clear()
        monkeypatch.setenv("DEALFLOW_SERVICE_NAME", "deal-desk")
        try:
            assert get_settings() is get_settings()
            assert get_settings().service_name == "deal-desk"
        finally:
            get_settings.cache_clear()

    def test_invalid_log_level_rejected(self):
        with pytest.raises(ValidationError):
            DealflowSettings(_env_file=None, log_level="LOUD")

    def test_invalid_log_format_rejected(self):
        with pytest.raises(ValidationError):
            DealflowSettings(_env_file=None, log_format="xml")

    def test_queue_size_must_be_positive(self):
        with pytest.raises(ValidationError):
            DealflowSettings(_env_file=None, max_queue_size=0)

    def test_components_built_from_settings(self, settings):
        bus = EventBus.from_settings(settings)
        tracker = DocumentTracker.from_settings(settings.model_copy(update={"document_validity_days": 7}))

        assert bus._max_queue_size == 100
        assert bus._handler_timeout == 5.0
        assert tracker.validity_days == 7


@pytest.mark.unit
class TestLogging:
    """Test suite for structured logging configuration."""

    @pytest.fixture(autouse=True)
    def restore_logging(self):
        root = logging.getLogger()
        level = root.level
        yield
        for handler in root.handlers[:]:
            if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter):
                root.removeHandler(handler)
        root.setLevel(level)
        structlog.reset_defaults()

    def test_stdlib_records_rendered_as_json(self, settings, capsys):
        configure_logging(settings.model_copy(update={"log_format": "json", "log_level": "INFO"}))

        logging.getLogger("dealflow.documents.tracker").info("Registered document doc-1")

        line = capsys.readouterr().out.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "Registered document doc-1"
        assert record["service"] == "dealflow"
        assert record["environment"] == "test"
        assert record["level"] == "info"
        assert record["logger"] == "dealflow.documents.tracker"

    def test_level_filters_records(self, settings, capsys):
        configure_logging(settings.model_copy(update={"log_format": "json", "log_level": "WARNING"}))

        logging.getLogger("dealflow").info("hidden")
        get_logger("dealflow").warning("shown", document_id="doc-1")

        out = capsys.readouterr().out
        assert "hidden" not in out
        record = json.loads(out.strip().splitlines()[-1])
        assert record["event"] == "shown"
        assert record["document_id"] == "doc-1"


@pytest.mark.unit
@pytest.mark.asyncio
class TestServices:
    """Test suite for building the wired services."""

    async def test_create_services_wires_components(self, settings):
        services = create_services(settings)
        try:
            assert services.settings is settings
            assert services.tracker.validity_days == settings.document_validity_days
            assert services.bus.handler_count() == 2
        finally:
            await services.close()

        assert services.bus.closed

    async def test_contexts_are_isolated(self, settings, term_sheet):
        async with dealflow_context(settings) as first, dealflow_context(settings) as second:
            first.tracker.register_document(term_sheet)

            assert second.tracker.get_document_status(term_sheet.id) is None
            assert first.bus is not second.bus
