"""
Tests for logging utilities module.

Uses pytest for unit tests and Hypothesis for property-based testing.
"""

import io
import json
import logging
from unittest.mock import MagicMock

from hypothesis import given, settings as hypothesis_settings

from src.utils.logging import (
    APP_NAME,
    LoggerMixin,
    add_app_context,
    add_run_id,
    clear_run_id,
    get_logger,
    get_run_id,
    set_run_id,
    setup_logging,
)
from tests.strategies import run_id


class TestRunId:
    """Tests for run ID management."""

    def test_set_and_get_run_id(self) -> None:
        """Test setting and getting the run ID."""
        assert get_run_id() is None

        set_run_id("run-123")
        assert get_run_id() == "run-123"

        clear_run_id()
        assert get_run_id() is None

    def test_set_run_id_generates_uuid(self) -> None:
        """Test that set_run_id generates a UUID when not provided."""
        rid = set_run_id()
        assert len(rid) == 36  # UUID format
        assert get_run_id() == rid

    @given(run_id())
    @hypothesis_settings(max_examples=20)
    def test_run_id_roundtrip(self, rid: str) -> None:
        """Property: Any run ID that is set should be retrievable."""
        set_run_id(rid)
        assert get_run_id() == rid
        clear_run_id()


class TestProcessors:
    """Tests for the custom structlog processors."""

    def test_adds_run_id_when_set(self) -> None:
        set_run_id("test-run")

        result = add_run_id(MagicMock(spec=logging.Logger), "info", {"event": "test"})

        assert result["run_id"] == "test-run"

    def test_no_run_id_when_not_set(self) -> None:
        result = add_run_id(MagicMock(spec=logging.Logger), "info", {"event": "test"})

        assert "run_id" not in result

    def test_adds_app_name(self) -> None:
        result = add_app_context(MagicMock(spec=logging.Logger), "info", {"event": "test"})

        assert result["app"] == APP_NAME == "memory-importer"


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_console_logging(self) -> None:
        """Test setup with console format."""
        # This should not raise
        setup_logging(log_level="DEBUG", log_format="console")

    def test_setup_with_different_levels(self) -> None:
        """Test setup with various log levels."""
        for level in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            setup_logging(log_level=level, log_format="console")
            assert logging.getLogger().level == getattr(logging, level)

    def test_json_events_carry_run_id_and_context(self) -> None:
        """JSON lines contain the event name, key/value context and run ID."""
        stream = io.StringIO()
        setup_logging(log_level="INFO", log_format="json", stream=stream)
        set_run_id("json-run")

        get_logger("test.json").info("unit_saved", memory_id="42")

        line = stream.getvalue().strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "unit_saved"
        assert record["memory_id"] == "42"
        assert record["run_id"] == "json-run"
        assert record["app"] == "memory-importer"
        assert record["level"] == "info"

    def test_level_filters_debug_events(self) -> None:
        stream = io.StringIO()
        setup_logging(log_level="WARNING", log_format="json", stream=stream)

        get_logger("test.filter").info("hidden_event")

        assert "hidden_event" not in stream.getvalue()


class TestLoggerMixin:
    """Tests for LoggerMixin class."""

    def test_mixin_provides_logger(self) -> None:
        """Test that mixin provides logger property."""
        setup_logging(log_format="console")

        class TestClass(LoggerMixin):
            pass

        assert TestClass().logger is not None

    def test_mixin_logger_caching(self) -> None:
        """Test that logger is cached on instance."""
        setup_logging(log_format="console")

        class TestClass(LoggerMixin):
            pass

        obj = TestClass()
        assert obj.logger is obj.logger
