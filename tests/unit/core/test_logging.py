# tests/unit/core/test_logging.py
"""Tests for structlog configuration."""

import io
import json
import logging
from collections.abc import Iterator

import pytest
import structlog

from signalpost.core.logging import LIBRARY_LOGGER, configure_logging, get_logger


@pytest.fixture
def restore_logging() -> Iterator[None]:
    library = logging.getLogger(LIBRARY_LOGGER)
    root = logging.getLogger()
    saved = (list(library.handlers), library.propagate, library.level, list(root.handlers), root.level)
    yield
    library.handlers, library.propagate, library.level = saved[0], saved[1], saved[2]
    root.handlers, root.level = saved[3], saved[4]
    structlog.reset_defaults()


def _records(stream: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


@pytest.mark.usefixtures("restore_logging")
class TestConfigureLogging:
    def test_json_output_with_context(self) -> None:
        stream = io.StringIO()
        configure_logging(json_output=True, stream=stream)

        get_logger("signalpost.telemetry.delivery").warning("Telemetry delivery failed", endpoint="https://x")

        (record,) = _records(stream)
        assert record["event"] == "Telemetry delivery failed"
        assert record["endpoint"] == "https://x"
        assert record["level"] == "warning"
        assert record["logger"] == "signalpost.telemetry.delivery"
        assert "timestamp" in record

    def test_credentials_redacted(self) -> None:
        stream = io.StringIO()
        configure_logging(json_output=True, stream=stream)

        get_logger("signalpost.test").info("Configured", credential="secret-key", authorization=None)

        (record,) = _records(stream)
        assert record["credential"] == "***"
        assert record["authorization"] is None

    def test_level_filters_records(self) -> None:
        stream = io.StringIO()
        configure_logging(json_output=True, level="WARNING", stream=stream)

        logger = get_logger("signalpost.test")
        logger.info("hidden")
        logger.warning("shown")

        assert [r["event"] for r in _records(stream)] == ["shown"]

    def test_library_mode_leaves_root_alone(self) -> None:
        root_handlers = list(logging.getLogger().handlers)
        configure_logging(stream=io.StringIO())
        assert logging.getLogger().handlers == root_handlers
        assert logging.getLogger(LIBRARY_LOGGER).propagate is False

    def test_root_mode_renders_stdlib_records(self) -> None:
        stream = io.StringIO()
        configure_logging(json_output=True, stream=stream, install_root_handler=True)

        logging.getLogger("host.app").warning("host message %s", 42)

        (record,) = _records(stream)
        assert record["event"] == "host message 42"
        assert record["logger"] == "host.app"

    def test_noisy_loggers_clamped(self) -> None:
        configure_logging(level="DEBUG", stream=io.StringIO())
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING
