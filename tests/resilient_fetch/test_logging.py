"""Tests for resilient_fetch.logging and the records emitted by a call."""

from __future__ import annotations

import io
import json
import logging

import pytest

from resilient_fetch import RequestFailedError, resilient_fetch
from resilient_fetch.errors import HttpStatusError
from resilient_fetch.logging import (
    CorrelationContext,
    JsonFormatter,
    LoggerAdapter,
    get_correlation_id,
    get_logger,
    set_correlation_id,
    setup_logging,
    with_fields,
)
from tests.helpers import ScriptedTransport, StubResponse


def _json_logger(name: str) -> tuple[logging.Logger, io.StringIO]:
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JsonFormatter())
    base = logging.getLogger(name)
    base.addHandler(handler)
    base.setLevel(logging.DEBUG)
    return base, stream


class TestGetLogger:
    """Tests for get_logger function."""

    def test_returns_logger_adapter(self) -> None:
        assert isinstance(get_logger(__name__), LoggerAdapter)

    def test_logger_has_null_handler(self) -> None:
        """Logger has NullHandler when no handlers configured."""
        logger = get_logger(f"{__name__}.test_null_handler")
        handlers = logger.logger.handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.NullHandler)


class TestJsonFormatter:
    """Tests for JsonFormatter class."""

    def test_formats_structured_fields(self) -> None:
        base, stream = _json_logger(f"{__name__}.test_json")
        LoggerAdapter(base, {}).info("Attempt started", extra={"attempt": 2})
        log_data = json.loads(stream.getvalue().strip())
        assert log_data["message"] == "Attempt started"
        assert log_data["level"] == "INFO"
        assert log_data["operation"] == "unknown"
        assert log_data["status"] == "success"
        assert log_data["attempt"] == 2

    def test_includes_exception(self) -> None:
        base, stream = _json_logger(f"{__name__}.test_exc")
        try:
            raise HttpStatusError(500, "Internal Server Error")
        except HttpStatusError:
            LoggerAdapter(base, {}).exception("Call failed")
        log_data = json.loads(stream.getvalue().strip())
        assert log_data["status"] == "error"
        assert "HttpStatusError" in log_data["exc_info"]


class TestLoggerAdapter:
    """Tests for the structured helpers."""

    def test_log_failure_records_error_fields(self) -> None:
        base, stream = _json_logger(f"{__name__}.test_failure")
        LoggerAdapter(base, {"operation": "resilient_fetch"}).log_failure(
            "Request failed",
            exception=HttpStatusError(503, "Service Unavailable"),
            duration_ms=12.5,
            level=logging.WARNING,
        )
        log_data = json.loads(stream.getvalue().strip())
        assert log_data["level"] == "WARNING"
        assert log_data["operation"] == "resilient_fetch"
        assert log_data["status"] == "error"
        assert log_data["duration_ms"] == 12.5
        assert log_data["error_type"] == "HttpStatusError"

    def test_per_call_extra_wins(self) -> None:
        base, stream = _json_logger(f"{__name__}.test_precedence")
        LoggerAdapter(base, {"status": "started"}).info("x", extra={"status": "retrying"})
        assert json.loads(stream.getvalue().strip())["status"] == "retrying"


class TestCorrelation:
    """Correlation ID propagation."""

    def test_context_restores_previous(self) -> None:
        set_correlation_id("outer")
        try:
            with CorrelationContext("inner"):
                assert get_correlation_id() == "inner"
            assert get_correlation_id() == "outer"
        finally:
            set_correlation_id(None)

    def test_with_fields_binds_and_restores(self) -> None:
        base, stream = _json_logger(f"{__name__}.test_with_fields")
        with with_fields(base, correlation_id="req-1", operation="fetch") as log:
            assert get_correlation_id() == "req-1"
            log.info("inside")
        assert get_correlation_id() is None
        log_data = json.loads(stream.getvalue().strip())
        assert log_data["correlation_id"] == "req-1"
        assert log_data["operation"] == "fetch"


class TestSetupLogging:
    def test_accepts_level_name(self) -> None:
        root = logging.getLogger()
        previous = (root.level, list(root.handlers))
        try:
            setup_logging("warning")
            assert root.level == logging.WARNING
            assert isinstance(root.handlers[0].formatter, JsonFormatter)
        finally:
            root.handlers[:] = previous[1]
            root.setLevel(previous[0])


class TestCallLogging:
    """Records emitted by resilient_fetch."""

    @pytest.mark.asyncio
    async def test_success_is_logged_with_attempts(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.DEBUG, logger="resilient_fetch")
        transport = ScriptedTransport(StubResponse(500), StubResponse(200, {}))
        await resilient_fetch("https://api.example.com", transport=transport).result
        success = [r for r in caplog.records if r.getMessage() == "Request succeeded"]
        assert len(success) == 1
        assert success[0].attempts == 2
        assert success[0].operation == "resilient_fetch"
        assert success[0].url == "https://api.example.com"
        assert success[0].correlation_id

    @pytest.mark.asyncio
    async def test_caller_correlation_id_is_reused(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.DEBUG, logger="resilient_fetch")
        with CorrelationContext("req-42"):
            call = resilient_fetch(
                "https://api.example.com",
                custom_options={"retry_attempts": 1},
                transport=ScriptedTransport(StubResponse(502)),
            )
            with pytest.raises(RequestFailedError):
                await call.result
        failures = [r for r in caplog.records if r.getMessage() == "Request failed"]
        assert len(failures) == 1
        assert failures[0].correlation_id == "req-42"
        assert failures[0].levelno == logging.WARNING
