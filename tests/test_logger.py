"""Tests for logging helpers."""

import pytest
import structlog
from structlog.dev import ConsoleRenderer
from structlog.processors import JSONRenderer
from structlog.testing import capture_logs

from ledger_sync import logger as logger_module
from ledger_sync.errors import FeedUnavailableError


def test_build_otlp_logs_endpoint_adds_suffix() -> None:
    assert (
        logger_module._build_otlp_logs_endpoint("http://collector:4318/")
        == "http://collector:4318/v1/logs"
    )
    assert (
        logger_module._build_otlp_logs_endpoint("http://collector:4318/v1/logs")
        == "http://collector:4318/v1/logs"
    )


def test_select_renderer(monkeypatch) -> None:
    monkeypatch.setattr(logger_module.settings, "debug", True)
    assert isinstance(logger_module._select_renderer(), ConsoleRenderer)

    monkeypatch.setattr(logger_module.settings, "debug", False)
    assert isinstance(logger_module._select_renderer(), JSONRenderer)


def test_log_timing_reports_context() -> None:
    with capture_logs() as logs:
        with logger_module.log_timing(
            "import_entries", logger=structlog.get_logger("timing"), rows=3
        ) as timing:
            timing["inserted"] = 2

    [event] = logs
    assert event["event"] == "import_entries completed"
    assert event["rows"] == 3
    assert event["inserted"] == 2
    assert "duration_ms" in event


@pytest.mark.asyncio
async def test_log_external_api_logs_success_and_failure() -> None:
    log = structlog.get_logger("external")

    @logger_module.log_external_api("bank_feed", logger=log)
    async def ok() -> str:
        return "done"

    @logger_module.log_external_api("bank_feed", logger=log)
    async def broken() -> None:
        raise FeedUnavailableError("down")

    with capture_logs() as logs:
        assert await ok() == "done"
        with pytest.raises(FeedUnavailableError):
            await broken()

    assert [event["success"] for event in logs] == [True, False]
    assert logs[1]["error_type"] == "FeedUnavailableError"
    assert logs[0]["service"] == "bank_feed"


def test_log_exception_includes_error_type() -> None:
    with capture_logs() as logs:
        logger_module.log_exception(
            structlog.get_logger("errors"),
            ValueError("bad"),
            "Parsing failed",
            level="warning",
            include_traceback=False,
            row=7,
        )

    [event] = logs
    assert event["log_level"] == "warning"
    assert event["error_type"] == "ValueError"
    assert event["row"] == 7
