"""
Tests for structlog configuration.
"""

from __future__ import annotations

import json

import pytest
import structlog

from app.core.logging import configure_logging


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


class TestConfigureLogging:
    def test_json_output_respects_level(self, capsys):
        configure_logging("warning", "json")
        log = structlog.get_logger()

        log.info("task.created", task_id="t-1")
        log.warning("dependency.rejected", reason="cycle")

        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 1
        event = json.loads(lines[0])
        assert event["event"] == "dependency.rejected"
        assert event["level"] == "warning"
        assert event["reason"] == "cycle"
        assert "timestamp" in event

    def test_contextvars_are_merged(self, capsys):
        configure_logging("INFO", "json")
        structlog.contextvars.bind_contextvars(request_id="req-1")
        try:
            structlog.get_logger().info("project.created")
        finally:
            structlog.contextvars.clear_contextvars()

        event = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert event["request_id"] == "req-1"

    def test_console_format(self, capsys):
        configure_logging("debug", "console")
        structlog.get_logger().debug("seed.completed")
        assert "seed.completed" in capsys.readouterr().out
