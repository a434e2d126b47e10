"""Tests for structured logging configuration and secret redaction."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from dbcommon.logging import (
    LogContext,
    configure_logging,
    get_logger,
    redact_connection_string,
)


@pytest.fixture
def restore_structlog():
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


class TestRedaction:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (
                "Data Source=orcl;User Id=scott;Password=tiger;",
                "Data Source=orcl;User Id=scott;Password=***REDACTED***;",
            ),
            (
                "host=db user=app pwd=s3cret dbname=shop",
                "host=db user=app pwd=***REDACTED*** dbname=shop",
            ),
            (
                "postgresql://app:s3cret@db:5432/shop",
                "postgresql://app:***REDACTED***@db:5432/shop",
            ),
            ("scott/tiger@dbhost:1521/orcl", "scott/***REDACTED***@dbhost:1521/orcl"),
            ("/var/data/products.db", "/var/data/products.db"),
            ("", ""),
        ],
    )
    def test_redacts(self, raw: str, expected: str) -> None:
        assert redact_connection_string(raw) == expected


class TestConfigureLogging:
    def test_json_output(self, restore_structlog, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.INFO)
        configure_logging(level="INFO", json_format=True, service="orders")
        get_logger("tests.json").info("database.connection_resolved", name="main")

        record = json.loads(caplog.records[-1].getMessage())
        assert record["event"] == "database.connection_resolved"
        assert record["name"] == "main"
        assert record["logger"] == "tests.json"
        assert record["service.name"] == "orders"
        assert record["log.level"] == "info"
        assert "@timestamp" in record

    def test_level_filters(self, restore_structlog, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.DEBUG)
        configure_logging(level="WARNING", json_format=True)
        get_logger("tests.level").info("quiet")
        get_logger("tests.level").warning("loud")

        messages = [record.getMessage() for record in caplog.records]
        assert not any("quiet" in message for message in messages)
        assert any("loud" in message for message in messages)

    def test_level_and_format_from_settings(
        self, restore_structlog, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
    ) -> None:
        monkeypatch.setenv("DBCOMMON_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("DBCOMMON_LOG_FORMAT", "json")
        caplog.set_level(logging.DEBUG)
        configure_logging()
        get_logger("tests.settings").info("quiet")
        get_logger("tests.settings").warning("command.failed", sql="SELECT 1")

        messages = [record.getMessage() for record in caplog.records]
        assert not any("quiet" in message for message in messages)
        record = json.loads(messages[-1])
        assert record["event"] == "command.failed"
        assert record["service.name"] == "dbcommon"

    def test_console_format_from_settings(
        self, restore_structlog, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
    ) -> None:
        monkeypatch.setenv("DBCOMMON_LOG_FORMAT", "console")
        caplog.set_level(logging.DEBUG)
        configure_logging()
        get_logger("tests.console").info("database.connection_resolved")

        message = caplog.records[-1].getMessage()
        assert "database.connection_resolved" in message
        with pytest.raises(json.JSONDecodeError):
            json.loads(message)

    def test_explicit_arguments_override_settings(
        self, restore_structlog, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
    ) -> None:
        monkeypatch.setenv("DBCOMMON_LOG_LEVEL", "ERROR")
        caplog.set_level(logging.DEBUG)
        configure_logging(level="INFO", json_format=True)
        get_logger("tests.override").info("shown")

        assert json.loads(caplog.records[-1].getMessage())["event"] == "shown"


class TestContextBinding:
    def test_log_context_binds_and_unbinds(self, restore_structlog) -> None:
        with LogContext(repository="products"):
            assert structlog.contextvars.get_contextvars()["repository"] == "products"
        assert "repository" not in structlog.contextvars.get_contextvars()

    def test_nested_contexts_restore_outer_value(self, restore_structlog) -> None:
        with LogContext(connection="main"):
            with LogContext(connection="reporting"):
                assert structlog.contextvars.get_contextvars()["connection"] == "reporting"
            assert structlog.contextvars.get_contextvars()["connection"] == "main"
        assert "connection" not in structlog.contextvars.get_contextvars()

    def test_bound_fields_reach_rendered_output(
        self, restore_structlog, caplog: pytest.LogCaptureFixture
    ) -> None:
        caplog.set_level(logging.INFO)
        configure_logging(level="INFO", json_format=True)
        with LogContext(connection="main"):
            get_logger("tests.bound").info("inside")

        assert json.loads(caplog.records[-1].getMessage())["connection"] == "main"
