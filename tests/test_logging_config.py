"""Tests for logging setup."""

import logging

import structlog

from partner_wallet.logging_config import (
    QUIET_LOGGERS,
    SERVICE_NAME,
    _service_processor,
    configure_logging,
    log_context,
)


class TestLogContext:
    def test_binds_for_block(self):
        with log_context(transfer_id="t-1"):
            assert structlog.contextvars.get_contextvars()["transfer_id"] == "t-1"

        assert "transfer_id" not in structlog.contextvars.get_contextvars()

    def test_nested_blocks_restore_outer_value(self):
        with log_context(transfer_id="outer"):
            with log_context(transfer_id="inner", partner_id="p-1"):
                assert structlog.contextvars.get_contextvars()["transfer_id"] == "inner"
            context = structlog.contextvars.get_contextvars()
            assert context["transfer_id"] == "outer"
            assert "partner_id" not in context


class TestConfigureLogging:
    def test_root_handler_and_levels(self):
        configure_logging(log_level="debug", app_env="test")

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG
        for name, level in QUIET_LOGGERS.items():
            assert logging.getLogger(name).level == level

    def test_service_fields(self):
        add_service = _service_processor("production")

        event = add_service(None, "info", {"event": "transfer_committed"})

        assert event["service"] == SERVICE_NAME
        assert event["env"] == "production"
