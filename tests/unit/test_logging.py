"""Unit tests for structured logging."""

import logging
from unittest.mock import MagicMock
from uuid import uuid4

import structlog

from patissio.core.context import create_context, request_context
from patissio.core.logging import (
    LogContext,
    add_request_context,
    drop_color_message_key,
    log_external_call,
    mask_sensitive_values,
    setup_logging,
)


class TestAddRequestContext:
    """Tests for the add_request_context processor."""

    def test_adds_context_when_available(self):
        ctx = create_context()
        ctx.bind_tenant(uuid4(), "maboulangerie")

        with request_context(ctx):
            result = add_request_context(None, "info", {})

        assert result["request_id"] == str(ctx.request_id)
        assert result["tenant"] == "maboulangerie"

    def test_no_context_available(self):
        result = add_request_context(None, "info", {"event": "test"})

        assert result == {"event": "test"}

    def test_explicit_fields_win(self):
        with request_context(create_context()):
            result = add_request_context(None, "info", {"request_id": "explicit"})

        assert result["request_id"] == "explicit"


class TestProcessors:
    """Tests for the smaller processors and helpers."""

    def test_drop_color_message_key(self):
        result = drop_color_message_key(None, "info", {"event": "x", "color_message": "y"})

        assert result == {"event": "x"}

    def test_log_context_binds_and_unbinds(self):
        with LogContext(event_type="invoice.paid"):
            assert structlog.contextvars.get_contextvars()["event_type"] == "invoice.paid"
        assert "event_type" not in structlog.contextvars.get_contextvars()

    def test_log_external_call_levels(self):
        logger = MagicMock()

        log_external_call(logger, "stripe", "create_checkout", 12.3456, success=True)
        log_external_call(logger, "vercel", "add_domain", 5.0, success=False, status_code=500)

        logger.info.assert_called_once_with(
            "external_call",
            service="stripe",
            operation="create_checkout",
            duration_ms=12.35,
            success=True,
        )
        assert logger.warning.call_args.kwargs["status_code"] == 500


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_sets_root_level(self):
        setup_logging(log_level="WARNING", json_format=True)

        assert logging.getLogger().level == logging.WARNING
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_console_format(self):
        setup_logging(log_level="DEBUG", json_format=False)

        assert logging.getLogger().level == logging.DEBUG

    def test_mask_sensitive_values(self):
        result = mask_sensitive_values(
            None, "info", {"event": "login", "password": "hunter2", "email": "a@b.fr"}
        )

        assert result == {"event": "login", "password": "***", "email": "a@b.fr"}
