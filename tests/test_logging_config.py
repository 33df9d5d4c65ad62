"""Unit tests for structured logging configuration."""

from __future__ import annotations

import structlog

from logging_config import get_logger


def test_get_logger_does_not_reconfigure_structlog() -> None:
    """Loggers are handed out without replacing the module-level configuration."""
    processors_before = structlog.get_config()["processors"]

    get_logger("first")
    get_logger("second")

    assert structlog.get_config()["processors"] is processors_before
    assert structlog.is_configured()
