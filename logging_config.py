"""Structured logging configuration for the enrollment report."""

from __future__ import annotations

from typing import Any

import structlog

structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.JSONRenderer(),
    ],
)


def get_logger(name: str) -> Any:
    """Return a structlog logger rendering JSON lines.

    Args:
        name: Logger name, usually __name__.
    """
    return structlog.get_logger(name)
