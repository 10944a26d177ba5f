"""Core utilities for the tutorgate application."""

from tutorgate.app.core.config import Settings, settings
from tutorgate.app.core.logging import get_log_context, get_logger, setup_logging

__all__ = [
    "Settings",
    "settings",
    "get_log_context",
    "get_logger",
    "setup_logging",
]
