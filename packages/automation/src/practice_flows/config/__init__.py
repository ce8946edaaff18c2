"""Configuration module for the practice flows."""

from practice_flows.config.logging import (
    bind_request_context,
    clear_request_context,
    configure_logging,
    get_logger,
)
from practice_flows.config.settings import FlatSettings, get_settings

__all__ = [
    "FlatSettings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "bind_request_context",
    "clear_request_context",
]
