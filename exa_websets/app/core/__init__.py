"""Core utilities for the Websets MCP server."""

from exa_websets.app.core.config import Settings, settings
from exa_websets.app.core.logging import get_logger, setup_logging
from exa_websets.app.core.security import TokenProvider, mask_sensitive_data

__all__ = [
    "Settings",
    "settings",
    "get_logger",
    "setup_logging",
    "TokenProvider",
    "mask_sensitive_data",
]
