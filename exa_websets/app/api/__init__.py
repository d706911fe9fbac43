"""MCP surface: tools, prompts and the server that registers them."""

from exa_websets.app.api.server import build_server

__all__ = ["build_server"]
