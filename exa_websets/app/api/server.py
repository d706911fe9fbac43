"""FastMCP server wiring."""

from mcp.server.fastmcp import FastMCP

from exa_websets import __version__
from exa_websets.app.api import guide, manager, tools
from exa_websets.app.api.prompts import PROMPTS
from exa_websets.app.core.logging import get_logger

logger = get_logger(__name__)

SERVER_NAME = "exa-websets-mcp"

ALL_TOOLS = tools.TOOLS + manager.TOOLS + guide.TOOLS


def build_server() -> FastMCP:
    """Construct a FastMCP server with every Websets tool and prompt registered."""
    server = FastMCP(SERVER_NAME)

    for tool in ALL_TOOLS:
        server.tool()(tool)
    for prompt in PROMPTS:
        server.prompt()(prompt)

    logger.info(f"{SERVER_NAME} {__version__}: {len(ALL_TOOLS)} tools, {len(PROMPTS)} prompts registered")
    return server
