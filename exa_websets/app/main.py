from exa_websets.app.api.server import build_server
from exa_websets.app.core.config import settings
from exa_websets.app.core.logging import get_logger, setup_logging


def main() -> None:
    """Start the MCP server on the configured transport."""
    setup_logging()
    logger = get_logger(__name__)

    if not settings.api_key:
        logger.warning("EXA_API_KEY is not set; every tool call must pass api_key")

    server = build_server()
    logger.info(f"Starting MCP server on {settings.transport} transport")
    server.run(transport=settings.transport)


if __name__ == "__main__":
    main()
