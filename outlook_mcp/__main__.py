"""Entry point for Outlook MCP Server."""

from __future__ import annotations

import logging
import sys

from dotenv import load_dotenv

from outlook_mcp.settings import Settings
from outlook_mcp.utils.logs import configure_logging


def validate_environment(settings: Settings) -> bool:
    """Validate required configuration.

    ENCRYPTION_KEY is always required. Client credentials are only required
    outside test mode; USER_ID is reported but not fatal, since
    check-auth-status explains it to the caller.

    Returns:
        True if the server can start, False otherwise.
    """
    logger = logging.getLogger(__name__)

    missing = []
    if not settings.encryption_key:
        missing.append("ENCRYPTION_KEY")
    if not settings.use_test_mode and not settings.is_oauth_configured:
        missing.extend(
            var
            for var, value in (
                ("MS_CLIENT_ID", settings.client_id),
                ("MS_CLIENT_SECRET", settings.client_secret),
            )
            if not value
        )

    if missing:
        logger.error("Missing required environment variables: %s", ", ".join(missing))
        return False

    if not settings.user_id:
        logger.warning("USER_ID is not set; tools will report not authenticated")

    return True


def main() -> None:
    """Main entry point.

    Loads environment, validates configuration, and starts the MCP server
    with the appropriate transport (stdio, sse or streamable-http).
    """
    # Load .env file if present
    load_dotenv()

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    if not validate_environment(settings):
        logger.error("Environment validation failed. Exiting.")
        sys.exit(1)

    # Import server after environment is validated
    from outlook_mcp.server import build_server

    mcp = build_server(settings)

    match settings.transport:
        case "sse" | "http":
            logger.info("Starting Outlook MCP Server with SSE transport")
            mcp.run(transport="sse")
        case "streamable-http":
            logger.info("Starting Outlook MCP Server with streamable-http transport")
            mcp.run(transport="streamable-http")
        case _:
            # STDIO transport for local development (default)
            logger.info("Starting Outlook MCP Server with STDIO transport")
            mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
