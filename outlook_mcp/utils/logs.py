"""Logging setup shared by the MCP server and the auth server."""

from __future__ import annotations

import logging
import sys


def configure_logging(level_name: str = "INFO") -> None:
    """Configure logging to stderr (STDIO-safe).

    Sends all logs to stderr so they don't interfere with MCP's STDIO
    transport which uses stdout for JSON-RPC messages.

    Args:
        level_name: DEBUG, INFO, WARNING, ERROR or CRITICAL. Unknown names
            fall back to INFO.
    """
    log_level = logging.getLevelNamesMapping().get(level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    # Reduce noise from HTTP libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


__all__ = ["configure_logging"]
