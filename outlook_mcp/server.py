"""FastMCP server for Outlook MCP.

This module provides the FastMCP server instance with tool registrations:

- authenticate: start Microsoft sign-in for USER_ID
- check-auth-status: report whether USER_ID holds a valid token
- about: static server description

The server lifespan logs start-up and shutdown together with the current
authentication status.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from outlook_mcp.auth.services import AuthServices
from outlook_mcp.settings import SERVER_NAME, Settings
from outlook_mcp.tools import (
    outlook_about,
    outlook_authenticate,
    outlook_check_auth_status,
)
from outlook_mcp.utils.errors import ValidationError

logger = logging.getLogger(__name__)


# =============================================================================
# Tool Registration
# =============================================================================


def _register_auth_tools(mcp: FastMCP, services: AuthServices) -> None:
    """Register authentication tools with the FastMCP server.

    Args:
        mcp: The FastMCP server instance.
        services: Authentication components the tools act on.
    """

    @mcp.tool(
        name="authenticate",
        annotations=ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=False,
        ),
    )
    async def authenticate_tool(force: bool = False) -> dict[str, Any]:
        """Authenticate with Microsoft Graph API to access Outlook data.

        Requires the USER_ID environment variable. Returns a sign-in URL for
        the user to open; the tokens are stored once they complete sign-in.

        Args:
            force: Discard any stored token and re-authenticate.

        Returns:
            Sign-in URL and instructions, or a test-mode confirmation.
        """
        return await outlook_authenticate(services, force=force)

    @mcp.tool(
        name="check-auth-status",
        annotations=ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
        ),
    )
    async def check_auth_status_tool() -> dict[str, Any]:
        """Check the current authentication status with Microsoft Graph API.

        Returns:
            authenticated flag, auth_status, and a status message.
        """
        return await outlook_check_auth_status(services)


def _register_info_tools(mcp: FastMCP) -> None:
    """Register informational tools with the FastMCP server."""

    @mcp.tool(
        name="about",
        annotations=ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
        ),
    )
    async def about_tool() -> dict[str, Any]:
        """Returns information about this Outlook Assistant server."""
        return await outlook_about()


# =============================================================================
# Server Factory
# =============================================================================


def create_server(services: AuthServices) -> FastMCP:
    """Create and configure the FastMCP server instance.

    Args:
        services: Authentication components built from Settings.

    Returns:
        Configured FastMCP server instance.
    """

    @asynccontextmanager
    async def server_lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
        logger.info("Outlook MCP server starting up...")
        try:
            status = services.probe.check(services.settings.user_id)
            logger.info(
                "Authentication status for %s: %s",
                services.settings.user_id or "<unset>",
                status.value,
            )
        except ValidationError as e:
            logger.warning("USER_ID cannot be used for token storage: %s", e)

        yield {}

        logger.info("Outlook MCP server shutting down...")

    server = FastMCP(name=SERVER_NAME, lifespan=server_lifespan)

    _register_auth_tools(server, services)
    _register_info_tools(server)

    logger.info("Outlook MCP server created for user %s", services.settings.user_id)
    return server


def build_server(settings: Settings | None = None) -> FastMCP:
    """Build the server from the environment (or explicit settings)."""
    return create_server(AuthServices.from_settings(settings or Settings.from_env()))
