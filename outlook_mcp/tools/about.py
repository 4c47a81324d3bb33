"""Outlook about tool - describe this server."""

from __future__ import annotations

from typing import Any

from outlook_mcp.settings import SERVER_VERSION
from outlook_mcp.tools.base import build_success_response


async def outlook_about() -> dict[str, Any]:
    """Return information about this Outlook Assistant server."""
    return build_success_response(
        data={"version": SERVER_VERSION},
        message=(
            f"Outlook Assistant MCP Server v{SERVER_VERSION}\n\n"
            "Provides access to Microsoft Outlook email, calendar, and contacts "
            "through Microsoft Graph API, with per-user OAuth credentials."
        ),
    )
