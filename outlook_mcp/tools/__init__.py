"""Outlook MCP tools package.

This package contains the MCP tool implementations:

- Auth Tools: authenticate, check-auth-status
- About: static server description
"""

from outlook_mcp.tools.about import outlook_about
from outlook_mcp.tools.auth import (
    outlook_authenticate,
    outlook_check_auth_status,
)
from outlook_mcp.tools.base import (
    build_awaiting_action_response,
    build_error_response,
    build_success_response,
)

__all__ = [
    # Base utilities
    "build_awaiting_action_response",
    "build_error_response",
    "build_success_response",
    # Auth tools
    "outlook_authenticate",
    "outlook_check_auth_status",
    # About
    "outlook_about",
]
