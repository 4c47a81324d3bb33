"""Outlook MCP authentication tools package.

This package contains MCP tool implementations for OAuth authentication:

- outlook_authenticate: Start browser sign-in (or install a test token)
- outlook_check_auth_status: Check authentication state
"""

from outlook_mcp.tools.auth.authenticate import outlook_authenticate
from outlook_mcp.tools.auth.status import outlook_check_auth_status

__all__ = [
    "outlook_authenticate",
    "outlook_check_auth_status",
]
