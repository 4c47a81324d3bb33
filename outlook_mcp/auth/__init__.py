"""Authentication module for Outlook MCP.

This module provides OAuth 2.0 authentication for the Microsoft Graph API,
including:

- Authorization-code flow with the identity encrypted into ``state``
- File-based per-user token persistence with atomic writes
- Token refresh and expiry tracking
- Read-only status inspection

Usage:
    >>> from outlook_mcp.auth import AuthServices
    >>> from outlook_mcp.settings import Settings
    >>>
    >>> services = AuthServices.from_settings(Settings.from_env())
    >>> url = services.flow.build_authorization_url("alice")
    >>> # ... after the callback has been handled:
    >>> services.probe.check("alice")
    <AuthStatus.VALID: 'valid'>
"""

from outlook_mcp.auth.models import TokenRecord
from outlook_mcp.auth.oauth import GRAPH_SCOPES, AuthorizationFlow, FlowState
from outlook_mcp.auth.services import AuthServices
from outlook_mcp.auth.state import AuthState
from outlook_mcp.auth.status import AuthStatus, StatusProbe
from outlook_mcp.auth.storage import TokenStore, validate_identity

__all__ = [
    # OAuth
    "AuthorizationFlow",
    "FlowState",
    "GRAPH_SCOPES",
    "AuthState",
    # Token storage
    "TokenRecord",
    "TokenStore",
    "validate_identity",
    # Status
    "AuthStatus",
    "StatusProbe",
    # Wiring
    "AuthServices",
]
