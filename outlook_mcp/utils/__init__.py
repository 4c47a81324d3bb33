"""Utility functions and helpers for Outlook MCP.

This module provides common utilities including custom exceptions,
identity encryption, and logging setup.
"""

from outlook_mcp.utils.encryption import IdentityCipher, derive_key
from outlook_mcp.utils.errors import (
    AuthenticationError,
    AuthFlowError,
    ConfigurationError,
    InvalidEncryptedIdentity,
    InvalidState,
    MissingAuthorizationCode,
    OutlookMCPError,
    ProviderError,
    TokenError,
    TokenExchangeFailed,
    ValidationError,
)
from outlook_mcp.utils.logs import configure_logging

__all__ = [
    # Encryption utilities
    "IdentityCipher",
    "derive_key",
    # Logging
    "configure_logging",
    # Exception hierarchy
    "OutlookMCPError",
    "ConfigurationError",
    "AuthenticationError",
    "TokenError",
    "InvalidEncryptedIdentity",
    "AuthFlowError",
    "InvalidState",
    "MissingAuthorizationCode",
    "ProviderError",
    "TokenExchangeFailed",
    "ValidationError",
]
