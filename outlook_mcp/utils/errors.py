"""Custom exception hierarchy for Outlook MCP.

This module defines a structured exception hierarchy for the error conditions
of the authentication subsystem: configuration, identity encryption, the
authorization-code flow, token storage, and input validation.
"""

from __future__ import annotations


class OutlookMCPError(Exception):
    """Base exception for all Outlook MCP errors.

    All custom exceptions inherit from this base class, enabling consistent
    error handling and catch-all exception handling patterns.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, details: dict[str, object] | None = None) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(OutlookMCPError):
    """Exception raised when required operator configuration is missing.

    Examples:
        - MS_CLIENT_ID or MS_CLIENT_SECRET not set
        - ENCRYPTION_KEY not set
    """

    pass


class AuthenticationError(OutlookMCPError):
    """Exception raised for OAuth and credential-related errors.

    Examples:
        - No stored token to refresh
        - Stored token has no refresh token
    """

    pass


class TokenError(AuthenticationError):
    """Exception raised when a token record cannot be written or removed."""

    pass


class InvalidEncryptedIdentity(AuthenticationError):
    """Exception raised when an encrypted identity cannot be decrypted.

    Raised for malformed ``iv:ciphertext`` values, wrong IV length, a wrong
    key, or any tampering detected by the authentication tag.
    """

    pass


class AuthFlowError(AuthenticationError):
    """Terminal failure of a single authorization-code callback.

    Each subclass maps to a distinct page rendered by the auth server.

    Attributes:
        error_code: Stable code for programmatic handling.
        status_code: HTTP status the auth server responds with.
    """

    error_code = "AuthFlowError"
    status_code = 400


class InvalidState(AuthFlowError):
    """The ``state`` parameter is missing, malformed, undecryptable or stale."""

    error_code = "InvalidState"
    status_code = 400


class MissingAuthorizationCode(AuthFlowError):
    """The callback carried a valid ``state`` but no ``code``."""

    error_code = "MissingAuthorizationCode"
    status_code = 400


class ProviderError(AuthFlowError):
    """The provider redirected back with ``error``/``error_description``.

    Attributes:
        error: Provider error code, verbatim.
        error_description: Provider error description, verbatim.
    """

    error_code = "ProviderError"
    status_code = 400

    def __init__(
        self,
        error: str,
        error_description: str | None = None,
        details: dict[str, object] | None = None,
    ) -> None:
        """Initialize the provider error.

        Args:
            error: Provider error code.
            error_description: Provider error description, if any.
            details: Optional dictionary containing additional error context.
        """
        super().__init__(f"Provider returned error: {error}", details)
        self.error = error
        self.error_description = error_description


class TokenExchangeFailed(AuthFlowError):
    """The token endpoint could not be reached or rejected the request.

    Attributes:
        provider_status: HTTP status from the token endpoint, if any.
        provider_body: Raw response body, for diagnostics.
    """

    error_code = "TokenExchangeFailed"
    status_code = 500

    def __init__(
        self,
        message: str,
        provider_status: int | None = None,
        provider_body: str | None = None,
        details: dict[str, object] | None = None,
    ) -> None:
        """Initialize the token exchange failure.

        Args:
            message: Human-readable error description.
            provider_status: HTTP status code returned by the provider.
            provider_body: Raw response body returned by the provider.
            details: Optional dictionary containing additional error context.
        """
        super().__init__(message, details)
        self.provider_status = provider_status
        self.provider_body = provider_body


class ValidationError(OutlookMCPError):
    """Exception raised for input validation errors.

    Attributes:
        field: The name of the field that failed validation, if applicable.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, object] | None = None,
    ) -> None:
        """Initialize the validation error exception.

        Args:
            message: Human-readable error description.
            field: The name of the field that failed validation.
            details: Optional dictionary containing additional error context.
        """
        super().__init__(message, details)
        self.field = field


__all__ = [
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
