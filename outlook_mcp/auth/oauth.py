"""Microsoft identity platform OAuth 2.0 authorization-code flow.

This module drives the browser-based authorization-code flow for Microsoft
Graph credentials:

1. ``build_authorization_url`` encrypts the identity into the ``state``
   parameter and returns the provider's authorize URL.
2. The user signs in; the provider redirects the browser to the auth server.
3. ``handle_callback`` decodes ``state``, recovers the identity, exchanges the
   single-use code at the token endpoint and stores the resulting record.

No flow state is held in memory between steps: everything the callback needs
travels in ``state``, so any number of users can be mid-flow at once.

Security considerations:
- The identity never appears in clear in a URL handed to the provider
- ``state`` older than the configured maximum age is rejected
- Client secrets are never logged or written to token files
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any
from urllib.parse import urlencode

import requests

from outlook_mcp.auth.models import TokenRecord
from outlook_mcp.auth.state import AuthState, now_ms
from outlook_mcp.auth.storage import TokenStore, validate_identity
from outlook_mcp.settings import Settings
from outlook_mcp.utils.encryption import IdentityCipher
from outlook_mcp.utils.errors import (
    AuthenticationError,
    ConfigurationError,
    InvalidEncryptedIdentity,
    InvalidState,
    MissingAuthorizationCode,
    ProviderError,
    TokenExchangeFailed,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Microsoft Graph scopes requested for every authorization
GRAPH_SCOPES = [
    "offline_access",
    "User.Read",
    "Mail.Read",
    "Mail.Send",
    "Calendars.Read",
    "Calendars.ReadWrite",
    "Contacts.Read",
]

# Microsoft identity platform endpoints
MS_LOGIN_BASE = "https://login.microsoftonline.com"

# Tolerated clock skew for state issued "in the future"
STATE_CLOCK_SKEW_SECONDS = 60


class FlowState(str, Enum):
    """States of a single authorization-code flow.

    Attributes:
        IDLE: No flow started.
        AWAITING_PROVIDER_REDIRECT: Authorization URL issued to the user.
        AWAITING_CALLBACK: Provider redirected back; callback being validated.
        EXCHANGING: Code is being exchanged at the token endpoint.
        AUTHENTICATED: Tokens stored.
        FAILED: Terminal failure for this callback.
    """

    IDLE = "idle"
    AWAITING_PROVIDER_REDIRECT = "awaiting_provider_redirect"
    AWAITING_CALLBACK = "awaiting_callback"
    EXCHANGING = "exchanging"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


@dataclass(frozen=True)
class CallbackResult:
    """Outcome of a completed callback: who signed in and what was stored."""

    user_id: str
    record: TokenRecord


def _transition(user_id: str | None, source: FlowState, target: FlowState) -> None:
    logger.debug(
        "OAuth flow for %s: %s -> %s", user_id or "<unknown>", source.value, target.value
    )


class AuthorizationFlow:
    """Authorization-code flow against the Microsoft identity platform.

    Attributes:
        _settings: Operator configuration.
        _cipher: Cipher used to protect the identity inside ``state``.
        _store: Token store written on success.

    Example:
        >>> flow = AuthorizationFlow(settings, cipher, store)
        >>> url = flow.build_authorization_url("alice")
        >>> # ... browser redirect, then in the callback handler:
        >>> result = await flow.handle_callback(request.query_params)
        >>> result.user_id, result.record.expires_at
    """

    def __init__(
        self, settings: Settings, cipher: IdentityCipher, store: TokenStore
    ) -> None:
        """Bind the flow to its configuration and collaborators."""
        self._settings = settings
        self._cipher = cipher
        self._store = store

        if not settings.is_oauth_configured:
            logger.warning(
                "OAuth credentials not configured. Set MS_CLIENT_ID and "
                "MS_CLIENT_SECRET environment variables."
            )

    @property
    def is_configured(self) -> bool:
        """True if both client ID and secret are set."""
        return self._settings.is_oauth_configured

    @property
    def authorize_endpoint(self) -> str:
        """Tenant-specific authorization endpoint."""
        return f"{MS_LOGIN_BASE}/{self._settings.tenant}/oauth2/v2.0/authorize"

    @property
    def token_endpoint(self) -> str:
        """Tenant-specific token endpoint."""
        return f"{MS_LOGIN_BASE}/{self._settings.tenant}/oauth2/v2.0/token"

    def _require_configured(self) -> None:
        if not self.is_configured:
            raise ConfigurationError(
                "OAuth not configured",
                details={
                    "hint": "Set MS_CLIENT_ID and MS_CLIENT_SECRET "
                    "environment variables"
                },
            )

    # =========================================================================
    # Authorization URL
    # =========================================================================

    def build_authorization_url(self, user_id: str) -> str:
        """Build the provider authorization URL for an identity.

        Args:
            user_id: Identity the resulting tokens will be stored under.

        Returns:
            Full authorize URL carrying the encoded state.

        Raises:
            ConfigurationError: If client ID or secret is missing.
            ValidationError: If the identity cannot name a token file.
        """
        self._require_configured()
        validate_identity(user_id)

        state = AuthState(user_id=self._cipher.encrypt(user_id))

        params = {
            "client_id": self._settings.client_id,
            "response_type": "code",
            "redirect_uri": self._settings.redirect_uri,
            "scope": " ".join(GRAPH_SCOPES),
            "response_mode": "query",
            "state": state.encode(),
        }

        _transition(user_id, FlowState.IDLE, FlowState.AWAITING_PROVIDER_REDIRECT)
        logger.info("Created authorization URL for user %s", user_id)
        return f"{self.authorize_endpoint}?{urlencode(params)}"

    def resolve_identity(self, value: str) -> str:
        """Accept either an encrypted or a plain identity.

        Values that decrypt under the configured key are treated as encrypted;
        anything else is taken as the identity itself.
        """
        try:
            return self._cipher.decrypt(value)
        except InvalidEncryptedIdentity:
            return value

    # =========================================================================
    # Callback
    # =========================================================================

    def decode_identity(self, state_value: str | None, now: int | None = None) -> str:
        """Recover the identity from a callback ``state``.

        Args:
            state_value: Raw ``state`` query value.
            now: Epoch millis used for the staleness check.

        Returns:
            The decrypted identity.

        Raises:
            InvalidState: If the state is missing, malformed, undecryptable,
                stale, or names an unusable identity.
        """
        if not state_value:
            raise InvalidState("Missing state parameter")

        state = AuthState.decode(state_value)

        age = state.age_seconds(now)
        if age > self._settings.state_max_age_seconds:
            raise InvalidState(
                "State parameter has expired - please restart authentication",
                details={
                    "age_seconds": int(age),
                    "max_age_seconds": self._settings.state_max_age_seconds,
                },
            )
        if age < -STATE_CLOCK_SKEW_SECONDS:
            raise InvalidState(
                "State parameter was issued in the future",
                details={"age_seconds": int(age)},
            )

        try:
            user_id = self._cipher.decrypt(state.user_id)
        except InvalidEncryptedIdentity as e:
            raise InvalidState(
                "State parameter does not carry a valid identity",
                details={"hint": "Request may have been tampered with"},
            ) from e

        try:
            return validate_identity(user_id)
        except ValidationError as e:
            raise InvalidState("State parameter names an invalid identity") from e

    async def handle_callback(self, query: Mapping[str, str]) -> CallbackResult:
        """Complete the flow from the provider's redirect.

        Args:
            query: Callback query parameters (``code``, ``state``, or
                ``error``/``error_description``).

        Returns:
            The identity recovered from ``state`` and the stored record.

        Raises:
            ProviderError: The provider reported an error; nothing exchanged.
            InvalidState: ``state`` missing or invalid; nothing exchanged.
            MissingAuthorizationCode: No ``code``; nothing exchanged.
            ConfigurationError: Client ID or secret missing.
            TokenExchangeFailed: Transport failure or non-2xx response.
            TokenError: The record could not be written.
        """
        _transition(
            None, FlowState.AWAITING_PROVIDER_REDIRECT, FlowState.AWAITING_CALLBACK
        )

        error = query.get("error")
        if error:
            description = query.get("error_description")
            logger.error("Authentication error from provider: %s - %s", error, description)
            _transition(None, FlowState.AWAITING_CALLBACK, FlowState.FAILED)
            raise ProviderError(error, description)

        try:
            user_id = self.decode_identity(query.get("state"))
        except InvalidState as e:
            logger.error("Rejected OAuth callback: %s", e.message)
            _transition(None, FlowState.AWAITING_CALLBACK, FlowState.FAILED)
            raise

        code = query.get("code")
        if not code:
            logger.error("No authorization code provided for user %s", user_id)
            _transition(user_id, FlowState.AWAITING_CALLBACK, FlowState.FAILED)
            raise MissingAuthorizationCode(
                "No authorization code was provided in the callback",
                details={"user_id": user_id},
            )

        self._require_configured()

        _transition(user_id, FlowState.AWAITING_CALLBACK, FlowState.EXCHANGING)
        logger.info("Authorization code received for user %s, exchanging...", user_id)

        try:
            record = await self.exchange_code(code)
            await asyncio.to_thread(self._store.save, user_id, record)
        except Exception as e:
            logger.error("Token exchange failed for user %s: %s", user_id, e)
            _transition(user_id, FlowState.EXCHANGING, FlowState.FAILED)
            raise

        _transition(user_id, FlowState.EXCHANGING, FlowState.AUTHENTICATED)
        logger.info("Token exchange successful for user %s", user_id)
        return CallbackResult(user_id=user_id, record=record)

    # =========================================================================
    # Token endpoint
    # =========================================================================

    async def exchange_code(self, code: str) -> TokenRecord:
        """Exchange an authorization code for tokens.

        Uses the same redirect URI and scopes as the authorization request;
        the provider rejects a mismatched redirect URI.

        Raises:
            TokenExchangeFailed: On transport failure or provider rejection.
        """
        self._require_configured()
        return await self._request_token(
            {
                "client_id": self._settings.client_id,
                "client_secret": self._settings.client_secret,
                "code": code,
                "redirect_uri": self._settings.redirect_uri,
                "grant_type": "authorization_code",
                "scope": " ".join(GRAPH_SCOPES),
            }
        )

    async def refresh(self, user_id: str) -> TokenRecord:
        """Renew a user's access token with the stored refresh token.

        The previous refresh token is kept when the provider does not issue
        a new one.

        Args:
            user_id: Identity whose record is refreshed.

        Returns:
            The updated, stored token record.

        Raises:
            AuthenticationError: If no record or refresh token is stored.
            TokenExchangeFailed: On transport failure or provider rejection.
        """
        self._require_configured()

        current = await asyncio.to_thread(self._store.load, user_id)
        if current is None or not current.refresh_token:
            raise AuthenticationError(
                "No refresh token available",
                details={"hint": "User must re-authenticate to obtain a refresh token"},
            )

        record = await self._request_token(
            {
                "client_id": self._settings.client_id,
                "client_secret": self._settings.client_secret,
                "refresh_token": current.refresh_token,
                "grant_type": "refresh_token",
                "scope": " ".join(GRAPH_SCOPES),
            }
        )
        if not record.refresh_token:
            record.refresh_token = current.refresh_token

        await asyncio.to_thread(self._store.save, user_id, record)
        logger.info("Successfully refreshed access token for user %s", user_id)
        return record

    async def get_access_token(self, user_id: str) -> str:
        """Return a valid access token, refreshing it if it has expired.

        Raises:
            AuthenticationError: If the user has no stored record.
            TokenExchangeFailed: If a needed refresh fails.
        """
        record = await asyncio.to_thread(self._store.load, user_id)
        if record is None:
            raise AuthenticationError(
                "Not authenticated",
                details={"user_id": user_id, "hint": "Use the authenticate tool"},
            )
        if record.is_valid():
            return record.access_token

        logger.info("Access token for user %s expired, refreshing", user_id)
        refreshed = await self.refresh(user_id)
        return refreshed.access_token

    async def _request_token(self, data: dict[str, str]) -> TokenRecord:
        """POST to the token endpoint and build a record from the response."""
        grant = data["grant_type"]
        try:
            response = await asyncio.to_thread(
                requests.post,
                self.token_endpoint,
                data=data,
                headers={"Accept": "application/json"},
                timeout=self._settings.http_timeout,
            )
        except requests.RequestException as e:
            logger.error("Network error during %s token request: %s", grant, e)
            raise TokenExchangeFailed(
                f"Network error contacting token endpoint: {e}",
                details={"error_type": type(e).__name__, "grant_type": grant},
            ) from e

        received_at = now_ms()

        if not 200 <= response.status_code < 300:
            logger.error(
                "Token request (%s) failed with status %d: %s",
                grant,
                response.status_code,
                response.text,
            )
            raise TokenExchangeFailed(
                f"Token exchange failed with status {response.status_code}: "
                f"{response.text}",
                provider_status=response.status_code,
                provider_body=response.text,
            )

        try:
            payload: dict[str, Any] = response.json()
            return TokenRecord.from_provider_response(payload, received_at)
        except (ValueError, KeyError, TypeError) as e:
            logger.error("Error parsing token response: %s", e)
            raise TokenExchangeFailed(
                f"Error parsing token response: {e}",
                provider_status=response.status_code,
                provider_body=response.text,
            ) from e


__all__ = [
    "AuthorizationFlow",
    "CallbackResult",
    "FlowState",
    "GRAPH_SCOPES",
    "MS_LOGIN_BASE",
]
