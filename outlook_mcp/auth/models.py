"""Pydantic models for persisted OAuth tokens."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from outlook_mcp.auth.state import now_ms

TEST_TOKEN_LIFETIME_SECONDS = 3600


class TokenRecord(BaseModel):
    """Per-user token record as written to disk.

    Unknown provider fields (``token_type``, ``scope``, ``id_token``, ...) are
    kept as extras so the file mirrors the provider response plus the locally
    computed ``expires_at``.

    Attributes:
        access_token: Bearer token for Graph API calls.
        refresh_token: Long-lived token used to renew ``access_token``.
        expires_at: Absolute expiry in epoch milliseconds.
    """

    model_config = ConfigDict(extra="allow")

    access_token: str = Field(..., description="OAuth access token")
    refresh_token: str | None = Field(default=None, description="OAuth refresh token")
    expires_at: int = Field(..., description="Expiry in epoch milliseconds")

    @classmethod
    def from_provider_response(
        cls, payload: dict[str, Any], received_at: int | None = None
    ) -> TokenRecord:
        """Build a record from a token endpoint response.

        ``expires_at`` is computed from ``expires_in`` and the time the
        response was received; an absolute expiry sent by the provider is
        ignored.

        Args:
            payload: Decoded JSON body from the token endpoint.
            received_at: Epoch millis the response arrived. Defaults to now.

        Raises:
            KeyError: If ``access_token`` or ``expires_in`` is missing.
            ValueError: If ``expires_in`` is not a number.
        """
        received = now_ms() if received_at is None else received_at
        expires_in = int(payload["expires_in"])
        fields = dict(payload)
        fields["expires_at"] = received + expires_in * 1000
        return cls.model_validate({**fields, "access_token": payload["access_token"]})

    @classmethod
    def for_test_mode(cls, now: int | None = None) -> TokenRecord:
        """Synthetic record valid for one hour, created without network access."""
        issued = now_ms() if now is None else now
        return cls(
            access_token=f"test_access_token_{issued}",
            refresh_token=f"test_refresh_token_{issued}",
            expires_at=issued + TEST_TOKEN_LIFETIME_SECONDS * 1000,
            token_type="Bearer",
            expires_in=TEST_TOKEN_LIFETIME_SECONDS,
            test_mode=True,
        )

    def is_valid(self, now: int | None = None) -> bool:
        """True iff an access token is present and ``now < expires_at``."""
        current = now_ms() if now is None else now
        return bool(self.access_token) and current < self.expires_at


__all__ = ["TokenRecord", "TEST_TOKEN_LIFETIME_SECONDS"]
