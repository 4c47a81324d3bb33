"""Read-only authentication status for an identity."""

from __future__ import annotations

import logging
from enum import Enum

from outlook_mcp.auth.state import now_ms
from outlook_mcp.auth.storage import TokenStore

logger = logging.getLogger(__name__)


class AuthStatus(str, Enum):
    """Authentication status of an identity.

    Attributes:
        NOT_CONFIGURED: No identity was supplied at all.
        NO_RECORD: The identity has no usable stored token.
        EXPIRED: A token is stored but its expiry has passed.
        VALID: A token is stored and still valid.
    """

    NOT_CONFIGURED = "not_configured"
    NO_RECORD = "no_record"
    EXPIRED = "expired"
    VALID = "valid"


class StatusProbe:
    """Evaluates stored tokens without side effects or network access."""

    def __init__(self, store: TokenStore) -> None:
        self._store = store

    def check(self, user_id: str | None, now: int | None = None) -> AuthStatus:
        """Report the authentication status of ``user_id``.

        Args:
            user_id: Identity to inspect, or None if the caller has none.
            now: Epoch millis to evaluate expiry at. Defaults to now.
        """
        if not user_id:
            return AuthStatus.NOT_CONFIGURED

        record = self._store.load(user_id)
        if record is None or not record.access_token:
            logger.debug("No valid access token found for user %s", user_id)
            return AuthStatus.NO_RECORD

        current = now_ms() if now is None else now
        if not record.is_valid(current):
            logger.debug(
                "Token for user %s expired at %d (now %d)",
                user_id,
                record.expires_at,
                current,
            )
            return AuthStatus.EXPIRED

        return AuthStatus.VALID


__all__ = ["AuthStatus", "StatusProbe"]
