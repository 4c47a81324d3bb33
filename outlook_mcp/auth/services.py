"""Wiring of the authentication components from one Settings instance."""

from __future__ import annotations

from dataclasses import dataclass

from outlook_mcp.auth.oauth import AuthorizationFlow
from outlook_mcp.auth.status import StatusProbe
from outlook_mcp.auth.storage import TokenStore
from outlook_mcp.settings import Settings
from outlook_mcp.utils.encryption import IdentityCipher


@dataclass(frozen=True)
class AuthServices:
    """Components shared by the MCP tools and the auth server.

    Attributes:
        settings: Operator configuration.
        cipher: Identity cipher.
        store: Per-user token store.
        flow: Authorization-code flow.
        probe: Status probe.
    """

    settings: Settings
    cipher: IdentityCipher
    store: TokenStore
    flow: AuthorizationFlow
    probe: StatusProbe

    @classmethod
    def from_settings(cls, settings: Settings) -> AuthServices:
        """Construct every component from ``settings``.

        Raises:
            ConfigurationError: If ENCRYPTION_KEY is not configured.
        """
        cipher = IdentityCipher(settings.encryption_key, settings.encryption_salt)
        store = TokenStore(settings.token_dir)
        return cls(
            settings=settings,
            cipher=cipher,
            store=store,
            flow=AuthorizationFlow(settings, cipher, store),
            probe=StatusProbe(store),
        )


__all__ = ["AuthServices"]
