"""Process-wide configuration for Outlook MCP.

Settings are read from the environment exactly once, at start-up, and passed
to each component's constructor. No component reads the environment itself.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from outlook_mcp.utils.encryption import DEFAULT_SALT

SERVER_NAME = "outlook-assistant"
SERVER_VERSION = "1.0.0"

DEFAULT_PORT = 3333


def _as_bool(value: str | None) -> bool:
    return (value or "").lower() in ("true", "1", "yes")


class Settings(BaseModel):
    """Operator configuration for the authentication subsystem.

    Attributes:
        client_id: Microsoft application (client) ID.
        client_secret: Microsoft client secret.
        tenant: Directory tenant used in the login endpoints.
        redirect_uri: Pre-registered redirect URI of the auth server.
        auth_server_url: Public base URL of the auth server.
        encryption_key: Secret used to derive the identity encryption key.
        user_id: Identity the MCP tools act on behalf of.
        use_test_mode: Install synthetic tokens instead of running OAuth.
        token_dir: Directory holding the per-user token files.
    """

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(default="", description="MS_CLIENT_ID")
    client_secret: str = Field(default="", description="MS_CLIENT_SECRET")
    tenant: str = Field(default="common", description="MS_TENANT")
    redirect_uri: str = Field(
        default=f"http://localhost:{DEFAULT_PORT}/auth/callback",
        description="MS_REDIRECT_URI",
    )
    auth_server_url: str = Field(
        default=f"http://localhost:{DEFAULT_PORT}",
        description="AUTH_SERVER_URL",
    )
    auth_server_host: str = Field(default="127.0.0.1", description="AUTH_SERVER_HOST")
    auth_server_port: int = Field(default=DEFAULT_PORT, description="AUTH_SERVER_PORT")
    encryption_key: str = Field(default="", description="ENCRYPTION_KEY")
    encryption_salt: str = Field(default=DEFAULT_SALT, description="ENCRYPTION_SALT")
    user_id: str | None = Field(default=None, description="USER_ID")
    use_test_mode: bool = Field(default=False, description="USE_TEST_MODE")
    token_dir: Path = Field(default_factory=Path.home, description="TOKEN_STORE_DIR")
    state_max_age_seconds: int = Field(default=600, description="OAUTH_STATE_MAX_AGE")
    http_timeout: float = Field(default=30.0, description="HTTP_TIMEOUT")
    log_level: str = Field(default="INFO", description="LOG_LEVEL")
    transport: str = Field(default="stdio", description="TRANSPORT")

    @property
    def is_oauth_configured(self) -> bool:
        """True if both client ID and secret are set."""
        return bool(self.client_id and self.client_secret)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from environment variables.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Returns:
            A frozen Settings instance.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {
            "client_id": env.get("MS_CLIENT_ID", ""),
            "client_secret": env.get("MS_CLIENT_SECRET", ""),
            "tenant": env.get("MS_TENANT") or "common",
            "encryption_key": env.get("ENCRYPTION_KEY", ""),
            "user_id": env.get("USER_ID") or None,
            "use_test_mode": _as_bool(env.get("USE_TEST_MODE")),
            "log_level": env.get("LOG_LEVEL", "INFO"),
            "transport": env.get("TRANSPORT", "stdio").lower(),
        }

        optional = {
            "MS_REDIRECT_URI": "redirect_uri",
            "AUTH_SERVER_URL": "auth_server_url",
            "AUTH_SERVER_HOST": "auth_server_host",
            "AUTH_SERVER_PORT": "auth_server_port",
            "ENCRYPTION_SALT": "encryption_salt",
            "TOKEN_STORE_DIR": "token_dir",
            "OAUTH_STATE_MAX_AGE": "state_max_age_seconds",
            "HTTP_TIMEOUT": "http_timeout",
        }
        for var, field in optional.items():
            if env.get(var):
                values[field] = env[var]

        return cls.model_validate(values)


__all__ = ["Settings", "SERVER_NAME", "SERVER_VERSION"]
