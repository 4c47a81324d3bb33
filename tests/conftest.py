"""Pytest configuration and fixtures for Outlook MCP server tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from outlook_mcp.auth.services import AuthServices
from outlook_mcp.auth.storage import TokenStore
from outlook_mcp.settings import Settings
from outlook_mcp.utils.encryption import IdentityCipher

from tests.helpers import TEST_SECRET


@pytest.fixture(scope="session")
def cipher() -> IdentityCipher:
    """Identity cipher keyed with the test secret (scrypt runs once)."""
    return IdentityCipher(TEST_SECRET)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Fully configured settings with tokens under a temporary directory."""
    return Settings(
        client_id="test-client-id",
        client_secret="test-client-secret",
        tenant="common",
        redirect_uri="http://localhost:3333/auth/callback",
        auth_server_url="http://localhost:3333",
        encryption_key=TEST_SECRET,
        user_id="alice",
        token_dir=tmp_path,
    )


@pytest.fixture
def store(tmp_path: Path) -> TokenStore:
    """Token store rooted at a temporary directory."""
    return TokenStore(tmp_path)


@pytest.fixture
def services(settings: Settings) -> AuthServices:
    """Authentication components built from the test settings."""
    return AuthServices.from_settings(settings)


@pytest.fixture
def mock_token() -> dict[str, Any]:
    """Token endpoint response body."""
    return {
        "token_type": "Bearer",
        "scope": "offline_access User.Read Mail.Read",
        "expires_in": 3600,
        "access_token": "A1",
        "refresh_token": "R1",
    }

