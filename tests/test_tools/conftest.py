"""Fixtures for tool tests."""

from __future__ import annotations

import pytest

from outlook_mcp.auth.services import AuthServices
from outlook_mcp.settings import Settings


@pytest.fixture
def test_mode_services(settings: Settings) -> AuthServices:
    """Services configured to install synthetic tokens."""
    return AuthServices.from_settings(settings.model_copy(update={"use_test_mode": True}))


@pytest.fixture
def no_user_services(settings: Settings) -> AuthServices:
    """Services with USER_ID unset."""
    return AuthServices.from_settings(settings.model_copy(update={"user_id": None}))
