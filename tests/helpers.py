"""Shared test helpers."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

TEST_SECRET = "test-encryption-secret-for-identity"


def make_response(status_code: int = 200, body: Any = None, text: str = "") -> MagicMock:
    """Build a stand-in for a requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    return response
