"""Response builders shared by the Outlook MCP tools.

Every tool returns a plain dict with a ``status`` key:

- ``success``: the tool finished; payload under ``data``
- ``awaiting_user_action``: the user must open a sign-in URL
- ``error``: the tool failed; reason under ``error``
"""

from __future__ import annotations

from typing import Any


class ResponseKeys:
    """Keys used in tool responses."""

    STATUS = "status"
    DATA = "data"
    MESSAGE = "message"
    ERROR = "error"
    ERROR_CODE = "error_code"
    USER_ID = "user_id"
    AUTHORIZATION_URL = "authorization_url"
    AUTH_SERVER_URL = "auth_server_url"


def build_success_response(
    data: Any,
    message: str | None = None,
) -> dict[str, Any]:
    """Build a ``success`` response.

    Args:
        data: Tool-specific payload.
        message: Optional text shown to the user.
    """
    response: dict[str, Any] = {
        ResponseKeys.STATUS: "success",
        ResponseKeys.DATA: data,
    }
    if message:
        response[ResponseKeys.MESSAGE] = message
    return response


def build_awaiting_action_response(
    user_id: str,
    authorization_url: str,
    auth_server_url: str,
    message: str,
) -> dict[str, Any]:
    """Build the response asking the user to complete sign-in in a browser."""
    return {
        ResponseKeys.STATUS: "awaiting_user_action",
        ResponseKeys.USER_ID: user_id,
        ResponseKeys.AUTHORIZATION_URL: authorization_url,
        ResponseKeys.AUTH_SERVER_URL: auth_server_url,
        ResponseKeys.MESSAGE: message,
    }


def build_error_response(
    error: str,
    error_code: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build an ``error`` response.

    Args:
        error: Text describing the failure.
        error_code: Exception class name, for programmatic handling.
        details: Extra keys merged into the top level of the response.
    """
    response: dict[str, Any] = {
        ResponseKeys.STATUS: "error",
        ResponseKeys.ERROR: error,
    }
    if error_code:
        response[ResponseKeys.ERROR_CODE] = error_code
    if details:
        response.update(details)
    return response
