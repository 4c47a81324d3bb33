"""Outlook auth status tool - Check authentication state.

This tool reports whether USER_ID holds a valid stored token. It reads the
token file only and never contacts Microsoft.
"""

from __future__ import annotations

import logging
from typing import Any

from outlook_mcp.auth.services import AuthServices
from outlook_mcp.auth.status import AuthStatus
from outlook_mcp.tools.base import build_error_response, build_success_response
from outlook_mcp.utils.errors import ValidationError

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    AuthStatus.NOT_CONFIGURED: "Not authenticated - USER_ID environment variable not set",
    AuthStatus.NO_RECORD: "Not authenticated",
    AuthStatus.EXPIRED: "Authentication expired - use authenticate to sign in again",
    AuthStatus.VALID: "Authenticated and ready",
}


async def outlook_check_auth_status(services: AuthServices) -> dict[str, Any]:
    """Check the current authentication status of USER_ID.

    Returns:
        Success response with:
        - authenticated: True only for a valid token
        - auth_status: one of not_configured, no_record, expired, valid
        - user_id: the configured identity, or None
    """
    user_id = services.settings.user_id

    try:
        status = services.probe.check(user_id)
    except ValidationError as e:
        logger.error("Cannot check auth status: %s", e)
        return build_error_response(
            error=str(e),
            error_code="ValidationError",
        )

    logger.debug("Auth status for %s: %s", user_id, status.value)
    return build_success_response(
        data={
            "authenticated": status is AuthStatus.VALID,
            "auth_status": status.value,
            "user_id": user_id,
        },
        message=STATUS_MESSAGES[status],
    )
