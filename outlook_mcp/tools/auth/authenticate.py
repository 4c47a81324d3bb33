"""Outlook authenticate tool - start the browser sign-in for USER_ID.

Flow:
1. The tool returns a Microsoft sign-in URL whose ``state`` carries the
   encrypted USER_ID.
2. The user signs in; the auth server receives the callback and stores the
   tokens under USER_ID.
3. check-auth-status reports the result.

In test mode a synthetic one-hour token is installed instead.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

from outlook_mcp.auth.models import TokenRecord
from outlook_mcp.auth.services import AuthServices
from outlook_mcp.tools.base import (
    build_awaiting_action_response,
    build_error_response,
    build_success_response,
)
from outlook_mcp.utils.errors import ConfigurationError, OutlookMCPError

logger = logging.getLogger(__name__)


async def outlook_authenticate(
    services: AuthServices, force: bool = False
) -> dict[str, Any]:
    """Authenticate USER_ID with Microsoft Graph API.

    Args:
        services: Authentication components.
        force: Discard any stored token before issuing a new sign-in URL.

    Returns:
        Test mode: {status, data: {user_id, test_mode}, message}
        Otherwise: {status: "awaiting_user_action", authorization_url,
            auth_server_url, user_id, message}
        Error: {status, error, error_code}
    """
    settings = services.settings
    user_id = settings.user_id

    if not user_id:
        return build_error_response(
            error=(
                "USER_ID environment variable is required for authentication. "
                "Please set the USER_ID environment variable to create "
                'user-specific credentials.\n\nExample: export USER_ID="your_user_id"'
            ),
            error_code="ConfigurationError",
        )

    try:
        if force and services.store.delete(user_id):
            logger.info("Discarded stored token for user %s (force)", user_id)

        if settings.use_test_mode:
            services.store.save(user_id, TokenRecord.for_test_mode())
            return build_success_response(
                data={"user_id": user_id, "test_mode": True},
                message=(
                    "Successfully authenticated with Microsoft Graph API "
                    f"(test mode) for user: {user_id}"
                ),
            )

        authorization_url = services.flow.build_authorization_url(user_id)
        encrypted = services.cipher.encrypt(user_id)
        auth_server_url = (
            f"{settings.auth_server_url.rstrip('/')}/auth?"
            f"{urlencode({'user_id': encrypted})}"
        )

        return build_awaiting_action_response(
            user_id=user_id,
            authorization_url=authorization_url,
            auth_server_url=auth_server_url,
            message=(
                f"Authentication required for user: {user_id}\n\n"
                "Please visit the following URL to authenticate with Microsoft: "
                f"{authorization_url}\n\n"
                "The link expires after "
                f"{settings.state_max_age_seconds // 60} minutes. To get a fresh "
                f"link at any time, open: {auth_server_url}\n\n"
                "After authentication, your credentials will be saved with your "
                "user ID. Use check-auth-status to confirm."
            ),
        )

    except ConfigurationError as e:
        logger.error("Authentication not configured: %s", e)
        return build_error_response(
            error=str(e),
            error_code="ConfigurationError",
        )
    except OutlookMCPError as e:
        logger.error("Authentication failed for user %s: %s", user_id, e)
        return build_error_response(
            error=str(e),
            error_code=type(e).__name__,
        )
