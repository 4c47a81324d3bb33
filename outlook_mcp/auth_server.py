"""HTTP authentication server for the Microsoft OAuth redirect.

Routes:

- ``GET /``: instructions page
- ``GET /auth?user_id=...``: 302 redirect to the Microsoft login page
- ``GET /auth/callback``: completes the flow and renders a result page
- anything else: 404

Each request is handled independently; the flow state travels in the OAuth
``state`` parameter, so callbacks for different users never contend.
"""

from __future__ import annotations

import html
import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import (
    HTMLResponse,
    PlainTextResponse,
    RedirectResponse,
    Response,
)
from starlette.routing import Route

from outlook_mcp.auth.services import AuthServices
from outlook_mcp.auth.state import now_ms
from outlook_mcp.settings import Settings
from outlook_mcp.utils.errors import (
    AuthFlowError,
    ConfigurationError,
    ProviderError,
    TokenError,
    ValidationError,
)
from outlook_mcp.utils.logs import configure_logging

logger = logging.getLogger(__name__)

DEFAULT_USER_ID = "default"

_STYLE = """
      body { font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; }
      h1 { color: %(color)s; }
      .box { background-color: %(background)s; border: 1px solid %(border)s; padding: 15px; border-radius: 4px; }
      code { background: #f4f4f4; padding: 2px 4px; border-radius: 4px; }
"""

_SUCCESS = {"color": "#5cb85c", "background": "#d4edda", "border": "#c3e6cb"}
_ERROR = {"color": "#d9534f", "background": "#f8d7da", "border": "#f5c6cb"}
_INFO = {"color": "#0078d4", "background": "#e7f6fd", "border": "#b3e0ff"}

# Page titles per callback failure
_FAILURE_TITLES = {
    "ProviderError": "Authentication Error",
    "InvalidState": "Invalid Authentication State",
    "MissingAuthorizationCode": "Missing Authorization Code",
    "TokenExchangeFailed": "Token Exchange Error",
}


def render_page(
    title: str,
    body_html: str,
    palette: dict[str, str],
    status_code: int = 200,
    footer: str = "Please close this window and try again.",
) -> HTMLResponse:
    """Render a minimal HTML page.

    Args:
        title: Page and heading title (plain text).
        body_html: Pre-escaped HTML placed inside the coloured box.
        palette: Colours for heading and box.
        status_code: HTTP status.
        footer: Plain-text line under the box.
    """
    content = f"""<html>
  <head>
    <title>{html.escape(title)}</title>
    <style>{_STYLE % palette}</style>
  </head>
  <body>
    <h1>{html.escape(title)}</h1>
    <div class="box">
      {body_html}
    </div>
    <p>{html.escape(footer)}</p>
  </body>
</html>
"""
    return HTMLResponse(content, status_code=status_code)


def _configuration_error_page() -> HTMLResponse:
    return render_page(
        "Configuration Error",
        "<p>Microsoft Graph API credentials are not set. Please set the "
        "following environment variables:</p>"
        "<ul><li><code>MS_CLIENT_ID</code></li>"
        "<li><code>MS_CLIENT_SECRET</code></li></ul>",
        _ERROR,
        status_code=500,
        footer="Restart the server after updating the configuration.",
    )


def _flow_error_page(error: AuthFlowError) -> HTMLResponse:
    if isinstance(error, ProviderError):
        description = error.error_description or "No description provided"
        body = (
            f"<p><strong>Error:</strong> {html.escape(error.error)}</p>"
            f"<p><strong>Description:</strong> {html.escape(description)}</p>"
        )
    else:
        body = f"<p>{html.escape(error.message)}</p>"

    title = _FAILURE_TITLES.get(error.error_code, "Authentication Error")
    return render_page(title, body, _ERROR, status_code=error.status_code)


def create_app(services: AuthServices) -> Starlette:
    """Create the auth server ASGI application.

    Args:
        services: Authentication components built from Settings.

    Returns:
        Starlette application.
    """
    settings = services.settings

    async def index(request: Request) -> Response:
        base = html.escape(settings.auth_server_url)
        return render_page(
            "Outlook Authentication Server",
            "<p>This server handles Microsoft Graph API authentication "
            "callbacks.</p>"
            "<p>To authenticate, navigate to: "
            "<code>/auth?user_id=YOUR_USER_ID</code></p>"
            f"<p>For example: <code>{base}/auth?user_id=user1</code></p>"
            f"<p>If no user_id is provided, '{DEFAULT_USER_ID}' will be used.</p>",
            _INFO,
            footer=f"Server is running at {settings.auth_server_url}",
        )

    async def auth(request: Request) -> Response:
        raw_user_id = request.query_params.get("user_id") or DEFAULT_USER_ID
        user_id = services.flow.resolve_identity(raw_user_id)
        logger.info("Auth request received for user %s", user_id)

        try:
            url = services.flow.build_authorization_url(user_id)
        except ConfigurationError as e:
            logger.error("Cannot start authentication: %s", e)
            return _configuration_error_page()
        except ValidationError as e:
            logger.warning("Rejected auth request: %s", e.message)
            return render_page(
                "Invalid User",
                f"<p>{html.escape(e.message)}</p>",
                _ERROR,
                status_code=400,
            )

        logger.info("Redirecting user %s to Microsoft login", user_id)
        return RedirectResponse(url, status_code=302)

    async def callback(request: Request) -> Response:
        try:
            result = await services.flow.handle_callback(request.query_params)
        except AuthFlowError as e:
            return _flow_error_page(e)
        except ConfigurationError as e:
            logger.error("Cannot complete authentication: %s", e)
            return _configuration_error_page()
        except TokenError as e:
            logger.error("Failed to store tokens: %s", e)
            return render_page(
                "Token Storage Error",
                f"<p>{html.escape(e.message)}</p>",
                _ERROR,
                status_code=500,
            )

        minutes = max(0, (result.record.expires_at - now_ms()) // 60000)
        return render_page(
            "Authentication Successful!",
            "<p>You have successfully authenticated with Microsoft Graph API.</p>"
            "<p>The access token has been saved securely for user: "
            f"<strong>{html.escape(result.user_id)}</strong></p>"
            f"<p>The access token is valid for about {minutes} minutes.</p>",
            _SUCCESS,
            footer="You can now close this window and return to your assistant.",
        )

    async def not_found(request: Request, exc: Exception) -> Response:
        # Known paths with an unsupported method answer like unknown paths
        return PlainTextResponse("Not Found", status_code=404)

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        logger.info(
            "Authentication server running at %s", settings.auth_server_url
        )
        logger.info("Waiting for authentication callbacks at %s", settings.redirect_uri)
        if not settings.is_oauth_configured:
            logger.warning(
                "Microsoft Graph API credentials are not set. "
                "Set MS_CLIENT_ID and MS_CLIENT_SECRET."
            )
        yield
        logger.info("Authentication server shutting down")

    return Starlette(
        routes=[
            Route("/", index, methods=["GET"]),
            Route("/auth", auth, methods=["GET"]),
            Route("/auth/callback", callback, methods=["GET"]),
        ],
        exception_handlers={405: not_found},
        lifespan=lifespan,
    )


def main() -> None:
    """Run the authentication server.

    Loads ``.env``, builds Settings, and serves the app with uvicorn, which
    stops cleanly on SIGINT/SIGTERM.
    """
    load_dotenv()
    settings = Settings.from_env()
    configure_logging(settings.log_level)

    try:
        services = AuthServices.from_settings(settings)
    except ConfigurationError as e:
        logger.error("%s. Exiting.", e)
        sys.exit(1)

    import uvicorn

    uvicorn.run(
        create_app(services),
        host=settings.auth_server_host,
        port=settings.auth_server_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
