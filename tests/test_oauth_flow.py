"""Tests for the Microsoft authorization-code flow."""

from __future__ import annotations

import logging
from typing import Any
from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

import pytest
import requests

from outlook_mcp.auth.models import TokenRecord
from outlook_mcp.auth.oauth import GRAPH_SCOPES, AuthorizationFlow
from outlook_mcp.auth.services import AuthServices
from outlook_mcp.auth.state import AuthState, now_ms
from outlook_mcp.settings import Settings
from outlook_mcp.utils.errors import (
    AuthenticationError,
    ConfigurationError,
    InvalidState,
    MissingAuthorizationCode,
    ProviderError,
    TokenExchangeFailed,
    ValidationError,
)

from tests.helpers import make_response

POST_PATH = "outlook_mcp.auth.oauth.requests.post"


def _query(url: str) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(urlparse(url).query).items()}


def _state_for(services: AuthServices, user_id: str, issued_at: int | None = None) -> str:
    state = AuthState(
        user_id=services.cipher.encrypt(user_id),
        issued_at=now_ms() if issued_at is None else issued_at,
    )
    return state.encode()


class TestAuthorizationUrl:
    """Tests for build_authorization_url."""

    def test_url_targets_tenant_authorize_endpoint(self, services: AuthServices) -> None:
        url = services.flow.build_authorization_url("alice")
        parsed = urlparse(url)
        assert parsed.scheme == "https"
        assert parsed.netloc == "login.microsoftonline.com"
        assert parsed.path == "/common/oauth2/v2.0/authorize"

    def test_url_parameters(self, services: AuthServices) -> None:
        """All authorize parameters are present and the identity is not in clear."""
        url = services.flow.build_authorization_url("alice")
        params = _query(url)

        assert params["client_id"] == "test-client-id"
        assert params["response_type"] == "code"
        assert params["redirect_uri"] == "http://localhost:3333/auth/callback"
        assert params["response_mode"] == "query"
        assert params["scope"].split(" ") == GRAPH_SCOPES
        assert "alice" not in url

    def test_state_round_trips_to_identity(self, services: AuthServices) -> None:
        """Decoding the issued state yields the identity."""
        state = _query(services.flow.build_authorization_url("alice"))["state"]
        assert services.flow.decode_identity(state) == "alice"

    def test_fresh_state_per_call(self, services: AuthServices) -> None:
        first = _query(services.flow.build_authorization_url("alice"))["state"]
        second = _query(services.flow.build_authorization_url("alice"))["state"]
        assert first != second

    def test_custom_tenant(self, settings: Settings) -> None:
        services = AuthServices.from_settings(settings.model_copy(update={"tenant": "contoso"}))
        url = services.flow.build_authorization_url("alice")
        assert urlparse(url).path == "/contoso/oauth2/v2.0/authorize"
        assert services.flow.token_endpoint.endswith("/contoso/oauth2/v2.0/token")

    def test_not_configured(self, settings: Settings) -> None:
        """Missing client credentials raise ConfigurationError."""
        services = AuthServices.from_settings(
            settings.model_copy(update={"client_id": "", "client_secret": ""})
        )
        assert services.flow.is_configured is False
        with pytest.raises(ConfigurationError):
            services.flow.build_authorization_url("alice")

    def test_invalid_identity(self, services: AuthServices) -> None:
        with pytest.raises(ValidationError):
            services.flow.build_authorization_url("../alice")


class TestResolveIdentity:
    """Tests for resolve_identity."""

    def test_encrypted_value_is_decrypted(self, services: AuthServices) -> None:
        encrypted = services.cipher.encrypt("alice")
        assert services.flow.resolve_identity(encrypted) == "alice"

    def test_plain_value_passes_through(self, services: AuthServices) -> None:
        assert services.flow.resolve_identity("bob") == "bob"


class TestDecodeIdentity:
    """Tests for decode_identity."""

    def test_missing_state(self, services: AuthServices) -> None:
        for value in (None, ""):
            with pytest.raises(InvalidState):
                services.flow.decode_identity(value)

    def test_garbage_state(self, services: AuthServices) -> None:
        with pytest.raises(InvalidState):
            services.flow.decode_identity("garbage")

    def test_state_with_unencrypted_identity(self, services: AuthServices) -> None:
        """A state whose user_id does not decrypt is rejected."""
        forged = AuthState(user_id="alice").encode()
        with pytest.raises(InvalidState):
            services.flow.decode_identity(forged)

    def test_stale_state(self, services: AuthServices) -> None:
        """State older than the maximum age is rejected."""
        issued = 1_000_000_000_000
        state = _state_for(services, "alice", issued_at=issued)

        assert services.flow.decode_identity(state, now=issued + 600_000) == "alice"
        with pytest.raises(InvalidState) as exc_info:
            services.flow.decode_identity(state, now=issued + 601_000)
        assert "expired" in exc_info.value.message

    def test_future_state(self, services: AuthServices) -> None:
        """State issued further in the future than the skew allowance is rejected."""
        issued = 1_000_000_000_000
        state = _state_for(services, "alice", issued_at=issued)

        assert services.flow.decode_identity(state, now=issued - 30_000) == "alice"
        with pytest.raises(InvalidState):
            services.flow.decode_identity(state, now=issued - 120_000)

    def test_state_with_unsafe_identity(self, services: AuthServices) -> None:
        state = _state_for(services, "../../etc")
        with pytest.raises(InvalidState):
            services.flow.decode_identity(state)


class TestHandleCallback:
    """Tests for handle_callback."""

    @pytest.mark.asyncio
    async def test_alice_signs_in(
        self, services: AuthServices, mock_token: dict[str, Any]
    ) -> None:
        """A valid callback exchanges the code and stores tokens under alice."""
        state = _query(services.flow.build_authorization_url("alice"))["state"]

        with patch(POST_PATH, return_value=make_response(200, mock_token)) as mock_post:
            before = now_ms()
            result = await services.flow.handle_callback({"code": "C", "state": state})
            after = now_ms()

        record = result.record
        assert result.user_id == "alice"
        assert record.access_token == "A1"
        assert before + 3_600_000 <= record.expires_at <= after + 3_600_000

        stored = services.store.load("alice")
        assert stored.access_token == "A1"
        assert stored.refresh_token == "R1"
        assert stored.expires_at == record.expires_at

        mock_post.assert_called_once()
        args, kwargs = mock_post.call_args
        assert args[0] == "https://login.microsoftonline.com/common/oauth2/v2.0/token"
        assert kwargs["data"] == {
            "client_id": "test-client-id",
            "client_secret": "test-client-secret",
            "code": "C",
            "redirect_uri": "http://localhost:3333/auth/callback",
            "grant_type": "authorization_code",
            "scope": " ".join(GRAPH_SCOPES),
        }
        assert kwargs["timeout"] == services.settings.http_timeout

    @pytest.mark.asyncio
    async def test_concurrent_users_do_not_interfere(
        self, services: AuthServices, mock_token: dict[str, Any]
    ) -> None:
        """Interleaved flows store each user's tokens under their own identity."""
        alice_state = _query(services.flow.build_authorization_url("alice"))["state"]
        bob_state = _query(services.flow.build_authorization_url("bob"))["state"]

        bob_token = {**mock_token, "access_token": "B1"}
        with patch(POST_PATH, return_value=make_response(200, bob_token)):
            await services.flow.handle_callback({"code": "CB", "state": bob_state})
        with patch(POST_PATH, return_value=make_response(200, mock_token)):
            await services.flow.handle_callback({"code": "CA", "state": alice_state})

        assert services.store.load("alice").access_token == "A1"
        assert services.store.load("bob").access_token == "B1"

    @pytest.mark.asyncio
    async def test_missing_state(self, services: AuthServices) -> None:
        """No state: InvalidState, no exchange, nothing written."""
        with patch(POST_PATH) as mock_post:
            with pytest.raises(InvalidState):
                await services.flow.handle_callback({"code": "C"})

        mock_post.assert_not_called()
        assert services.store.list_users() == []

    @pytest.mark.asyncio
    async def test_provider_error_is_reported_verbatim(self, services: AuthServices) -> None:
        """Provider errors take precedence and are carried unchanged."""
        query = {
            "error": "access_denied",
            "error_description": "The user declined consent",
            "state": "irrelevant",
        }
        with patch(POST_PATH) as mock_post:
            with pytest.raises(ProviderError) as exc_info:
                await services.flow.handle_callback(query)

        assert exc_info.value.error == "access_denied"
        assert exc_info.value.error_description == "The user declined consent"
        mock_post.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_code(self, services: AuthServices) -> None:
        state = _state_for(services, "alice")
        with patch(POST_PATH) as mock_post:
            with pytest.raises(MissingAuthorizationCode):
                await services.flow.handle_callback({"state": state})
        mock_post.assert_not_called()

    @pytest.mark.asyncio
    async def test_stale_state_rejected_before_exchange(self, services: AuthServices) -> None:
        state = _state_for(services, "alice", issued_at=now_ms() - 3_600_000)
        with patch(POST_PATH) as mock_post:
            with pytest.raises(InvalidState):
                await services.flow.handle_callback({"code": "C", "state": state})
        mock_post.assert_not_called()

    @pytest.mark.asyncio
    async def test_provider_rejects_code(self, services: AuthServices) -> None:
        """Non-2xx token response: TokenExchangeFailed carrying status and body."""
        state = _state_for(services, "alice")
        body = '{"error": "invalid_grant"}'
        with patch(POST_PATH, return_value=make_response(400, text=body)):
            with pytest.raises(TokenExchangeFailed) as exc_info:
                await services.flow.handle_callback({"code": "C", "state": state})

        assert exc_info.value.provider_status == 400
        assert exc_info.value.provider_body == body
        assert "invalid_grant" in exc_info.value.message
        assert services.store.load("alice") is None

    @pytest.mark.asyncio
    async def test_network_error(self, services: AuthServices) -> None:
        state = _state_for(services, "alice")
        with patch(POST_PATH, side_effect=requests.ConnectionError("refused")):
            with pytest.raises(TokenExchangeFailed) as exc_info:
                await services.flow.handle_callback({"code": "C", "state": state})

        assert exc_info.value.provider_status is None
        assert services.store.load("alice") is None

    @pytest.mark.asyncio
    async def test_exchange_failure_logged_with_identity(
        self, services: AuthServices, caplog: pytest.LogCaptureFixture
    ) -> None:
        state = _state_for(services, "alice")
        with (
            caplog.at_level(logging.ERROR, logger="outlook_mcp.auth.oauth"),
            patch(POST_PATH, return_value=make_response(400, text="invalid_grant")),
        ):
            with pytest.raises(TokenExchangeFailed):
                await services.flow.handle_callback({"code": "C", "state": state})

        assert any(
            "Token exchange failed for user alice" in r.getMessage() for r in caplog.records
        )

    @pytest.mark.asyncio
    async def test_unparseable_token_response(self, services: AuthServices) -> None:
        state = _state_for(services, "alice")
        with patch(POST_PATH, return_value=make_response(200, ValueError("bad json"))):
            with pytest.raises(TokenExchangeFailed):
                await services.flow.handle_callback({"code": "C", "state": state})

    @pytest.mark.asyncio
    async def test_not_configured(self, settings: Settings) -> None:
        """Valid callback without client credentials is a configuration error."""
        configured = AuthServices.from_settings(settings)
        state = _state_for(configured, "alice")
        services = AuthServices.from_settings(
            settings.model_copy(update={"client_secret": ""})
        )
        with patch(POST_PATH) as mock_post:
            with pytest.raises(ConfigurationError):
                await services.flow.handle_callback({"code": "C", "state": state})
        mock_post.assert_not_called()


class TestRefresh:
    """Tests for refresh and get_access_token."""

    @pytest.mark.asyncio
    async def test_refresh_replaces_record(self, services: AuthServices) -> None:
        services.store.save(
            "alice", TokenRecord(access_token="OLD", refresh_token="R1", expires_at=0)
        )
        body = {"access_token": "NEW", "refresh_token": "R2", "expires_in": 3600}

        with patch(POST_PATH, return_value=make_response(200, body)) as mock_post:
            record = await services.flow.refresh("alice")

        assert record.access_token == "NEW"
        assert services.store.load("alice").refresh_token == "R2"
        data = mock_post.call_args.kwargs["data"]
        assert data["grant_type"] == "refresh_token"
        assert data["refresh_token"] == "R1"

    @pytest.mark.asyncio
    async def test_refresh_keeps_old_refresh_token(self, services: AuthServices) -> None:
        services.store.save(
            "alice", TokenRecord(access_token="OLD", refresh_token="R1", expires_at=0)
        )
        body = {"access_token": "NEW", "expires_in": 3600}

        with patch(POST_PATH, return_value=make_response(200, body)):
            await services.flow.refresh("alice")

        assert services.store.load("alice").refresh_token == "R1"

    @pytest.mark.asyncio
    async def test_refresh_without_record(self, services: AuthServices) -> None:
        with pytest.raises(AuthenticationError):
            await services.flow.refresh("alice")

    @pytest.mark.asyncio
    async def test_get_access_token_uses_valid_record(self, services: AuthServices) -> None:
        services.store.save(
            "alice",
            TokenRecord(access_token="A1", refresh_token="R1", expires_at=now_ms() + 60_000),
        )
        with patch(POST_PATH) as mock_post:
            assert await services.flow.get_access_token("alice") == "A1"
        mock_post.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_access_token_refreshes_expired(self, services: AuthServices) -> None:
        services.store.save(
            "alice", TokenRecord(access_token="OLD", refresh_token="R1", expires_at=0)
        )
        body = {"access_token": "NEW", "expires_in": 3600}
        with patch(POST_PATH, return_value=make_response(200, body)):
            assert await services.flow.get_access_token("alice") == "NEW"

    @pytest.mark.asyncio
    async def test_get_access_token_without_record(self, services: AuthServices) -> None:
        with pytest.raises(AuthenticationError):
            await services.flow.get_access_token("alice")


def test_flow_exposes_endpoints(services: AuthServices) -> None:
    flow: AuthorizationFlow = services.flow
    assert flow.authorize_endpoint == (
        "https://login.microsoftonline.com/common/oauth2/v2.0/authorize"
    )
    assert flow.token_endpoint == "https://login.microsoftonline.com/common/oauth2/v2.0/token"
