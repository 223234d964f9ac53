"""Unit tests for the OIDC provider gateway."""

import base64
from urllib.parse import parse_qs, urlparse

import pytest

from src.login_broker.core.exceptions import UnknownProvider
from src.login_broker.core.models import ChallengeState
from src.login_broker.core.services import OidcProviderGateway
from src.login_broker.core.types.claims import NAME_IDENTIFIER, Claim


async def _issue(challenge_service, provider="github", code_verifier="verifier-123"):
    state = ChallengeState.create(provider, "/home", code_verifier=code_verifier)
    return await challenge_service.issue(state)


class TestAuthorizationUrl:
    def test_carries_only_handle_as_state(self, provider_gateway, provider_config):
        url = provider_gateway.build_authorization_url("github", "opaque-handle", "pkce-challenge")

        parsed = urlparse(url)
        params = parse_qs(parsed.query)
        assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == provider_config.authorization_endpoint
        assert params["state"] == ["opaque-handle"]
        assert params["client_id"] == ["broker-client"]
        assert params["response_type"] == ["code"]
        assert params["scope"] == ["openid profile email"]
        assert params["redirect_uri"] == [provider_config.redirect_uri]
        assert params["code_challenge"] == ["pkce-challenge"]
        assert params["code_challenge_method"] == ["S256"]

    def test_unknown_provider_is_rejected(self, provider_gateway):
        with pytest.raises(UnknownProvider):
            provider_gateway.build_authorization_url("myspace", "handle")

    def test_disabled_provider_is_not_enabled(self, test_config, challenge_service, provider_config):
        disabled = provider_config.model_copy(update={"enabled": False})
        gateway = OidcProviderGateway({"github": disabled}, challenge_service)

        assert not gateway.is_enabled("github")


class TestAuthenticate:
    @pytest.mark.asyncio
    async def test_successful_exchange(self, provider_gateway, challenge_service, mock_provider):
        handle, marker = await _issue(challenge_service)

        result = await provider_gateway.authenticate(marker, handle, "auth-code", None)

        assert result.succeeded
        assert result.state.provider == "github"
        assert result.state.return_url == "/home"
        assert Claim("sub", "42") in result.claims
        assert result.tokens["id_token"] == "provider-id-token"
        assert result.tokens["access_token"] == "provider-access-token"

        token_request = mock_provider.requests_to("/token")[0]
        form = parse_qs(token_request.content.decode())
        assert form["code"] == ["auth-code"]
        assert form["code_verifier"] == ["verifier-123"]
        assert form["grant_type"] == ["authorization_code"]
        expected_auth = base64.b64encode(b"broker-client:broker-client-secret").decode()
        assert token_request.headers["Authorization"] == f"Basic {expected_auth}"

        userinfo_request = mock_provider.requests_to("/userinfo")[0]
        assert userinfo_request.headers["Authorization"] == "Bearer provider-access-token"

    @pytest.mark.asyncio
    async def test_claim_mappings_rename_userinfo_keys(
        self, test_config, challenge_service, provider_config, mock_provider
    ):
        mapped = provider_config.model_copy(update={"claim_mappings": {"id": NAME_IDENTIFIER}})
        gateway = OidcProviderGateway(
            {"github": mapped}, challenge_service, transport=mock_provider.transport
        )
        mock_provider.userinfo = {"id": 1234, "login": "octocat"}
        handle, marker = await _issue(challenge_service)

        result = await gateway.authenticate(marker, handle, "auth-code", None)

        assert Claim(NAME_IDENTIFIER, "1234") in result.claims
        assert Claim("login", "octocat") in result.claims

    @pytest.mark.asyncio
    async def test_invalid_challenge_never_reaches_provider(self, provider_gateway, mock_provider):
        result = await provider_gateway.authenticate(None, "handle", "auth-code", None)

        assert not result.succeeded
        assert result.state is None
        assert mock_provider.requests == []

    @pytest.mark.asyncio
    async def test_provider_error_fails_with_state(self, provider_gateway, challenge_service, mock_provider):
        handle, marker = await _issue(challenge_service)

        result = await provider_gateway.authenticate(marker, handle, None, "access_denied")

        assert not result.succeeded
        assert result.state is not None
        assert mock_provider.requests == []

    @pytest.mark.asyncio
    async def test_missing_code_fails(self, provider_gateway, challenge_service):
        handle, marker = await _issue(challenge_service)

        result = await provider_gateway.authenticate(marker, handle, None, None)

        assert not result.succeeded

    @pytest.mark.asyncio
    async def test_token_endpoint_error_fails(self, provider_gateway, challenge_service, mock_provider):
        mock_provider.token_status = 400
        handle, marker = await _issue(challenge_service)

        result = await provider_gateway.authenticate(marker, handle, "bad-code", None)

        assert not result.succeeded
        assert result.failure == "provider exchange failed"

    @pytest.mark.asyncio
    async def test_non_object_userinfo_fails(self, provider_gateway, challenge_service, mock_provider):
        mock_provider.userinfo = ["not", "an", "object"]
        handle, marker = await _issue(challenge_service)

        result = await provider_gateway.authenticate(marker, handle, "auth-code", None)

        assert not result.succeeded
        assert result.failure == "provider response malformed"

    @pytest.mark.asyncio
    async def test_replayed_callback_fails(self, provider_gateway, challenge_service):
        handle, marker = await _issue(challenge_service)

        assert (await provider_gateway.authenticate(marker, handle, "auth-code", None)).succeeded
        assert not (await provider_gateway.authenticate(marker, handle, "auth-code", None)).succeeded


class TestEndSessionUrl:
    def test_includes_id_token_hint(self, provider_gateway):
        url = provider_gateway.end_session_url("github", "id-token", "http://localhost:8000")

        params = parse_qs(urlparse(url).query)
        assert params["id_token_hint"] == ["id-token"]
        assert params["post_logout_redirect_uri"] == ["http://localhost:8000"]

    def test_without_token_or_endpoint(self, provider_gateway, challenge_service, provider_config):
        url = provider_gateway.end_session_url("github", None, "http://localhost:8000")
        assert "id_token_hint" not in url

        no_logout = provider_config.model_copy(update={"end_session_endpoint": None})
        gateway = OidcProviderGateway({"github": no_logout}, challenge_service)
        assert gateway.end_session_url("github", "id-token", "http://localhost:8000") is None
