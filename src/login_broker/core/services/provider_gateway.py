"""Provider gateway: authorization URLs and the authorization code exchange."""

import base64
from abc import ABC, abstractmethod
from urllib.parse import urlencode

import httpx
from loguru import logger
from pydantic import BaseModel

from src.login_broker.core.exceptions import UnknownProvider
from src.login_broker.core.models.external import RawAuthResult
from src.login_broker.core.models.session import ChallengeState
from src.login_broker.core.services.session.challenge_state import (
    ChallengeStateService,
)
from src.login_broker.core.types.claims import Claim, claims_from_mapping
from src.login_broker.runtime.config.config_data import ExternalProviderConfig


class TokenResponse(BaseModel):
    """Token endpoint response."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int | None = None
    refresh_token: str | None = None
    id_token: str | None = None


class ExternalAuthenticator(ABC):
    """Produces raw authentication results from provider round-trips."""

    @abstractmethod
    def is_enabled(self, provider: str) -> bool:
        """Whether ``provider`` is configured and enabled."""

    @abstractmethod
    def build_authorization_url(
        self, provider: str, state: str, code_challenge: str | None = None
    ) -> str:
        """Build the provider authorization URL for an opaque ``state`` handle."""

    @abstractmethod
    async def authenticate(
        self,
        marker: str | None,
        state: str | None,
        code: str | None,
        error: str | None,
    ) -> RawAuthResult:
        """Turn a provider callback into a raw authentication result.

        Never raises for provider-side failures; those come back as a failed
        result.
        """

    def end_session_url(
        self, provider: str, id_token: str | None, post_logout_redirect_uri: str
    ) -> str | None:
        """Provider logout URL, or None when the provider has none."""
        return None


class OidcProviderGateway(ExternalAuthenticator):
    """Authorization code flow against OAuth2/OIDC providers, using httpx.

    Consumes the challenge state on callback, so a replayed callback never
    reaches the token endpoint.
    """

    def __init__(
        self,
        providers: dict[str, ExternalProviderConfig],
        challenge_service: ChallengeStateService,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._providers = providers
        self._challenges = challenge_service
        self._transport = transport
        self._timeout = timeout

    def is_enabled(self, provider: str) -> bool:
        provider_config = self._providers.get(provider)
        return provider_config is not None and provider_config.enabled

    def _provider(self, provider: str) -> ExternalProviderConfig:
        if not self.is_enabled(provider):
            raise UnknownProvider(provider)
        return self._providers[provider]

    def build_authorization_url(
        self, provider: str, state: str, code_challenge: str | None = None
    ) -> str:
        provider_config = self._provider(provider)
        auth_params = {
            "client_id": provider_config.client_id,
            "response_type": "code",
            "scope": " ".join(provider_config.scopes),
            "redirect_uri": provider_config.redirect_uri,
            "state": state,
        }
        if code_challenge:
            auth_params["code_challenge"] = code_challenge
            auth_params["code_challenge_method"] = "S256"

        separator = "&" if "?" in provider_config.authorization_endpoint else "?"
        return f"{provider_config.authorization_endpoint}{separator}{urlencode(auth_params)}"

    async def authenticate(
        self,
        marker: str | None,
        state: str | None,
        code: str | None,
        error: str | None,
    ) -> RawAuthResult:
        challenge = await self._challenges.consume(marker, state)
        if challenge is None:
            return RawAuthResult.failed("challenge state missing or invalid")

        if error:
            logger.info(f"Provider '{challenge.provider}' returned an error response")
            return RawAuthResult.failed("provider returned an error", challenge)

        if not code:
            return RawAuthResult.failed("missing authorization code", challenge)

        if not self.is_enabled(challenge.provider):
            return RawAuthResult.failed("provider no longer enabled", challenge)

        try:
            return await self._complete(challenge, code)
        except httpx.HTTPError as e:
            logger.warning(
                f"Code exchange with provider '{challenge.provider}' failed: {type(e).__name__}"
            )
            return RawAuthResult.failed("provider exchange failed", challenge)
        except ValueError as e:
            # Malformed JSON or token response
            logger.warning(
                f"Provider '{challenge.provider}' sent an unusable response: {type(e).__name__}"
            )
            return RawAuthResult.failed("provider response malformed", challenge)

    async def _complete(self, challenge: ChallengeState, code: str) -> RawAuthResult:
        provider_config = self._providers[challenge.provider]
        if not provider_config.userinfo_endpoint:
            return RawAuthResult.failed("provider has no userinfo endpoint", challenge)

        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as client:
            tokens = await self._exchange_code_for_tokens(
                client, provider_config, code, challenge.code_verifier
            )
            claims = await self._get_user_claims(client, provider_config, tokens)

        token_values = {
            "access_token": tokens.access_token,
            "id_token": tokens.id_token,
            "refresh_token": tokens.refresh_token,
        }
        return RawAuthResult(
            succeeded=True,
            state=challenge,
            claims=claims,
            tokens={name: value for name, value in token_values.items() if value},
        )

    async def _exchange_code_for_tokens(
        self,
        client: httpx.AsyncClient,
        provider_config: ExternalProviderConfig,
        code: str,
        code_verifier: str | None,
    ) -> TokenResponse:
        token_data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": provider_config.redirect_uri,
            "client_id": provider_config.client_id,
        }
        if code_verifier:
            token_data["code_verifier"] = code_verifier

        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }

        # Client authentication when a secret is configured
        if provider_config.client_secret:
            credentials = f"{provider_config.client_id}:{provider_config.client_secret}"
            encoded_credentials = base64.b64encode(credentials.encode()).decode()
            headers["Authorization"] = f"Basic {encoded_credentials}"

        response = await client.post(
            provider_config.token_endpoint, data=token_data, headers=headers
        )
        response.raise_for_status()
        return TokenResponse.model_validate(response.json())

    async def _get_user_claims(
        self,
        client: httpx.AsyncClient,
        provider_config: ExternalProviderConfig,
        tokens: TokenResponse,
    ) -> list[Claim]:
        response = await client.get(
            provider_config.userinfo_endpoint,
            headers={
                "Authorization": f"Bearer {tokens.access_token}",
                "Accept": "application/json",
            },
        )
        response.raise_for_status()

        userinfo = response.json()
        if not isinstance(userinfo, dict):
            raise ValueError("userinfo response is not a JSON object")

        mappings = provider_config.claim_mappings
        return claims_from_mapping(
            {mappings.get(key, key): value for key, value in userinfo.items()}
        )

    def end_session_url(
        self, provider: str, id_token: str | None, post_logout_redirect_uri: str
    ) -> str | None:
        provider_config = self._providers.get(provider)
        if provider_config is None or not provider_config.end_session_endpoint:
            return None

        logout_params = {
            "post_logout_redirect_uri": post_logout_redirect_uri,
            "client_id": provider_config.client_id,
        }
        if id_token:
            logout_params["id_token_hint"] = id_token
        return f"{provider_config.end_session_endpoint}?{urlencode(logout_params)}"
