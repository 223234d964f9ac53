"""Session models for the two legs of the external login flow."""

import time

from pydantic import BaseModel, Field

from src.login_broker.core.types.claims import Claim


class ChallengeState(BaseModel):
    """Transient state tying a challenge to its callback.

    Stored server-side under an opaque handle; the provider only ever sees the
    handle. Consumed exactly once.
    """

    provider: str = Field(description="Provider chosen when the challenge started")
    return_url: str | None = Field(
        default=None, description="Unvalidated post-login destination"
    )
    code_verifier: str | None = Field(
        default=None, description="PKCE code verifier for the code exchange"
    )
    created_at: int = Field(description="Creation timestamp")
    expires_at: int = Field(description="Expiration timestamp")

    @classmethod
    def create(
        cls,
        provider: str,
        return_url: str | None,
        ttl_seconds: int = 600,
        code_verifier: str | None = None,
    ) -> "ChallengeState":
        """Create a new challenge state with timestamps."""
        now = int(time.time())
        return cls(
            provider=provider,
            return_url=return_url,
            code_verifier=code_verifier,
            created_at=now,
            expires_at=now + ttl_seconds,
        )

    def is_expired(self) -> bool:
        """Check if the challenge is expired."""
        return time.time() > self.expires_at


class LocalSession(BaseModel):
    """Local session established after a successful external login."""

    id: str = Field(description="Session identifier")
    subject_id: str = Field(description="Local subject identifier")
    username: str = Field(description="Local username")
    provider: str = Field(description="Provider the user signed in with")
    session_id: str | None = Field(
        default=None, description="Provider session id, for single sign-out"
    )
    external_token: str | None = Field(
        default=None, description="Provider id_token, kept for provider logout"
    )
    additional_claims: list[Claim] = Field(
        default_factory=list, description="Claims added to the local session"
    )
    created_at: int = Field(description="Creation timestamp")
    expires_at: int = Field(description="Session expiration timestamp")

    @classmethod
    def create(
        cls,
        session_id: str,
        subject_id: str,
        username: str,
        provider: str,
        additional_claims: list[Claim] | None = None,
        provider_session_id: str | None = None,
        external_token: str | None = None,
        session_max_age: int = 3600,
    ) -> "LocalSession":
        """Create a new local session with timestamps."""
        now = int(time.time())
        return cls(
            id=session_id,
            subject_id=subject_id,
            username=username,
            provider=provider,
            session_id=provider_session_id,
            external_token=external_token,
            additional_claims=additional_claims or [],
            created_at=now,
            expires_at=now + session_max_age,
        )

    def is_expired(self) -> bool:
        """Check if session is expired."""
        return time.time() > self.expires_at
