"""Models exchanged between the external login components."""

from pydantic import BaseModel, ConfigDict, Field

from src.login_broker.core.models.session import ChallengeState, LocalSession
from src.login_broker.core.types.claims import Claim


class RawAuthResult(BaseModel):
    """Result of the provider round-trip, before any interpretation.

    ``state`` is None when the challenge state could not be recovered
    (missing, tampered, expired or already consumed).
    """

    succeeded: bool
    state: ChallengeState | None = None
    claims: list[Claim] = Field(default_factory=list)
    tokens: dict[str, str] = Field(default_factory=dict)
    failure: str | None = None

    @classmethod
    def failed(
        cls, reason: str, state: ChallengeState | None = None
    ) -> "RawAuthResult":
        return cls(succeeded=False, state=state, failure=reason)

    def get_token_value(self, name: str) -> str | None:
        return self.tokens.get(name) or None


class ExternalAssertion(BaseModel):
    """Canonical view of one external authentication event."""

    model_config = ConfigDict(frozen=True)

    provider: str = Field(min_length=1)
    external_subject_id: str = Field(min_length=1)
    claims: tuple[Claim, ...] = ()
    session_id: str | None = None
    external_token: str | None = None


class SessionLink(BaseModel):
    """Everything the local session store needs to sign a user in."""

    model_config = ConfigDict(frozen=True)

    subject_id: str
    username: str
    provider: str
    additional_claims: tuple[Claim, ...] = ()
    retained_token: str | None = None


class RedirectInstruction(BaseModel):
    """A redirect decision, turned into an HTTP response by the router."""

    location: str
    challenge_marker: str | None = Field(
        default=None, description="Marker to store in the challenge cookie"
    )
    session: LocalSession | None = Field(
        default=None, description="Local session to store in the session cookie"
    )
    clear_challenge_marker: bool = False
