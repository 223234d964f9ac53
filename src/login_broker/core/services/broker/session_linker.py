"""Derivation of local session claims from an external login."""

from src.login_broker.core.models.external import ExternalAssertion, SessionLink
from src.login_broker.core.types.claims import SESSION_ID, Claim
from src.login_broker.entities.core.user import LocalUser


class SessionLinker:
    def link(self, user: LocalUser, assertion: ExternalAssertion) -> SessionLink:
        """Build the sign-in data for ``user``.

        Propagates the provider session id as a ``sid`` claim for single
        sign-out and retains the provider id_token for logout.

        Raises:
            ValueError: If the user has no subject id
        """
        if not user.subject_id:
            raise ValueError("Resolved user has no subject id")

        additional_claims: list[Claim] = []
        if assertion.session_id:
            additional_claims.append(Claim(SESSION_ID, assertion.session_id))

        return SessionLink(
            subject_id=user.subject_id,
            username=user.username,
            provider=assertion.provider,
            additional_claims=tuple(additional_claims),
            retained_token=assertion.external_token,
        )
