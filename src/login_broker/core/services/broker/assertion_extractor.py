"""Normalization of raw provider results into external assertions."""

from src.login_broker.core.exceptions import (
    ExternalAuthFailed,
    MissingSubjectIdentifier,
)
from src.login_broker.core.models.external import ExternalAssertion, RawAuthResult
from src.login_broker.core.types.claims import (
    SESSION_ID,
    SUBJECT_CLAIM_TYPES,
    Claim,
    find_claim_value,
    remove_claim,
)


def _find_subject_claim(claims: list[Claim]) -> Claim | None:
    # sub wins over nameidentifier; the first non-empty claim of a type counts
    for claim_type in SUBJECT_CLAIM_TYPES:
        for claim in claims:
            if claim.type == claim_type and claim.value.strip():
                return claim
    return None


class AssertionExtractor:
    """Builds an ``ExternalAssertion`` from a successful raw result.

    The provider name comes from the challenge state the result carries,
    never from the claims the provider sent.
    """

    def extract(self, raw_result: RawAuthResult) -> ExternalAssertion:
        if raw_result.state is None:
            raise ExternalAuthFailed("No challenge state for external result")

        subject_claim = _find_subject_claim(raw_result.claims)
        if subject_claim is None:
            raise MissingSubjectIdentifier("Unknown userid")

        claims = remove_claim(raw_result.claims, subject_claim)

        return ExternalAssertion(
            provider=raw_result.state.provider,
            external_subject_id=subject_claim.value,
            claims=tuple(claims),
            session_id=find_claim_value(claims, SESSION_ID),
            external_token=raw_result.get_token_value("id_token"),
        )
