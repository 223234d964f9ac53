"""Claim representation and claim-type vocabulary.

Claims are kept as an ordered sequence of ``(type, value)`` pairs. Providers
may repeat a claim type, so lookups return the first match in order.
"""

from collections.abc import Iterable, Sequence
from typing import NamedTuple


class Claim(NamedTuple):
    """A single typed claim about an identity."""

    type: str
    value: str


# Short (JWT) claim types
SUBJECT = "sub"
SESSION_ID = "sid"
NAME = "name"
GIVEN_NAME = "given_name"
FAMILY_NAME = "family_name"
EMAIL = "email"
ROLE = "role"

# Long-form claim types emitted by WS-Federation/SAML style providers
_XMLSOAP = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims"
NAME_IDENTIFIER = f"{_XMLSOAP}/nameidentifier"
NAME_URI = f"{_XMLSOAP}/name"

INBOUND_CLAIM_TYPE_MAP: dict[str, str] = {
    NAME_URI: NAME,
    f"{_XMLSOAP}/givenname": GIVEN_NAME,
    f"{_XMLSOAP}/surname": FAMILY_NAME,
    f"{_XMLSOAP}/emailaddress": EMAIL,
    "http://schemas.microsoft.com/ws/2008/06/identity/claims/role": ROLE,
}

# Subject claim types, in priority order
SUBJECT_CLAIM_TYPES: tuple[str, ...] = (SUBJECT, NAME_IDENTIFIER)


def find_claim(claims: Sequence[Claim], claim_type: str) -> Claim | None:
    """Return the first claim of ``claim_type``, or None."""
    for claim in claims:
        if claim.type == claim_type:
            return claim
    return None


def find_claim_value(claims: Sequence[Claim], claim_type: str) -> str | None:
    claim = find_claim(claims, claim_type)
    return claim.value if claim else None


def remove_claim(claims: Sequence[Claim], target: Claim) -> list[Claim]:
    """Return a copy of ``claims`` with the first occurrence of ``target`` removed."""
    remaining = list(claims)
    remaining.remove(target)
    return remaining


def claims_from_mapping(data: dict) -> list[Claim]:
    """Flatten a JSON claim document (userinfo, id_token payload) into claims.

    List values become one claim per element; nested objects are skipped.
    """
    claims: list[Claim] = []
    for claim_type, value in data.items():
        if isinstance(value, list):
            claims.extend(
                Claim(claim_type, _stringify(item))
                for item in value
                if not isinstance(item, (dict, list))
            )
        elif value is not None and not isinstance(value, dict):
            claims.append(Claim(claim_type, _stringify(value)))
    return claims


def _stringify(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def normalize_claim_types(claims: Iterable[Claim]) -> list[Claim]:
    """Map long-form inbound claim types onto their short names."""
    return [
        Claim(INBOUND_CLAIM_TYPE_MAP.get(claim.type, claim.type), claim.value)
        for claim in claims
    ]


def ensure_name_claim(claims: list[Claim]) -> list[Claim]:
    """Add a ``name`` claim built from given/family name when none exists."""
    if find_claim(claims, NAME):
        return claims

    first = find_claim_value(claims, GIVEN_NAME)
    last = find_claim_value(claims, FAMILY_NAME)
    if first and last:
        return [*claims, Claim(NAME, f"{first} {last}")]
    if first or last:
        return [*claims, Claim(NAME, first or last)]
    return claims
