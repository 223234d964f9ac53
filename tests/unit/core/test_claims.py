"""Unit tests for claim helpers."""

from src.login_broker.core.types.claims import (
    EMAIL,
    FAMILY_NAME,
    GIVEN_NAME,
    NAME,
    NAME_URI,
    Claim,
    claims_from_mapping,
    ensure_name_claim,
    find_claim,
    find_claim_value,
    normalize_claim_types,
    remove_claim,
)


class TestClaimLookup:
    def test_find_claim_returns_first_match_in_order(self):
        claims = [Claim("role", "admin"), Claim("role", "user")]

        assert find_claim(claims, "role") == Claim("role", "admin")
        assert find_claim_value(claims, "missing") is None

    def test_remove_claim_removes_only_first_occurrence(self):
        claims = [Claim("role", "admin"), Claim("sub", "1"), Claim("role", "admin")]

        remaining = remove_claim(claims, Claim("role", "admin"))

        assert remaining == [Claim("sub", "1"), Claim("role", "admin")]
        # Original sequence untouched
        assert len(claims) == 3


class TestClaimsFromMapping:
    def test_flattens_lists_and_skips_nested_objects(self):
        claims = claims_from_mapping(
            {
                "sub": "42",
                "groups": ["a", "b"],
                "address": {"street": "Main"},
                "email_verified": True,
                "picture": None,
                "id": 7,
            }
        )

        assert claims == [
            Claim("sub", "42"),
            Claim("groups", "a"),
            Claim("groups", "b"),
            Claim("email_verified", "true"),
            Claim("id", "7"),
        ]


class TestProvisioningClaimFilters:
    def test_long_form_claim_types_are_mapped_to_short_names(self):
        claims = normalize_claim_types(
            [
                Claim(NAME_URI, "Alice"),
                Claim("http://schemas.xmlsoap.org/ws/2005/05/identity/claims/emailaddress", "a@x.test"),
                Claim("custom", "kept"),
            ]
        )

        assert claims == [Claim(NAME, "Alice"), Claim(EMAIL, "a@x.test"), Claim("custom", "kept")]

    def test_name_is_derived_from_given_and_family_name(self):
        claims = ensure_name_claim([Claim(GIVEN_NAME, "Alice"), Claim(FAMILY_NAME, "Smith")])
        assert find_claim_value(claims, NAME) == "Alice Smith"

    def test_name_falls_back_to_single_part(self):
        claims = ensure_name_claim([Claim(FAMILY_NAME, "Smith")])
        assert find_claim_value(claims, NAME) == "Smith"

    def test_existing_name_is_kept(self):
        claims = [Claim(NAME, "Ally"), Claim(GIVEN_NAME, "Alice")]
        assert ensure_name_claim(claims) == claims

    def test_no_name_parts_adds_nothing(self):
        assert ensure_name_claim([Claim(EMAIL, "a@x.test")]) == [Claim(EMAIL, "a@x.test")]
