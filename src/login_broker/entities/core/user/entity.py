"""Local user domain entity."""

from typing import Any

from pydantic import Field

from src.login_broker.core.types.claims import Claim
from src.login_broker.entities.core._base import Entity


class LocalUser(Entity):
    """A local account that external identities are mapped onto.

    The inherited ``id`` is the stable, opaque subject identifier. Users are
    created by auto-provisioning or seeded ahead of time, and never mutated
    by the login flow.
    """

    username: str = Field(description="Display/login name")
    claims: list[Claim] = Field(
        default_factory=list, description="Claims copied from the external identity"
    )

    @property
    def subject_id(self) -> str:
        return self.id

    def __eq__(self, other: Any) -> bool:
        """Compare users by business attributes, ignoring timestamps."""
        if not isinstance(other, LocalUser):
            return False

        return (
            self.id == other.id
            and self.username == other.username
            and self.claims == other.claims
        )

    def __hash__(self) -> int:
        """Hash based on business attributes, ignoring timestamps."""
        return hash((self.id, self.username, tuple(self.claims)))
