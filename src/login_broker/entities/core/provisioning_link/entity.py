"""Provisioning link domain entity."""

from pydantic import Field

from src.login_broker.entities.core._base import Entity


class ProvisioningLink(Entity):
    """Link from an external identity to the local user it was mapped onto.

    The ``(provider, external_subject_id)`` pair is unique and, once created,
    is never reassigned to another user.
    """

    provider: str = Field(description="Provider that authenticated this identity")
    external_subject_id: str = Field(description="Subject identifier issued by the provider")
    user_id: str = Field(description="Local subject identifier this identity maps to")

    @property
    def local_subject_id(self) -> str:
        return self.user_id
