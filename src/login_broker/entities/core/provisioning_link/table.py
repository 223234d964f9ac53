"""Provisioning link database table model."""

from sqlalchemy import Column, String, UniqueConstraint
from sqlmodel import Field

from src.login_broker.entities.core._base import EntityTable


class ProvisioningLinkTable(EntityTable, table=True):
    """Database persistence model for provisioning links.

    The unique constraint on ``(provider, external_subject_id)`` is what makes
    concurrent auto-provisioning of the same external identity safe.
    """

    __table_args__ = (
        UniqueConstraint(
            "provider", "external_subject_id", name="uq_link_provider_subject"
        ),
    )

    provider: str = Field(sa_column=Column(String(128), nullable=False, index=True))
    external_subject_id: str = Field(
        sa_column=Column(String(512), nullable=False, index=True)
    )
    user_id: str = Field(foreign_key="usertable.id", index=True)
