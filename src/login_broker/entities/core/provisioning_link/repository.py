"""Provisioning link repository."""

from sqlmodel import Session, select

from src.login_broker.entities.core.provisioning_link.entity import ProvisioningLink
from src.login_broker.entities.core.provisioning_link.table import ProvisioningLinkTable


class ProvisioningLinkRepository:
    """Data-access layer for provisioning links."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_provider_subject(
        self, provider: str, external_subject_id: str
    ) -> ProvisioningLink | None:
        statement = select(ProvisioningLinkTable).where(
            (ProvisioningLinkTable.provider == provider)
            & (ProvisioningLinkTable.external_subject_id == external_subject_id)
        )
        row = self._session.exec(statement).first()
        if row is None:
            return None
        return ProvisioningLink.model_validate(row, from_attributes=True)

    def list_for_user(self, user_id: str) -> list[ProvisioningLink]:
        statement = select(ProvisioningLinkTable).where(
            ProvisioningLinkTable.user_id == user_id
        )
        return [
            ProvisioningLink.model_validate(row, from_attributes=True)
            for row in self._session.exec(statement)
        ]

    def create(self, link: ProvisioningLink) -> ProvisioningLink:
        """Stage a new link row. The caller owns the transaction."""
        self._session.add(ProvisioningLinkTable(**link.model_dump()))
        return link
