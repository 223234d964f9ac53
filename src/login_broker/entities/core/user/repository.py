"""Local user repository."""

from sqlmodel import Session, select

from src.login_broker.entities.core.user.entity import LocalUser
from src.login_broker.entities.core.user.table import UserTable


class UserRepository:
    """Data-access layer for local users."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, user_id: str) -> LocalUser | None:
        row = self._session.get(UserTable, user_id)
        if row is None:
            return None
        return LocalUser.model_validate(row, from_attributes=True)

    def list_users(self, limit: int = 100) -> list[LocalUser]:
        statement = select(UserTable).order_by(UserTable.created_at).limit(limit)
        return [
            LocalUser.model_validate(row, from_attributes=True)
            for row in self._session.exec(statement)
        ]

    def create(self, user: LocalUser) -> LocalUser:
        """Stage a new user row. The caller owns the transaction."""
        row = UserTable(
            id=user.id,
            username=user.username,
            claims=[[claim.type, claim.value] for claim in user.claims],
            created_at=user.created_at,
            updated_at=user.updated_at,
        )
        self._session.add(row)
        return user
