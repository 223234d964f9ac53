"""Local user database table model."""

from sqlalchemy import JSON, Column, String
from sqlmodel import Field

from src.login_broker.entities.core._base import EntityTable


class UserTable(EntityTable, table=True):
    """Database persistence model for local users.

    Claims are stored as a JSON array of ``[type, value]`` pairs so their
    order survives the round-trip.
    """

    username: str = Field(sa_column=Column(String(256), nullable=False, index=True))
    claims: list[list[str]] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
