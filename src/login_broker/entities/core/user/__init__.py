"""Local user entity module.

- LocalUser: Domain entity for a local account
- UserTable: Database persistence model
- UserRepository: Data access layer
"""

from .entity import LocalUser
from .repository import UserRepository
from .table import UserTable

__all__ = ["LocalUser", "UserRepository", "UserTable"]
