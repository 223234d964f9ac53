"""Entities organized by business concept.

Each entity has its own package containing:
- entity.py: Domain model
- table.py: Database persistence model
- repository.py: Data access layer
"""

from .core.provisioning_link import (
    ProvisioningLink,
    ProvisioningLinkRepository,
    ProvisioningLinkTable,
)
from .core.user import LocalUser, UserRepository, UserTable

__all__ = [
    "LocalUser",
    "UserTable",
    "UserRepository",
    "ProvisioningLink",
    "ProvisioningLinkTable",
    "ProvisioningLinkRepository",
]
