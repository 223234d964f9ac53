"""Provisioning link entity module.

- ProvisioningLink: Domain entity linking an external identity to a local user
- ProvisioningLinkTable: Database persistence model
- ProvisioningLinkRepository: Data access layer
"""

from .entity import ProvisioningLink
from .repository import ProvisioningLinkRepository
from .table import ProvisioningLinkTable

__all__ = ["ProvisioningLink", "ProvisioningLinkRepository", "ProvisioningLinkTable"]
