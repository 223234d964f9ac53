"""Mapping of external identities onto local users."""

from loguru import logger

from src.login_broker.core.exceptions import ExternalAuthFailed, ProvisioningConflict
from src.login_broker.core.models.external import ExternalAssertion
from src.login_broker.core.services.identity.identity_store import IdentityStore
from src.login_broker.entities.core.user import LocalUser


class AccountResolver:
    """Find-or-provision the local user for an external assertion."""

    def __init__(self, identity_store: IdentityStore) -> None:
        self._store = identity_store

    async def resolve(self, assertion: ExternalAssertion) -> LocalUser:
        """Return the user linked to the assertion, provisioning one if needed.

        Concurrent callbacks for the same external identity all resolve to
        the single user whose provisioning link was written first.

        Raises:
            ExternalAuthFailed: If a provisioning conflict cannot be resolved
        """
        user = await self._store.find_by_external_provider(
            assertion.provider, assertion.external_subject_id
        )
        if user is not None:
            return user

        try:
            return await self._store.auto_provision_user(
                assertion.provider,
                assertion.external_subject_id,
                list(assertion.claims),
            )
        except ProvisioningConflict as e:
            logger.bind(provider=assertion.provider).info(
                "Provisioning raced with a concurrent callback, re-reading link"
            )
            user = await self._store.find_by_external_provider(
                assertion.provider, assertion.external_subject_id
            )
            if user is None:
                raise ExternalAuthFailed(
                    "Provisioning link conflict could not be resolved"
                ) from e
            return user
