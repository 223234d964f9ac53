"""Identity store interface and implementations.

The identity store owns local users and the provisioning links that map
external identities onto them. Link creation must be atomic per
``(provider, external_subject_id)``: a second creation for the same pair
raises ``ProvisioningConflict`` and writes nothing.
"""

from __future__ import annotations

import threading
import uuid
from abc import ABC, abstractmethod
from collections.abc import Sequence

from fastapi.concurrency import run_in_threadpool
from loguru import logger
from sqlalchemy.exc import IntegrityError

from src.login_broker.core.exceptions import ProvisioningConflict
from src.login_broker.core.services.database import DbSessionService
from src.login_broker.core.types.claims import (
    NAME,
    Claim,
    ensure_name_claim,
    find_claim_value,
    normalize_claim_types,
)
from src.login_broker.entities import (
    LocalUser,
    ProvisioningLink,
    ProvisioningLinkRepository,
    UserRepository,
)


def build_provisioned_user(claims: Sequence[Claim]) -> LocalUser:
    """Build a new local user from the claims of an external identity.

    Long-form claim types are mapped to short names and a ``name`` claim is
    derived from given/family name when missing. The username is the name
    claim, or the new subject id when there is none.
    """
    filtered = ensure_name_claim(normalize_claim_types(claims))
    subject_id = str(uuid.uuid4())
    return LocalUser(
        id=subject_id,
        username=find_claim_value(filtered, NAME) or subject_id,
        claims=filtered,
    )


class IdentityStore(ABC):
    """Abstract interface for local user lookup and auto-provisioning."""

    @abstractmethod
    async def find_by_external_provider(
        self, provider: str, external_subject_id: str
    ) -> LocalUser | None:
        """Find the local user linked to an external identity.

        Args:
            provider: Provider name chosen at challenge time
            external_subject_id: Subject identifier issued by the provider

        Returns:
            The linked user, or None if the identity was never provisioned
        """

    @abstractmethod
    async def auto_provision_user(
        self, provider: str, external_subject_id: str, claims: Sequence[Claim]
    ) -> LocalUser:
        """Create a local user and its provisioning link.

        Args:
            provider: Provider name chosen at challenge time
            external_subject_id: Subject identifier issued by the provider
            claims: Remaining (non-subject) claims of the external identity

        Returns:
            The newly created user

        Raises:
            ProvisioningConflict: If a link for the pair already exists
        """


class SqlIdentityStore(IdentityStore):
    """Identity store backed by the application database.

    The unique constraint on the link table arbitrates concurrent creations;
    user and link rows are committed in one transaction.
    """

    def __init__(self, db_service: DbSessionService) -> None:
        self._db = db_service

    async def find_by_external_provider(
        self, provider: str, external_subject_id: str
    ) -> LocalUser | None:
        return await run_in_threadpool(self._find, provider, external_subject_id)

    async def auto_provision_user(
        self, provider: str, external_subject_id: str, claims: Sequence[Claim]
    ) -> LocalUser:
        return await run_in_threadpool(
            self._provision, provider, external_subject_id, list(claims)
        )

    def _find(self, provider: str, external_subject_id: str) -> LocalUser | None:
        with self._db.get_session() as session:
            link = ProvisioningLinkRepository(session).get_by_provider_subject(
                provider, external_subject_id
            )
            if link is None:
                return None

            user = UserRepository(session).get(link.user_id)
            if user is None:
                raise LookupError("Provisioning link exists but user not found")
            return user

    def _provision(
        self, provider: str, external_subject_id: str, claims: list[Claim]
    ) -> LocalUser:
        user = build_provisioned_user(claims)
        link = ProvisioningLink(
            provider=provider,
            external_subject_id=external_subject_id,
            user_id=user.id,
        )

        try:
            with self._db.session_scope() as session:
                UserRepository(session).create(user)
                # Flush the user first so the link's foreign key is satisfied
                session.flush()
                ProvisioningLinkRepository(session).create(link)
        except IntegrityError as e:
            raise ProvisioningConflict(provider, external_subject_id) from e

        logger.bind(provider=provider, subject_id=user.id).info(
            "Provisioned local user for external identity"
        )
        return user


class InMemoryIdentityStore(IdentityStore):
    """Process-local identity store for development and tests.

    Must be selected explicitly in configuration.
    """

    def __init__(self, users: Sequence[LocalUser] = ()) -> None:
        self._lock = threading.Lock()
        self._users: dict[str, LocalUser] = {user.id: user for user in users}
        self._links: dict[tuple[str, str], ProvisioningLink] = {}

    def link_existing_user(
        self, user_id: str, provider: str, external_subject_id: str
    ) -> ProvisioningLink:
        """Link a pre-existing local user to an external identity."""
        with self._lock:
            if user_id not in self._users:
                raise KeyError(user_id)
            key = (provider, external_subject_id)
            if key in self._links:
                raise ProvisioningConflict(provider, external_subject_id)
            link = ProvisioningLink(
                provider=provider, external_subject_id=external_subject_id, user_id=user_id
            )
            self._links[key] = link
            return link

    @property
    def users(self) -> list[LocalUser]:
        with self._lock:
            return list(self._users.values())

    @property
    def links(self) -> list[ProvisioningLink]:
        with self._lock:
            return list(self._links.values())

    async def find_by_external_provider(
        self, provider: str, external_subject_id: str
    ) -> LocalUser | None:
        with self._lock:
            link = self._links.get((provider, external_subject_id))
            if link is None:
                return None
            return self._users[link.user_id]

    async def auto_provision_user(
        self, provider: str, external_subject_id: str, claims: Sequence[Claim]
    ) -> LocalUser:
        user = build_provisioned_user(claims)
        key = (provider, external_subject_id)

        with self._lock:
            if key in self._links:
                raise ProvisioningConflict(provider, external_subject_id)
            self._users[user.id] = user
            self._links[key] = ProvisioningLink(
                provider=provider, external_subject_id=external_subject_id, user_id=user.id
            )

        return user
