"""Tests for the SQL identity store and its repositories."""

import asyncio
from collections.abc import Generator

import pytest
from sqlmodel import select

from src.login_broker.core.exceptions import ProvisioningConflict
from src.login_broker.core.models import ExternalAssertion
from src.login_broker.core.services import (
    AccountResolver,
    DbSessionService,
    SqlIdentityStore,
)
from src.login_broker.runtime.config.config_data import DatabaseConfig
from src.login_broker.core.types.claims import NAME_URI, Claim
from src.login_broker.entities import (
    LocalUser,
    ProvisioningLink,
    ProvisioningLinkRepository,
    ProvisioningLinkTable,
    UserRepository,
    UserTable,
)


class TestSqlIdentityStore:
    @pytest.mark.asyncio
    async def test_unknown_identity_is_not_found(self, sql_identity_store):
        assert await sql_identity_store.find_by_external_provider("github", "42") is None

    @pytest.mark.asyncio
    async def test_provisioning_writes_user_and_link(self, sql_identity_store, db_service):
        user = await sql_identity_store.auto_provision_user(
            "github", "42", [Claim(NAME_URI, "Alice"), Claim("email", "a@x.test")]
        )

        assert user.username == "Alice"
        assert Claim("name", "Alice") in user.claims

        found = await sql_identity_store.find_by_external_provider("github", "42")
        assert found == user

        with db_service.get_session() as session:
            links = ProvisioningLinkRepository(session).list_for_user(user.subject_id)
        assert [(l.provider, l.external_subject_id) for l in links] == [("github", "42")]

    @pytest.mark.asyncio
    async def test_duplicate_provisioning_conflicts_without_partial_rows(
        self, sql_identity_store, db_service
    ):
        await sql_identity_store.auto_provision_user("github", "42", [])

        with pytest.raises(ProvisioningConflict) as exc_info:
            await sql_identity_store.auto_provision_user("github", "42", [])

        assert exc_info.value.provider == "github"
        with db_service.get_session() as session:
            assert len(session.exec(select(UserTable)).all()) == 1
            assert len(session.exec(select(ProvisioningLinkTable)).all()) == 1

    @pytest.mark.asyncio
    async def test_same_subject_at_another_provider_is_separate(self, sql_identity_store):
        github_user = await sql_identity_store.auto_provision_user("github", "42", [])
        other_user = await sql_identity_store.auto_provision_user("keycloak", "42", [])

        assert github_user.subject_id != other_user.subject_id


class TestRepositories:
    def test_claims_keep_their_order(self, db_service):
        user = LocalUser(
            username="alice",
            claims=[Claim("role", "b"), Claim("role", "a"), Claim("email", "a@x.test")],
        )
        with db_service.session_scope() as session:
            UserRepository(session).create(user)

        with db_service.get_session() as session:
            loaded = UserRepository(session).get(user.id)

        assert loaded.claims == user.claims

    def test_list_users_respects_limit(self, db_service):
        with db_service.session_scope() as session:
            repo = UserRepository(session)
            for i in range(3):
                repo.create(LocalUser(username=f"user-{i}"))

        with db_service.get_session() as session:
            assert len(UserRepository(session).list_users(limit=2)) == 2

    def test_link_lookup_by_provider_subject(self, db_service):
        user = LocalUser(username="alice")
        with db_service.session_scope() as session:
            UserRepository(session).create(user)
            session.flush()
            ProvisioningLinkRepository(session).create(
                ProvisioningLink(provider="github", external_subject_id="42", user_id=user.id)
            )

        with db_service.get_session() as session:
            repo = ProvisioningLinkRepository(session)
            link = repo.get_by_provider_subject("github", "42")
            assert link.local_subject_id == user.id
            assert repo.get_by_provider_subject("github", "43") is None


class TestSqlConcurrentProvisioning:
    @pytest.fixture
    def file_db_service(self, tmp_path) -> Generator[DbSessionService]:
        service = DbSessionService(DatabaseConfig(url=f"sqlite:///{tmp_path / 'identity.db'}"))
        service.create_tables()
        try:
            yield service
        finally:
            service.close()

    @pytest.mark.asyncio
    async def test_simultaneous_callbacks_converge_on_one_user(self, file_db_service):
        resolver = AccountResolver(SqlIdentityStore(file_db_service))
        assertion = ExternalAssertion(
            provider="github", external_subject_id="42", claims=(Claim("name", "Alice"),)
        )

        users = await asyncio.gather(*(resolver.resolve(assertion) for _ in range(10)))

        assert len({user.subject_id for user in users}) == 1
        with file_db_service.get_session() as session:
            assert len(session.exec(select(UserTable)).all()) == 1
            links = session.exec(select(ProvisioningLinkTable)).all()
        assert [(l.provider, l.external_subject_id, l.user_id) for l in links] == [
            ("github", "42", users[0].subject_id)
        ]
