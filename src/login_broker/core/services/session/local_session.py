"""Local session sign-in and sign-out."""

from loguru import logger

from src.login_broker.core.models.external import SessionLink
from src.login_broker.core.models.session import LocalSession
from src.login_broker.core.security import generate_secure_token
from src.login_broker.core.storage.session_storage import SessionStorage
from src.login_broker.core.types.claims import SESSION_ID


class LocalSessionService:
    """Creates and retires local sessions in session storage."""

    def __init__(self, session_storage: SessionStorage, session_max_age: int = 3600):
        self._storage = session_storage
        self._max_age = session_max_age

    @staticmethod
    def _key(session_id: str) -> str:
        return f"local:{session_id}"

    async def sign_in(self, link: SessionLink) -> LocalSession:
        """Establish a local session for a resolved user.

        Args:
            link: Subject, username, provider and claims to sign in with

        Returns:
            The stored local session
        """
        session = LocalSession.create(
            session_id=generate_secure_token(32),
            subject_id=link.subject_id,
            username=link.username,
            provider=link.provider,
            additional_claims=list(link.additional_claims),
            provider_session_id=next(
                (c.value for c in link.additional_claims if c.type == SESSION_ID), None
            ),
            external_token=link.retained_token,
            session_max_age=self._max_age,
        )
        await self._storage.set(self._key(session.id), session, self._max_age)
        logger.bind(subject_id=session.subject_id, provider=session.provider).info(
            "Local session established"
        )
        return session

    async def get(self, session_id: str | None) -> LocalSession | None:
        if not session_id:
            return None
        session = await self._storage.get(self._key(session_id), LocalSession)
        if session is None or session.is_expired():
            return None
        return session

    async def sign_out(self, session_id: str | None) -> LocalSession | None:
        """Delete a local session, returning it if it existed."""
        if not session_id:
            return None
        session = await self._storage.pop(self._key(session_id), LocalSession)
        if session is not None:
            logger.bind(subject_id=session.subject_id).info("Local session ended")
        return session
