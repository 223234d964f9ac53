"""Challenge state issuing and single-use consumption."""

import hmac
import time

from authlib.jose import JoseError, JsonWebToken
from loguru import logger

from src.login_broker.core.models.session import ChallengeState
from src.login_broker.core.security import generate_secure_token
from src.login_broker.core.storage.session_storage import SessionStorage
from src.login_broker.runtime.config.config_data import BrokerConfig


class ChallengeStateService:
    """Keeps ``ChallengeState`` server-side between challenge and callback.

    The provider only sees an opaque random handle (sent as OAuth ``state``).
    The browser holds a signed, time-bounded marker naming the same handle, so
    a callback is accepted only from the browser that started the challenge.
    """

    def __init__(
        self,
        session_storage: SessionStorage,
        config: BrokerConfig,
        signing_secret: str,
    ) -> None:
        self._storage = session_storage
        self._config = config
        self._secret = signing_secret
        self._jwt = JsonWebToken([config.marker_algorithm])

    @staticmethod
    def _key(handle: str) -> str:
        return f"challenge:{handle}"

    async def issue(self, state: ChallengeState) -> tuple[str, str]:
        """Store challenge state and create its handle and marker.

        Args:
            state: Challenge state to carry across the provider round-trip

        Returns:
            Tuple of (handle, marker)
        """
        handle = generate_secure_token(32)
        ttl = max(1, state.expires_at - int(time.time()))
        await self._storage.set(self._key(handle), state, ttl)

        header = {"alg": self._config.marker_algorithm, "typ": "JWT"}
        payload = {
            "sub": handle,
            "prv": state.provider,
            "iat": state.created_at,
            "exp": state.expires_at,
        }
        marker = self._jwt.encode(header, payload, self._secret)
        return handle, marker.decode() if isinstance(marker, bytes) else marker

    async def consume(
        self, marker: str | None, returned_state: str | None
    ) -> ChallengeState | None:
        """Recover and retire the challenge state for a callback.

        Args:
            marker: Signed marker from the challenge cookie
            returned_state: OAuth ``state`` echoed back by the provider

        Returns:
            The challenge state, or None if the marker is missing, tampered or
            expired, the state does not match, or it was already consumed
        """
        if not marker:
            logger.info("Callback without challenge marker")
            return None

        try:
            claims = self._jwt.decode(marker, self._secret)
            claims.validate(now=int(time.time()))
        except JoseError as e:
            logger.info(f"Rejected challenge marker: {type(e).__name__}")
            return None
        except ValueError:
            logger.info("Rejected malformed challenge marker")
            return None

        handle = claims.get("sub")
        if not isinstance(handle, str) or not handle:
            return None

        # Single use: whoever pops first wins, every later attempt sees None
        state = await self._storage.pop(self._key(handle), ChallengeState)

        if not returned_state or not hmac.compare_digest(handle, returned_state):
            logger.info("Callback state does not match challenge marker")
            return None

        if state is None:
            logger.info("Challenge state missing, expired or already consumed")
            return None

        if state.is_expired() or state.provider != claims.get("prv"):
            return None

        return state

    async def purge_expired(self) -> None:
        """Cleanup expired challenge state from storage."""
        await self._storage.cleanup_expired()


def resolve_marker_secret(config: BrokerConfig, environment: str) -> str:
    """Return the configured marker signing secret.

    Outside production a random per-process secret is generated when none is
    configured, which invalidates pending challenges on restart.

    Raises:
        RuntimeError: If no secret is configured in production
    """
    if config.marker_signing_secret:
        return config.marker_signing_secret

    if environment == "production":
        raise RuntimeError(
            "broker.marker_signing_secret must be configured in production"
        )

    logger.warning(
        "No challenge marker signing secret configured, using a random per-process secret"
    )
    return generate_secure_token(32)
