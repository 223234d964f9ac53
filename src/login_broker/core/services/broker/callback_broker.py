"""Orchestration of the external login challenge and callback."""

from enum import Enum

from loguru import logger

from src.login_broker.core.exceptions import ExternalAuthFailed, UnknownProvider
from src.login_broker.core.models.external import (
    ExternalAssertion,
    RawAuthResult,
    RedirectInstruction,
)
from src.login_broker.core.models.session import ChallengeState
from src.login_broker.core.security import generate_pkce_pair
from src.login_broker.core.services.broker.account_resolver import AccountResolver
from src.login_broker.core.services.broker.assertion_extractor import (
    AssertionExtractor,
)
from src.login_broker.core.services.broker.redirect_guardian import RedirectGuardian
from src.login_broker.core.services.broker.session_linker import SessionLinker
from src.login_broker.core.services.events.event_sink import EventSink
from src.login_broker.core.services.provider_gateway import ExternalAuthenticator
from src.login_broker.core.services.session.challenge_state import (
    ChallengeStateService,
)
from src.login_broker.core.services.session.local_session import LocalSessionService
from src.login_broker.entities.core.user import LocalUser


class CallbackStage(str, Enum):
    """Stages of a single callback."""

    START = "start"
    ASSERTION_EXTRACTED = "assertion_extracted"
    USER_RESOLVED = "user_resolved"
    SESSION_LINKED = "session_linked"
    REDIRECT_DECIDED = "redirect_decided"
    DONE = "done"
    FAILED = "failed"


_STAGE_ORDER = [
    CallbackStage.START,
    CallbackStage.ASSERTION_EXTRACTED,
    CallbackStage.USER_RESOLVED,
    CallbackStage.SESSION_LINKED,
    CallbackStage.REDIRECT_DECIDED,
    CallbackStage.DONE,
]


class CallbackProgress:
    """Forward-only progress through the callback stages.

    Each stage must follow its predecessor directly. FAILED is reachable from
    any non-terminal stage and is terminal.
    """

    def __init__(self) -> None:
        self.stage = CallbackStage.START

    @property
    def finished(self) -> bool:
        return self.stage in (CallbackStage.DONE, CallbackStage.FAILED)

    def advance(self, stage: CallbackStage) -> None:
        if self.finished or stage is CallbackStage.FAILED:
            raise RuntimeError(f"Illegal callback transition {self.stage.value} -> {stage.value}")

        expected = _STAGE_ORDER[_STAGE_ORDER.index(self.stage) + 1]
        if stage is not expected:
            raise RuntimeError(f"Illegal callback transition {self.stage.value} -> {stage.value}")

        logger.debug(f"Callback {self.stage.value} -> {stage.value}")
        self.stage = stage

    def fail(self, reason: str) -> None:
        if self.finished:
            raise RuntimeError(f"Callback already {self.stage.value}")
        logger.info(f"Callback failed at {self.stage.value}: {reason}")
        self.stage = CallbackStage.FAILED


class CallbackBroker:
    """Drives the two-step external login.

    ``begin_challenge`` sends the browser to the provider; ``complete_callback``
    turns the provider's answer into a local session and a safe redirect.
    """

    def __init__(
        self,
        authenticator: ExternalAuthenticator,
        challenge_service: ChallengeStateService,
        account_resolver: AccountResolver,
        local_sessions: LocalSessionService,
        redirect_guardian: RedirectGuardian,
        event_sink: EventSink,
        assertion_extractor: AssertionExtractor | None = None,
        session_linker: SessionLinker | None = None,
        challenge_ttl_seconds: int = 600,
    ) -> None:
        self._authenticator = authenticator
        self._challenges = challenge_service
        self._resolver = account_resolver
        self._local_sessions = local_sessions
        self._guardian = redirect_guardian
        self._event_sink = event_sink
        self._extractor = assertion_extractor or AssertionExtractor()
        self._linker = session_linker or SessionLinker()
        self._challenge_ttl = challenge_ttl_seconds

    async def begin_challenge(
        self, provider: str, return_url: str | None
    ) -> RedirectInstruction:
        """Start an external login at ``provider``.

        The return URL is stored server-side unvalidated and never sent to the
        provider.

        Raises:
            UnknownProvider: If the provider is not configured or disabled
        """
        if not self._authenticator.is_enabled(provider):
            raise UnknownProvider(provider)

        code_verifier, code_challenge = generate_pkce_pair()
        state = ChallengeState.create(
            provider,
            return_url,
            ttl_seconds=self._challenge_ttl,
            code_verifier=code_verifier,
        )
        handle, marker = await self._challenges.issue(state)
        location = self._authenticator.build_authorization_url(
            provider, handle, code_challenge
        )

        logger.bind(provider=provider).info("External challenge issued")
        return RedirectInstruction(location=location, challenge_marker=marker)

    async def handle_callback(
        self,
        marker: str | None,
        state: str | None,
        code: str | None,
        error: str | None,
    ) -> RedirectInstruction:
        """Authenticate a provider callback and complete the login."""
        raw_result = await self._authenticator.authenticate(marker, state, code, error)
        return await self.complete_callback(raw_result)

    async def complete_callback(self, raw_result: RawAuthResult) -> RedirectInstruction:
        """Sign in the user behind a raw authentication result.

        Raises:
            ExternalAuthFailed: If the result failed, carries no challenge
                state, or has no usable subject identifier
        """
        progress = CallbackProgress()
        try:
            if not raw_result.succeeded or raw_result.state is None:
                raise ExternalAuthFailed(
                    raw_result.failure or "External authentication error"
                )

            assertion = self._extractor.extract(raw_result)
            progress.advance(CallbackStage.ASSERTION_EXTRACTED)

            user = await self._resolver.resolve(assertion)
            progress.advance(CallbackStage.USER_RESOLVED)

            link = self._linker.link(user, assertion)
            session = await self._local_sessions.sign_in(link)
            progress.advance(CallbackStage.SESSION_LINKED)

            location = self._guardian.decide(raw_result.state.return_url)
            progress.advance(CallbackStage.REDIRECT_DECIDED)
        except Exception as e:
            progress.fail(type(e).__name__)
            raise

        await self._record_login_success(assertion, user)
        progress.advance(CallbackStage.DONE)

        return RedirectInstruction(
            location=location, session=session, clear_challenge_marker=True
        )

    async def _record_login_success(
        self, assertion: ExternalAssertion, user: LocalUser
    ) -> None:
        # Event delivery never fails a login
        try:
            await self._event_sink.record_login_success(
                assertion.provider,
                assertion.external_subject_id,
                user.subject_id,
                user.username,
            )
        except Exception:
            logger.exception("Failed to record login success event")
