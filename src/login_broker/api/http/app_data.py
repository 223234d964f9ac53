from dataclasses import dataclass

import httpx

from src.login_broker.core.services import (
    AccountResolver,
    AuthorizeInteractionValidator,
    CallbackBroker,
    ChallengeStateService,
    DbSessionService,
    EventSink,
    ExternalAuthenticator,
    IdentityStore,
    InMemoryIdentityStore,
    LocalSessionService,
    LoggingEventSink,
    OidcProviderGateway,
    RedirectGuardian,
    SqlIdentityStore,
)
from src.login_broker.core.services.session import resolve_marker_secret
from src.login_broker.core.storage import SessionStorage
from src.login_broker.runtime.config.config_data import ConfigData


@dataclass
class ApplicationDependencies:
    session_storage: SessionStorage
    challenge_service: ChallengeStateService
    local_session_service: LocalSessionService
    identity_store: IdentityStore
    event_sink: EventSink
    authenticator: ExternalAuthenticator
    callback_broker: CallbackBroker
    database_service: DbSessionService | None = None


def create_application_dependencies(
    config: ConfigData,
    session_storage: SessionStorage,
    identity_store: IdentityStore | None = None,
    event_sink: EventSink | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ApplicationDependencies:
    """Wire the broker and its collaborators from configuration.

    The identity store backend is chosen by ``broker.identity_store`` unless
    one is passed in.
    """
    database_service = None
    if identity_store is None:
        if config.broker.identity_store == "sql":
            database_service = DbSessionService(config.database)
            identity_store = SqlIdentityStore(database_service)
        else:
            identity_store = InMemoryIdentityStore()

    event_sink = event_sink or LoggingEventSink()

    challenge_service = ChallengeStateService(
        session_storage,
        config.broker,
        resolve_marker_secret(config.broker, config.app.environment),
    )
    local_session_service = LocalSessionService(
        session_storage, config.app.session_max_age
    )
    authenticator = OidcProviderGateway(
        config.providers, challenge_service, transport=transport
    )
    redirect_guardian = RedirectGuardian(
        AuthorizeInteractionValidator(config.interaction, config.app.base_url),
        config.app.base_url,
        fallback=config.broker.fallback_redirect,
    )
    callback_broker = CallbackBroker(
        authenticator=authenticator,
        challenge_service=challenge_service,
        account_resolver=AccountResolver(identity_store),
        local_sessions=local_session_service,
        redirect_guardian=redirect_guardian,
        event_sink=event_sink,
        challenge_ttl_seconds=config.broker.challenge_ttl_seconds,
    )

    return ApplicationDependencies(
        session_storage=session_storage,
        challenge_service=challenge_service,
        local_session_service=local_session_service,
        identity_store=identity_store,
        event_sink=event_sink,
        authenticator=authenticator,
        callback_broker=callback_broker,
        database_service=database_service,
    )
