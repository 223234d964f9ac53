"""Core services exports."""

# Database Service
from .database.db_session import DbSessionService

# Collaborators
from .events.event_sink import EventSink, LoggingEventSink
from .identity.identity_store import (
    IdentityStore,
    InMemoryIdentityStore,
    SqlIdentityStore,
)
from .interaction.interaction_validator import (
    AuthorizeInteractionValidator,
    InteractionValidator,
)

# Session Services
from .session.challenge_state import ChallengeStateService
from .session.local_session import LocalSessionService

# Provider Gateway
from .provider_gateway import ExternalAuthenticator, OidcProviderGateway

# Broker
from .broker import (
    AccountResolver,
    AssertionExtractor,
    CallbackBroker,
    RedirectGuardian,
    SessionLinker,
)

__all__ = [
    # Database Service
    "DbSessionService",
    # Collaborators
    "EventSink",
    "LoggingEventSink",
    "IdentityStore",
    "InMemoryIdentityStore",
    "SqlIdentityStore",
    "InteractionValidator",
    "AuthorizeInteractionValidator",
    # Session Services
    "ChallengeStateService",
    "LocalSessionService",
    # Provider Gateway
    "ExternalAuthenticator",
    "OidcProviderGateway",
    # Broker
    "AccountResolver",
    "AssertionExtractor",
    "CallbackBroker",
    "RedirectGuardian",
    "SessionLinker",
]
