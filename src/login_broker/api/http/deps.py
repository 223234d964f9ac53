"""FastAPI dependency implementations."""

from __future__ import annotations

from fastapi import Request

from src.login_broker.api.http.app_data import ApplicationDependencies
from src.login_broker.core.services import (
    CallbackBroker,
    ExternalAuthenticator,
    LocalSessionService,
)


def get_callback_broker(request: Request) -> CallbackBroker:
    """Get the callback broker instance."""
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    return app_deps.callback_broker


def get_local_session_service(request: Request) -> LocalSessionService:
    """Get the local session service instance."""
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    return app_deps.local_session_service


def get_authenticator(request: Request) -> ExternalAuthenticator:
    """Get the provider gateway instance."""
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    return app_deps.authenticator
