"""External login endpoints: challenge, callback and logout."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from src.login_broker.api.http.deps import (
    get_authenticator,
    get_callback_broker,
    get_local_session_service,
)
from src.login_broker.core.models import RedirectInstruction
from src.login_broker.core.security import get_secure_cookie_settings
from src.login_broker.core.services import (
    CallbackBroker,
    ExternalAuthenticator,
    LocalSessionService,
)
from src.login_broker.runtime.context import get_config

router_external = APIRouter(prefix="/external", tags=["external-login"])


class LogoutResponse(BaseModel):
    message: str
    provider_logout_url: str | None = None


def to_redirect_response(instruction: RedirectInstruction) -> RedirectResponse:
    """Turn a redirect instruction into a 302 response with its cookies."""
    config = get_config()
    cookie_settings = get_secure_cookie_settings()
    response = RedirectResponse(url=instruction.location, status_code=status.HTTP_302_FOUND)

    if instruction.clear_challenge_marker:
        response.delete_cookie(config.broker.challenge_cookie_name, path="/")

    if instruction.challenge_marker:
        response.set_cookie(
            key=config.broker.challenge_cookie_name,
            value=instruction.challenge_marker,
            max_age=config.broker.challenge_ttl_seconds,
            **cookie_settings,
        )

    if instruction.session:
        response.set_cookie(
            key=config.broker.session_cookie_name,
            value=instruction.session.id,
            max_age=config.app.session_max_age,
            **cookie_settings,
        )

    return response


@router_external.get("/challenge")
async def challenge(
    provider: str,
    return_url: str | None = Query(default=None, alias="returnUrl"),
    broker: CallbackBroker = Depends(get_callback_broker),
) -> RedirectResponse:
    """Start an external login and redirect to the provider."""
    instruction = await broker.begin_challenge(provider, return_url)
    return to_redirect_response(instruction)


@router_external.get("/callback")
async def callback(
    request: Request,
    state: str | None = None,
    code: str | None = None,
    error: str | None = None,
    broker: CallbackBroker = Depends(get_callback_broker),
) -> RedirectResponse:
    """Complete an external login.

    Redirects to the validated return URL, or ``/`` when it was rejected.
    Failures surface as 400 responses through the exception handlers.
    """
    marker = request.cookies.get(get_config().broker.challenge_cookie_name)
    instruction = await broker.handle_callback(marker, state, code, error)
    return to_redirect_response(instruction)


@router_external.post("/logout")
async def logout(
    request: Request,
    response: Response,
    local_sessions: LocalSessionService = Depends(get_local_session_service),
    authenticator: ExternalAuthenticator = Depends(get_authenticator),
) -> LogoutResponse:
    """End the local session and return the provider logout URL, if any."""
    config = get_config()
    session_id = request.cookies.get(config.broker.session_cookie_name)
    if not session_id:
        raise HTTPException(status_code=401, detail="No session found")

    local_session = await local_sessions.sign_out(session_id)
    response.delete_cookie(config.broker.session_cookie_name, path="/")

    if local_session is None:
        return LogoutResponse(message="Logged out")

    return LogoutResponse(
        message="Logged out",
        provider_logout_url=authenticator.end_session_url(
            local_session.provider,
            local_session.external_token,
            config.app.base_url,
        ),
    )
