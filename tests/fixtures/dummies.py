from __future__ import annotations

import httpx

from src.login_broker.core.services.events.event_sink import (
    EventSink,
    UserLoginSuccessEvent,
)


class RecordingEventSink(EventSink):
    def __init__(self) -> None:
        self.events: list[UserLoginSuccessEvent] = []

    async def record_login_success(
        self,
        provider: str,
        external_subject_id: str,
        local_subject_id: str,
        username: str,
    ) -> None:
        self.events.append(
            UserLoginSuccessEvent(
                provider=provider,
                external_subject_id=external_subject_id,
                local_subject_id=local_subject_id,
                username=username,
            )
        )


class FailingEventSink(EventSink):
    async def record_login_success(self, *args, **kwargs) -> None:
        raise RuntimeError("event store unavailable")


class MockProvider:
    """In-process OAuth2 provider served through ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.userinfo: dict = {
            "sub": "42",
            "name": "Alice Example",
            "email": "alice@example.test",
        }
        self.id_token: str | None = "provider-id-token"
        self.token_status = 200
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.url.path == "/token":
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_grant"})
            body = {
                "access_token": "provider-access-token",
                "token_type": "Bearer",
                "expires_in": 3600,
            }
            if self.id_token:
                body["id_token"] = self.id_token
            return httpx.Response(200, json=body)

        if request.url.path == "/userinfo":
            return httpx.Response(200, json=self.userinfo)

        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]
