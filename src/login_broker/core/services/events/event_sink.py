"""Login event recording."""

from abc import ABC, abstractmethod

from loguru import logger
from pydantic import BaseModel


class UserLoginSuccessEvent(BaseModel):
    """A user signed in through an external provider."""

    provider: str
    external_subject_id: str
    local_subject_id: str
    username: str


class EventSink(ABC):
    """Destination for login events."""

    @abstractmethod
    async def record_login_success(
        self,
        provider: str,
        external_subject_id: str,
        local_subject_id: str,
        username: str,
    ) -> None:
        """Record a successful external login."""


class LoggingEventSink(EventSink):
    """Writes login events to the application log as structured records."""

    async def record_login_success(
        self,
        provider: str,
        external_subject_id: str,
        local_subject_id: str,
        username: str,
    ) -> None:
        event = UserLoginSuccessEvent(
            provider=provider,
            external_subject_id=external_subject_id,
            local_subject_id=local_subject_id,
            username=username,
        )
        logger.bind(event="user_login_success", **event.model_dump()).info(
            "User login success"
        )
