"""Post-login redirect validation."""

from loguru import logger

from src.login_broker.core.security import is_local_url, is_same_origin
from src.login_broker.core.services.interaction.interaction_validator import (
    InteractionValidator,
)


class RedirectGuardian:
    """Accepts a return URL only if it cannot leave the application.

    A URL passes when the interaction validator recognizes it, when it is a
    local path, or when it is absolute with the application's own origin.
    Everything else is replaced by the fallback.
    """

    def __init__(
        self,
        interaction_validator: InteractionValidator,
        base_url: str,
        fallback: str = "/",
    ) -> None:
        self._validator = interaction_validator
        self._base_url = base_url
        self._fallback = fallback

    def validate(self, return_url: str | None) -> bool:
        if not return_url:
            return False
        return (
            self._validator.is_valid_return_url(return_url)
            or is_local_url(return_url)
            or is_same_origin(return_url, self._base_url)
        )

    def decide(self, return_url: str | None) -> str:
        """Return the redirect location for ``return_url``."""
        if not self.validate(return_url):
            if return_url:
                logger.info("Rejected post-login return URL, using fallback")
            return self._fallback

        # Application-root relative
        if return_url.startswith("~/"):
            return return_url[1:]
        return return_url
