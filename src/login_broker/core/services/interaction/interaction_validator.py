"""Recognition of return URLs that resume an authorization interaction."""

from abc import ABC, abstractmethod
from urllib.parse import parse_qs, urlsplit

from loguru import logger

from src.login_broker.core.security import is_local_url, is_same_origin
from src.login_broker.runtime.config.config_data import InteractionConfig


class InteractionValidator(ABC):
    """Decides whether a URL belongs to a known, legitimate authorization flow."""

    @abstractmethod
    def is_valid_return_url(self, url: str | None) -> bool:
        """Check whether ``url`` resumes a legitimate authorization interaction."""


class AuthorizeInteractionValidator(InteractionValidator):
    """Accepts URLs that resume an authorization request of a registered client.

    The URL must point at this application's authorize-callback endpoint and
    carry a ``client_id`` and ``redirect_uri`` registered together.
    """

    def __init__(self, config: InteractionConfig, base_url: str) -> None:
        self._config = config
        self._base_url = base_url

    def is_valid_return_url(self, url: str | None) -> bool:
        if not url:
            return False

        if not (is_local_url(url) or is_same_origin(url, self._base_url)):
            return False

        parts = urlsplit(url[1:] if url.startswith("~/") else url)
        if parts.path != self._config.authorize_callback_path:
            return False

        query = parse_qs(parts.query)
        client_ids = query.get("client_id", [])
        redirect_uris = query.get("redirect_uri", [])
        if len(client_ids) != 1 or len(redirect_uris) != 1:
            return False

        client = self._config.clients.get(client_ids[0])
        if client is None:
            logger.debug("Return URL names an unregistered client")
            return False

        return redirect_uris[0] in client.redirect_uris
