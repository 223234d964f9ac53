"""Security utilities for the external login flow."""

import base64
import hashlib
import secrets
from urllib.parse import urlsplit

from src.login_broker.runtime.context import get_config


def generate_secure_token(length: int = 32) -> str:
    """Generate a cryptographically secure random token.

    Args:
        length: Number of random bytes to generate (default 32)

    Returns:
        URL-safe base64 encoded token
    """
    return (
        base64.urlsafe_b64encode(secrets.token_bytes(length))
        .decode("utf-8")
        .rstrip("=")
    )


def generate_pkce_pair() -> tuple[str, str]:
    """Generate a PKCE code verifier and its S256 challenge.

    Returns:
        Tuple of (code_verifier, code_challenge)
    """
    code_verifier = generate_secure_token(32)
    digest = hashlib.sha256(code_verifier.encode("utf-8")).digest()
    code_challenge = base64.urlsafe_b64encode(digest).decode("utf-8").rstrip("=")
    return code_verifier, code_challenge


def _has_control_characters(value: str) -> bool:
    return any(ord(c) < 32 or ord(c) == 127 for c in value)


def is_local_url(url: str | None) -> bool:
    """Check whether ``url`` is an application-relative path.

    Accepts ``/path`` and ``~/path``. Rejects protocol-relative URLs (``//host``)
    and backslash tricks (``/\\host``) that browsers treat as absolute.

    Args:
        url: Candidate URL

    Returns:
        True if the URL can only resolve to this application
    """
    if not url or _has_control_characters(url):
        return False

    if url.startswith("~/"):
        url = url[1:]

    if not url.startswith("/"):
        return False

    if len(url) == 1:
        return True

    return url[1] not in ("/", "\\")


def is_same_origin(url: str | None, base_url: str) -> bool:
    """Check whether an absolute ``url`` has the same origin as ``base_url``.

    Args:
        url: Candidate absolute URL
        base_url: The application's own base URL

    Returns:
        True if scheme, host and port match
    """
    if not url or _has_control_characters(url) or "\\" in url:
        return False

    try:
        candidate = urlsplit(url)
        own = urlsplit(base_url)
        candidate_port = candidate.port
        own_port = own.port
    except ValueError:
        return False

    if not candidate.scheme or not candidate.hostname:
        return False

    if candidate.username or candidate.password:
        return False

    return (
        candidate.scheme.lower() == own.scheme.lower()
        and candidate.hostname.lower() == (own.hostname or "").lower()
        and _effective_port(candidate.scheme, candidate_port)
        == _effective_port(own.scheme, own_port)
    )


def _effective_port(scheme: str, port: int | None) -> int | None:
    if port is not None:
        return port
    return {"http": 80, "https": 443}.get(scheme.lower())


def get_secure_cookie_settings() -> dict:
    """Cookie flags shared by the challenge marker and the session cookie.

    The provider callback is a top-level GET navigation, which SameSite=Lax
    allows.
    """
    config = get_config()
    return {
        "httponly": True,
        "secure": config.app.environment == "production" and config.security.secure_cookies,
        "samesite": config.security.cookie_samesite,
        "path": "/",
    }
