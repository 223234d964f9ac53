"""Challenge state and local session services."""

from .challenge_state import ChallengeStateService, resolve_marker_secret
from .local_session import LocalSessionService

__all__ = ["ChallengeStateService", "LocalSessionService", "resolve_marker_secret"]
