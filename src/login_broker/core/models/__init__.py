"""Models for the external login flow."""

from .external import ExternalAssertion, RawAuthResult, RedirectInstruction, SessionLink
from .session import ChallengeState, LocalSession

__all__ = [
    "ChallengeState",
    "ExternalAssertion",
    "LocalSession",
    "RawAuthResult",
    "RedirectInstruction",
    "SessionLink",
]
