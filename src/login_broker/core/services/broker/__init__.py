"""External login broker components."""

from .account_resolver import AccountResolver
from .assertion_extractor import AssertionExtractor
from .callback_broker import CallbackBroker, CallbackProgress, CallbackStage
from .redirect_guardian import RedirectGuardian
from .session_linker import SessionLinker

__all__ = [
    "AccountResolver",
    "AssertionExtractor",
    "CallbackBroker",
    "CallbackProgress",
    "CallbackStage",
    "RedirectGuardian",
    "SessionLinker",
]
