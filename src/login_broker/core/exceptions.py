"""Errors raised by the external login flow."""


class ExternalLoginError(Exception):
    """Base class for external login errors."""


class ExternalAuthFailed(ExternalLoginError):
    """The inbound external authentication is missing, malformed or failed.

    Fatal for the request. Never retried.
    """


class MissingSubjectIdentifier(ExternalAuthFailed):
    """The external assertion carries no usable subject claim."""


class UnknownProvider(ExternalLoginError):
    """A challenge named a provider that is not configured or not enabled."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"Unknown provider: {provider}")
        self.provider = provider


class ProvisioningConflict(ExternalLoginError):
    """A provisioning link for the external identity already exists.

    Raised by identity stores when a concurrent callback created the link
    first. Resolved by re-reading the link.
    """

    def __init__(self, provider: str, external_subject_id: str) -> None:
        super().__init__(
            f"Provisioning link already exists for provider '{provider}'"
        )
        self.provider = provider
        self.external_subject_id = external_subject_id
