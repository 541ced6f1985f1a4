"""Error taxonomy for the federation bridge."""

from __future__ import annotations

INTERRUPTED_GUIDANCE = (
    "The host's execution time limit was most likely reached before the remote "
    "account API responded. Increase the federation provider's maximum lifespan "
    "(execution budget) to at least 30000 ms rather than suspecting the remote system."
)


class FederationError(Exception):
    """Base class for every error raised by the bridge."""


class ConfigurationError(FederationError):
    """Mandatory settings are missing or invalid. Fatal at startup."""

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing = missing or []


class RemoteDirectoryError(FederationError):
    """A call against the remote account API failed."""

    def __init__(
        self,
        message: str,
        *,
        method: str | None = None,
        path: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.method = method
        self.path = path
        self.status_code = status_code


class AuthUnavailable(RemoteDirectoryError):
    """The admin session could not be established, or its token was rejected twice."""


class DirectoryInterrupted(RemoteDirectoryError):
    """The call was cancelled or exceeded its time budget."""

    guidance = INTERRUPTED_GUIDANCE


class DirectoryUnavailable(RemoteDirectoryError):
    """Transport failure or server-side error from the remote API."""


class RemoteProtocolError(RemoteDirectoryError):
    """The remote API answered with something that cannot be interpreted."""


class NotFound(FederationError):
    """No record exists for the query within the configured tenant."""


class InvalidCredentials(FederationError):
    """Credentials did not verify for a record within the configured tenant."""


class RecordIntegrityError(FederationError):
    """A record or adapter was built without an external id."""


class RecordDiscardedError(FederationError):
    """A federated user was read after its request ended."""
