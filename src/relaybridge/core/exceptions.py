"""Exception hierarchy for relaybridge."""

from __future__ import annotations


class RelayBridgeError(Exception):
    """Base class for all relaybridge errors."""


class ConfigError(RelayBridgeError):
    """Configuration file is malformed or fails validation."""


class ConfigNotFoundError(ConfigError):
    """No configuration file exists at the resolved path."""


class BackendError(RelayBridgeError):
    """A call to the agent backend failed."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SessionCreationError(BackendError):
    """Backend session bootstrap (token or conversation start) failed."""


class ForwardError(BackendError):
    """Posting the user's message to the backend session failed."""


class PollFetchError(BackendError):
    """A single activity fetch within the reply poll failed."""
