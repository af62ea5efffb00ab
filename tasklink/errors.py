"""Exception taxonomy for tasklink."""
from __future__ import annotations

from typing import Optional


class TaskLinkError(Exception):
    """Base class for all tasklink errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class RemoteFetchError(TaskLinkError):
    """Listing remote tasks failed; the whole paginated fetch is aborted."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class DeprecatedEndpointError(RemoteFetchError):
    """The tracker answered 410 Gone for an endpoint we still call."""


class RemoteCreateError(TaskLinkError):
    """Creating a remote task failed; no cache state was touched."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ChannelError(TaskLinkError):
    """A cross-context request failed or produced no response."""


class ChannelTimeout(ChannelError):
    """A cross-context request did not answer within its timeout."""


class ConfigurationMissing(TaskLinkError):
    """No credential is stored; matching is disabled.

    This is a state rather than a failure: the service answers
    ``configured: false`` instead of surfacing it.
    """

    def __init__(self, message: str = "No Todoist token is saved."):
        super().__init__(message)
