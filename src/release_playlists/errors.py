"""Exception types raised by the release sync."""

from typing import Optional


class ReleasePlaylistsError(Exception):
    """Base class for all sync errors."""


class TransportError(ReleasePlaylistsError):
    """A request could not be sent or no response came back."""


class RemoteRejectionError(ReleasePlaylistsError):
    """The remote service answered with a non-2xx status."""

    def __init__(self, status: int, body: str, url: Optional[str] = None):
        self.status = status
        self.body = body
        self.url = url
        super().__init__(f"API error {status}: {body}")


class MalformedReleaseError(ReleasePlaylistsError):
    """A release URL is neither a track nor an album link."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Could not parse release URL: {url}")


class MissingConfigError(ReleasePlaylistsError):
    """A required key is absent from the config file."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Could not find config value with name '{key}'")


class MissingStateError(ReleasePlaylistsError):
    """Local state that an operation depends on has never been created."""
