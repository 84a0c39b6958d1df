"""Exceptions raised by the service layer."""


class NoCredentialError(Exception):
    """Raised when no credential record exists for a user."""


class RefreshError(Exception):
    """Raised when a valid access token could not be obtained."""


class StoreWriteError(Exception):
    """Raised when refreshed tokens could not be persisted."""


class EpisodeNotFoundError(Exception):
    """Raised when Spotify has no episode for the requested identifier."""


__all__ = [
    "EpisodeNotFoundError",
    "NoCredentialError",
    "RefreshError",
    "StoreWriteError",
]
