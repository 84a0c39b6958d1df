"""Expose constructed client wrappers."""

from .gemini import GeminiClient, GeminiModelError
from .spotify_api import SpotifyAPIError, SpotifyWebClient
from .spotify_auth import (
    OAuthStateEncoder,
    OAuthTokenExchangeError,
    SpotifyOAuthClient,
    TokenGrant,
)
from .sqlite_store import SQLiteStore

__all__ = [
    "GeminiClient",
    "GeminiModelError",
    "OAuthStateEncoder",
    "OAuthTokenExchangeError",
    "SQLiteStore",
    "SpotifyAPIError",
    "SpotifyOAuthClient",
    "SpotifyWebClient",
    "TokenGrant",
]
