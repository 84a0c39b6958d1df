"""
Factory functions to provide shared clients and services as FastAPI dependencies.

Cached factories build one instance per process. The shared
``httpx.AsyncClient`` is closed by ``close_http_client`` from the application
lifespan.
"""

from functools import lru_cache

import httpx

from app.clients import (
    GeminiClient,
    OAuthStateEncoder,
    SpotifyOAuthClient,
    SpotifyWebClient,
    SQLiteStore,
)
from app.core.config import get_settings
from app.services import (
    CredentialStore,
    PodcastSummaryService,
    SessionMaterializer,
    TokenCipherService,
    TokenRefreshCoordinator,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_http_client() -> httpx.AsyncClient:
    """Provide the process-wide HTTP connection pool."""
    return httpx.AsyncClient(timeout=httpx.Timeout(10.0))


async def close_http_client() -> None:
    """Close the shared HTTP client if one was created."""
    if get_http_client.cache_info().currsize:
        await get_http_client().aclose()
        get_http_client.cache_clear()


@lru_cache()
def get_oauth_state_encoder() -> OAuthStateEncoder:
    """Provide an OAuth state encoder derived from the Spotify client secret."""
    settings = _settings()
    return OAuthStateEncoder(secret_key=settings.spotify.client_secret)


@lru_cache()
def get_spotify_oauth_client() -> SpotifyOAuthClient:
    """Create a singleton Spotify OAuth client."""
    settings = _settings()
    return SpotifyOAuthClient(settings.spotify, settings.oauth, get_http_client())


@lru_cache()
def get_spotify_client() -> SpotifyWebClient:
    """Provide the Spotify Web API client."""
    return SpotifyWebClient(get_http_client())


@lru_cache()
def get_sqlite_store() -> SQLiteStore:
    """Provide shared SQLite store."""
    settings = _settings()
    return SQLiteStore(settings.database_path)


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    settings = _settings()
    secret = settings.security.token_encryption_secret or settings.spotify.client_secret
    return TokenCipherService(
        secret=secret,
        previous_secrets=settings.security.previous_token_encryption_secrets,
    )


@lru_cache()
def get_credential_store() -> CredentialStore:
    """Provide the encrypted credential store."""
    return CredentialStore(get_sqlite_store(), get_token_cipher_service())


@lru_cache()
def get_token_refresh_coordinator() -> TokenRefreshCoordinator:
    """Provide the coordinator; cached so refresh locks are shared per process."""
    return TokenRefreshCoordinator(
        store=get_credential_store(),
        oauth_client=get_spotify_oauth_client(),
    )


def get_session_materializer() -> SessionMaterializer:
    """Build a session materializer over the shared store and coordinator."""
    return SessionMaterializer(
        store=get_credential_store(),
        coordinator=get_token_refresh_coordinator(),
    )


@lru_cache()
def get_gemini_client() -> GeminiClient:
    """Provide Gemini client instance."""
    settings = _settings()
    return GeminiClient(settings.gemini)


def get_podcast_summary_service() -> PodcastSummaryService:
    """Build a podcast summary service using configured clients."""
    return PodcastSummaryService(
        store=get_sqlite_store(),
        gemini_client=get_gemini_client(),
        spotify_client=get_spotify_client(),
    )


__all__ = [
    "close_http_client",
    "get_credential_store",
    "get_gemini_client",
    "get_http_client",
    "get_oauth_state_encoder",
    "get_podcast_summary_service",
    "get_session_materializer",
    "get_spotify_client",
    "get_spotify_oauth_client",
    "get_sqlite_store",
    "get_token_cipher_service",
    "get_token_refresh_coordinator",
]
