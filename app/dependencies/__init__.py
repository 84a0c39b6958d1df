"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    close_http_client,
    get_credential_store,
    get_gemini_client,
    get_http_client,
    get_oauth_state_encoder,
    get_podcast_summary_service,
    get_session_materializer,
    get_spotify_client,
    get_spotify_oauth_client,
    get_sqlite_store,
    get_token_cipher_service,
    get_token_refresh_coordinator,
)
from .config import SettingsDependency, get_app_settings
from .session import get_current_session, require_session

__all__ = [
    "SettingsDependency",
    "close_http_client",
    "get_app_settings",
    "get_credential_store",
    "get_current_session",
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
    "require_session",
]
