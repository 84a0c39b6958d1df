"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the session services and
the maintenance scripts share a consistent configuration surface.
"""

from functools import lru_cache
from typing import Annotated, Optional

from pydantic import AnyHttpUrl, Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


_ENV_CONFIG = SettingsConfigDict(
    env_file=".env",
    env_file_encoding="utf-8",
    extra="ignore",
    populate_by_name=True,
)

_DEFAULT_SCOPES: tuple[str, ...] = (
    "user-read-email",
    "user-read-private",
    "user-read-playback-state",
    "user-read-currently-playing",
    "user-read-recently-played",
    "user-read-playback-position",
)


def _split_csv(value: str | tuple[str, ...] | list[str] | None) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, tuple):
        return value
    if isinstance(value, list):
        return tuple(value)
    return tuple(item.strip() for item in value.split(",") if item.strip())


class SpotifySettings(BaseSettings):
    """Client credentials registered with the Spotify developer dashboard."""

    model_config = _ENV_CONFIG

    client_id: str = Field(..., validation_alias="SPOTIFY_CLIENT_ID")
    client_secret: str = Field(..., validation_alias="SPOTIFY_CLIENT_SECRET")
    redirect_uri: AnyHttpUrl = Field(..., validation_alias="SPOTIFY_REDIRECT_URI")


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    model_config = _ENV_CONFIG

    state_ttl_seconds: int = Field(900, validation_alias="OAUTH_STATE_TTL")
    refresh_timeout_seconds: float = Field(
        5.0,
        validation_alias="OAUTH_REFRESH_TIMEOUT",
        gt=0,
        description="Upper bound for a single call to the token endpoint.",
    )
    scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        _DEFAULT_SCOPES,
        validation_alias="OAUTH_SCOPES",
    )

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing scopes as a comma-separated string."""
        return _split_csv(value)


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = _ENV_CONFIG

    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )
    previous_token_encryption_secrets: Annotated[tuple[str, ...], NoDecode] = Field(
        (),
        validation_alias="TOKEN_ENCRYPTION_PREVIOUS_SECRETS",
        description="Retired secrets still accepted when decrypting stored tokens.",
    )

    @field_validator("previous_token_encryption_secrets", mode="before")
    @classmethod
    def _split_secrets(
        cls, value: str | tuple[str, ...] | list[str] | None
    ) -> tuple[str, ...]:
        return _split_csv(value)


class GeminiSettings(BaseSettings):
    """Configuration for Gemini model access."""

    model_config = _ENV_CONFIG

    api_key: Optional[str] = Field(
        None,
        validation_alias="GEMINI_API_KEY",
        description="When omitted, summaries fall back to placeholder text.",
    )
    model_name: str = Field("gemini-1.5-flash", validation_alias="GEMINI_MODEL_NAME")


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = _ENV_CONFIG

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    frontend_base_url: Optional[HttpUrl] = Field(
        None,
        validation_alias="FRONTEND_BASE_URL",
        description="Optional URL for redirecting users back to the front-end.",
    )
    database_path: str = Field(
        "data/podcast_summaries.db", validation_alias="DATABASE_PATH"
    )
    recently_played_limit: int = Field(
        50, validation_alias="RECENTLY_PLAYED_LIMIT", ge=1, le=50
    )
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    spotify: SpotifySettings = Field(default_factory=SpotifySettings)
    gemini: GeminiSettings = Field(default_factory=GeminiSettings)


def load_settings(env_file: str | None = ".env") -> AppSettings:
    """Build settings, reading every section from ``env_file``."""
    return AppSettings(
        _env_file=env_file,
        security=SecuritySettings(_env_file=env_file),
        oauth=OAuthSettings(_env_file=env_file),
        spotify=SpotifySettings(_env_file=env_file),
        gemini=GeminiSettings(_env_file=env_file),
    )  # type: ignore[call-arg]


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "GeminiSettings",
    "OAuthSettings",
    "SecuritySettings",
    "SpotifySettings",
    "get_settings",
    "load_settings",
]
