"""
Domain models for OAuth credential persistence.
"""

from pydantic import BaseModel, ConfigDict, Field

SPOTIFY_PROVIDER = "spotify"


class CredentialRecord(BaseModel):
    """Token state stored for one (user, provider) pair."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    provider: str = Field(SPOTIFY_PROVIDER, min_length=1)
    access_token: str
    refresh_token: str
    expires_at: int = Field(
        ..., description="Epoch seconds after which access_token must not be used."
    )

    def is_fresh(self, now: float) -> bool:
        """Return True while the access token may still be handed out."""
        return now <= self.expires_at


__all__ = ["CredentialRecord", "SPOTIFY_PROVIDER"]
