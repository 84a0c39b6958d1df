"""Caller-facing session values."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SessionError(str, Enum):
    """Reason a session carries no access token."""

    UNAUTHENTICATED = "unauthenticated"
    REAUTH_REQUIRED = "reauth-required"


class SessionView(BaseModel):
    """Authentication result materialized for a single request."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    user_id: str
    access_token: Optional[str] = Field(
        None, description="Valid Spotify access token, absent when unusable."
    )
    expires_at: Optional[int] = Field(
        None, description="Epoch seconds at which access_token expires."
    )
    error: Optional[SessionError] = None

    @property
    def is_authenticated(self) -> bool:
        return self.access_token is not None

    @classmethod
    def authenticated(
        cls, user_id: str, *, access_token: str, expires_at: int
    ) -> "SessionView":
        return cls(user_id=user_id, access_token=access_token, expires_at=expires_at)

    @classmethod
    def unauthenticated(cls, user_id: str) -> "SessionView":
        return cls(user_id=user_id, error=SessionError.UNAUTHENTICATED)

    @classmethod
    def reauth_required(cls, user_id: str) -> "SessionView":
        return cls(user_id=user_id, error=SessionError.REAUTH_REQUIRED)


class SessionStatus(BaseModel):
    """Public form of a session; the access token stays server-side."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    user_id: str
    authenticated: bool
    expires_at: Optional[int] = None
    error: Optional[SessionError] = None

    @classmethod
    def from_view(cls, view: SessionView) -> "SessionStatus":
        return cls(
            user_id=view.user_id,
            authenticated=view.is_authenticated,
            expires_at=view.expires_at,
            error=view.error,
        )


__all__ = ["SessionError", "SessionStatus", "SessionView"]
