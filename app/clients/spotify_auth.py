"""
Spotify OAuth utilities.

These helpers manage the user authentication flow and token refresh lifecycle.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
from dataclasses import dataclass
from hashlib import sha256
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from fastapi import HTTPException, status

from app.core.config import OAuthSettings, SpotifySettings


class OAuthStateEncoder:
    """Encode and decode OAuth state values to guard against tampering."""

    _SIGNATURE_SIZE = 32

    def __init__(self, secret_key: str) -> None:
        self._secret_key = secret_key.encode("utf-8")

    def encode(self, payload: Dict[str, Any]) -> str:
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        signature = hmac.new(self._secret_key, serialized.encode("utf-8"), sha256).digest()
        return base64.urlsafe_b64encode(signature + serialized.encode("utf-8")).decode("utf-8")

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            decoded = base64.urlsafe_b64decode(token.encode("utf-8"))
        except (binascii.Error, ValueError) as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Malformed OAuth state.",
            ) from exc
        signature = decoded[: self._SIGNATURE_SIZE]
        serialized = decoded[self._SIGNATURE_SIZE :]
        expected_signature = hmac.new(self._secret_key, serialized, sha256).digest()
        if not hmac.compare_digest(signature, expected_signature):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid OAuth state signature.",
            )
        return json.loads(serialized)


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint fails or returns an unusable payload."""


@dataclass(frozen=True, slots=True)
class TokenGrant:
    """Tokens issued by the Spotify accounts service."""

    access_token: str
    expires_in: int
    refresh_token: Optional[str] = None


class SpotifyOAuthClient:
    """Build Spotify authorization URLs and call the token endpoint.

    The underlying ``httpx.AsyncClient`` is owned by the caller, which is
    expected to create it once per process and close it on shutdown.
    """

    AUTH_BASE_URL = "https://accounts.spotify.com/authorize"
    TOKEN_URL = "https://accounts.spotify.com/api/token"

    def __init__(
        self,
        spotify_settings: SpotifySettings,
        oauth_settings: OAuthSettings,
        http_client: httpx.AsyncClient,
    ) -> None:
        self._spotify = spotify_settings
        self._oauth = oauth_settings
        self._http = http_client

    def build_authorization_url(self, state: str, show_dialog: bool = False) -> str:
        """Construct the Spotify consent URL."""
        params = {
            "client_id": self._spotify.client_id,
            "response_type": "code",
            "redirect_uri": str(self._spotify.redirect_uri),
            "scope": " ".join(self._oauth.scopes),
            "state": state,
        }
        if show_dialog:
            params["show_dialog"] = "true"
        return f"{self.AUTH_BASE_URL}?{urlencode(params)}"

    async def exchange_authorization_code(self, code: str) -> TokenGrant:
        """Exchange an authorization code for an access and refresh token."""
        payload = await self._request_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": str(self._spotify.redirect_uri),
            }
        )
        grant = _parse_grant(payload)
        if not grant.refresh_token:
            raise OAuthTokenExchangeError("Token payload is missing a refresh token.")
        return grant

    async def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        """Obtain a new access token using a stored refresh token.

        ``TokenGrant.refresh_token`` is set only when Spotify rotated it.
        """
        payload = await self._request_token(
            {"grant_type": "refresh_token", "refresh_token": refresh_token}
        )
        return _parse_grant(payload)

    def _basic_auth_header(self) -> str:
        credentials = f"{self._spotify.client_id}:{self._spotify.client_secret}"
        encoded = base64.b64encode(credentials.encode("utf-8")).decode("ascii")
        return f"Basic {encoded}"

    async def _request_token(self, form: Dict[str, str]) -> Dict[str, Any]:
        try:
            response = await self._http.post(
                self.TOKEN_URL,
                data=form,
                headers={"Authorization": self._basic_auth_header()},
                timeout=self._oauth.refresh_timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise OAuthTokenExchangeError(
                f"Token endpoint request failed: {exc.__class__.__name__}"
            ) from exc

        if not response.is_success:
            raise OAuthTokenExchangeError(
                f"Token endpoint returned {response.status_code}: {response.text}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise OAuthTokenExchangeError("Token endpoint returned invalid JSON.") from exc
        if not isinstance(payload, dict):
            raise OAuthTokenExchangeError("Token endpoint returned a non-object body.")
        return payload


def _parse_grant(payload: Dict[str, Any]) -> TokenGrant:
    access_token = payload.get("access_token")
    expires_in = payload.get("expires_in")
    refresh_token = payload.get("refresh_token")

    if not isinstance(access_token, str) or not access_token:
        raise OAuthTokenExchangeError("Token payload is missing an access token.")
    if isinstance(expires_in, bool) or not isinstance(expires_in, (int, str)):
        raise OAuthTokenExchangeError("Token payload is missing expires_in.")
    try:
        lifetime = int(expires_in)
    except ValueError as exc:
        raise OAuthTokenExchangeError("Token payload has a non-integer expires_in.") from exc
    if lifetime <= 0:
        raise OAuthTokenExchangeError("Token payload has a non-positive expires_in.")

    return TokenGrant(
        access_token=access_token,
        expires_in=lifetime,
        refresh_token=refresh_token if isinstance(refresh_token, str) and refresh_token else None,
    )


__all__ = [
    "OAuthStateEncoder",
    "OAuthTokenExchangeError",
    "SpotifyOAuthClient",
    "TokenGrant",
]
