"""
Keeps stored Spotify access tokens usable by refreshing them when stale.
"""

from __future__ import annotations

import asyncio
import logging
import time
import weakref
from dataclasses import dataclass
from typing import Callable

from app.clients.spotify_auth import OAuthTokenExchangeError, SpotifyOAuthClient
from app.models import CredentialRecord
from app.services.credential_store import CredentialStore
from app.services.errors import RefreshError, StoreWriteError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ValidToken:
    """Access token that may be used until ``expires_at`` (epoch seconds)."""

    access_token: str
    expires_at: int


class TokenRefreshCoordinator:
    """Hand out valid access tokens, exchanging refresh tokens when needed.

    A token is fresh while the current instant is at or before ``expires_at``;
    fresh tokens are returned as-is with no network call and no write. Stale
    tokens trigger exactly one refresh request. A refreshed token is returned
    only after it has been persisted, so a failed write surfaces as
    ``RefreshError`` and the next request tries again.

    Refreshes for the same (user_id, provider) are serialized within the
    process. Under the lock the stored record is re-read, so a caller holding
    an outdated copy reuses the token another refresh produced instead of
    spending the refresh token again.
    Failures are never retried here.
    """

    def __init__(
        self,
        store: CredentialStore,
        oauth_client: SpotifyOAuthClient,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._oauth = oauth_client
        self._clock = clock
        self._locks: "weakref.WeakValueDictionary[tuple[str, str], asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    async def ensure_valid_token(self, record: CredentialRecord) -> ValidToken:
        """Return a usable token for ``record``, refreshing it when expired."""
        if record.is_fresh(self._clock()):
            return ValidToken(record.access_token, record.expires_at)

        if not record.refresh_token:
            raise RefreshError(
                f"No refresh token stored for user {record.user_id}; "
                "re-authentication required."
            )

        async with self._lock_for(record):
            # The caller's copy may predate a refresh that already rotated the token.
            latest = await self._store.find(record.user_id, record.provider)
            if latest is None:
                raise RefreshError(
                    f"No {record.provider} credential stored for user {record.user_id}."
                )
            if latest.is_fresh(self._clock()):
                return ValidToken(latest.access_token, latest.expires_at)
            if not latest.refresh_token:
                raise RefreshError(
                    f"No refresh token stored for user {latest.user_id}; "
                    "re-authentication required."
                )
            return await self._refresh(latest)

    def _lock_for(self, record: CredentialRecord) -> asyncio.Lock:
        key = (record.user_id, record.provider)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def _refresh(self, record: CredentialRecord) -> ValidToken:
        refreshed_at = self._clock()
        try:
            grant = await self._oauth.refresh_access_token(record.refresh_token)
        except OAuthTokenExchangeError as exc:
            logger.warning(
                "Refreshing %s token for user %s failed: %s",
                record.provider,
                record.user_id,
                exc,
            )
            raise RefreshError(
                f"Could not refresh {record.provider} token for user {record.user_id}."
            ) from exc

        expires_at = max(int(refreshed_at) + grant.expires_in, record.expires_at)
        try:
            await self._store.update(
                record.user_id,
                record.provider,
                access_token=grant.access_token,
                expires_at=expires_at,
                refresh_token=grant.refresh_token,
            )
        except StoreWriteError as exc:
            logger.exception(
                "Refreshed %s token for user %s could not be stored; discarding it.",
                record.provider,
                record.user_id,
            )
            raise RefreshError(
                f"Refreshed token for user {record.user_id} was not persisted."
            ) from exc

        logger.info(
            "Refreshed %s token for user %s (expires_at=%d).",
            record.provider,
            record.user_id,
            expires_at,
        )
        return ValidToken(grant.access_token, expires_at)


__all__ = ["TokenRefreshCoordinator", "ValidToken"]
