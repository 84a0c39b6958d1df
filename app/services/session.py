"""Builds the per-request session value handed to routes."""

from __future__ import annotations

import logging

from app.models import SPOTIFY_PROVIDER
from app.schemas.session import SessionView
from app.services.credential_store import CredentialStore
from app.services.errors import NoCredentialError, RefreshError
from app.services.token_refresh import TokenRefreshCoordinator

logger = logging.getLogger(__name__)


class SessionMaterializer:
    """Resolve a user's stored credentials into a ``SessionView``.

    Missing credentials and failed refreshes are reported through
    ``SessionView.error`` rather than raised, so callers branch on whether a
    token is present.
    """

    def __init__(
        self,
        store: CredentialStore,
        coordinator: TokenRefreshCoordinator,
        provider: str = SPOTIFY_PROVIDER,
    ) -> None:
        self._store = store
        self._coordinator = coordinator
        self._provider = provider

    async def materialize_session(self, user_id: str) -> SessionView:
        try:
            record = await self._store.get(user_id, self._provider)
        except NoCredentialError:
            logger.debug("No %s credential for user %s.", self._provider, user_id)
            return SessionView.unauthenticated(user_id)

        try:
            token = await self._coordinator.ensure_valid_token(record)
        except RefreshError:
            return SessionView.reauth_required(user_id)

        return SessionView.authenticated(
            user_id, access_token=token.access_token, expires_at=token.expires_at
        )


__all__ = ["SessionMaterializer"]
