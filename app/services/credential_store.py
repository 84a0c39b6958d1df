"""
Persistence of per-user OAuth credentials.

Tokens are encrypted before they reach SQLite and decrypted on the way out;
callers only ever see plaintext ``CredentialRecord`` values.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Optional

from app.clients.sqlite_store import SQLiteStore
from app.models import SPOTIFY_PROVIDER, CredentialRecord
from app.services.errors import NoCredentialError, StoreWriteError
from app.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)


class CredentialStore:
    """Read and write credential records keyed by (user_id, provider)."""

    def __init__(self, store: SQLiteStore, token_cipher: TokenCipherService) -> None:
        self._db = store
        self._cipher = token_cipher

    async def find(
        self, user_id: str, provider: str = SPOTIFY_PROVIDER
    ) -> Optional[CredentialRecord]:
        """Return the stored record, or None when the user never signed in."""
        row = await asyncio.to_thread(
            self._db.get_account, user_id=user_id, provider=provider
        )
        if not row:
            return None

        try:
            access_token = self._cipher.decrypt(row["access_token_encrypted"])
            refresh_token = self._cipher.decrypt(row["refresh_token_encrypted"])
        except ValueError:
            logger.warning(
                "Stored %s tokens for user %s cannot be decrypted; treating as absent.",
                provider,
                user_id,
            )
            return None

        return CredentialRecord(
            user_id=row["user_id"],
            provider=row["provider"],
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=int(row["expires_at"]),
        )

    async def get(
        self, user_id: str, provider: str = SPOTIFY_PROVIDER
    ) -> CredentialRecord:
        """Return the stored record or raise ``NoCredentialError``."""
        record = await self.find(user_id, provider)
        if record is None:
            raise NoCredentialError(
                f"No {provider} credential stored for user {user_id}."
            )
        return record

    async def create(self, record: CredentialRecord) -> None:
        """Persist tokens from a completed sign-in, replacing earlier ones."""
        now_iso = datetime.now(timezone.utc).isoformat()
        item = {
            "user_id": record.user_id,
            "provider": record.provider,
            "access_token_encrypted": self._cipher.encrypt(record.access_token),
            "refresh_token_encrypted": self._cipher.encrypt(record.refresh_token),
            "expires_at": record.expires_at,
            "created_at": now_iso,
            "updated_at": now_iso,
        }
        await asyncio.to_thread(self._db.upsert_account, item)

    async def update(
        self,
        user_id: str,
        provider: str = SPOTIFY_PROVIDER,
        *,
        access_token: str,
        expires_at: int,
        refresh_token: Optional[str] = None,
    ) -> None:
        """Overwrite the access token and expiry of an existing record.

        ``refresh_token`` is written only when given; otherwise the stored one
        is kept.
        """
        encrypted_refresh = (
            self._cipher.encrypt(refresh_token) if refresh_token else None
        )
        try:
            updated = await asyncio.to_thread(
                self._db.update_account_tokens,
                user_id=user_id,
                provider=provider,
                access_token_encrypted=self._cipher.encrypt(access_token),
                refresh_token_encrypted=encrypted_refresh,
                expires_at=expires_at,
                updated_at=datetime.now(timezone.utc).isoformat(),
            )
        except sqlite3.Error as exc:
            raise StoreWriteError(
                f"Failed to persist refreshed {provider} token for user {user_id}."
            ) from exc
        if not updated:
            raise StoreWriteError(
                f"No {provider} credential record exists for user {user_id}."
            )


__all__ = ["CredentialStore"]
