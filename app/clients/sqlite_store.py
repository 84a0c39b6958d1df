"""SQLite persistence for Spotify credentials, episodes and summaries."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, Optional


class SQLiteStore:
    """Thin table gateway; callers own encryption and (de)serialization."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._transaction() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS accounts (
                    user_id TEXT NOT NULL,
                    provider TEXT NOT NULL,
                    access_token_encrypted TEXT NOT NULL,
                    refresh_token_encrypted TEXT NOT NULL,
                    expires_at INTEGER NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (user_id, provider)
                );
                CREATE TABLE IF NOT EXISTS podcast_episodes (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    description TEXT,
                    duration_ms INTEGER,
                    release_date TEXT,
                    spotify_url TEXT,
                    image_url TEXT,
                    show_id TEXT,
                    show_name TEXT,
                    updated_at TEXT NOT NULL
                );
                CREATE TABLE IF NOT EXISTS summaries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    episode_id TEXT NOT NULL REFERENCES podcast_episodes(id),
                    content TEXT NOT NULL,
                    generated_at TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS ix_summaries_episode
                    ON summaries (episode_id, generated_at);
                """
            )

    # accounts

    def get_account(self, *, user_id: str, provider: str) -> Optional[Dict[str, Any]]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM accounts WHERE user_id = ? AND provider = ?",
                (user_id, provider),
            ).fetchone()
        return dict(row) if row else None

    def upsert_account(self, item: Dict[str, Any]) -> None:
        """Insert an account row or replace the tokens of an existing one."""
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO accounts (
                    user_id, provider, access_token_encrypted,
                    refresh_token_encrypted, expires_at, created_at, updated_at
                )
                VALUES (
                    :user_id, :provider, :access_token_encrypted,
                    :refresh_token_encrypted, :expires_at, :created_at, :updated_at
                )
                ON CONFLICT(user_id, provider) DO UPDATE SET
                    access_token_encrypted = excluded.access_token_encrypted,
                    refresh_token_encrypted = excluded.refresh_token_encrypted,
                    expires_at = excluded.expires_at,
                    updated_at = excluded.updated_at
                """,
                item,
            )

    def update_account_tokens(
        self,
        *,
        user_id: str,
        provider: str,
        access_token_encrypted: str,
        expires_at: int,
        updated_at: str,
        refresh_token_encrypted: Optional[str] = None,
    ) -> int:
        """Overwrite token columns in place and return the affected row count."""
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE accounts SET
                    access_token_encrypted = ?,
                    refresh_token_encrypted = COALESCE(?, refresh_token_encrypted),
                    expires_at = ?,
                    updated_at = ?
                WHERE user_id = ? AND provider = ?
                """,
                (
                    access_token_encrypted,
                    refresh_token_encrypted,
                    expires_at,
                    updated_at,
                    user_id,
                    provider,
                ),
            )
            return cursor.rowcount

    # episodes and summaries

    def upsert_episode(self, item: Dict[str, Any]) -> None:
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO podcast_episodes (
                    id, title, description, duration_ms, release_date,
                    spotify_url, image_url, show_id, show_name, updated_at
                )
                VALUES (
                    :id, :title, :description, :duration_ms, :release_date,
                    :spotify_url, :image_url, :show_id, :show_name, :updated_at
                )
                ON CONFLICT(id) DO UPDATE SET
                    title = excluded.title,
                    description = excluded.description,
                    duration_ms = excluded.duration_ms,
                    release_date = excluded.release_date,
                    spotify_url = excluded.spotify_url,
                    image_url = excluded.image_url,
                    show_id = excluded.show_id,
                    show_name = excluded.show_name,
                    updated_at = excluded.updated_at
                """,
                item,
            )

    def insert_summary(
        self, *, episode_id: str, content: str, generated_at: str
    ) -> Dict[str, Any]:
        with self._transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO summaries (episode_id, content, generated_at) VALUES (?, ?, ?)",
                (episode_id, content, generated_at),
            )
            summary_id = cursor.lastrowid
        return {
            "id": summary_id,
            "episode_id": episode_id,
            "content": content,
            "generated_at": generated_at,
        }

    def list_summaries(self, episode_ids: Iterable[str]) -> list[Dict[str, Any]]:
        ids = list(dict.fromkeys(episode_ids))
        if not ids:
            return []
        placeholders = ", ".join("?" for _ in ids)
        with self._transaction() as conn:
            rows = conn.execute(
                f"SELECT * FROM summaries WHERE episode_id IN ({placeholders}) "
                "ORDER BY generated_at DESC, id DESC",
                ids,
            ).fetchall()
        return [dict(row) for row in rows]


__all__ = ["SQLiteStore"]
