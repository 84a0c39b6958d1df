"""Service that summarizes podcast episodes and keeps the results."""

from __future__ import annotations

import asyncio
import logging
import re
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List

from app.clients.gemini import GeminiClient
from app.clients.spotify_api import SpotifyWebClient
from app.clients.sqlite_store import SQLiteStore
from app.schemas.podcast import (
    EpisodeWithSummaries,
    PodcastEpisode,
    StoredSummary,
    SummaryContent,
    SummaryResponse,
)
from app.services.errors import EpisodeNotFoundError

logger = logging.getLogger(__name__)

_SECTION_BREAK = re.compile(r"\n\s*\n")
_HEADING_TEMPLATE = r"^[#*\s]*{number}\.\s*\**\s*{title}\s*\**\s*[:：]?\s*"
_OVERVIEW_HEADING = re.compile(
    _HEADING_TEMPLATE.format(number=1, title="overview"), re.IGNORECASE
)
_KEY_POINTS_HEADING = re.compile(
    _HEADING_TEMPLATE.format(number=2, title="key points"), re.IGNORECASE
)
_DETAILS_HEADING = re.compile(
    _HEADING_TEMPLATE.format(number=3, title="details"), re.IGNORECASE
)
_BULLET = re.compile(r"^\s*(?:[•\-*]|\d+[.)])\s*")


def parse_summary(summary_text: str) -> SummaryContent:
    """Split model output into overview, key points and details.

    Sections are separated by blank lines; numbered headings and bullet
    markers are stripped. Text beyond the third section is kept in details.
    """
    sections = [part for part in _SECTION_BREAK.split(summary_text.strip()) if part.strip()]

    overview = ""
    key_points: List[str] = []
    details = ""
    if sections:
        overview = _OVERVIEW_HEADING.sub("", sections[0]).strip()
    if len(sections) > 1:
        body = _KEY_POINTS_HEADING.sub("", sections[1])
        key_points = [
            _BULLET.sub("", line).strip() for line in body.splitlines() if line.strip()
        ]
        key_points = [point for point in key_points if point]
    if len(sections) > 2:
        details = _DETAILS_HEADING.sub("", "\n\n".join(sections[2:])).strip()

    return SummaryContent(overview=overview, key_points=key_points, details=details)


class PodcastSummaryService:
    """Generate, persist and look up episode summaries."""

    def __init__(
        self,
        store: SQLiteStore,
        gemini_client: GeminiClient,
        spotify_client: SpotifyWebClient,
    ) -> None:
        self._db = store
        self._gemini = gemini_client
        self._spotify = spotify_client

    async def summarize_episode(
        self, *, access_token: str, episode_id: str
    ) -> SummaryResponse:
        """Fetch the episode, summarize its description and store both."""
        episode = await self._spotify.get_episode(access_token, episode_id)
        if episode is None:
            raise EpisodeNotFoundError(f"Episode {episode_id} not found.")

        summary_text = await self._gemini.generate_podcast_summary(
            episode.description or episode.name
        )
        content = parse_summary(summary_text)

        now = datetime.now(timezone.utc)
        await asyncio.to_thread(self._db.upsert_episode, _episode_row(episode, now))
        row = await asyncio.to_thread(
            self._db.insert_summary,
            episode_id=episode.id,
            content=content.model_dump_json(),
            generated_at=now.isoformat(),
        )
        logger.info("Stored summary %s for episode %s.", row["id"], episode.id)
        return SummaryResponse(episode=episode, summary=_stored_summary(row))

    async def recent_episodes(
        self, *, access_token: str, limit: int = 50
    ) -> List[EpisodeWithSummaries]:
        """Recently played episodes, each with its stored summaries."""
        played = await self._spotify.get_recently_played_episodes(access_token, limit=limit)
        summaries = await self.summaries_for(episode.id for episode in played)
        return [
            EpisodeWithSummaries(
                **episode.model_dump(), summaries=summaries.get(episode.id, [])
            )
            for episode in played
        ]

    async def summaries_for(
        self, episode_ids: Iterable[str]
    ) -> Dict[str, List[StoredSummary]]:
        """Group stored summaries by episode, newest first."""
        rows = await asyncio.to_thread(self._db.list_summaries, list(episode_ids))
        grouped: Dict[str, List[StoredSummary]] = defaultdict(list)
        for row in rows:
            grouped[row["episode_id"]].append(_stored_summary(row))
        return dict(grouped)


def _episode_row(episode: PodcastEpisode, now: datetime) -> Dict[str, Any]:
    return {
        "id": episode.id,
        "title": episode.name,
        "description": episode.description,
        "duration_ms": episode.duration_ms,
        "release_date": episode.release_date,
        "spotify_url": episode.spotify_url,
        "image_url": episode.image_url,
        "show_id": episode.show.id if episode.show else None,
        "show_name": episode.show.name if episode.show else None,
        "updated_at": now.isoformat(),
    }


def _stored_summary(row: Dict[str, Any]) -> StoredSummary:
    content = SummaryContent.model_validate_json(row["content"])
    return StoredSummary(
        id=row["id"],
        episode_id=row["episode_id"],
        content=content,
        generated_at=datetime.fromisoformat(row["generated_at"]),
    )


__all__ = ["PodcastSummaryService", "parse_summary"]
