"""
Pydantic models for podcast episodes and their generated summaries.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ShowRef(BaseModel):
    """Minimal reference to the show an episode belongs to."""

    id: str
    name: str


class PodcastEpisode(BaseModel):
    """Episode details as returned by the Spotify Web API."""

    id: str
    name: str
    description: str = ""
    duration_ms: Optional[int] = None
    release_date: Optional[str] = Field(
        None, description="Release date string with Spotify's variable precision."
    )
    spotify_url: Optional[str] = None
    image_url: Optional[str] = None
    show: Optional[ShowRef] = None


class PlayedEpisode(PodcastEpisode):
    """An episode from the user's play history."""

    played_at: datetime


class SummaryContent(BaseModel):
    """Structured form of a generated summary."""

    overview: str = ""
    key_points: List[str] = Field(default_factory=list)
    details: str = ""


class StoredSummary(BaseModel):
    """A persisted summary row."""

    id: int
    episode_id: str
    content: SummaryContent
    generated_at: datetime


class EpisodeWithSummaries(PlayedEpisode):
    """Play history entry merged with any stored summaries, newest first."""

    summaries: List[StoredSummary] = Field(default_factory=list)


class RecentPodcastsResponse(BaseModel):
    """Response payload for the recently played listing."""

    user_id: str
    episodes: List[EpisodeWithSummaries] = Field(default_factory=list)


class SummaryResponse(BaseModel):
    """Response payload returned after generating a summary."""

    episode: PodcastEpisode
    summary: StoredSummary


__all__ = [
    "EpisodeWithSummaries",
    "PlayedEpisode",
    "PodcastEpisode",
    "RecentPodcastsResponse",
    "ShowRef",
    "StoredSummary",
    "SummaryContent",
    "SummaryResponse",
]
