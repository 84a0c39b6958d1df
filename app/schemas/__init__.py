"""Public schema exports."""

from .auth import OAuthCallbackPayload, OAuthCallbackResult
from .podcast import (
    EpisodeWithSummaries,
    PlayedEpisode,
    PodcastEpisode,
    RecentPodcastsResponse,
    ShowRef,
    StoredSummary,
    SummaryContent,
    SummaryResponse,
)
from .session import SessionError, SessionStatus, SessionView

__all__ = [
    "OAuthCallbackPayload",
    "OAuthCallbackResult",
    "EpisodeWithSummaries",
    "PlayedEpisode",
    "PodcastEpisode",
    "RecentPodcastsResponse",
    "SessionError",
    "SessionStatus",
    "SessionView",
    "ShowRef",
    "StoredSummary",
    "SummaryContent",
    "SummaryResponse",
]
