"""Service layer exports."""

from .credential_store import CredentialStore
from .errors import (
    EpisodeNotFoundError,
    NoCredentialError,
    RefreshError,
    StoreWriteError,
)
from .podcast_summaries import PodcastSummaryService, parse_summary
from .session import SessionMaterializer
from .token_cipher import TokenCipherService
from .token_refresh import TokenRefreshCoordinator, ValidToken

__all__ = [
    "CredentialStore",
    "EpisodeNotFoundError",
    "NoCredentialError",
    "PodcastSummaryService",
    "RefreshError",
    "SessionMaterializer",
    "StoreWriteError",
    "TokenCipherService",
    "TokenRefreshCoordinator",
    "ValidToken",
    "parse_summary",
]
