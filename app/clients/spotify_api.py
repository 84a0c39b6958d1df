"""Client wrapper for the Spotify Web API endpoints the app reads."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from app.schemas.podcast import PlayedEpisode, PodcastEpisode
from app.utils.http import RetryConfig, request_with_retry

logger = logging.getLogger(__name__)


class SpotifyAPIError(Exception):
    """Raised when the Spotify Web API request fails."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SpotifyWebClient:
    """Fetch podcast listening data on behalf of a signed-in user.

    Reads are retried on rate limiting and gateway errors.
    """

    API_BASE_URL = "https://api.spotify.com/v1"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        timeout: float = 10.0,
        retry_config: Optional[RetryConfig] = None,
    ) -> None:
        self._http = http_client
        self._timeout = timeout
        self._retry = retry_config or RetryConfig(attempts=3, backoff_seconds=0.5)

    async def get_recently_played_episodes(
        self, access_token: str, limit: int = 50
    ) -> list[PlayedEpisode]:
        """Return play history entries that are podcast episodes."""
        response = await self._get(
            "/me/player/recently-played",
            access_token,
            params={"limit": limit, "additional_types": "episode"},
        )
        payload = _json_body(response)

        episodes: list[PlayedEpisode] = []
        for item in payload.get("items") or []:
            track = item.get("track") or {}
            if track.get("type") != "episode":
                continue
            try:
                episodes.append(
                    PlayedEpisode(**_episode_fields(track), played_at=item.get("played_at"))
                )
            except ValidationError:
                logger.warning("Skipping malformed play history entry %s.", track.get("id"))
        return episodes

    async def get_episode(
        self, access_token: str, episode_id: str
    ) -> Optional[PodcastEpisode]:
        """Fetch a single episode, or None when Spotify does not know it."""
        try:
            response = await self._get(f"/episodes/{episode_id}", access_token)
        except SpotifyAPIError as exc:
            if exc.status_code in (400, 404):
                return None
            raise
        try:
            return PodcastEpisode(**_episode_fields(_json_body(response)))
        except ValidationError as exc:
            raise SpotifyAPIError(f"Spotify returned a malformed episode {episode_id}.") from exc

    async def get_currently_playing_episode(
        self, access_token: str
    ) -> Optional[PodcastEpisode]:
        """Return the episode playing right now, if any.

        Errors are logged and reported as nothing playing.
        """
        try:
            response = await self._get(
                "/me/player/currently-playing",
                access_token,
                params={"additional_types": "episode"},
            )
            if response.status_code == httpx.codes.NO_CONTENT or not response.content:
                return None
            item = _json_body(response).get("item") or {}
            if item.get("type") != "episode":
                return None
            return PodcastEpisode(**_episode_fields(item))
        except (SpotifyAPIError, ValidationError) as exc:
            logger.warning("Could not read currently playing item: %s", exc)
            return None

    async def _get(
        self,
        path: str,
        access_token: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        try:
            response = await request_with_retry(
                self._http.get,
                f"{self.API_BASE_URL}{path}",
                params=params,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self._timeout,
                retry_config=self._retry,
            )
        except httpx.HTTPError as exc:
            raise SpotifyAPIError(
                f"Spotify request to {path} failed: {exc.__class__.__name__}"
            ) from exc

        if not response.is_success:
            raise SpotifyAPIError(
                f"Spotify request to {path} returned {response.status_code}.",
                status_code=response.status_code,
            )
        return response


def _json_body(response: httpx.Response) -> Dict[str, Any]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise SpotifyAPIError("Spotify returned invalid JSON.") from exc
    if not isinstance(payload, dict):
        raise SpotifyAPIError("Spotify returned a non-object body.")
    return payload


def _episode_fields(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten a Spotify episode object into ``PodcastEpisode`` fields."""
    images = raw.get("images") or []
    show = raw.get("show") or None
    return {
        "id": raw.get("id"),
        "name": raw.get("name"),
        "description": raw.get("description") or "",
        "duration_ms": raw.get("duration_ms"),
        "release_date": raw.get("release_date"),
        "spotify_url": (raw.get("external_urls") or {}).get("spotify"),
        "image_url": images[0].get("url") if images else None,
        "show": {"id": show.get("id"), "name": show.get("name")} if show else None,
    }


__all__ = ["SpotifyAPIError", "SpotifyWebClient"]
