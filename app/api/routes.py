"""
FastAPI routes for the podcast summary agent.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from http import HTTPStatus
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from app.clients.gemini import GeminiModelError
from app.clients.spotify_api import SpotifyAPIError
from app.clients.spotify_auth import OAuthTokenExchangeError
from app.dependencies import (
    get_app_settings,
    get_credential_store,
    get_current_session,
    get_oauth_state_encoder,
    get_podcast_summary_service,
    get_spotify_client,
    get_spotify_oauth_client,
    require_session,
)
from app.models import SPOTIFY_PROVIDER, CredentialRecord
from app.schemas import (
    OAuthCallbackPayload,
    OAuthCallbackResult,
    PodcastEpisode,
    RecentPodcastsResponse,
    SessionStatus,
    SessionView,
    SummaryResponse,
)
from app.services import EpisodeNotFoundError

router = APIRouter()
logger = logging.getLogger(__name__)


def _wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "").lower()


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/auth/spotify/authorize", status_code=HTTPStatus.OK)
async def start_spotify_oauth_flow(
    request: Request,
    oauth_client: Annotated[Any, Depends(get_spotify_oauth_client)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    user_id: str = Query(..., min_length=1, description="User identifier initiating sign-in."),
    redirect_to: str | None = Query(
        default=None,
        description="Optional URL to redirect back to on successful authentication.",
    ),
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the Spotify consent screen.",
    ),
    show_dialog: bool = Query(
        default=False,
        description="Force Spotify to show the consent dialog again.",
    ),
) -> Any:
    """
    Kick off the OAuth flow by generating a state token and authorization URL.
    """
    state_payload = {
        "nonce": uuid.uuid4().hex,
        "redirect_to": redirect_to,
        "user_id": user_id,
        "issued_at": datetime.now(timezone.utc).isoformat(),
    }
    state = state_encoder.encode(state_payload)
    authorization_url = oauth_client.build_authorization_url(
        state=state, show_dialog=show_dialog
    )

    if redirect or _wants_html(request):
        return RedirectResponse(url=authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT)

    return {"authorization_url": authorization_url, "state": state}


@router.post(
    "/auth/spotify/callback",
    response_model=OAuthCallbackResult,
    status_code=HTTPStatus.OK,
)
async def handle_spotify_oauth_callback(
    payload: OAuthCallbackPayload,
    oauth_client: Annotated[Any, Depends(get_spotify_oauth_client)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    credential_store: Annotated[Any, Depends(get_credential_store)],
    settings: Annotated[Any, Depends(get_app_settings)],
) -> OAuthCallbackResult:
    """Complete the OAuth exchange and store the user's credential record."""
    state_data = state_encoder.decode(payload.state)

    issued_at_raw = state_data.get("issued_at")
    if not issued_at_raw:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Missing issued_at in state token.",
        )

    try:
        issued_at = datetime.fromisoformat(issued_at_raw)
    except ValueError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Invalid issued_at in state token.",
        ) from exc

    if issued_at.tzinfo is None:
        issued_at = issued_at.replace(tzinfo=timezone.utc)

    now = datetime.now(timezone.utc)
    if now - issued_at > timedelta(seconds=settings.oauth.state_ttl_seconds):
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail="OAuth state token has expired."
        )

    user_id = state_data.get("user_id")
    if not user_id:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Missing user identifier in state token.",
        )

    try:
        grant = await oauth_client.exchange_authorization_code(payload.code)
    except OAuthTokenExchangeError as exc:
        logger.warning("Authorization code exchange for user %s failed: %s", user_id, exc)
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Failed to exchange authorization code.",
        ) from exc

    await credential_store.create(
        CredentialRecord(
            user_id=user_id,
            provider=SPOTIFY_PROVIDER,
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            expires_at=int(now.timestamp()) + grant.expires_in,
        )
    )
    logger.info("Stored Spotify credentials for user %s.", user_id)

    return OAuthCallbackResult(user_id=user_id, redirect_to=state_data.get("redirect_to"))


@router.get("/auth/spotify/callback", status_code=HTTPStatus.OK)
async def handle_spotify_oauth_callback_get(
    request: Request,
    oauth_client: Annotated[Any, Depends(get_spotify_oauth_client)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    credential_store: Annotated[Any, Depends(get_credential_store)],
    settings: Annotated[Any, Depends(get_app_settings)],
    state: str = Query(..., description="OAuth state token."),
    code: Optional[str] = Query(None, description="Authorization code returned by Spotify."),
    error: Optional[str] = Query(None, description="Error reported by Spotify."),
    redirect: bool = Query(
        default=False,
        description="When true, redirect browser clients instead of returning JSON.",
    ),
) -> Response:
    if error or not code:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail=f"Spotify authorization was not granted: {error or 'missing code'}.",
        )

    result = await handle_spotify_oauth_callback(
        payload=OAuthCallbackPayload(state=state, code=code),
        oauth_client=oauth_client,
        state_encoder=state_encoder,
        credential_store=credential_store,
        settings=settings,
    )

    redirect_target = result.redirect_to or settings.frontend_base_url
    if redirect_target and (redirect or _wants_html(request)):
        return RedirectResponse(url=str(redirect_target), status_code=HTTPStatus.TEMPORARY_REDIRECT)

    return JSONResponse(content=result.model_dump())


@router.get("/session", response_model=SessionStatus, status_code=HTTPStatus.OK)
async def read_session(
    session: Annotated[SessionView, Depends(get_current_session)],
) -> SessionStatus:
    """Report whether the user has a usable Spotify session.

    The access token itself is only used server-side by the podcast routes.
    """
    return SessionStatus.from_view(session)


@router.get("/podcasts/recent", response_model=RecentPodcastsResponse)
async def list_recent_podcasts(
    session: Annotated[SessionView, Depends(require_session)],
    service: Annotated[Any, Depends(get_podcast_summary_service)],
    settings: Annotated[Any, Depends(get_app_settings)],
) -> RecentPodcastsResponse:
    """List recently played episodes together with their stored summaries."""
    try:
        episodes = await service.recent_episodes(
            access_token=session.access_token,
            limit=settings.recently_played_limit,
        )
    except SpotifyAPIError as exc:
        logger.error("Fetching play history for user %s failed: %s", session.user_id, exc)
        raise HTTPException(
            status_code=HTTPStatus.BAD_GATEWAY,
            detail="Could not fetch recently played podcasts from Spotify.",
        ) from exc
    return RecentPodcastsResponse(user_id=session.user_id, episodes=episodes)


@router.get("/podcasts/current", response_model=Optional[PodcastEpisode])
async def read_current_podcast(
    session: Annotated[SessionView, Depends(require_session)],
    spotify_client: Annotated[Any, Depends(get_spotify_client)],
) -> Optional[PodcastEpisode]:
    """Return the episode currently playing, or null."""
    return await spotify_client.get_currently_playing_episode(session.access_token)


@router.post(
    "/podcasts/{episode_id}/summary",
    response_model=SummaryResponse,
    status_code=HTTPStatus.CREATED,
)
async def create_podcast_summary(
    episode_id: str,
    session: Annotated[SessionView, Depends(require_session)],
    service: Annotated[Any, Depends(get_podcast_summary_service)],
) -> SummaryResponse:
    """Generate a summary for an episode description and store it."""
    try:
        return await service.summarize_episode(
            access_token=session.access_token, episode_id=episode_id
        )
    except EpisodeNotFoundError as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc)) from exc
    except SpotifyAPIError as exc:
        logger.error("Fetching episode %s failed: %s", episode_id, exc)
        raise HTTPException(
            status_code=HTTPStatus.BAD_GATEWAY,
            detail="Could not fetch the episode from Spotify.",
        ) from exc
    except GeminiModelError as exc:
        raise HTTPException(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
