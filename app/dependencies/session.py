"""FastAPI dependencies resolving the caller's Spotify session."""

from http import HTTPStatus
from typing import Annotated

from fastapi import Depends, HTTPException, Query

from app.schemas.session import SessionError, SessionView
from app.services import SessionMaterializer

from .clients import get_session_materializer

_DETAILS = {
    SessionError.UNAUTHENTICATED.value: "Spotify account not connected.",
    SessionError.REAUTH_REQUIRED.value: "Spotify session expired; sign in again.",
}


async def get_current_session(
    materializer: Annotated[SessionMaterializer, Depends(get_session_materializer)],
    user_id: str = Query(..., min_length=1, description="Application user identifier."),
) -> SessionView:
    """Materialize the session for ``user_id``; never fails on missing tokens."""
    return await materializer.materialize_session(user_id)


async def require_session(
    session: Annotated[SessionView, Depends(get_current_session)],
) -> SessionView:
    """Like ``get_current_session`` but rejects sessions without a token."""
    if not session.is_authenticated:
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail=_DETAILS.get(session.error, "Not authenticated."),
            headers={"X-Session-Error": str(session.error)},
        )
    return session


__all__ = ["get_current_session", "require_session"]
