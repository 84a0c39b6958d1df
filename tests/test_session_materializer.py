try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import time

import pytest

from app.clients.spotify_auth import OAuthTokenExchangeError, TokenGrant
from app.models import CredentialRecord
from app.schemas.session import SessionError
from app.services.credential_store import CredentialStore
from app.services.session import SessionMaterializer
from app.services.token_cipher import TokenCipherService
from app.services.token_refresh import TokenRefreshCoordinator


class ScriptedOAuthClient:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[str] = []

    async def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        self.calls.append(refresh_token)
        if self.fail:
            raise OAuthTokenExchangeError('400: {"error":"invalid_grant"}')
        return TokenGrant(access_token="A2", expires_in=3600)


@pytest.fixture()
def credential_store(sqlite_store) -> CredentialStore:
    return CredentialStore(sqlite_store, TokenCipherService(secret="session-secret"))


def _materializer(store: CredentialStore, oauth: ScriptedOAuthClient) -> SessionMaterializer:
    coordinator = TokenRefreshCoordinator(store=store, oauth_client=oauth)
    return SessionMaterializer(store=store, coordinator=coordinator)


@pytest.mark.asyncio
async def test_unknown_user_is_unauthenticated_without_network(credential_store) -> None:
    oauth = ScriptedOAuthClient()

    view = await _materializer(credential_store, oauth).materialize_session("nobody")

    assert view.user_id == "nobody"
    assert view.access_token is None
    assert view.error == SessionError.UNAUTHENTICATED
    assert not view.is_authenticated
    assert oauth.calls == []


@pytest.mark.asyncio
async def test_fresh_credentials_are_returned_as_is(credential_store) -> None:
    expires_at = int(time.time()) + 600
    await credential_store.create(
        CredentialRecord(
            user_id="user-1", access_token="A1", refresh_token="R1", expires_at=expires_at
        )
    )
    oauth = ScriptedOAuthClient()

    view = await _materializer(credential_store, oauth).materialize_session("user-1")

    assert view.access_token == "A1"
    assert view.expires_at == expires_at
    assert view.error is None
    assert oauth.calls == []


@pytest.mark.asyncio
async def test_expired_credentials_are_refreshed_and_stored(credential_store) -> None:
    before = int(time.time())
    await credential_store.create(
        CredentialRecord(
            user_id="user-1", access_token="A1", refresh_token="R1", expires_at=before - 10
        )
    )
    oauth = ScriptedOAuthClient()

    view = await _materializer(credential_store, oauth).materialize_session("user-1")

    assert view.access_token == "A2"
    assert before + 3600 <= view.expires_at <= int(time.time()) + 3600
    assert oauth.calls == ["R1"]

    stored = await credential_store.get("user-1")
    assert stored.access_token == "A2"
    assert stored.expires_at == view.expires_at


@pytest.mark.asyncio
async def test_refresh_failure_requires_reauth_and_keeps_stored_record(credential_store) -> None:
    original = CredentialRecord(
        user_id="user-1",
        access_token="A1",
        refresh_token="R1",
        expires_at=int(time.time()) - 10,
    )
    await credential_store.create(original)
    oauth = ScriptedOAuthClient(fail=True)

    view = await _materializer(credential_store, oauth).materialize_session("user-1")

    assert view.access_token is None
    assert view.expires_at is None
    assert view.error == SessionError.REAUTH_REQUIRED
    assert oauth.calls == ["R1"]
    assert await credential_store.get("user-1") == original


@pytest.mark.asyncio
async def test_session_view_is_immutable(credential_store) -> None:
    view = await _materializer(credential_store, ScriptedOAuthClient()).materialize_session("x")

    with pytest.raises(Exception):
        view.access_token = "stolen"  # type: ignore[misc]
