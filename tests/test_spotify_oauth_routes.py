try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

import copy
import time

import httpx
import pytest

from app.clients.spotify_auth import OAuthTokenExchangeError, TokenGrant
from app.main import app


class DummyOAuthClient:
    def __init__(self) -> None:
        self.states: list[str] = []
        self.codes: list[str] = []
        self.fail = False

    def build_authorization_url(self, state: str, show_dialog: bool = False) -> str:
        self.states.append(state)
        return f"https://accounts.example.com/authorize?state={state}&show_dialog={show_dialog}"

    async def exchange_authorization_code(self, code: str) -> TokenGrant:
        self.codes.append(code)
        if self.fail:
            raise OAuthTokenExchangeError('400: {"error":"invalid_grant"}')
        return TokenGrant(access_token="access-token", expires_in=3600, refresh_token="refresh-token")


class DummyCredentialStore:
    def __init__(self) -> None:
        self.records: list = []

    async def create(self, record) -> None:
        self.records.append(record)


@pytest.fixture()
def oauth_overrides():
    from app import dependencies
    from app.core.config import get_settings

    dummy_client = DummyOAuthClient()
    dummy_store = DummyCredentialStore()
    base_settings = copy.deepcopy(get_settings())
    base_settings.frontend_base_url = None

    overrides = {
        dependencies.get_spotify_oauth_client: lambda: dummy_client,
        dependencies.get_credential_store: lambda: dummy_store,
        dependencies.get_app_settings: lambda: base_settings,
    }

    app.dependency_overrides.update(overrides)

    yield dummy_client, dummy_store, base_settings

    app.dependency_overrides.clear()


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    )


@pytest.mark.anyio
async def test_authorize_returns_json_by_default(oauth_overrides):
    dummy_client, _, _ = oauth_overrides
    async with _client() as client:
        response = await client.get(
            "/api/auth/spotify/authorize",
            params={"user_id": "abc123"},
        )

    assert response.status_code == 200
    data = response.json()
    assert data["authorization_url"].startswith("https://")
    assert data["state"] == dummy_client.states[-1]


@pytest.mark.anyio
async def test_authorize_redirects_for_html_accept(oauth_overrides):
    async with _client() as client:
        response = await client.get(
            "/api/auth/spotify/authorize",
            params={"user_id": "abc123", "show_dialog": "true"},
            headers={"accept": "text/html"},
        )

    assert response.status_code == 307
    location = response.headers["location"]
    assert location.startswith("https://accounts.example.com/authorize")
    assert location.endswith("show_dialog=True")


@pytest.mark.anyio
async def test_authorize_requires_user_id(oauth_overrides):
    async with _client() as client:
        response = await client.get("/api/auth/spotify/authorize")

    assert response.status_code == 422


@pytest.mark.anyio
async def test_callback_get_stores_credentials_and_returns_json(oauth_overrides):
    dummy_client, dummy_store, _ = oauth_overrides
    before = int(time.time())

    async with _client() as client:
        await client.get("/api/auth/spotify/authorize", params={"user_id": "user-1"})
        state = dummy_client.states[-1]
        callback_resp = await client.get(
            "/api/auth/spotify/callback",
            params={"state": state, "code": "oauth-code"},
        )

    assert callback_resp.status_code == 200
    data = callback_resp.json()
    assert data["status"] == "connected"
    assert data["user_id"] == "user-1"
    assert dummy_client.codes[-1] == "oauth-code"

    record = dummy_store.records[-1]
    assert record.user_id == "user-1"
    assert record.provider == "spotify"
    assert record.access_token == "access-token"
    assert record.refresh_token == "refresh-token"
    assert before + 3600 <= record.expires_at <= int(time.time()) + 3600


@pytest.mark.anyio
async def test_callback_get_redirects_when_frontend_available(oauth_overrides):
    dummy_client, _, settings = oauth_overrides
    settings.frontend_base_url = "https://app.example.com/oauth/success"

    async with _client() as client:
        await client.get("/api/auth/spotify/authorize", params={"user_id": "user-2"})
        state = dummy_client.states[-1]
        callback_resp = await client.get(
            "/api/auth/spotify/callback",
            params={"state": state, "code": "oauth-code"},
            headers={"accept": "text/html"},
        )

    assert callback_resp.status_code == 307
    assert callback_resp.headers["location"] == "https://app.example.com/oauth/success"


@pytest.mark.anyio
async def test_callback_prefers_redirect_from_state(oauth_overrides):
    dummy_client, _, _ = oauth_overrides

    async with _client() as client:
        await client.get(
            "/api/auth/spotify/authorize",
            params={"user_id": "user-3", "redirect_to": "https://app.example.com/home"},
        )
        state = dummy_client.states[-1]
        callback_resp = await client.get(
            "/api/auth/spotify/callback",
            params={"state": state, "code": "oauth-code", "redirect": "true"},
        )

    assert callback_resp.status_code == 307
    assert callback_resp.headers["location"] == "https://app.example.com/home"


@pytest.mark.anyio
async def test_callback_with_denied_consent_is_rejected(oauth_overrides):
    dummy_client, dummy_store, _ = oauth_overrides

    async with _client() as client:
        await client.get("/api/auth/spotify/authorize", params={"user_id": "user-4"})
        response = await client.get(
            "/api/auth/spotify/callback",
            params={"state": dummy_client.states[-1], "error": "access_denied"},
        )

    assert response.status_code == 400
    assert "access_denied" in response.json()["detail"]
    assert dummy_client.codes == []
    assert dummy_store.records == []


@pytest.mark.anyio
async def test_callback_with_tampered_state_is_rejected(oauth_overrides):
    dummy_client, dummy_store, _ = oauth_overrides

    async with _client() as client:
        await client.get("/api/auth/spotify/authorize", params={"user_id": "user-5"})
        state = dummy_client.states[-1]
        response = await client.post(
            "/api/auth/spotify/callback",
            json={"state": state[:-2] + "xx", "code": "oauth-code"},
        )

    assert response.status_code == 400
    assert dummy_client.codes == []
    assert dummy_store.records == []


@pytest.mark.anyio
async def test_callback_with_failed_exchange_stores_nothing(oauth_overrides):
    dummy_client, dummy_store, _ = oauth_overrides
    dummy_client.fail = True

    async with _client() as client:
        await client.get("/api/auth/spotify/authorize", params={"user_id": "user-6"})
        response = await client.post(
            "/api/auth/spotify/callback",
            json={"state": dummy_client.states[-1], "code": "bad-code"},
        )

    assert response.status_code == 400
    assert dummy_store.records == []
