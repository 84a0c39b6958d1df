try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import httpx
import pytest

from app.clients.spotify_api import SpotifyAPIError, SpotifyWebClient
from app.utils.http import RetryConfig


def _episode(episode_id: str = "ep1", **overrides) -> dict:
    payload = {
        "type": "episode",
        "id": episode_id,
        "name": f"Episode {episode_id}",
        "description": "An interview about sleep.",
        "duration_ms": 1_800_000,
        "release_date": "2024-05-01",
        "images": [{"url": "https://i.scdn.co/image/1", "height": 640, "width": 640}],
        "external_urls": {"spotify": f"https://open.spotify.com/episode/{episode_id}"},
        "show": {"id": "show1", "name": "Science Hour"},
    }
    payload.update(overrides)
    return payload


def _client(handler) -> tuple[SpotifyWebClient, httpx.AsyncClient]:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SpotifyWebClient(http_client), http_client


@pytest.mark.asyncio
async def test_recently_played_keeps_only_episodes() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "items": [
                    {"track": _episode("ep1"), "played_at": "2024-05-02T08:00:00Z"},
                    {
                        "track": {"type": "track", "id": "song", "name": "A song"},
                        "played_at": "2024-05-02T07:00:00Z",
                    },
                    {"track": _episode("ep2", images=[]), "played_at": "2024-05-01T21:00:00Z"},
                ]
            },
        )

    client, http_client = _client(handler)
    async with http_client:
        episodes = await client.get_recently_played_episodes("token-1", limit=20)

    assert [episode.id for episode in episodes] == ["ep1", "ep2"]
    first = episodes[0]
    assert first.show.name == "Science Hour"
    assert first.image_url == "https://i.scdn.co/image/1"
    assert first.spotify_url == "https://open.spotify.com/episode/ep1"
    assert first.played_at.year == 2024
    assert episodes[1].image_url is None

    request = seen[0]
    assert request.url.path == "/v1/me/player/recently-played"
    assert request.url.params["limit"] == "20"
    assert request.headers["authorization"] == "Bearer token-1"


@pytest.mark.asyncio
async def test_recently_played_skips_malformed_entries() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "items": [
                    {"track": {"type": "episode", "id": "broken"}, "played_at": "not-a-date"},
                    {"track": _episode("ep1"), "played_at": "2024-05-02T08:00:00Z"},
                ]
            },
        )

    client, http_client = _client(handler)
    async with http_client:
        episodes = await client.get_recently_played_episodes("token-1")

    assert [episode.id for episode in episodes] == ["ep1"]


@pytest.mark.asyncio
async def test_recently_played_raises_on_unauthorized() -> None:
    client, http_client = _client(lambda request: httpx.Response(401))
    async with http_client:
        with pytest.raises(SpotifyAPIError) as excinfo:
            await client.get_recently_played_episodes("expired")

    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_get_episode_returns_none_when_missing() -> None:
    client, http_client = _client(lambda request: httpx.Response(404))
    async with http_client:
        assert await client.get_episode("token-1", "missing") is None


@pytest.mark.asyncio
async def test_get_episode_maps_fields() -> None:
    client, http_client = _client(lambda request: httpx.Response(200, json=_episode("ep7")))
    async with http_client:
        episode = await client.get_episode("token-1", "ep7")

    assert episode.id == "ep7"
    assert episode.duration_ms == 1_800_000
    assert episode.show.id == "show1"


@pytest.mark.asyncio
async def test_currently_playing_returns_none_when_idle_or_music() -> None:
    responses = iter(
        [
            httpx.Response(204),
            httpx.Response(200, json={"item": {"type": "track", "id": "song"}}),
            httpx.Response(500),
        ]
    )
    client, http_client = _client(lambda request: next(responses))
    async with http_client:
        assert await client.get_currently_playing_episode("token-1") is None
        assert await client.get_currently_playing_episode("token-1") is None
        assert await client.get_currently_playing_episode("token-1") is None


@pytest.mark.asyncio
async def test_currently_playing_returns_episode() -> None:
    client, http_client = _client(
        lambda request: httpx.Response(200, json={"item": _episode("ep3")})
    )
    async with http_client:
        episode = await client.get_currently_playing_episode("token-1")

    assert episode is not None
    assert episode.id == "ep3"


@pytest.mark.asyncio
async def test_rate_limited_reads_are_retried() -> None:
    responses = iter([httpx.Response(429), httpx.Response(200, json=_episode("ep4"))])
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return next(responses)

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = SpotifyWebClient(http_client, retry_config=RetryConfig(backoff_seconds=0))
    async with http_client:
        episode = await client.get_episode("token-1", "ep4")

    assert episode.id == "ep4"
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_persistent_gateway_errors_surface_after_retries() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503)

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = SpotifyWebClient(
        http_client, retry_config=RetryConfig(attempts=2, backoff_seconds=0)
    )
    async with http_client:
        with pytest.raises(SpotifyAPIError) as excinfo:
            await client.get_recently_played_episodes("token-1")

    assert excinfo.value.status_code == 503
    assert len(calls) == 2
