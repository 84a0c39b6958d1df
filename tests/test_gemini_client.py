try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from types import SimpleNamespace

import pytest
from google.api_core.exceptions import NotFound

from app.clients import gemini as gemini_module
from app.clients.gemini import PLACEHOLDER_SUMMARY, GeminiClient, GeminiModelError
from app.core.config import GeminiSettings


class BlockedResponse:
    @property
    def text(self) -> str:
        raise ValueError("The response has no parts; finish_reason is SAFETY.")


class FakeModel:
    missing: set[str] = set()
    blocked = False
    output = "1. Overview: ok"
    prompts: list[tuple[str, str]] = []

    def __init__(self, name: str) -> None:
        self.name = name

    def generate_content(self, prompt: str):
        FakeModel.prompts.append((self.name, prompt))
        if self.name in FakeModel.missing:
            raise NotFound(f"{self.name} is gone")
        if FakeModel.blocked:
            return BlockedResponse()
        return SimpleNamespace(text=FakeModel.output)


@pytest.fixture()
def fake_genai(monkeypatch: pytest.MonkeyPatch):
    FakeModel.missing = set()
    FakeModel.blocked = False
    FakeModel.output = "1. Overview: ok"
    FakeModel.prompts = []
    monkeypatch.setattr(gemini_module.genai, "configure", lambda **kwargs: None)
    monkeypatch.setattr(gemini_module.genai, "GenerativeModel", FakeModel)
    return FakeModel


def _settings(**values) -> GeminiSettings:
    return GeminiSettings.model_construct(
        api_key=values.get("api_key"),
        model_name=values.get("model_name", "gemini-1.5-flash"),
    )


@pytest.mark.asyncio
async def test_placeholder_without_api_key(fake_genai, caplog) -> None:
    client = GeminiClient(_settings())

    assert not client.enabled
    assert await client.generate_podcast_summary("anything") == PLACEHOLDER_SUMMARY
    assert fake_genai.prompts == []
    assert "GEMINI_API_KEY" in caplog.text


@pytest.mark.asyncio
async def test_summary_prompt_includes_episode_text(fake_genai) -> None:
    client = GeminiClient(_settings(api_key="key"))

    result = await client.generate_podcast_summary("A talk about tides.")

    assert result == "1. Overview: ok"
    model_name, prompt = fake_genai.prompts[0]
    assert model_name == "gemini-1.5-flash"
    assert "Key points" in prompt
    assert prompt.endswith("A talk about tides.")


@pytest.mark.asyncio
async def test_falls_back_when_configured_model_is_missing(fake_genai) -> None:
    fake_genai.missing = {"gemini-retired"}
    client = GeminiClient(_settings(api_key="key", model_name="gemini-retired"))

    await client.generate_podcast_summary("text")

    assert [name for name, _ in fake_genai.prompts] == ["gemini-retired", "gemini-1.5-flash"]


@pytest.mark.asyncio
async def test_all_models_missing_raises(fake_genai) -> None:
    fake_genai.missing = {"gemini-1.5-flash", "gemini-1.5-pro"}
    client = GeminiClient(_settings(api_key="key"))

    with pytest.raises(GeminiModelError, match="GEMINI_MODEL_NAME"):
        await client.generate_podcast_summary("text")


@pytest.mark.asyncio
async def test_empty_model_output_raises(fake_genai) -> None:
    fake_genai.output = "   "
    client = GeminiClient(_settings(api_key="key"))

    with pytest.raises(GeminiModelError):
        await client.generate_podcast_summary("text")


@pytest.mark.asyncio
async def test_blocked_response_raises_model_error(fake_genai) -> None:
    fake_genai.blocked = True
    client = GeminiClient(_settings(api_key="key"))

    with pytest.raises(GeminiModelError, match="no usable summary"):
        await client.generate_podcast_summary("text")


def test_candidates_are_distinct_and_configured_first() -> None:
    assert GeminiClient._collect_candidates(
        " gemini-1.5-pro ", ("gemini-1.5-flash", "gemini-1.5-pro")
    ) == ["gemini-1.5-pro", "gemini-1.5-flash"]
