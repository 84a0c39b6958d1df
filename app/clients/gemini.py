"""Client wrapper for interacting with Google Gemini models."""

from __future__ import annotations

import asyncio
import logging
from textwrap import dedent
from typing import Any, Callable, Iterable

import google.generativeai as genai
from google.api_core.exceptions import GoogleAPICallError, NotFound

from app.core.config import GeminiSettings


_TEXT_FALLBACKS: tuple[str, ...] = (
    "gemini-1.5-flash",
    "gemini-1.5-pro",
)

_MAX_INPUT_CHARS = 12000

PLACEHOLDER_SUMMARY = dedent(
    """\
    1. Overview: Placeholder summary generated without a Gemini API key.

    2. Key points:
    - GEMINI_API_KEY is not configured, so no model was called
    - Set GEMINI_API_KEY in the environment to produce real summaries
    - The episode description was not analysed

    3. Details: This text is static and does not reflect the episode content.
    """
)

logger = logging.getLogger(__name__)


class GeminiModelError(RuntimeError):
    """Raised when Gemini cannot fulfill a request due to configuration issues."""


class GeminiClient:
    """Generate podcast summaries with Gemini text models."""

    def __init__(self, settings: GeminiSettings) -> None:
        self._settings = settings
        self._enabled = bool(settings.api_key)
        if self._enabled:
            # Configure the global client once per process.
            genai.configure(api_key=settings.api_key)

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def generate_podcast_summary(self, text: str) -> str:
        """Summarize an episode description into overview, key points and details."""
        if not self._enabled:
            logger.warning("GEMINI_API_KEY is not set; returning placeholder summary.")
            return PLACEHOLDER_SUMMARY

        prompt = _build_summary_prompt(_truncate(text, _MAX_INPUT_CHARS))

        def _invoke() -> str:
            response = self._invoke_with_models(
                models=self._text_model_candidates(),
                env_var="GEMINI_MODEL_NAME",
                error_prefix="Gemini summary generate_content failed",
                call=lambda model: model.generate_content(prompt),
            )
            try:
                return response.text or ""
            except ValueError as exc:
                # Raised when the prompt was blocked or no candidate has parts.
                raise GeminiModelError(f"Gemini returned no usable summary: {exc}") from exc

        summary = await asyncio.to_thread(_invoke)
        if not summary.strip():
            raise GeminiModelError("Gemini returned an empty summary.")
        return summary

    def _invoke_with_models(
        self,
        *,
        models: Iterable[str],
        env_var: str,
        error_prefix: str,
        call: Callable[[genai.GenerativeModel], Any],
    ) -> Any:
        """Try the configured model followed by fallbacks when available."""

        model_sequence = list(models)
        last_not_found: NotFound | None = None
        for index, model_name in enumerate(model_sequence):
            generative_model = genai.GenerativeModel(model_name)
            try:
                return call(generative_model)
            except NotFound as exc:  # pragma: no cover - network call
                last_not_found = exc
                logger.warning(
                    "Gemini model '%s' not found (attempt %d/%d); trying fallback.",
                    model_name,
                    index + 1,
                    len(model_sequence),
                )
                continue
            except GoogleAPICallError as exc:  # pragma: no cover - network call
                raise GeminiModelError(f"{error_prefix}: {exc.message}") from exc

        if last_not_found is not None:
            primary = model_sequence[0] if model_sequence else "unknown"
            raise GeminiModelError(
                f"Gemini model '{primary}' is not available. "
                f"Update {env_var} to a supported value."
            ) from last_not_found

        raise GeminiModelError(f"{error_prefix}: Unknown error invoking Gemini.")

    def _text_model_candidates(self) -> list[str]:
        return self._collect_candidates(self._settings.model_name, _TEXT_FALLBACKS)

    @staticmethod
    def _collect_candidates(
        configured: str | None,
        fallbacks: tuple[str, ...],
    ) -> list[str]:
        """Return distinct model names prioritizing the configured value."""
        seen: set[str] = set()
        candidates: list[str] = []
        for name in (configured, *fallbacks):
            if not name:
                continue
            cleaned = name.strip()
            if not cleaned or cleaned in seen:
                continue
            seen.add(cleaned)
            candidates.append(cleaned)
        return candidates


def _truncate(value: str, max_len: int) -> str:
    """Best-effort truncate long strings to keep prompt sizes manageable."""
    if len(value) > max_len:
        return value[: max_len - 3] + "..."
    return value


def _build_summary_prompt(text: str) -> str:
    return dedent(
        """\
        Summarize the following podcast episode.
        Use exactly this format, separating the three sections with a blank line:

        1. Overview: about two sentences
        2. Key points: three to five bullet points, one per line, each starting with "- "
        3. Details: one paragraph of roughly 150 words

        Episode text:
        """
    ) + text


__all__ = ["GeminiClient", "GeminiModelError", "PLACEHOLDER_SUMMARY"]
