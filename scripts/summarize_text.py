#!/usr/bin/env python
"""Summarize an episode description with the configured Gemini model.

Reads the text from the command line, a file, or stdin and prints the parsed
summary as JSON. Useful for tuning the prompt without going through Spotify.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.clients.gemini import GeminiClient, GeminiModelError  # noqa: E402
from app.core.config import GeminiSettings  # noqa: E402
from app.services.podcast_summaries import parse_summary  # noqa: E402


def _read_text(args: argparse.Namespace) -> str:
    if args.text:
        return args.text
    if args.file:
        return args.file.read_text(encoding="utf-8")
    return sys.stdin.read()


async def _summarize(text: str, model_name: str | None, raw: bool) -> str:
    settings = GeminiSettings()  # type: ignore[call-arg]
    if model_name:
        settings = settings.model_copy(update={"model_name": model_name})
    summary = await GeminiClient(settings).generate_podcast_summary(text)
    if raw:
        return summary
    return parse_summary(summary).model_dump_json(indent=2)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Summarize podcast text with Gemini and print the result."
    )
    parser.add_argument(
        "text",
        nargs="?",
        help="Text to summarize. Reads --file or stdin when omitted.",
    )
    parser.add_argument("--file", type=Path, help="Read the text from this file.")
    parser.add_argument(
        "--model",
        dest="model",
        default=None,
        help="Optional override for the Gemini model name.",
    )
    parser.add_argument(
        "--raw",
        action="store_true",
        help="Print the model output instead of the parsed sections.",
    )

    args = parser.parse_args(argv)
    text = _read_text(args).strip()
    if not text:
        print("Nothing to summarize.", file=sys.stderr)
        return 2

    try:
        output = asyncio.run(_summarize(text, args.model, args.raw))
    except GeminiModelError as exc:
        print(f"Gemini request failed: {exc}", file=sys.stderr)
        return 1
    print(output)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
