"""Utility for verifying that required environment configuration is intact.

The tool loads every settings section (Spotify client credentials, OAuth,
token encryption, Gemini) from the given ``.env`` file so missing values are
reported before the API starts refusing sign-ins. It can also record a
baseline of that file and later report which keys changed since then. The
baseline stores salted digests only, never the values.

Example usages::

    # Validate required settings are present and record the baseline.
    python -m scripts.check_env record --env-file /srv/podcast-summary/.env \
        --hash-file /srv/podcast-summary/.env.sha256

    # Run later (e.g. from cron/systemd) to alert on drift.
    python -m scripts.check_env verify --env-file /srv/podcast-summary/.env \
        --hash-file /srv/podcast-summary/.env.sha256

    # Print a redacted overview of the effective configuration.
    python -m scripts.check_env check --env-file /srv/podcast-summary/.env
"""

from __future__ import annotations

import argparse
import hashlib
import json
import secrets
import sys
from pathlib import Path
from typing import Any, Callable, Dict

from dotenv import dotenv_values
from pydantic import ValidationError

from app.core.config import AppSettings, load_settings

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_RUNTIME_ERROR = 5


def _digest(salt: str, value: str) -> str:
    return hashlib.sha256(f"{salt}:{value}".encode("utf-8")).hexdigest()


def _fingerprint(env_file: Path, salt: str) -> Dict[str, Any]:
    """Checksum of the whole file plus a salted digest per key."""
    values = dotenv_values(env_file)
    return {
        "sha256": hashlib.sha256(env_file.read_bytes()).hexdigest(),
        "salt": salt,
        "keys": {key: _digest(salt, value or "") for key, value in sorted(values.items())},
    }


def _changed_keys(expected: Dict[str, str], actual: Dict[str, str]) -> list[str]:
    return sorted(key for key in set(expected) | set(actual) if expected.get(key) != actual.get(key))


def _validate_settings(env_file: Path) -> AppSettings:
    """Ensure required settings can be loaded from the supplied env file."""
    settings = load_settings(str(env_file))
    if not settings.gemini.api_key:
        print(
            "Warning: GEMINI_API_KEY is not set; summaries will be placeholders.",
            file=sys.stderr,
        )
    return settings


def _redact(value: str) -> str:
    if len(value) <= 4:
        return "*" * len(value)
    return f"{value[:4]}{'*' * (len(value) - 4)}"


def _describe_settings(settings: AppSettings) -> int:
    """Print the effective configuration without revealing secrets."""
    key_source = (
        "TOKEN_ENCRYPTION_SECRET"
        if settings.security.token_encryption_secret
        else "SPOTIFY_CLIENT_SECRET"
    )
    retired = len(settings.security.previous_token_encryption_secrets)
    print(f"Spotify client id:     {_redact(settings.spotify.client_id)}")
    print(f"Spotify redirect URI:  {settings.spotify.redirect_uri}")
    print(f"OAuth scopes:          {' '.join(settings.oauth.scopes)}")
    print(f"Token key derived from: {key_source} ({retired} retired)")
    print(f"Database path:         {settings.database_path}")
    print(f"Gemini model:          {settings.gemini.model_name}")
    return EXIT_OK


def _record_baseline(env_file: Path, hash_file: Path) -> int:
    """Persist a fresh baseline for ``env_file`` to ``hash_file``."""
    fingerprint = _fingerprint(env_file, secrets.token_hex(16))
    hash_file.write_text(json.dumps(fingerprint, indent=2) + "\n", encoding="utf-8")
    print(f"Recorded baseline to {hash_file} ({fingerprint['sha256']})")
    return EXIT_OK


def _verify_baseline(env_file: Path, hash_file: Path) -> int:
    """Compare ``env_file`` with the recorded baseline and name drifted keys."""
    if not hash_file.exists():
        print(
            f"Expected baseline file {hash_file} is missing. "
            "Re-run with the 'record' command to establish one.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    try:
        baseline = json.loads(hash_file.read_text(encoding="utf-8"))
        expected_sha, salt = baseline["sha256"], baseline["salt"]
    except (json.JSONDecodeError, KeyError, TypeError):
        print(
            f"{hash_file} is not a baseline written by 'record'; re-record it.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    current = _fingerprint(env_file, salt)
    if current["sha256"] == expected_sha:
        print("Environment checksum OK.")
        return EXIT_OK

    changed = _changed_keys(baseline.get("keys") or {}, current["keys"])
    print(
        "Environment checksum mismatch!\n"
        f"  expected: {expected_sha}\n"
        f"  actual:   {current['sha256']}\n"
        f"  changed keys: {', '.join(changed) or 'none (formatting only)'}\n"
        "Investigate recent changes before restarting services.",
        file=sys.stderr,
    )
    return EXIT_CHECKSUM_ERROR


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate required settings and detect .env drift."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    commands = {
        "record": ("Validate settings and store a baseline.", "Location to write the baseline."),
        "verify": (
            "Validate settings and compare with the baseline.",
            "Location of the previously recorded baseline.",
        ),
        "check": ("Validate settings and print a redacted overview.", None),
    }
    for name, (help_text, hash_help) in commands.items():
        subparser = subparsers.add_parser(name, help=help_text)
        subparser.add_argument(
            "--env-file",
            default=".env",
            type=Path,
            help="Path to the environment file (default: .env in the repo root).",
        )
        if hash_help:
            subparser.add_argument("--hash-file", required=True, type=Path, help=hash_help)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    env_file: Path = args.env_file

    if not env_file.exists():
        print(
            f"Environment file {env_file} does not exist. "
            "Ensure the path is correct or create it before running this tool.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    try:
        settings = _validate_settings(env_file)
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR
    except Exception as exc:  # pylint: disable=broad-except
        print(f"Unexpected error during validation: {exc}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    handlers: dict[str, Callable[[], int]] = {
        "record": lambda: _record_baseline(env_file, args.hash_file),
        "verify": lambda: _verify_baseline(env_file, args.hash_file),
        "check": lambda: _describe_settings(settings),
    }
    return handlers[args.command]()


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
