"""Persistence-facing domain models."""

from .credentials import SPOTIFY_PROVIDER, CredentialRecord

__all__ = ["CredentialRecord", "SPOTIFY_PROVIDER"]
