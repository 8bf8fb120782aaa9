"""REST API package for Podcast Sponsorblocker."""

from __future__ import annotations

from podcast_sponsorblocker.api.app import create_app

__all__ = ["create_app"]
