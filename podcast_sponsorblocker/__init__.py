"""Podcast Sponsorblocker – Python package init."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("podcast-sponsorblocker")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "1.1.0"

__all__ = ["__version__"]
