"""Persistence of analysis results and request tracking."""

from .cache import ResultCache
from .database import PodcastRecord, PodcastRepository, RequestedUrl, create_db_engine

__all__ = [
    "PodcastRecord",
    "PodcastRepository",
    "RequestedUrl",
    "ResultCache",
    "create_db_engine",
]
