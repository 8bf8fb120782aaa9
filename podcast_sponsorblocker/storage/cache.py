"""Result cache keyed by normalized episode identity.

The cache sits in front of :class:`PodcastRepository`: lookups are served from
memory once an identity has been read or written, and writes go through to
the database first so a restart loses nothing. All access is serialized by a
lock because pipeline runs finish on worker threads while request handlers
read concurrently.
"""

from __future__ import annotations

import threading
from collections.abc import Sequence

from podcast_sponsorblocker.identity import normalize_locator
from podcast_sponsorblocker.models import AdSegment, AnalysisResult, CostMetrics
from podcast_sponsorblocker.storage.database import PodcastRepository


class ResultCache:
    """Read-through, write-through cache of analysis results.

    Args:
        repository: Durable store behind the cache.
    """

    def __init__(self, repository: PodcastRepository) -> None:
        self.repository = repository
        self._entries: dict[str, AnalysisResult] = {}
        self._lock = threading.RLock()

    def get(self, identity: str) -> AnalysisResult | None:
        """Return the cached result for ``identity`` (normalized again here)."""
        key = normalize_locator(identity)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                return entry
            entry = self.repository.get(key)
            if entry is not None:
                self._entries[key] = entry
            return entry

    def put(
        self,
        identity: str,
        title: str,
        segments: Sequence[AdSegment],
        cost: CostMetrics | None = None,
    ) -> AnalysisResult:
        """Store a result, overwriting any previous one for ``identity``.

        Raises:
            PersistenceFailedError: If the durable write fails; memory is left
                unchanged in that case.
        """
        key = normalize_locator(identity)
        with self._lock:
            entry = self.repository.save(key, title, segments, cost)
            self._entries[key] = entry
            return entry

    def __contains__(self, identity: object) -> bool:
        return isinstance(identity, str) and self.get(identity) is not None

    def clear(self) -> None:
        """Drop the in-memory layer; the database is untouched."""
        with self._lock:
            self._entries.clear()
