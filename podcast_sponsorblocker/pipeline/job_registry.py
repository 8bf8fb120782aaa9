"""In-memory registry of analysis runs.

Tracks every run started in this process from creation to its terminal state
and guarantees that at most one run per episode identity is in flight. The
guarantee is process-local; two server processes sharing a database can
still race on the same identity.
"""

from __future__ import annotations

import enum
import logging
import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import NamedTuple

from podcast_sponsorblocker.models import AnalysisResult

logger = logging.getLogger(__name__)


class RunStatus(str, enum.Enum):  # noqa: UP042
    """Status of an analysis run.

    Attributes:
        CREATED: Run registered, pipeline not started yet.
        RUNNING: Pipeline executing.
        DONE: Finished successfully; the result is cached.
        ERROR: Failed; nothing was cached.
    """

    CREATED = "created"
    RUNNING = "running"
    DONE = "done"
    ERROR = "error"

    @property
    def is_active(self) -> bool:
        return self in (RunStatus.CREATED, RunStatus.RUNNING)


@dataclass
class AnalysisRun:
    """One end-to-end pipeline execution for one episode identity.

    Attributes:
        identity: Normalized episode identity.
        locator: Locator as submitted (query string included), used to
            download the audio.
        run_id: Unique run identifier.
        status: Current run status.
        started_at: Registration timestamp.
        finished_at: Timestamp of the terminal transition.
        result: Cached result once ``DONE``.
        error: Human-readable failure message once ``ERROR``.

    Examples:
        >>> run = AnalysisRun(identity="https://x/ep.mp3", locator="https://x/ep.mp3?t=1")
        >>> run.status
        <RunStatus.CREATED: 'created'>
    """

    identity: str
    locator: str
    run_id: str = field(default_factory=lambda: f"job_{uuid.uuid4().hex}")
    status: RunStatus = RunStatus.CREATED
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None
    result: AnalysisResult | None = None
    error: str | None = None


class StartResult(NamedTuple):
    """Outcome of :meth:`JobRegistry.start_if_absent`.

    ``run`` is ``None`` only when ``cached`` holds a finished result.
    """

    already_running: bool
    run: AnalysisRun | None
    cached: AnalysisResult | None = None


class JobRegistry:
    """Registry of analysis runs keyed by run id.

    All reads and transitions hold one re-entrant lock, so the scan for an
    active run and the registration of a new one happen atomically even when
    requests are served from several threads. Runs are never evicted.

    Examples:
        >>> registry = JobRegistry()
        >>> first = registry.start_if_absent("https://x/ep.mp3", "https://x/ep.mp3?a=1")
        >>> second = registry.start_if_absent("https://x/ep.mp3", "https://x/ep.mp3?a=2")
        >>> second.already_running, second.run.run_id == first.run.run_id
        (True, True)
    """

    def __init__(self) -> None:
        self._runs: dict[str, AnalysisRun] = {}
        self._lock = threading.RLock()

    def start_if_absent(
        self,
        identity: str,
        locator: str | None = None,
        lookup: Callable[[str], AnalysisResult | None] | None = None,
    ) -> StartResult:
        """Register a new run unless one is already active for ``identity``.

        Runs store their result before they finish under this lock, so when
        no run is active ``lookup`` sees the result of any run that finished
        concurrently with the caller's own cache miss.

        Args:
            identity: Normalized episode identity.
            locator: Original locator; defaults to ``identity``.
            lookup: Optional result lookup consulted under the lock once no
                active run was found.

        Returns:
            ``StartResult(True, existing_run)`` when a run is active for the
            identity, ``StartResult(False, None, result)`` when ``lookup``
            finds a result, else ``StartResult(False, new_run)`` with the new
            run in ``CREATED`` state.
        """
        with self._lock:
            active = self.find_active(identity)
            if active is not None:
                logger.info(f"Run {active.run_id} already in progress for {identity}")
                return StartResult(already_running=True, run=active)
            cached = lookup(identity) if lookup is not None else None
            if cached is not None:
                return StartResult(already_running=False, run=None, cached=cached)
            run = AnalysisRun(identity=identity, locator=locator or identity)
            self._runs[run.run_id] = run
            logger.debug(f"Registered run {run.run_id} for {identity}")
            return StartResult(already_running=False, run=run)

    def get(self, run_id: str) -> AnalysisRun | None:
        """Return the run with ``run_id`` or ``None`` when unknown."""
        with self._lock:
            return self._runs.get(run_id)

    def _require(self, run_id: str) -> AnalysisRun:
        run = self._runs.get(run_id)
        if run is None:
            raise KeyError(f"Unknown run: {run_id}")
        return run

    def mark_running(self, run_id: str) -> AnalysisRun:
        """Transition a run from ``CREATED`` to ``RUNNING``.

        Raises:
            KeyError: If the run is unknown.
            ValueError: If the run is not in ``CREATED`` state.
        """
        with self._lock:
            run = self._require(run_id)
            if run.status is not RunStatus.CREATED:
                raise ValueError(f"Run {run_id} cannot start from status {run.status.value}")
            run.status = RunStatus.RUNNING
            return run

    def finish(
        self,
        run_id: str,
        result: AnalysisResult | None = None,
        error: str | None = None,
    ) -> AnalysisRun:
        """Move an active run to ``DONE`` (no ``error``) or ``ERROR``.

        Raises:
            KeyError: If the run is unknown.
            ValueError: If the run already reached a terminal state.
        """
        with self._lock:
            run = self._require(run_id)
            if not run.status.is_active:
                raise ValueError(f"Run {run_id} already finished with status {run.status.value}")
            run.finished_at = datetime.now(timezone.utc)
            if error is not None:
                run.error = error
                run.status = RunStatus.ERROR
            else:
                run.result = result
                run.status = RunStatus.DONE
            return run

    def find_active(self, identity: str) -> AnalysisRun | None:
        """Return the ``CREATED``/``RUNNING`` run for ``identity``, if any."""
        with self._lock:
            for run in self._runs.values():
                if run.identity == identity and run.status.is_active:
                    return run
            return None

    def is_analyzing(self, identity: str) -> bool:
        return self.find_active(identity) is not None

    def list_runs(self) -> list[AnalysisRun]:
        """Return all runs in registration order."""
        with self._lock:
            return list(self._runs.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._runs)
