"""Request-level operations shared by the HTTP API and the CLI.

Every operation reduces the locator to its identity first and consults the
result cache before the job registry, so an analyzed episode never touches
the registry again.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from podcast_sponsorblocker.collaborators.classifier import OpenAIAdClassifier
from podcast_sponsorblocker.collaborators.downloader import EpisodeDownloader
from podcast_sponsorblocker.collaborators.transcriber import WhisperTranscriber
from podcast_sponsorblocker.config import PipelineConfig
from podcast_sponsorblocker.identity import identity_for
from podcast_sponsorblocker.models import AnalysisResult
from podcast_sponsorblocker.pipeline.job_registry import AnalysisRun, JobRegistry
from podcast_sponsorblocker.pipeline.orchestrator import AnalysisPipeline
from podcast_sponsorblocker.storage.cache import ResultCache
from podcast_sponsorblocker.storage.database import (
    PodcastRepository,
    RequestedUrl,
    create_db_engine,
)
from podcast_sponsorblocker.utils.constant import DATABASE_URL

logger = logging.getLogger(__name__)


class ProcessStatus(str, enum.Enum):  # noqa: UP042
    """Answer to a start-processing request."""

    ALREADY_PROCESSED = "already_processed"
    ALREADY_RUNNING = "already_running"
    STARTED = "started"


@dataclass
class QueryOutcome:
    """Answer to a query-by-identity request.

    Attributes:
        identity: Normalized identity of the requested locator.
        result: Cached result, or ``None`` when not analyzed yet.
        analyzing: ``True`` when a run for the identity is in flight.
    """

    identity: str
    result: AnalysisResult | None = None
    analyzing: bool = False

    @property
    def found(self) -> bool:
        return self.result is not None


@dataclass
class ProcessOutcome:
    """Answer to a start-processing request.

    Attributes:
        status: What happened to the request.
        identity: Normalized identity of the requested locator.
        run: New or already active run; ``None`` when already processed.
        result: Cached result when already processed.
    """

    status: ProcessStatus
    identity: str
    run: AnalysisRun | None = None
    result: AnalysisResult | None = None


class SponsorblockService:
    """Facade over cache, registry, repository and pipeline.

    Args:
        cache: Result cache.
        registry: Job registry.
        repository: Durable store (request tracking, listings).
        pipeline: Pipeline executing registered runs.
    """

    def __init__(
        self,
        cache: ResultCache,
        registry: JobRegistry,
        repository: PodcastRepository,
        pipeline: AnalysisPipeline,
    ) -> None:
        self.cache = cache
        self.registry = registry
        self.repository = repository
        self.pipeline = pipeline

    def query(self, locator: str | None, *, track: bool = True) -> QueryOutcome:
        """Look up the result for ``locator``.

        On a miss the identity is recorded as requested (unless ``track`` is
        false) and the outcome tells whether a run is currently analyzing it.

        Raises:
            InvalidIdentityError: If ``locator`` is missing or blank.
        """
        identity = identity_for(locator)
        cached = self.cache.get(identity)
        if cached is not None:
            return QueryOutcome(identity=identity, result=cached)
        if track:
            self.repository.track_requested(identity)
        return QueryOutcome(identity=identity, analyzing=self.registry.is_analyzing(identity))

    def start_processing(self, locator: str | None) -> ProcessOutcome:
        """Register a run for ``locator`` unless cached or already running.

        The caller is responsible for executing a ``STARTED`` run, typically
        in the background via :meth:`execute`.

        Raises:
            InvalidIdentityError: If ``locator`` is missing or blank.
        """
        identity = identity_for(locator)
        cached = self.cache.get(identity)
        if cached is None:
            started = self.registry.start_if_absent(
                identity, locator.strip(), lookup=self.cache.get
            )
            cached = started.cached
        if cached is not None:
            return ProcessOutcome(
                status=ProcessStatus.ALREADY_PROCESSED, identity=identity, result=cached
            )
        status = ProcessStatus.ALREADY_RUNNING if started.already_running else ProcessStatus.STARTED
        if status is ProcessStatus.STARTED:
            logger.info(f"Started run {started.run.run_id} for {identity}")
        return ProcessOutcome(status=status, identity=identity, run=started.run)

    def execute(self, run_id: str) -> AnalysisRun:
        """Run the pipeline for a registered run (blocking)."""
        return self.pipeline.run(run_id)

    def get_run(self, run_id: str) -> AnalysisRun | None:
        return self.registry.get(run_id)

    def list_podcasts(self) -> list[AnalysisResult]:
        return self.repository.list_all()

    def list_requested(self) -> list[RequestedUrl]:
        return self.repository.list_requested()


def create_service(
    database_url: str = DATABASE_URL,
    config: PipelineConfig | None = None,
) -> SponsorblockService:
    """Wire the production collaborators into a ready service.

    Creates missing tables and migrates stored URLs to identity keys.
    """
    config = config or PipelineConfig()
    repository = PodcastRepository(create_db_engine(database_url))
    repository.init_db()
    cache = ResultCache(repository)
    registry = JobRegistry()
    pipeline = AnalysisPipeline(
        registry=registry,
        cache=cache,
        repository=repository,
        downloader=EpisodeDownloader(downloads_dir=config.downloads_dir),
        transcriber=WhisperTranscriber(),
        classifier=OpenAIAdClassifier(),
        config=config,
    )
    return SponsorblockService(cache, registry, repository, pipeline)
