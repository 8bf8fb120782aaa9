"""Analysis runs: registry, orchestration and request-level service."""

from .job_registry import AnalysisRun, JobRegistry, RunStatus, StartResult
from .orchestrator import AnalysisPipeline
from .service import (
    ProcessOutcome,
    ProcessStatus,
    QueryOutcome,
    SponsorblockService,
    create_service,
)

__all__ = [
    "AnalysisPipeline",
    "AnalysisRun",
    "JobRegistry",
    "ProcessOutcome",
    "ProcessStatus",
    "QueryOutcome",
    "RunStatus",
    "SponsorblockService",
    "StartResult",
    "create_service",
]
