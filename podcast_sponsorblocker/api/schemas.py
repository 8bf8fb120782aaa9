"""Request and response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from podcast_sponsorblocker.models import AdSegment, AnalysisResult, CostMetrics
from podcast_sponsorblocker.pipeline.job_registry import AnalysisRun
from podcast_sponsorblocker.storage.database import RequestedUrl


class ErrorResponse(BaseModel):
    """Error payload returned with 4xx responses."""

    error: str = Field(..., description="Short machine-readable error code.")
    message: str = Field(..., description="Human-readable explanation.")


class NotAnalyzedResponse(ErrorResponse):
    """404 payload for episodes without a cached result."""

    error: Literal["not_analyzed"] = "not_analyzed"
    analyzing: bool = Field(..., description="True while a run for the episode is in flight.")


class AnalyzeResponse(BaseModel):
    """Cached ad segments of one episode."""

    cached: bool = True
    url: str
    title: str
    segments: list[AdSegment]

    @classmethod
    def from_result(cls, result: AnalysisResult) -> AnalyzeResponse:
        return cls(url=result.url, title=result.title, segments=result.segments)


class ProcessRequest(BaseModel):
    """Body of ``POST /process``."""

    url: str | None = Field(default=None, description="Episode audio URL.")


class AlreadyProcessedResponse(BaseModel):
    status: Literal["already_processed"] = "already_processed"
    url: str
    title: str


class ProcessStartedResponse(BaseModel):
    """Handle of a started (or already running) analysis run."""

    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(..., serialization_alias="jobId")
    status: Literal["running"] = "running"
    url: str
    already_running: bool = Field(default=False, serialization_alias="alreadyRunning")


class RunResponse(BaseModel):
    """Current state of one analysis run."""

    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(..., serialization_alias="jobId")
    status: str
    url: str
    started_at: datetime = Field(..., serialization_alias="startedAt")
    finished_at: datetime | None = Field(default=None, serialization_alias="finishedAt")
    title: str | None = None
    segments: list[AdSegment] | None = None
    cost: CostMetrics | None = None
    error: str | None = None

    @classmethod
    def from_run(cls, run: AnalysisRun) -> RunResponse:
        result = run.result
        return cls(
            job_id=run.run_id,
            status=run.status.value,
            url=run.identity,
            started_at=run.started_at,
            finished_at=run.finished_at,
            title=result.title if result else None,
            segments=result.segments if result else None,
            cost=result.cost if result else None,
            error=run.error,
        )


class PodcastSummary(BaseModel):
    url: str
    title: str
    segment_count: int
    cost: CostMetrics | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_result(cls, result: AnalysisResult) -> PodcastSummary:
        return cls(
            url=result.url,
            title=result.title,
            segment_count=len(result.segments),
            cost=result.cost,
            created_at=result.created_at,
            updated_at=result.updated_at,
        )


class PodcastListResponse(BaseModel):
    count: int
    podcasts: list[PodcastSummary]


class RequestedUrlItem(BaseModel):
    url: str
    request_count: int
    first_requested_at: datetime
    last_requested_at: datetime

    @classmethod
    def from_row(cls, row: RequestedUrl) -> RequestedUrlItem:
        return cls(
            url=row.url,
            request_count=row.request_count,
            first_requested_at=row.first_requested_at,
            last_requested_at=row.last_requested_at,
        )


class RequestedListResponse(BaseModel):
    count: int
    requested: list[RequestedUrlItem]
