"""REST routes for querying and processing podcast episodes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Query, Request
from fastapi.responses import JSONResponse, Response

from podcast_sponsorblocker.api.auth import is_authorized, unauthorized_response
from podcast_sponsorblocker.api.schemas import (
    AlreadyProcessedResponse,
    AnalyzeResponse,
    ErrorResponse,
    NotAnalyzedResponse,
    PodcastListResponse,
    PodcastSummary,
    ProcessRequest,
    ProcessStartedResponse,
    RequestedListResponse,
    RequestedUrlItem,
    RunResponse,
)
from podcast_sponsorblocker.errors import InvalidIdentityError, PersistenceFailedError
from podcast_sponsorblocker.pipeline.service import ProcessStatus, SponsorblockService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_service(request: Request) -> SponsorblockService:
    """Return the service instance attached to the application."""
    return request.app.state.service


def _build_error_response(*, status_code: int, error: str, message: str) -> JSONResponse:
    """Create an error response.

    Args:
        status_code: HTTP status code.
        error: Short machine-readable error code.
        message: Error message for clients.

    Returns:
        JSON response containing ``error`` and ``message``.
    """
    payload = ErrorResponse(error=error, message=message).model_dump()
    return JSONResponse(status_code=status_code, content=payload)


def _persistence_error(exc: PersistenceFailedError) -> JSONResponse:
    logger.error(f"Persistence failure: {exc}")
    return _build_error_response(status_code=503, error="storage_unavailable", message=str(exc))


@router.get("/analyze", response_model=AnalyzeResponse)
def analyze(request: Request, url: str | None = Query(default=None)) -> Response | AnalyzeResponse:
    """Return cached ad segments for an episode.

    Unknown episodes answer 404 and are recorded as requested, telling the
    caller whether an analysis is currently running.
    """
    service = get_service(request)
    try:
        outcome = service.query(url)
    except InvalidIdentityError as exc:
        return _build_error_response(status_code=400, error="missing_url", message=str(exc))
    except PersistenceFailedError as exc:
        return _persistence_error(exc)

    if outcome.result is not None:
        return AnalyzeResponse.from_result(outcome.result)

    message = (
        "Analysis is currently running for this episode."
        if outcome.analyzing
        else "This episode has not been analyzed yet."
    )
    payload = NotAnalyzedResponse(analyzing=outcome.analyzing, message=message).model_dump()
    return JSONResponse(status_code=404, content=payload)


@router.post("/process")
def process(
    request: Request,
    background_tasks: BackgroundTasks,
    payload: ProcessRequest | None = None,
) -> Response:
    """Start the analysis pipeline for an episode (server-side callers only).

    Returns immediately with a run handle; the pipeline runs as a background
    task. Cached episodes are not processed again and a second request for an
    episode that is already running receives the existing run.
    """
    if not is_authorized(request):
        return unauthorized_response()

    service = get_service(request)
    try:
        outcome = service.start_processing(payload.url if payload else None)
    except InvalidIdentityError:
        return _build_error_response(
            status_code=400, error="missing_url", message="Missing required field: url"
        )
    except PersistenceFailedError as exc:
        return _persistence_error(exc)

    if outcome.status is ProcessStatus.ALREADY_PROCESSED:
        body = AlreadyProcessedResponse(url=outcome.result.url, title=outcome.result.title)
        return JSONResponse(content=body.model_dump())

    run = outcome.run
    if outcome.status is ProcessStatus.STARTED:
        background_tasks.add_task(service.execute, run.run_id)
    body = ProcessStartedResponse(
        job_id=run.run_id,
        url=outcome.identity,
        already_running=outcome.status is ProcessStatus.ALREADY_RUNNING,
    )
    return JSONResponse(content=body.model_dump(by_alias=True))


@router.get("/process/{job_id}")
def get_process(request: Request, job_id: str) -> Response:
    """Return the status of a running or finished run."""
    run = get_service(request).get_run(job_id)
    if run is None:
        return _build_error_response(status_code=404, error="not_found", message="Job not found")
    return JSONResponse(content=RunResponse.from_run(run).model_dump(mode="json", by_alias=True))


@router.get("/podcasts", response_model=PodcastListResponse)
def list_podcasts(request: Request) -> Response | PodcastListResponse:
    """List all analyzed episodes, newest first."""
    try:
        results = get_service(request).list_podcasts()
    except PersistenceFailedError as exc:
        return _persistence_error(exc)
    podcasts = [PodcastSummary.from_result(result) for result in results]
    return PodcastListResponse(count=len(podcasts), podcasts=podcasts)


@router.get("/podcasts/requested", response_model=RequestedListResponse)
def list_requested(request: Request) -> Response | RequestedListResponse:
    """List episodes that were requested but not analyzed yet."""
    try:
        rows = get_service(request).list_requested()
    except PersistenceFailedError as exc:
        return _persistence_error(exc)
    requested = [RequestedUrlItem.from_row(row) for row in rows]
    return RequestedListResponse(count=len(requested), requested=requested)
