"""Shared test fixtures for the podcast_sponsorblocker test suite.

Collaborators that would reach the network, FFmpeg or OpenAI are replaced
with small in-process fakes so every test runs offline.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from podcast_sponsorblocker.collaborators.audio import AudioChunk
from podcast_sponsorblocker.collaborators.classifier import ClassificationResult
from podcast_sponsorblocker.collaborators.downloader import DownloadedEpisode
from podcast_sponsorblocker.config import AudioChunkingConfig, PipelineConfig
from podcast_sponsorblocker.errors import DownloadFailedError
from podcast_sponsorblocker.identity import episode_storage_path, extract_episode_info
from podcast_sponsorblocker.models import (
    AdSegment,
    ClassifierUsage,
    Transcription,
    TranscriptSegment,
)
from podcast_sponsorblocker.pipeline.job_registry import JobRegistry
from podcast_sponsorblocker.pipeline.orchestrator import AnalysisPipeline
from podcast_sponsorblocker.pipeline.service import SponsorblockService
from podcast_sponsorblocker.storage.cache import ResultCache
from podcast_sponsorblocker.storage.database import PodcastRepository, create_db_engine

EPISODE_URL = "https://cdn.example.com/shows/podcast_1771341938163_ep42.mp3"


class FakeDownloader:
    """Write a few bytes where the real downloader would store the episode."""

    def __init__(self, root: Path, fail: bool = False) -> None:
        self.root = root
        self.fail = fail
        self.calls: list[str] = []

    def fetch(self, locator: str) -> DownloadedEpisode:
        self.calls.append(locator)
        if self.fail:
            raise DownloadFailedError("Failed to download podcast: 404 Not Found")
        episode_dir = self.root / episode_storage_path(locator)
        episode_dir.mkdir(parents=True, exist_ok=True)
        audio_path = episode_dir / f"{extract_episode_info(locator).episode_name}.mp3"
        audio_path.write_bytes(b"ID3fake-audio")
        return DownloadedEpisode(audio_path=audio_path, episode_dir=episode_dir)


class FakeTranscriber:
    """Return one scripted transcription per call, in order."""

    def __init__(self, transcriptions: Sequence[Transcription]) -> None:
        self.transcriptions = list(transcriptions)
        self.calls: list[Path] = []

    def transcribe(self, audio_path: Path) -> Transcription:
        self.calls.append(audio_path)
        return self.transcriptions[len(self.calls) - 1]


class FakeClassifier:
    """Return scripted results per window; an exception entry is raised."""

    model = "fake-model"

    def __init__(self, results: Sequence[ClassificationResult | Exception]) -> None:
        self.results = list(results)
        self.calls: list[str] = []

    def classify(self, window_text: str) -> ClassificationResult:
        self.calls.append(window_text)
        result = self.results[min(len(self.calls), len(self.results)) - 1]
        if isinstance(result, Exception):
            raise result
        return result


def make_splitter(chunk_count: int) -> Callable[..., list[AudioChunk]]:
    """Build a splitter that pretends the audio was cut into ``chunk_count`` files."""

    def _split(path: Path, output_dir: Path | None, config: AudioChunkingConfig) -> list[AudioChunk]:
        if chunk_count == 1:
            return [AudioChunk(path=path, index=0)]
        chunks = []
        for index in range(chunk_count):
            chunk_path = (output_dir or path.parent) / f"{path.stem}_chunk{index}{path.suffix}"
            chunk_path.write_bytes(b"chunk")
            chunks.append(AudioChunk(path=chunk_path, index=index, is_temporary=True))
        return chunks

    return _split


def ad_result(*segments: AdSegment, input_tokens: int = 1000, output_tokens: int = 100) -> ClassificationResult:
    """Build a classifier result with token usage."""
    return ClassificationResult(
        segments=list(segments),
        usage=ClassifierUsage(input_tokens=input_tokens, output_tokens=output_tokens),
        raw_response='{"segments": []}',
    )


def simple_transcription(count: int = 3, step: float = 10.0, duration: float | None = None) -> Transcription:
    """Build a transcription with ``count`` back-to-back segments."""
    segments = [
        TranscriptSegment(start=i * step, end=(i + 1) * step, text=f"line {i}") for i in range(count)
    ]
    return Transcription(
        text=" ".join(seg.text for seg in segments),
        segments=segments,
        duration=duration,
    )


@pytest.fixture
def repository() -> PodcastRepository:
    """Repository backed by a fresh in-memory SQLite database."""
    repo = PodcastRepository(create_db_engine("sqlite://"))
    repo.init_db()
    return repo


@pytest.fixture
def cache(repository: PodcastRepository) -> ResultCache:
    return ResultCache(repository)


@pytest.fixture
def registry() -> JobRegistry:
    return JobRegistry()


@pytest.fixture
def pipeline_config(tmp_path: Path) -> PipelineConfig:
    return PipelineConfig(downloads_dir=tmp_path / "downloads")


@pytest.fixture
def build_service(
    tmp_path: Path,
    repository: PodcastRepository,
    cache: ResultCache,
    registry: JobRegistry,
    pipeline_config: PipelineConfig,
) -> Callable[..., SponsorblockService]:
    """Factory wiring fakes into a :class:`SponsorblockService`."""

    def _build(
        transcriptions: Sequence[Transcription] | None = None,
        classifier_results: Sequence[ClassificationResult | Exception] | None = None,
        download_fails: bool = False,
        chunk_count: int = 1,
    ) -> SponsorblockService:
        """Build a service; fakes are reachable via ``service.pipeline``."""
        pipeline = AnalysisPipeline(
            registry=registry,
            cache=cache,
            repository=repository,
            downloader=FakeDownloader(pipeline_config.downloads_dir, fail=download_fails),
            transcriber=FakeTranscriber(transcriptions or [simple_transcription()]),
            classifier=FakeClassifier(classifier_results or [ad_result()]),
            config=pipeline_config,
            splitter=make_splitter(chunk_count),
        )
        return SponsorblockService(cache, registry, repository, pipeline)

    return _build


@pytest.fixture
def make_transcription() -> Callable[..., Transcription]:
    """Expose :func:`simple_transcription` to test modules."""
    return simple_transcription


@pytest.fixture
def make_ad_result() -> Callable[..., ClassificationResult]:
    """Expose :func:`ad_result` to test modules."""
    return ad_result
