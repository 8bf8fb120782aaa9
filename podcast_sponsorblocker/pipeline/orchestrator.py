"""End-to-end analysis of one episode.

A run downloads the audio, splits it when it is too large for the
speech-to-text service, transcribes the pieces in order and re-bases their
timestamps onto the episode timeline, classifies overlapping transcript
windows, merges the reported ad segments and caches the result. Any failure
ends the run in ``ERROR`` without caching anything; temporary audio is removed
on every path.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path

from podcast_sponsorblocker.chunking import merge_ad_segments, split_transcript
from podcast_sponsorblocker.collaborators.audio import AudioChunk, split_if_needed
from podcast_sponsorblocker.collaborators.classifier import SupportsClassify, render_window
from podcast_sponsorblocker.collaborators.downloader import EpisodeDownloader
from podcast_sponsorblocker.collaborators.transcriber import SupportsTranscribe
from podcast_sponsorblocker.config import AudioChunkingConfig, PipelineConfig
from podcast_sponsorblocker.errors import SponsorblockError
from podcast_sponsorblocker.identity import episode_title
from podcast_sponsorblocker.models import AdSegment, AnalysisResult, CostMetrics, TranscriptSegment
from podcast_sponsorblocker.pipeline.artifacts import write_classifier_log, write_transcript
from podcast_sponsorblocker.pipeline.job_registry import AnalysisRun, JobRegistry
from podcast_sponsorblocker.storage.cache import ResultCache
from podcast_sponsorblocker.storage.database import PodcastRepository
from podcast_sponsorblocker.utils.formatting import format_time

logger = logging.getLogger(__name__)

AudioSplitter = Callable[[Path, Path | None, AudioChunkingConfig], list[AudioChunk]]


def _safe_unlink(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning(f"Failed to remove temporary audio {path}: {exc}")


class AnalysisPipeline:
    """Run the analysis for runs registered in a :class:`JobRegistry`.

    Collaborators are injected so tests can replace any of them.

    Args:
        registry: Registry owning the runs.
        cache: Result cache written on success.
        repository: Store whose request tracking is cleared on success.
        downloader: Fetches episode audio.
        transcriber: Speech-to-text collaborator.
        classifier: Ad classification collaborator.
        config: Pipeline settings.
        splitter: Audio splitting function (defaults to FFmpeg).
    """

    def __init__(
        self,
        registry: JobRegistry,
        cache: ResultCache,
        repository: PodcastRepository,
        downloader: EpisodeDownloader,
        transcriber: SupportsTranscribe,
        classifier: SupportsClassify,
        config: PipelineConfig | None = None,
        splitter: AudioSplitter = split_if_needed,
    ) -> None:
        self.registry = registry
        self.cache = cache
        self.repository = repository
        self.downloader = downloader
        self.transcriber = transcriber
        self.classifier = classifier
        self.config = config or PipelineConfig()
        self.splitter = splitter

    def run(self, run_id: str) -> AnalysisRun:
        """Execute a ``CREATED`` run to completion.

        Never raises for pipeline failures; they are recorded on the run.

        Returns:
            The run in its terminal state.
        """
        run = self.registry.mark_running(run_id)
        logger.info(f"[Job {run_id}] Processing: {run.locator}")
        temporary: list[Path] = []
        try:
            result = self._execute(run, temporary)
        except SponsorblockError as e:
            logger.error(f"[Job {run_id}] Error: {e}")
            return self.registry.finish(run_id, error=str(e))
        except Exception as e:
            logger.exception(f"[Job {run_id}] Unexpected error")
            return self.registry.finish(run_id, error=str(e) or type(e).__name__)
        finally:
            if not self.config.keep_audio:
                for path in temporary:
                    _safe_unlink(path)

        logger.info(f"[Job {run_id}] Done")
        return self.registry.finish(run_id, result=result)

    def _execute(self, run: AnalysisRun, temporary: list[Path]) -> AnalysisResult:
        episode = self.downloader.fetch(run.locator)
        temporary.append(episode.audio_path)

        chunks = self.splitter(episode.audio_path, episode.episode_dir, self.config.audio)
        temporary.extend(chunk.path for chunk in chunks if chunk.path != episode.audio_path)

        cost = CostMetrics(classifier_model=getattr(self.classifier, "model", None))
        segments = self._transcribe(chunks, cost)
        write_transcript(episode.episode_dir, segments)

        raw_segments, responses = self._classify(segments, cost)
        merged = merge_ad_segments(raw_segments, self.config.analysis.gap_tolerance_ms)
        logger.info(f"Found {len(raw_segments)} raw segment(s), merged to {len(merged)}")
        write_classifier_log(episode.episode_dir, cost.classifier_model or "", responses, merged)

        logger.info(
            f"Cost: ${cost.total_cost_usd:.4f} (transcription ${cost.transcription_cost_usd:.4f}, "
            f"classification ${cost.classification_cost_usd:.4f})"
        )
        result = self.cache.put(run.identity, episode_title(run.locator), merged, cost)
        try:
            self.repository.delete_requested(run.identity)
        except SponsorblockError as exc:
            logger.warning(f"Could not clear request tracking for {run.identity}: {exc}")
        return result

    def _transcribe(self, chunks: Sequence[AudioChunk], cost: CostMetrics) -> list[TranscriptSegment]:
        pricing = self.config.pricing
        chunk_sec = self.config.audio.chunk_sec
        segments: list[TranscriptSegment] = []
        for chunk in chunks:
            logger.info(f"Transcribing chunk {chunk.index + 1}/{len(chunks)}")
            transcription = self.transcriber.transcribe(chunk.path)
            offset = chunk.index * chunk_sec
            segments.extend(seg.shifted(offset) for seg in transcription.segments)
            cost.transcription_seconds += transcription.billed_seconds
        cost.transcription_cost_usd = pricing.transcription_cost(cost.transcription_seconds)
        logger.info(
            f"Transcription: {len(segments)} segments, {cost.transcription_seconds:.0f}s audio"
        )
        return segments

    def _classify(
        self, segments: Sequence[TranscriptSegment], cost: CostMetrics
    ) -> tuple[list[AdSegment], list[tuple[str, str]]]:
        analysis = self.config.analysis
        windows = split_transcript(segments, analysis.window_sec, analysis.overlap_sec)
        logger.info(f"Split into {len(windows)} window(s) of ~{analysis.window_sec / 60:g} minutes")

        raw_segments: list[AdSegment] = []
        responses: list[tuple[str, str]] = []
        for i, window in enumerate(windows, start=1):
            label = (
                f"Chunk {i}/{len(windows)} "
                f"({format_time(window.window.start)} - {format_time(window.window.end)})"
            )
            result = self.classifier.classify(render_window(window.segments))
            logger.info(f"{label}: {len(result.segments)} segment(s) found")
            raw_segments.extend(result.segments)
            responses.append((label, result.raw_response))
            cost.input_tokens += result.usage.input_tokens
            cost.output_tokens += result.usage.output_tokens

        cost.classification_cost_usd = self.config.pricing.classification_cost(
            cost.input_tokens, cost.output_tokens
        )
        return raw_segments, responses
