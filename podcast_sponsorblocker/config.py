"""Configuration dataclasses for the analysis pipeline.

This module groups related settings so the pipeline and its collaborators
take a handful of config objects instead of long parameter lists. Defaults
come from :mod:`podcast_sponsorblocker.utils.constant`, which in turn reads
the environment.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from podcast_sponsorblocker.utils.constant import (
    AD_GAP_TOLERANCE_MS,
    ANALYSIS_OVERLAP_SEC,
    ANALYSIS_WINDOW_SEC,
    AUDIO_CHUNK_BITRATE,
    AUDIO_CHUNK_CHANNELS,
    AUDIO_CHUNK_SAMPLE_RATE,
    AUDIO_CHUNK_SEC,
    CLASSIFIER_USD_PER_M_INPUT,
    CLASSIFIER_USD_PER_M_OUTPUT,
    DOWNLOADS_DIR,
    MAX_AUDIO_FILE_MB,
    TRANSCRIPTION_BACKOFF_MULTIPLIER,
    TRANSCRIPTION_BASE_DELAY_SEC,
    TRANSCRIPTION_MAX_ATTEMPTS,
    TRANSCRIPTION_MAX_DELAY_SEC,
    WHISPER_USD_PER_MINUTE,
)


@dataclass
class AudioChunkingConfig:
    """Groups settings for splitting oversized downloads.

    Attributes:
        max_file_mb: Files at or below this size are transcribed whole.
        chunk_sec: Length of each audio chunk in seconds.
        channels: Channel count of the re-encoded chunks.
        sample_rate: Sample rate of the re-encoded chunks.
        bitrate: Bitrate of the re-encoded chunks (FFmpeg syntax).

    """

    max_file_mb: float = MAX_AUDIO_FILE_MB
    chunk_sec: int = AUDIO_CHUNK_SEC
    channels: int = AUDIO_CHUNK_CHANNELS
    sample_rate: int = AUDIO_CHUNK_SAMPLE_RATE
    bitrate: str = AUDIO_CHUNK_BITRATE


@dataclass
class AnalysisConfig:
    """Groups transcript windowing and merge settings.

    Attributes:
        window_sec: Length of each transcript window sent to the classifier.
        overlap_sec: Overlap between consecutive windows.
        gap_tolerance_ms: Same-category ads closer than this are merged.

    """

    window_sec: int = ANALYSIS_WINDOW_SEC
    overlap_sec: int = ANALYSIS_OVERLAP_SEC
    gap_tolerance_ms: int = AD_GAP_TOLERANCE_MS


@dataclass
class RetryPolicy:
    """Exponential backoff policy for transient collaborator failures.

    Attributes:
        max_attempts: Total attempts including the first one.
        base_delay: Scale of the backoff in seconds; the wait after failed
            attempt ``n`` is ``base_delay * multiplier**n``.
        multiplier: Growth factor of the wait per failed attempt.
        max_delay: Upper bound for a single delay in seconds.

    """

    max_attempts: int = TRANSCRIPTION_MAX_ATTEMPTS
    base_delay: float = TRANSCRIPTION_BASE_DELAY_SEC
    multiplier: float = TRANSCRIPTION_BACKOFF_MULTIPLIER
    max_delay: float = TRANSCRIPTION_MAX_DELAY_SEC

    def delay_for(self, attempt: int) -> float:
        """Return the wait in seconds after the failed ``attempt`` (1-based).

        Examples:
            >>> policy = RetryPolicy(max_attempts=3, base_delay=1.0, multiplier=2.0)
            >>> [policy.delay_for(n) for n in (1, 2, 3)]
            [2.0, 4.0, 8.0]
        """
        return min(self.base_delay * (self.multiplier**attempt), self.max_delay)


@dataclass
class PricingConfig:
    """Imputed prices for the per-run cost report.

    Attributes:
        transcription_usd_per_minute: Speech-to-text price per audio minute.
        classifier_usd_per_m_input: Classifier price per million input tokens.
        classifier_usd_per_m_output: Classifier price per million output tokens.

    """

    transcription_usd_per_minute: float = WHISPER_USD_PER_MINUTE
    classifier_usd_per_m_input: float = CLASSIFIER_USD_PER_M_INPUT
    classifier_usd_per_m_output: float = CLASSIFIER_USD_PER_M_OUTPUT

    def transcription_cost(self, seconds: float) -> float:
        """Return the cost of transcribing ``seconds`` of audio."""
        return (seconds / 60.0) * self.transcription_usd_per_minute

    def classification_cost(self, input_tokens: int, output_tokens: int) -> float:
        """Return the cost of a classifier call with the given token usage."""
        return (
            input_tokens / 1_000_000 * self.classifier_usd_per_m_input
            + output_tokens / 1_000_000 * self.classifier_usd_per_m_output
        )


@dataclass
class PipelineConfig:
    """Top-level settings bundle handed to the analysis pipeline.

    Attributes:
        downloads_dir: Root directory for episode downloads and artifacts.
        audio: Audio splitting settings.
        analysis: Windowing and merge settings.
        pricing: Cost report prices.
        keep_audio: Keep the downloaded audio after a run when ``True``.

    """

    downloads_dir: Path = DOWNLOADS_DIR
    audio: AudioChunkingConfig = field(default_factory=AudioChunkingConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    pricing: PricingConfig = field(default_factory=PricingConfig)
    keep_audio: bool = False
