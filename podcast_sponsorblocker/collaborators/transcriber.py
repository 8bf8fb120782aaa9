"""Speech-to-text via the OpenAI transcription API.

Transient failures are retried inside the transcriber according to an explicit
:class:`~podcast_sponsorblocker.config.RetryPolicy`; callers see a single call
that either returns a transcription or raises
:class:`~podcast_sponsorblocker.errors.TranscriptionFailedError`.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

from openai import OpenAI

from podcast_sponsorblocker.config import RetryPolicy
from podcast_sponsorblocker.errors import TranscriptionFailedError
from podcast_sponsorblocker.models import Transcription, TranscriptSegment
from podcast_sponsorblocker.utils.constant import (
    OPENAI_API_KEY,
    TRANSCRIPTION_MODEL,
    TRANSCRIPTION_TIMEOUT_SEC,
)
from podcast_sponsorblocker.utils.logging_config import get_logger

logger = get_logger(__name__)


class SupportsTranscribe(Protocol):
    """Protocol for anything that turns an audio file into timestamped text.

    Segment timestamps are relative to the start of ``audio_path``.
    """

    def transcribe(self, audio_path: Path) -> Transcription:
        """Transcribe one audio file."""
        ...


def _field(item: Any, name: str, default: Any = None) -> Any:
    # The SDK returns typed objects; recorded fixtures are plain dicts.
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)


def to_transcription(response: Any) -> Transcription:
    """Convert a ``verbose_json`` transcription response into our model."""
    segments = [
        TranscriptSegment(
            start=float(_field(seg, "start", 0.0)),
            end=float(_field(seg, "end", 0.0)),
            text=str(_field(seg, "text", "")).strip(),
        )
        for seg in (_field(response, "segments") or [])
    ]
    duration = _field(response, "duration")
    return Transcription(
        text=_field(response, "text", "") or "",
        segments=segments,
        duration=float(duration) if duration is not None else None,
    )


class WhisperTranscriber:
    """Transcribe audio files with segment-level timestamps.

    Args:
        client: OpenAI client; built from ``OPENAI_API_KEY`` when omitted.
        model: Transcription model name.
        retry: Retry policy for failed calls.
        timeout: Per-call timeout in seconds.
        sleep: Sleep function used between attempts (patched in tests).
    """

    def __init__(
        self,
        client: OpenAI | None = None,
        model: str = TRANSCRIPTION_MODEL,
        retry: RetryPolicy | None = None,
        timeout: float = TRANSCRIPTION_TIMEOUT_SEC,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self.model = model
        self.retry = retry or RetryPolicy()
        self.timeout = timeout
        self._sleep = sleep

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=OPENAI_API_KEY or None, max_retries=0)
        return self._client

    def _request(self, audio_path: Path) -> Any:
        with audio_path.open("rb") as fh:
            return self.client.audio.transcriptions.create(
                file=fh,
                model=self.model,
                response_format="verbose_json",
                timestamp_granularities=["segment"],
                timeout=self.timeout,
            )

    def transcribe(self, audio_path: Path) -> Transcription:
        """Transcribe ``audio_path``, retrying per the configured policy.

        Raises:
            TranscriptionFailedError: When every attempt failed.
        """
        attempts = max(self.retry.max_attempts, 1)
        for attempt in range(1, attempts + 1):
            logger.info(f"Transcribing audio file: {audio_path} (attempt {attempt}/{attempts})")
            try:
                response = self._request(audio_path)
            except Exception as e:
                logger.warning(f"Attempt {attempt} failed: {e}")
                if attempt == attempts:
                    raise TranscriptionFailedError(
                        f"Failed to transcribe audio after {attempts} attempts: {e}"
                    ) from e
                delay = self.retry.delay_for(attempt)
                logger.info(f"Waiting {delay:.1f}s before retry...")
                self._sleep(delay)
                continue
            logger.info("Transcription completed")
            return to_transcription(response)
        # Unreachable: the loop either returns or raises.
        raise TranscriptionFailedError("Transcription was not attempted")
