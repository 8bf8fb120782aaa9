"""Durable per-episode artifacts written next to the downloaded audio.

Unlike the audio files, these are kept after a run: the timestamped
transcript and the raw classifier answers make it possible to audit why a
segment was (or was not) flagged.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path

from podcast_sponsorblocker.models import AdSegment, TranscriptSegment
from podcast_sponsorblocker.utils.formatting import format_time

TRANSCRIPT_FILENAME = "transcript_timestamped.txt"
CLASSIFIER_LOG_FILENAME = "ad_detection_response.txt"


def format_transcript(segments: Sequence[TranscriptSegment]) -> str:
    """Render segments as ``[M:SS - M:SS] text`` lines."""
    return "".join(
        f"[{format_time(seg.start)} - {format_time(seg.end)}] {seg.text}\n" for seg in segments
    )


def write_transcript(episode_dir: Path, segments: Sequence[TranscriptSegment]) -> Path:
    """Write the episode transcript and return its path."""
    path = episode_dir / TRANSCRIPT_FILENAME
    path.write_text(format_transcript(segments), encoding="utf-8")
    return path


def write_classifier_log(
    episode_dir: Path,
    model: str,
    responses: Sequence[tuple[str, str]],
    merged: Sequence[AdSegment],
) -> Path:
    """Write raw classifier answers per window plus the merged result.

    Args:
        episode_dir: Directory of the episode.
        model: Classifier model name.
        responses: ``(window_label, raw_response)`` pairs in window order.
        merged: Final merged segments.

    Returns:
        Path of the written file.
    """
    merged_json = json.dumps(
        {"segments": [seg.model_dump(mode="json") for seg in merged]},
        indent=2,
        ensure_ascii=False,
    )
    lines = [
        "=== Ad Detection Response ===",
        f"Model: {model}",
        f"Timestamp: {datetime.now(timezone.utc).isoformat()}",
        "",
        *(f"=== {label} ===\n{raw}" for label, raw in responses),
        "",
        "=== MERGED RESULT ===",
        merged_json,
    ]
    path = episode_dir / CLASSIFIER_LOG_FILENAME
    path.write_text("\n".join(lines), encoding="utf-8")
    return path
