"""FFmpeg helpers for probing and cutting episode audio.

The speech-to-text service rejects uploads above ~25 MB, so oversized
downloads are cut into fixed-length, speech-optimised chunks (mono, 16 kHz,
low bitrate). Small files are passed through untouched without invoking
FFmpeg at all.
"""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from podcast_sponsorblocker.chunking.planner import TimeWindow, plan_windows
from podcast_sponsorblocker.config import AudioChunkingConfig
from podcast_sponsorblocker.errors import AudioProcessingError
from podcast_sponsorblocker.utils.constant import FFMPEG_TIMEOUT_SEC
from podcast_sponsorblocker.utils.logging_config import get_logger

logger = get_logger(__name__)

__all__ = [
    "AudioChunk",
    "cut",
    "file_size_mb",
    "probe_duration",
    "split_if_needed",
]


@dataclass(frozen=True)
class AudioChunk:
    """One piece of an episode handed to the transcriber.

    Attributes:
        path: Audio file for this piece.
        index: Zero-based chunk index; timestamps are re-based by
            ``index * chunk_sec``.
        window: Time range of the source the chunk covers, or ``None`` when
            the whole file is used as-is.
        is_temporary: ``True`` for files created by splitting.
    """

    path: Path
    index: int
    window: TimeWindow | None = None
    is_temporary: bool = False


def _require(tool: str) -> None:
    if shutil.which(tool) is None:
        raise AudioProcessingError(f"{tool} is not installed or not in PATH.")


def _run(cmd: list[str]) -> str:
    try:
        completed = subprocess.run(
            cmd,
            capture_output=True,
            check=True,
            timeout=FFMPEG_TIMEOUT_SEC,
        )
    except subprocess.CalledProcessError as exc:
        stderr = exc.stderr.decode(errors="ignore") if exc.stderr else ""
        raise AudioProcessingError(f"{cmd[0]} failed: {stderr.strip()}") from exc
    except subprocess.TimeoutExpired as exc:
        raise AudioProcessingError(f"{cmd[0]} timed out after {exc.timeout}s") from exc
    return completed.stdout.decode(errors="ignore")


def file_size_mb(path: Path) -> float:
    """Return the size of ``path`` in mebibytes."""
    return path.stat().st_size / (1024 * 1024)


def probe_duration(path: Path) -> float:
    """Return the duration of ``path`` in seconds using ``ffprobe``.

    Raises:
        AudioProcessingError: If ffprobe is missing, fails, or prints no number.
    """
    _require("ffprobe")
    cmd = [
        "ffprobe",
        "-v",
        "error",
        "-show_entries",
        "format=duration",
        "-of",
        "default=noprint_wrappers=1:nokey=1",
        str(path),
    ]
    output = _run(cmd).strip()
    try:
        return float(output)
    except ValueError as exc:
        raise AudioProcessingError(f"Could not read duration of {path}: {output!r}") from exc


def cut(
    path: Path,
    window: TimeWindow,
    output_path: Path,
    config: AudioChunkingConfig | None = None,
) -> Path:
    """Cut ``window`` out of ``path`` and re-encode it with the chunk profile.

    Raises:
        AudioProcessingError: If ffmpeg is missing or fails.
    """
    config = config or AudioChunkingConfig()
    _require("ffmpeg")
    cmd = [
        "ffmpeg",
        "-nostdin",
        "-i",
        str(path),
        "-ss",
        f"{window.start:g}",
        "-t",
        f"{window.duration:g}",
        "-ac",
        str(config.channels),
        "-ar",
        str(config.sample_rate),
        "-b:a",
        config.bitrate,
        str(output_path),
        "-y",
    ]
    _run(cmd)
    return output_path


def split_if_needed(
    path: Path,
    output_dir: Path | None = None,
    config: AudioChunkingConfig | None = None,
) -> list[AudioChunk]:
    """Return the audio pieces to transcribe for ``path``.

    Files no larger than ``config.max_file_mb`` are returned as a single
    chunk without probing. Larger files are cut into consecutive
    ``config.chunk_sec`` windows with no overlap, written next to the source
    as ``<stem>_chunk<i><suffix>``.

    Raises:
        AudioProcessingError: If probing or cutting fails.
    """
    config = config or AudioChunkingConfig()
    size_mb = file_size_mb(path)
    logger.info(f"Audio file size: {size_mb:.2f} MB")
    if size_mb <= config.max_file_mb:
        logger.info("File size is within the upload limit, no splitting needed")
        return [AudioChunk(path=path, index=0)]

    logger.info(f"File exceeds {config.max_file_mb:g}MB limit, splitting into chunks...")
    total = probe_duration(path)
    logger.info(f"Total duration: {int(total // 60)} minutes")

    target_dir = output_dir or path.parent
    chunks: list[AudioChunk] = []
    for index, window in enumerate(plan_windows(total, config.chunk_sec)):
        out = target_dir / f"{path.stem}_chunk{index}{path.suffix}"
        logger.info(
            f"Creating chunk {index} ({int(window.start // 60)}min - {int(window.end // 60)}min)..."
        )
        try:
            cut(path, window, out, config)
        except AudioProcessingError:
            for chunk in chunks:
                chunk.path.unlink(missing_ok=True)
            out.unlink(missing_ok=True)
            raise
        chunks.append(AudioChunk(path=out, index=index, window=window, is_temporary=True))

    logger.info(f"Split into {len(chunks)} chunks")
    return chunks
