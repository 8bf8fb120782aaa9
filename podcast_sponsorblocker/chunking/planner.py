"""Sliding-window planner for long episode timelines.

This module splits a timeline into half-open, optionally overlapping windows.
It serves two callers with independent policies: fixed-length audio chunks
without overlap (re-based later by chunk index) and transcript analysis
windows with overlap so an ad read cut at a boundary is still seen whole by
one classifier call.

The logic is kept free of any FFmpeg or OpenAI imports so that it can be
unit-tested offline.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from podcast_sponsorblocker.models import TranscriptSegment

__all__ = [
    "TimeWindow",
    "TranscriptWindow",
    "plan_windows",
    "split_transcript",
]


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval ``[start, end)`` in seconds on the episode timeline."""

    start: float
    end: float

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError("window start must be >= 0")
        if self.end <= self.start:
            raise ValueError("window end must be greater than its start")

    @property
    def duration(self) -> float:
        return self.end - self.start

    def contains(self, t: float) -> bool:
        """Return ``True`` when ``t`` lies inside the half-open window."""
        return self.start <= t < self.end


@dataclass(frozen=True)
class TranscriptWindow:
    """Transcript segments selected for one classifier call.

    Attributes:
        window: Time range the segments were selected from.
        segments: Segments whose start lies inside ``window``.
    """

    window: TimeWindow
    segments: tuple[TranscriptSegment, ...]


def _validate_policy(window_sec: float, overlap_sec: float) -> None:
    if window_sec <= 0:
        raise ValueError("window_sec must be > 0")
    if overlap_sec < 0:
        raise ValueError("overlap_sec must be >= 0")
    if overlap_sec >= window_sec:
        raise ValueError("overlap_sec must be < window_sec")


def plan_windows(
    total_sec: float,
    window_sec: float,
    overlap_sec: float = 0,
) -> list[TimeWindow]:
    """Plan windows covering ``[0, total_sec)``.

    Parameters:
        total_sec (float): Length of the timeline in seconds. Non-positive
            totals yield an empty plan.
        window_sec (float): Window length in seconds.
        overlap_sec (float, optional): Overlap between successive windows in
            seconds. Must be >= 0 and less than ``window_sec``. Defaults to 0.

    Returns:
        list[TimeWindow]: Windows ordered by start. The final window is
            clipped to ``total_sec``; a timeline no longer than
            ``window_sec`` yields exactly one window.

    Raises:
        ValueError: If the window/overlap policy is invalid.

    Examples:
        >>> [(w.start, w.end) for w in plan_windows(1500, 600, 30)]
        [(0, 600), (570, 1170), (1140, 1500)]
    """
    _validate_policy(window_sec, overlap_sec)
    if total_sec <= 0:
        return []
    if total_sec <= window_sec:
        return [TimeWindow(0, total_sec)]

    step = window_sec - overlap_sec
    windows: list[TimeWindow] = []
    start: float = 0
    while start < total_sec:
        end = min(start + window_sec, total_sec)
        windows.append(TimeWindow(start, end))
        if end >= total_sec:
            break
        start += step
    return windows


def split_transcript(
    segments: Sequence[TranscriptSegment],
    window_sec: float,
    overlap_sec: float = 0,
) -> list[TranscriptWindow]:
    """Group time-ordered transcript segments into overlapping analysis windows.

    A segment belongs to every window its start time falls into, so segments
    inside an overlap are sent to two classifier calls. Planning stops at the
    first window that selects no segment or once a window reaches the end of
    the last segment.

    Parameters:
        segments: Episode transcript segments on the global timeline.
        window_sec: Window length in seconds.
        overlap_sec: Overlap between successive windows in seconds.

    Returns:
        list[TranscriptWindow]: Non-empty windows in timeline order.

    Raises:
        ValueError: If the window/overlap policy is invalid.
    """
    _validate_policy(window_sec, overlap_sec)
    if not segments:
        return []

    last_end = segments[-1].end
    step = window_sec - overlap_sec
    windows: list[TranscriptWindow] = []
    start: float = 0
    while start < last_end:
        end = start + window_sec
        selected = tuple(seg for seg in segments if start <= seg.start < end)
        if not selected:
            break
        windows.append(TranscriptWindow(window=TimeWindow(start, end), segments=selected))
        if end >= last_end:
            break
        start += step
    return windows
