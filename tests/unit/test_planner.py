"""Unit tests for the sliding-window planner."""

from __future__ import annotations

import pytest

from podcast_sponsorblocker.chunking.planner import (
    TimeWindow,
    plan_windows,
    split_transcript,
)
from podcast_sponsorblocker.models import TranscriptSegment


def _bounds(windows: list[TimeWindow]) -> list[tuple[float, float]]:
    return [(w.start, w.end) for w in windows]


def test_plan_windows_with_overlap() -> None:
    """25 minutes with 10 minute windows and 30 s overlap."""
    windows = plan_windows(1500, 600, 30)
    assert _bounds(windows) == [(0, 600), (570, 1170), (1140, 1500)]


def test_plan_windows_without_overlap_is_contiguous() -> None:
    windows = plan_windows(1300, 600)
    assert _bounds(windows) == [(0, 600), (600, 1200), (1200, 1300)]


def test_plan_windows_short_timeline_is_single_window() -> None:
    assert _bounds(plan_windows(42.5, 600, 30)) == [(0, 42.5)]
    assert _bounds(plan_windows(600, 600, 30)) == [(0, 600)]


@pytest.mark.parametrize("total", [0, -5])
def test_plan_windows_empty_timeline(total: float) -> None:
    assert plan_windows(total, 600, 30) == []


@pytest.mark.parametrize(
    ("total", "window", "overlap"),
    [(1500, 600, 30), (3601, 600, 0), (999.5, 120, 60), (7200, 900, 45)],
)
def test_plan_windows_cover_timeline(total: float, window: float, overlap: float) -> None:
    """Windows start at 0, end at total and keep the configured overlap."""
    windows = plan_windows(total, window, overlap)
    assert windows[0].start == 0
    assert windows[-1].end == total
    for prev, nxt in zip(windows, windows[1:]):
        assert prev.end - nxt.start == pytest.approx(overlap)
        assert prev.duration == pytest.approx(window)
    for w in windows:
        assert 0 <= w.start < w.end <= total


@pytest.mark.parametrize(
    ("window", "overlap"),
    [(0, 0), (-10, 0), (600, -1), (600, 600), (600, 700)],
)
def test_plan_windows_rejects_invalid_policy(window: float, overlap: float) -> None:
    with pytest.raises(ValueError):
        plan_windows(1500, window, overlap)


def test_time_window_validates_bounds() -> None:
    with pytest.raises(ValueError):
        TimeWindow(-1, 10)
    with pytest.raises(ValueError):
        TimeWindow(10, 10)


def test_time_window_is_half_open() -> None:
    window = TimeWindow(10, 20)
    assert window.contains(10)
    assert window.contains(19.99)
    assert not window.contains(20)
    assert window.duration == 10


def _segments(starts: list[float], length: float = 20.0) -> list[TranscriptSegment]:
    return [TranscriptSegment(start=s, end=s + length, text=f"at {s:g}") for s in starts]


def test_split_transcript_duplicates_overlap_segments() -> None:
    segments = _segments([0, 280, 575, 590, 900, 1150, 1400])
    windows = split_transcript(segments, 600, 30)

    assert [(w.window.start, w.window.end) for w in windows] == [
        (0, 600),
        (570, 1170),
        (1140, 1740),
    ]
    assert [s.start for s in windows[0].segments] == [0, 280, 575, 590]
    assert [s.start for s in windows[1].segments] == [575, 590, 900, 1150]
    assert [s.start for s in windows[2].segments] == [1150, 1400]


def test_split_transcript_every_segment_lands_in_a_window() -> None:
    segments = _segments([float(i * 37) for i in range(60)], length=30.0)
    windows = split_transcript(segments, 300, 20)
    covered = {seg.start for w in windows for seg in w.segments}
    assert covered == {seg.start for seg in segments}


def test_split_transcript_stops_at_first_empty_window() -> None:
    """A window without segments ends planning, even if later speech exists."""
    segments = _segments([0, 100, 2000])
    windows = split_transcript(segments, 600, 0)
    assert len(windows) == 1
    assert [s.start for s in windows[0].segments] == [0, 100]


def test_split_transcript_empty() -> None:
    assert split_transcript([], 600, 30) == []
