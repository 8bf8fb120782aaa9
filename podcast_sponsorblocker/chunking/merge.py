"""Reconcile ad segments reported by overlapping analysis windows.

Adjacent windows overlap, so the same ad read is often reported twice with
slightly different boundaries. ``merge_ad_segments`` coalesces same-category
segments that overlap or sit within a gap tolerance; segments of different
categories are never combined. The function returns a **new** list and leaves
its input unmodified.
"""

from __future__ import annotations

from collections.abc import Iterable

from podcast_sponsorblocker.models import AdCategory, AdSegment
from podcast_sponsorblocker.utils.constant import AD_GAP_TOLERANCE_MS

__all__ = ["merge_ad_segments"]


def _join_descriptions(current: str, candidate: str) -> str:
    if not candidate or candidate in current:
        return current
    if not current:
        return candidate
    return f"{current} / {candidate}"


def merge_ad_segments(
    segments: Iterable[AdSegment],
    gap_tolerance_ms: int = AD_GAP_TOLERANCE_MS,
) -> list[AdSegment]:
    """Merge raw ad segments into a sorted, minimal timeline.

    Parameters:
        segments: Candidate segments in any order, possibly duplicated.
        gap_tolerance_ms: Largest gap in milliseconds between two
            same-category segments that still merges them.

    Returns:
        list[AdSegment]: Segments sorted by ``start_ms``. Absorption chains,
            so a run of same-category segments that are each within
            tolerance of the previous one collapses into a single segment.

    Raises:
        ValueError: If ``gap_tolerance_ms`` is negative.

    Examples:
        >>> raw = [
        ...     AdSegment(start_ms=0, end_ms=5000, category="sponsor"),
        ...     AdSegment(start_ms=4500, end_ms=9000, category="sponsor"),
        ... ]
        >>> [(s.start_ms, s.end_ms) for s in merge_ad_segments(raw, 30000)]
        [(0, 9000)]
    """
    if gap_tolerance_ms < 0:
        raise ValueError("gap_tolerance_ms must be >= 0")

    ordered = sorted(
        segments, key=lambda seg: (seg.start_ms, seg.category.value, seg.end_ms)
    )

    merged: list[AdSegment] = []
    # Index into ``merged`` of the most recent segment per category; an ad of
    # another category in between does not close it.
    open_index: dict[AdCategory, int] = {}
    for candidate in ordered:
        idx = open_index.get(candidate.category)
        if idx is not None and candidate.start_ms <= merged[idx].end_ms + gap_tolerance_ms:
            current = merged[idx]
            merged[idx] = current.model_copy(
                update={
                    "end_ms": max(current.end_ms, candidate.end_ms),
                    "description": _join_descriptions(
                        current.description, candidate.description
                    ),
                }
            )
        else:
            open_index[candidate.category] = len(merged)
            merged.append(candidate.model_copy())
    return merged
