"""Windowing and merging utilities for long episodes.

This module provides tools for splitting a long timeline into overlapping
windows and reconciling the ad segments reported per window into a single
sorted timeline.
"""

from .merge import merge_ad_segments
from .planner import TimeWindow, TranscriptWindow, plan_windows, split_transcript

__all__ = [
    "TimeWindow",
    "TranscriptWindow",
    "plan_windows",
    "split_transcript",
    "merge_ad_segments",
]
