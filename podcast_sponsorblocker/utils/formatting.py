"""Small text formatting helpers shared by prompts, artifacts and the CLI."""

from __future__ import annotations


def format_time(seconds: float) -> str:
    """Format ``seconds`` as ``M:SS``.

    Minutes are not wrapped into hours, so long episodes read ``83:05``.

    Examples:
        >>> format_time(65.9)
        '1:05'
        >>> format_time(4985)
        '83:05'
    """
    total = int(max(seconds, 0))
    minutes, secs = divmod(total, 60)
    return f"{minutes}:{secs:02d}"


def format_ms(milliseconds: int) -> str:
    """Format a millisecond offset as ``M:SS``."""
    return format_time(milliseconds / 1000)
