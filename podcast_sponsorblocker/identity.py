"""Episode identity helpers.

Podcast hosts decorate episode URLs with tokens, tracking parameters and
timestamps in the query string. These helpers reduce a locator to a stable
identity key so the result cache and the run deduplication do not fragment on
such variants, and derive human-friendly names from the locator.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit

from podcast_sponsorblocker.errors import InvalidIdentityError
from podcast_sponsorblocker.utils.constant import AUDIO_URL_EXTENSIONS

__all__ = [
    "EpisodeInfo",
    "episode_storage_path",
    "episode_title",
    "extract_episode_info",
    "identity_for",
    "normalize_locator",
]

_MS_TIMESTAMP = re.compile(r"^\d{13}$")
_PODCAST_PREFIX = re.compile(r"^podcast[_-]", re.IGNORECASE)


@dataclass(frozen=True)
class EpisodeInfo:
    """Names used to lay out per-episode storage.

    Attributes:
        podcast_name: First label of the host name (``www.`` removed).
        episode_name: Cleaned file stem of the episode URL.
    """

    podcast_name: str
    episode_name: str


def normalize_locator(locator: str) -> str:
    """Canonicalize ``locator`` into an identity key.

    Query and fragment are dropped; the scheme is lower-cased and an empty path
    becomes ``/``. Anything that does not parse as an absolute URL is returned
    unchanged, so the function never raises and is idempotent.

    Args:
        locator: Episode URL as supplied by the caller.

    Returns:
        The normalized identity key.

    Examples:
        >>> normalize_locator("https://cdn.example.com/ep1.mp3?tok=A")
        'https://cdn.example.com/ep1.mp3'
        >>> normalize_locator("not a url")
        'not a url'
    """
    candidate = locator.strip()
    try:
        parts = urlsplit(candidate)
    except ValueError:
        return locator
    if not parts.scheme or not parts.netloc:
        return locator
    return urlunsplit((parts.scheme.lower(), parts.netloc, parts.path or "/", "", ""))


def identity_for(locator: str | None) -> str:
    """Return the identity key for a request locator.

    Raises:
        InvalidIdentityError: If ``locator`` is missing or blank.
    """
    if locator is None or not locator.strip():
        raise InvalidIdentityError("Missing required parameter: url")
    return normalize_locator(locator)


def episode_title(locator: str) -> str:
    """Derive the episode title: last path component without the query."""
    return locator.split("/")[-1].split("?")[0]


def _strip_audio_extension(filename: str, extensions: tuple[str, ...]) -> str:
    lowered = filename.lower()
    for ext in extensions:
        if lowered.endswith(ext):
            return filename[: -len(ext)]
    return filename


def extract_episode_info(locator: str) -> EpisodeInfo:
    """Derive podcast and episode names from an episode URL.

    The podcast name is the first label of the host (``www.`` removed). The
    episode name is the file stem with 13-digit millisecond timestamps and a
    leading ``podcast_``/``podcast-`` prefix removed; when cleaning leaves
    nothing the plain stem is used. Unparseable locators fall back to
    ``Unknown`` as podcast name.

    Examples:
        >>> extract_episode_info("https://www.example.com/podcast_1771341938163_LdN466.mp3")
        EpisodeInfo(podcast_name='example', episode_name='LdN466')
    """
    filename = episode_title(locator)
    parts = urlsplit(locator.strip()) if "://" in locator else None
    hostname = parts.hostname if parts is not None else None

    if not hostname:
        return EpisodeInfo(
            podcast_name="Unknown",
            episode_name=_strip_audio_extension(filename, (".mp3", ".m4a", ".wav")),
        )

    clean_name = _strip_audio_extension(filename, AUDIO_URL_EXTENSIONS)
    episode_name = "_".join(
        part for part in clean_name.split("_") if not _MS_TIMESTAMP.match(part)
    )
    episode_name = _PODCAST_PREFIX.sub("", episode_name)
    if not episode_name:
        episode_name = clean_name

    host_parts = re.sub(r"^www\.", "", hostname).split(".")
    podcast_name = host_parts[0] if len(host_parts) > 1 else hostname
    return EpisodeInfo(podcast_name=podcast_name, episode_name=episode_name)


def episode_storage_path(locator: str) -> Path:
    """Return the storage directory for ``locator``, relative to the downloads root.

    The readable ``<podcast>/<episode>`` layout is suffixed with a short
    digest of the identity key, so two identities that share a host label
    and file stem never share a directory.

    Examples:
        >>> episode_storage_path("https://cdn.example.com/a/ep1.mp3?t=1").parent
        PosixPath('cdn')
    """
    info = extract_episode_info(locator)
    digest = hashlib.sha1(normalize_locator(locator).encode("utf-8")).hexdigest()[:8]
    return Path(info.podcast_name) / f"{info.episode_name}_{digest}"
