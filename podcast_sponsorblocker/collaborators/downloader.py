"""Fetch episode audio over HTTP into a per-episode directory."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import httpx

from podcast_sponsorblocker.errors import DownloadFailedError
from podcast_sponsorblocker.identity import episode_storage_path, extract_episode_info
from podcast_sponsorblocker.utils.constant import (
    DOWNLOAD_HEADERS,
    DOWNLOAD_TIMEOUT_SEC,
    DOWNLOADS_DIR,
)
from podcast_sponsorblocker.utils.logging_config import get_logger

logger = get_logger(__name__)

_MAX_REDIRECTS = 10
_CHUNK_BYTES = 1024 * 64


@dataclass(frozen=True)
class DownloadedEpisode:
    """Local copy of an episode.

    Attributes:
        audio_path: The downloaded audio file.
        episode_dir: Directory holding the audio and the run artifacts.
    """

    audio_path: Path
    episode_dir: Path


class EpisodeDownloader:
    """Stream episode audio to ``<downloads>/<podcast>/<episode>_<digest>/<episode>.mp3``.

    Args:
        downloads_dir: Root directory for all episodes.
        timeout: Per-request timeout in seconds.
        client: Optional preconfigured ``httpx.Client`` (tests use a
            ``MockTransport``).
    """

    def __init__(
        self,
        downloads_dir: Path = DOWNLOADS_DIR,
        timeout: float = DOWNLOAD_TIMEOUT_SEC,
        client: httpx.Client | None = None,
    ) -> None:
        self.downloads_dir = Path(downloads_dir)
        self.timeout = timeout
        self._client = client

    def episode_dir_for(self, locator: str) -> Path:
        """Return the deterministic, per-identity storage directory for ``locator``."""
        return self.downloads_dir / episode_storage_path(locator)

    def _make_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=self.timeout,
            follow_redirects=True,
            max_redirects=_MAX_REDIRECTS,
            headers=DOWNLOAD_HEADERS,
        )

    def fetch(self, locator: str) -> DownloadedEpisode:
        """Download ``locator`` and return where it was stored.

        Raises:
            DownloadFailedError: On any network, HTTP status or disk error.
        """
        episode_dir = self.episode_dir_for(locator)
        audio_path = episode_dir / f"{extract_episode_info(locator).episode_name}.mp3"

        logger.info(f"Downloading podcast from: {locator}")
        logger.info(f"Saving to: {episode_dir}")
        client = self._client or self._make_client()
        try:
            episode_dir.mkdir(parents=True, exist_ok=True)
            with client.stream("GET", locator, headers=DOWNLOAD_HEADERS) as response:
                response.raise_for_status()
                with audio_path.open("wb") as fh:
                    for chunk in response.iter_bytes(_CHUNK_BYTES):
                        fh.write(chunk)
        except (httpx.HTTPError, OSError) as exc:
            audio_path.unlink(missing_ok=True)
            raise DownloadFailedError(f"Failed to download podcast: {exc}") from exc
        finally:
            if self._client is None:
                client.close()

        logger.info(f"Download completed: {audio_path}")
        return DownloadedEpisode(audio_path=audio_path, episode_dir=episode_dir)
