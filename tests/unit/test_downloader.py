"""Unit tests for the HTTP episode downloader."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from podcast_sponsorblocker.collaborators.downloader import EpisodeDownloader
from podcast_sponsorblocker.errors import DownloadFailedError

URL = "https://www.example.com/feed/podcast_1771341938163_LdN466.mp3?tok=abc"


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler), follow_redirects=True)


def test_fetch_streams_audio_into_episode_dir(tmp_path: Path) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=b"ID3" + b"\0" * 1000)

    downloader = EpisodeDownloader(downloads_dir=tmp_path, client=_client(handler))
    episode = downloader.fetch(URL)

    assert episode.episode_dir.parent == tmp_path / "example"
    assert episode.episode_dir.name.startswith("LdN466_")
    assert episode.audio_path == episode.episode_dir / "LdN466.mp3"
    assert episode.audio_path.read_bytes().startswith(b"ID3")
    assert seen[0].url.params["tok"] == "abc"
    assert "Mozilla" in seen[0].headers["User-Agent"]
    assert downloader.episode_dir_for(URL) == episode.episode_dir


def test_fetch_follows_redirects(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "www.example.com":
            return httpx.Response(302, headers={"Location": "https://cdn.example.net/real.mp3"})
        return httpx.Response(200, content=b"audio")

    downloader = EpisodeDownloader(downloads_dir=tmp_path, client=_client(handler))
    episode = downloader.fetch(URL)
    assert episode.audio_path.read_bytes() == b"audio"


def test_fetch_http_error_leaves_no_file(tmp_path: Path) -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, content=b"not here")

    downloader = EpisodeDownloader(downloads_dir=tmp_path, client=_client(handler))
    with pytest.raises(DownloadFailedError, match="404"):
        downloader.fetch(URL)
    assert not (downloader.episode_dir_for(URL) / "LdN466.mp3").exists()


def test_fetch_network_error(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    downloader = EpisodeDownloader(downloads_dir=tmp_path, client=_client(handler))
    with pytest.raises(DownloadFailedError, match="connection refused"):
        downloader.fetch(URL)


def test_episode_dir_is_shared_by_locator_variants(tmp_path: Path) -> None:
    downloader = EpisodeDownloader(downloads_dir=tmp_path)
    plain = URL.split("?", 1)[0]
    assert downloader.episode_dir_for(URL) == downloader.episode_dir_for(f"{plain}?tok=other")


@pytest.mark.parametrize(
    ("first", "second"),
    [
        ("https://cdn.example.com/showA/ep1.mp3", "https://cdn.other.net/showB/ep1.mp3"),
        ("https://cdn.example.com/showA/", "https://cdn.other.net/showB/"),
        ("https://cdn.example.com/ep1.mp3", "http://cdn.example.com/ep1.mp3"),
    ],
)
def test_distinct_identities_get_distinct_episode_dirs(
    tmp_path: Path, first: str, second: str
) -> None:
    downloader = EpisodeDownloader(downloads_dir=tmp_path)
    assert downloader.episode_dir_for(first) != downloader.episode_dir_for(second)
    assert downloader.episode_dir_for(first).parent == downloader.episode_dir_for(second).parent
