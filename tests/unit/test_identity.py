"""Unit tests for episode identity normalization and naming helpers."""

from __future__ import annotations

import pytest

from podcast_sponsorblocker.errors import InvalidIdentityError
from podcast_sponsorblocker.identity import (
    EpisodeInfo,
    episode_storage_path,
    episode_title,
    extract_episode_info,
    identity_for,
    normalize_locator,
)


@pytest.mark.parametrize(
    ("locator", "expected"),
    [
        ("https://cdn.example.com/ep1.mp3?tok=A", "https://cdn.example.com/ep1.mp3"),
        ("https://cdn.example.com/ep1.mp3?tok=B#t=30", "https://cdn.example.com/ep1.mp3"),
        ("HTTPS://cdn.example.com/ep1.mp3", "https://cdn.example.com/ep1.mp3"),
        ("https://cdn.example.com", "https://cdn.example.com/"),
        ("  https://cdn.example.com/ep1.mp3  ", "https://cdn.example.com/ep1.mp3"),
    ],
)
def test_normalize_locator_drops_query_and_fragment(locator: str, expected: str) -> None:
    assert normalize_locator(locator) == expected


@pytest.mark.parametrize("locator", ["not a url", "/local/file.mp3", "ep1.mp3?x=1"])
def test_normalize_locator_returns_unparseable_input_unchanged(locator: str) -> None:
    """Locators without scheme or host are their own identity."""
    assert normalize_locator(locator) == locator


def test_normalize_locator_is_idempotent() -> None:
    locators = [
        "https://cdn.example.com/show/ep1.mp3?tok=A&utm_source=x",
        "HTTP://Example.com",
        "plain text",
    ]
    for locator in locators:
        once = normalize_locator(locator)
        assert normalize_locator(once) == once


def test_token_variants_share_one_identity() -> None:
    a = identity_for("https://cdn.example.com/ep1.mp3?tok=A")
    b = identity_for("https://cdn.example.com/ep1.mp3?tok=B")
    assert a == b


@pytest.mark.parametrize("locator", [None, "", "   "])
def test_identity_for_rejects_missing_locator(locator: str | None) -> None:
    with pytest.raises(InvalidIdentityError, match="Missing required parameter: url"):
        identity_for(locator)


def test_invalid_identity_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        identity_for("")


def test_episode_title_strips_query() -> None:
    assert episode_title("https://cdn.example.com/show/LdN466.mp3?tok=A") == "LdN466.mp3"


def test_extract_episode_info_cleans_timestamp_and_prefix() -> None:
    info = extract_episode_info("https://www.example.com/podcast_1771341938163_LdN466.mp3")
    assert info == EpisodeInfo(podcast_name="example", episode_name="LdN466")


def test_extract_episode_info_keeps_stem_when_cleaning_empties_it() -> None:
    info = extract_episode_info("https://media.example.org/1771341938163.mp3")
    assert info.podcast_name == "media"
    assert info.episode_name == "1771341938163"


def test_extract_episode_info_without_host_falls_back_to_unknown() -> None:
    info = extract_episode_info("episode-12.m4a")
    assert info == EpisodeInfo(podcast_name="Unknown", episode_name="episode-12")


def test_episode_storage_path_keeps_readable_prefix() -> None:
    path = episode_storage_path("https://www.example.com/podcast_1771341938163_LdN466.mp3?t=1")
    assert path.parent.name == "example"
    prefix, digest = path.name.rsplit("_", 1)
    assert prefix == "LdN466"
    assert len(digest) == 8
    assert path == episode_storage_path("https://www.example.com/podcast_1771341938163_LdN466.mp3")
