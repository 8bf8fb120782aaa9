"""Unit tests for the top-level CLI entry points.

The commands are exercised through Typer's ``CliRunner`` with
``create_service`` patched to return a service wired with fakes.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest
import typer
from typer.testing import CliRunner

from podcast_sponsorblocker import cli
from podcast_sponsorblocker.models import AdSegment
from podcast_sponsorblocker.pipeline.service import SponsorblockService

URL = "https://cdn.example.com/shows/ep3.mp3"

runner = CliRunner()


@pytest.fixture
def patch_service(
    monkeypatch: pytest.MonkeyPatch,
) -> Callable[[SponsorblockService], list[dict]]:
    """Route ``cli.create_service`` to a prepared service.

    Returns:
        Function installing the service; it returns the recorded call kwargs.
    """

    def _install(service: SponsorblockService) -> list[dict]:
        calls: list[dict] = []

        def fake_create_service(**kwargs: object) -> SponsorblockService:
            calls.append(kwargs)
            return service

        monkeypatch.setattr(cli, "create_service", fake_create_service)
        monkeypatch.setattr(cli, "configure_logging", lambda **_kwargs: None)
        return calls

    return _install


def test_version_callback() -> None:
    """Ensure ``--version`` callback exits the process cleanly."""
    with pytest.raises(typer.Exit):
        cli.version_callback(True)


def test_main_help() -> None:
    """Invoking the app without args should print usage and exit 0."""
    result = runner.invoke(cli.app, [])
    assert result.exit_code == 0
    assert "Usage" in result.stdout


def test_analyze_runs_pipeline(
    build_service: Callable[..., SponsorblockService],
    make_ad_result: Callable,
    patch_service: Callable[[SponsorblockService], list[dict]],
) -> None:
    service = build_service(
        classifier_results=[
            make_ad_result(
                AdSegment(start_ms=65000, end_ms=95000, category="sponsor", description="VPN")
            )
        ]
    )
    calls = patch_service(service)

    result = runner.invoke(cli.app, ["analyze", f"{URL}?tok=A", "--keep-audio"])

    assert result.exit_code == 0, result.stdout
    assert "1:05" in result.stdout
    assert "VPN" in result.stdout
    assert calls[0]["config"].keep_audio is True
    assert service.cache.get(URL) is not None


def test_analyze_prints_cached_result(
    build_service: Callable[..., SponsorblockService],
    patch_service: Callable[[SponsorblockService], list[dict]],
) -> None:
    service = build_service()
    service.cache.put(URL, "ep3.mp3", [])
    patch_service(service)

    result = runner.invoke(cli.app, ["analyze", URL])

    assert result.exit_code == 0
    assert "Cached result" in result.stdout
    assert "No advertisement segments found." in result.stdout
    assert service.pipeline.downloader.calls == []


def test_analyze_failure_exits_nonzero(
    build_service: Callable[..., SponsorblockService],
    patch_service: Callable[[SponsorblockService], list[dict]],
) -> None:
    patch_service(build_service(download_fails=True))
    result = runner.invoke(cli.app, ["analyze", URL])
    assert result.exit_code == 1


def test_analyze_already_running_exits_nonzero(
    build_service: Callable[..., SponsorblockService],
    patch_service: Callable[[SponsorblockService], list[dict]],
) -> None:
    service = build_service()
    service.start_processing(URL)
    patch_service(service)
    result = runner.invoke(cli.app, ["analyze", URL])
    assert result.exit_code == 1


def test_podcasts_and_requested_tables(
    build_service: Callable[..., SponsorblockService],
    patch_service: Callable[[SponsorblockService], list[dict]],
) -> None:
    service = build_service()
    service.cache.put(URL, "ep3.mp3", [])
    service.query("https://cdn.example.com/shows/ep4.mp3")
    patch_service(service)

    podcasts = runner.invoke(cli.app, ["podcasts"])
    requested = runner.invoke(cli.app, ["requested"])

    assert podcasts.exit_code == 0
    assert "1 podcast(s)" in podcasts.stdout
    assert requested.exit_code == 0
    assert "1 requested URL(s)" in requested.stdout


def test_serve_invokes_uvicorn(monkeypatch: pytest.MonkeyPatch) -> None:
    import uvicorn

    captured: dict[str, object] = {}

    def fake_run(target: str, **kwargs: object) -> None:
        captured["target"] = target
        captured.update(kwargs)

    monkeypatch.setattr(uvicorn, "run", fake_run)
    monkeypatch.setattr(cli, "configure_logging", lambda **_kwargs: None)
    result = runner.invoke(cli.app, ["serve", "--port", "8123"])

    assert result.exit_code == 0
    assert captured["target"] == "podcast_sponsorblocker.api.app:create_app"
    assert captured["factory"] is True
    assert captured["port"] == 8123
