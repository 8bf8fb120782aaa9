"""Unit tests for the speech-to-text collaborator and its retry policy."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from podcast_sponsorblocker.collaborators.transcriber import WhisperTranscriber, to_transcription
from podcast_sponsorblocker.config import RetryPolicy
from podcast_sponsorblocker.errors import TranscriptionFailedError

VERBOSE_JSON = {
    "text": "Hallo und willkommen. Werbung.",
    "duration": 612.5,
    "segments": [
        {"id": 0, "start": 0.0, "end": 4.2, "text": " Hallo und willkommen."},
        {"id": 1, "start": 4.2, "end": 9.0, "text": " Werbung."},
    ],
}


@pytest.fixture
def audio_file(tmp_path: Path) -> Path:
    path = tmp_path / "ep1.mp3"
    path.write_bytes(b"ID3")
    return path


def test_to_transcription_from_dict() -> None:
    transcription = to_transcription(VERBOSE_JSON)
    assert transcription.duration == 612.5
    assert [s.text for s in transcription.segments] == ["Hallo und willkommen.", "Werbung."]
    assert transcription.billed_seconds == 612.5


def test_to_transcription_from_sdk_object() -> None:
    response = SimpleNamespace(
        text="x",
        duration=None,
        segments=[SimpleNamespace(start=1.0, end=2.5, text="x")],
    )
    transcription = to_transcription(response)
    assert transcription.segments[0].end == 2.5
    assert transcription.billed_seconds == 2.5


def test_transcribe_sends_verbose_json_request(audio_file: Path) -> None:
    client = MagicMock()
    client.audio.transcriptions.create.return_value = VERBOSE_JSON
    transcriber = WhisperTranscriber(client=client, model="whisper-1", sleep=lambda _s: None)

    transcription = transcriber.transcribe(audio_file)

    kwargs = client.audio.transcriptions.create.call_args.kwargs
    assert kwargs["model"] == "whisper-1"
    assert kwargs["response_format"] == "verbose_json"
    assert kwargs["timestamp_granularities"] == ["segment"]
    assert len(transcription.segments) == 2


def test_transcribe_retries_with_backoff(audio_file: Path) -> None:
    client = MagicMock()
    client.audio.transcriptions.create.side_effect = [
        ConnectionError("reset by peer"),
        TimeoutError("timed out"),
        VERBOSE_JSON,
    ]
    delays: list[float] = []
    transcriber = WhisperTranscriber(
        client=client,
        retry=RetryPolicy(max_attempts=3, base_delay=1.0, multiplier=2.0, max_delay=10.0),
        sleep=delays.append,
    )

    transcription = transcriber.transcribe(audio_file)

    assert client.audio.transcriptions.create.call_count == 3
    assert delays == [2.0, 4.0]
    assert transcription.duration == 612.5


def test_transcribe_fails_after_all_attempts(audio_file: Path) -> None:
    client = MagicMock()
    client.audio.transcriptions.create.side_effect = ConnectionError("reset by peer")
    delays: list[float] = []
    transcriber = WhisperTranscriber(
        client=client,
        retry=RetryPolicy(max_attempts=3, base_delay=1.0, multiplier=2.0, max_delay=3.0),
        sleep=delays.append,
    )

    with pytest.raises(TranscriptionFailedError, match="after 3 attempts: reset by peer"):
        transcriber.transcribe(audio_file)
    assert client.audio.transcriptions.create.call_count == 3
    assert delays == [2.0, 3.0]


def test_retry_policy_delays() -> None:
    policy = RetryPolicy(max_attempts=5, base_delay=1.0, multiplier=2.0, max_delay=10.0)
    assert [policy.delay_for(n) for n in range(1, 5)] == [2.0, 4.0, 8.0, 10.0]
