"""Project-wide constants for convenient reuse."""

# pylint: disable=line-too-long

from __future__ import annotations

import os
import pathlib
import sys
from typing import Final

from podcast_sponsorblocker.utils.env_loader import load_project_env

# Ensure .env is loaded exactly once at import time for the whole project
if "pytest" not in sys.modules:
    load_project_env()


# Repository root resolved relative to this file (utils/constant.py → package → repo)
REPO_ROOT: Final[pathlib.Path] = pathlib.Path(__file__).resolve().parents[2]

# Default path of the dotenv file containing runtime overrides
ENV_FILE: Final[pathlib.Path] = REPO_ROOT / ".env"

# Service identity reported by / and /health
SERVICE_NAME: Final[str] = "podcast-sponsorblocker"

# OpenAI credentials and model selection
OPENAI_API_KEY: Final[str] = os.getenv("OPENAI_API_KEY", "")
OPENAI_MODEL: Final[str] = os.getenv("OPENAI_MODEL", "gpt-4-turbo")
TRANSCRIPTION_MODEL: Final[str] = os.getenv("TRANSCRIPTION_MODEL", "whisper-1")
CLASSIFIER_TEMPERATURE: Final[float] = float(os.getenv("CLASSIFIER_TEMPERATURE", "0.3"))

# Whisper rejects uploads above 25 MB; stay just below that.
MAX_AUDIO_FILE_MB: Final[float] = float(os.getenv("MAX_AUDIO_FILE_MB", "24"))

# Fixed-length audio chunks (seconds) cut when a download exceeds MAX_AUDIO_FILE_MB.
AUDIO_CHUNK_SEC: Final[int] = int(os.getenv("AUDIO_CHUNK_SEC", "600"))

# Compression profile for audio chunks (speech-optimised, keeps chunks small)
AUDIO_CHUNK_CHANNELS: Final[int] = int(os.getenv("AUDIO_CHUNK_CHANNELS", "1"))
AUDIO_CHUNK_SAMPLE_RATE: Final[int] = int(os.getenv("AUDIO_CHUNK_SAMPLE_RATE", "16000"))
AUDIO_CHUNK_BITRATE: Final[str] = os.getenv("AUDIO_CHUNK_BITRATE", "64k")

# Transcript analysis windows sent to the classifier
ANALYSIS_WINDOW_SEC: Final[int] = int(os.getenv("ANALYSIS_WINDOW_SEC", "600"))
ANALYSIS_OVERLAP_SEC: Final[int] = int(os.getenv("ANALYSIS_OVERLAP_SEC", "30"))

# Same-category ad segments closer than this are merged into one
AD_GAP_TOLERANCE_MS: Final[int] = int(os.getenv("AD_GAP_TOLERANCE_MS", "30000"))

# Transcription retry policy (exponential backoff inside the transcriber)
TRANSCRIPTION_MAX_ATTEMPTS: Final[int] = int(os.getenv("TRANSCRIPTION_MAX_ATTEMPTS", "3"))
TRANSCRIPTION_BASE_DELAY_SEC: Final[float] = float(
    os.getenv("TRANSCRIPTION_BASE_DELAY_SEC", "1.0")
)
TRANSCRIPTION_BACKOFF_MULTIPLIER: Final[float] = float(
    os.getenv("TRANSCRIPTION_BACKOFF_MULTIPLIER", "2.0")
)
TRANSCRIPTION_MAX_DELAY_SEC: Final[float] = float(os.getenv("TRANSCRIPTION_MAX_DELAY_SEC", "10.0"))

# Per-call timeouts (seconds) for external collaborators
TRANSCRIPTION_TIMEOUT_SEC: Final[float] = float(os.getenv("TRANSCRIPTION_TIMEOUT_SEC", "120"))
CLASSIFICATION_TIMEOUT_SEC: Final[float] = float(os.getenv("CLASSIFICATION_TIMEOUT_SEC", "120"))
DOWNLOAD_TIMEOUT_SEC: Final[float] = float(os.getenv("DOWNLOAD_TIMEOUT_SEC", "300"))
FFMPEG_TIMEOUT_SEC: Final[float] = float(os.getenv("FFMPEG_TIMEOUT_SEC", "600"))

# Imputed pricing used for the per-run cost report
WHISPER_USD_PER_MINUTE: Final[float] = float(os.getenv("WHISPER_USD_PER_MINUTE", "0.006"))
CLASSIFIER_USD_PER_M_INPUT: Final[float] = float(os.getenv("CLASSIFIER_USD_PER_M_INPUT", "10"))
CLASSIFIER_USD_PER_M_OUTPUT: Final[float] = float(os.getenv("CLASSIFIER_USD_PER_M_OUTPUT", "30"))

# Where downloaded episodes, transcripts and classifier responses are stored
DOWNLOADS_DIR: Final[pathlib.Path] = pathlib.Path(
    os.getenv("DOWNLOADS_DIR", str(REPO_ROOT / "downloads"))
)

# Result persistence (SQLModel / SQLAlchemy URL)
DATABASE_URL: Final[str] = os.getenv("DATABASE_URL", f"sqlite:///{REPO_ROOT / 'podcasts.db'}")

# HTTP API configuration
API_SERVER_NAME: Final[str] = os.getenv("API_SERVER_NAME", "0.0.0.0")
API_SERVER_PORT: Final[int] = int(os.getenv("API_SERVER_PORT", os.getenv("PORT", "3000")))
API_CORS_ORIGINS: Final[str] = os.getenv("API_CORS_ORIGINS", "")
API_BEARER_TOKEN: Final[str] = os.getenv("API_BEARER_TOKEN", "")

# Logging configuration
LOG_LEVEL: Final[str] = os.getenv("LOG_LEVEL", "INFO").upper()

# Episode file extensions stripped when deriving names from a URL
AUDIO_URL_EXTENSIONS: Final[tuple[str, ...]] = (".mp3", ".m4a", ".wav", ".m4v", ".mp4")

# Browser-like headers; several podcast CDNs reject default client user agents.
DOWNLOAD_HEADERS: Final[dict[str, str]] = {
    "User-Agent": os.getenv(
        "DOWNLOAD_USER_AGENT",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    ),
    "Accept": "audio/mpeg,audio/*,*/*",
}
