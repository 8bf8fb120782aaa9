"""Error kinds raised by the analysis pipeline and its collaborators.

Every failure inside a run surfaces as one of these types so the orchestrator
can record a single human-readable message on the run and stop.
"""

from __future__ import annotations

__all__ = [
    "SponsorblockError",
    "InvalidIdentityError",
    "DownloadFailedError",
    "AudioProcessingError",
    "TranscriptionFailedError",
    "ClassificationFailedError",
    "ClassificationParseError",
    "PersistenceFailedError",
]


class SponsorblockError(Exception):
    """Base class for all pipeline errors."""


class InvalidIdentityError(SponsorblockError, ValueError):
    """Raised when a locator is empty and cannot serve as an identity key."""


class DownloadFailedError(SponsorblockError):
    """Raised when the episode audio cannot be fetched or written to disk."""


class AudioProcessingError(SponsorblockError):
    """Raised when probing or cutting audio with FFmpeg fails."""


class TranscriptionFailedError(SponsorblockError):
    """Raised when speech-to-text fails after all retry attempts."""


class ClassificationFailedError(SponsorblockError):
    """Raised when the classification service call itself fails."""


class ClassificationParseError(ClassificationFailedError):
    """Raised when the classifier answers with malformed or off-schema output."""


class PersistenceFailedError(SponsorblockError):
    """Raised when reading or writing the result store fails."""
