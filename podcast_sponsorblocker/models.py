"""Common data models for transcripts, ad segments and analysis results.

This module defines pydantic models that are shared across the collaborators,
the merge step, the result store and the HTTP schemas.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator

__all__ = [
    "AdCategory",
    "AdSegment",
    "AnalysisResult",
    "ClassifierUsage",
    "CostMetrics",
    "Transcription",
    "TranscriptSegment",
]


class AdCategory(str, enum.Enum):  # noqa: UP042
    """Kind of advertisement found in an episode.

    Attributes:
        SPONSOR: Paid third-party advertising (host reads, promo codes).
        SELF_PROMOTION: The show promoting itself (memberships, newsletters).
    """

    SPONSOR = "sponsor"
    SELF_PROMOTION = "self-promotion"

    @classmethod
    def _missing_(cls, value: object) -> AdCategory | None:
        # The classifier prompt is German and may answer with the German label.
        aliases = {
            "eigenwerbung": cls.SELF_PROMOTION,
            "self_promotion": cls.SELF_PROMOTION,
        }
        if isinstance(value, str):
            return aliases.get(value.strip().lower())
        return None


class TranscriptSegment(BaseModel):
    """A timestamped stretch of transcribed speech."""

    start: float = Field(..., ge=0, description="Segment start time (seconds).")
    end: float = Field(..., ge=0, description="Segment end time (seconds).")
    text: str = Field(..., description="Transcribed text of the segment.")

    def shifted(self, offset: float) -> TranscriptSegment:
        """Return a copy moved ``offset`` seconds later on the timeline."""
        return TranscriptSegment(start=self.start + offset, end=self.end + offset, text=self.text)


class Transcription(BaseModel):
    """Result of transcribing one audio file (or the whole episode)."""

    text: str = Field(default="", description="Full plain-text transcript.")
    segments: list[TranscriptSegment] = Field(default_factory=list)
    duration: float | None = Field(
        default=None, description="Audio duration in seconds as reported by the service."
    )

    @property
    def billed_seconds(self) -> float:
        """Seconds of audio this transcription is billed for."""
        if self.duration is not None:
            return self.duration
        if self.segments:
            return self.segments[-1].end
        return 0.0


class AdSegment(BaseModel):
    """An advertisement span on the episode timeline."""

    start_ms: int = Field(..., ge=0, description="Start of the ad in milliseconds.")
    end_ms: int = Field(..., ge=0, description="End of the ad in milliseconds.")
    category: AdCategory = Field(..., description="Sponsor or self-promotion.")
    description: str = Field(default="", description="Short description of the ad.")

    @field_validator("start_ms", "end_ms", mode="before")
    @classmethod
    def round_milliseconds(cls, value: Any) -> Any:
        """Accept fractional milliseconds by rounding to the nearest integer."""
        if isinstance(value, float):
            return round(value)
        return value

    @field_validator("category", mode="before")
    @classmethod
    def resolve_category_alias(cls, value: Any) -> Any:
        """Map alias labels (e.g. ``eigenwerbung``) onto :class:`AdCategory`."""
        if isinstance(value, str) and not isinstance(value, AdCategory):
            try:
                return AdCategory(value)
            except ValueError:
                return value
        return value

    @field_validator("description", mode="before")
    @classmethod
    def none_to_empty(cls, value: Any) -> Any:
        """Treat a missing description as empty text."""
        return "" if value is None else value

    @model_validator(mode="after")
    def check_span(self) -> AdSegment:
        """Reject spans that end before they start."""
        if self.end_ms < self.start_ms:
            raise ValueError(f"end_ms ({self.end_ms}) is before start_ms ({self.start_ms})")
        return self


class ClassifierUsage(BaseModel):
    """Token usage reported for one classification call."""

    input_tokens: int = 0
    output_tokens: int = 0


class CostMetrics(BaseModel):
    """Usage and imputed cost accumulated over one pipeline run."""

    transcription_seconds: float = 0.0
    transcription_cost_usd: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0
    classification_cost_usd: float = 0.0
    classifier_model: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_cost_usd(self) -> float:
        """Sum of transcription and classification cost."""
        return round(self.transcription_cost_usd + self.classification_cost_usd, 6)


class AnalysisResult(BaseModel):
    """The cached outcome of analysing one episode identity."""

    url: str = Field(..., description="Normalized episode identity.")
    title: str = Field(default="", description="Episode title derived from the URL.")
    segments: list[AdSegment] = Field(default_factory=list)
    cost: CostMetrics | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
