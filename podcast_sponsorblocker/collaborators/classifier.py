"""Ad classification of transcript windows via an OpenAI chat model.

Each call sends one window of timestamped transcript lines and asks the model
for a JSON object ``{"segments": [...]}``. The prompt is German because the
shows this service was built for are German-language; the model answers with
the categories ``sponsor`` and ``eigenwerbung`` (self-promotion).
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from openai import OpenAI
from pydantic import ValidationError

from podcast_sponsorblocker.errors import ClassificationFailedError, ClassificationParseError
from podcast_sponsorblocker.models import AdSegment, ClassifierUsage, TranscriptSegment
from podcast_sponsorblocker.utils.constant import (
    CLASSIFICATION_TIMEOUT_SEC,
    CLASSIFIER_TEMPERATURE,
    OPENAI_API_KEY,
    OPENAI_MODEL,
)
from podcast_sponsorblocker.utils.formatting import format_time
from podcast_sponsorblocker.utils.logging_config import get_logger

logger = get_logger(__name__)

SYSTEM_PROMPT = (
    "Du bist ein Experte für Podcast-Analyse und erkennst zuverlässig Werbesegmente. "
    "Antworte immer mit validem JSON."
)

PROMPT_TEMPLATE = """Analysiere das folgende Podcast-Transkript und identifiziere alle Werbesegmente.

Transkript mit Zeitstempeln:
{transcript}

Gebe mir eine Liste aller Werbesegmente zurück. Unterscheide dabei zwei Kategorien:

1. "sponsor" - Externe Werbung/Sponsoren:
   - Produkt- oder Firmenwerbung (z.B. NordVPN, Vodafone, etc.)
   - Rabattcodes oder Affiliate-Links
   - Produktbeschreibungen mit Kaufaufforderungen
   - Host-Reads für externe Firmen
   - Explizite Ansagen wie "Werbung" gefolgt von externem Produkt

2. "eigenwerbung" - Eigenwerbung des Podcasts:
   - Aufrufe zur Mitgliedschaft / Unterstützung des eigenen Podcasts
   - Hinweise auf eigene Produkte, Newsletter, andere eigene Podcasts
   - "Werde Mitglied unter ...", "Unterstütze uns unter ..."

Wichtig für den Übergang: Wenn ein Satz thematisch nicht zum Gespräch davor passt und stattdessen ein Produkt oder eine Dienstleistung beschreibt, gehört er zum Werbesegment, auch wenn kein explizites "Werbung" gesagt wurde.

Antworte ausschließlich mit einem JSON-Objekt im folgenden Format (keine Erklärungen):
{{
  "segments": [
    {{
      "start_ms": <Start in Millisekunden>,
      "end_ms": <Ende in Millisekunden>,
      "category": "sponsor" | "eigenwerbung",
      "description": "<Kurze Beschreibung der Werbung>"
    }}
  ]
}}

Wenn keine Werbung gefunden wurde, gebe ein leeres Array zurück: {{"segments": []}}"""


@dataclass
class ClassificationResult:
    """Outcome of classifying one transcript window.

    Attributes:
        segments: Candidate ad segments on the episode timeline.
        usage: Token usage reported by the service.
        raw_response: Unparsed model output, kept for the response artifact.
    """

    segments: list[AdSegment] = field(default_factory=list)
    usage: ClassifierUsage = field(default_factory=ClassifierUsage)
    raw_response: str = ""


class SupportsClassify(Protocol):
    """Protocol for anything that finds ad segments in transcript text."""

    model: str

    def classify(self, window_text: str) -> ClassificationResult:
        """Classify one transcript window."""
        ...


def render_window(segments: Sequence[TranscriptSegment]) -> str:
    """Render transcript segments as ``M:SS - M:SS: text`` lines."""
    return "\n".join(
        f"{format_time(seg.start)} - {format_time(seg.end)}: {seg.text}" for seg in segments
    )


def build_prompt(window_text: str) -> str:
    """Insert a rendered transcript window into the classification prompt."""
    return PROMPT_TEMPLATE.format(transcript=window_text)


def parse_classifier_response(content: str | None) -> list[AdSegment]:
    """Parse the model's JSON answer into ad segments.

    A missing or ``null`` ``segments`` value counts as "no ads". Anything that is not a JSON
    object, a ``segments`` value that is not a list, or an entry that does not
    validate as :class:`AdSegment` is rejected.

    Raises:
        ClassificationParseError: If the answer is malformed or off-schema.
    """
    if not content:
        raise ClassificationParseError("Classifier returned an empty response")
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ClassificationParseError(f"Classifier returned invalid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ClassificationParseError("Classifier response is not a JSON object")

    raw_segments = payload.get("segments")
    if raw_segments is None:
        return []
    if not isinstance(raw_segments, list):
        raise ClassificationParseError("Classifier field 'segments' is not a list")
    try:
        return [AdSegment.model_validate(item) for item in raw_segments]
    except ValidationError as exc:
        raise ClassificationParseError(f"Classifier returned an invalid segment: {exc}") from exc


class OpenAIAdClassifier:
    """Classify transcript windows with a JSON-mode chat completion.

    Args:
        client: OpenAI client; built from ``OPENAI_API_KEY`` when omitted.
        model: Chat model name.
        temperature: Sampling temperature.
        timeout: Per-call timeout in seconds.
    """

    def __init__(
        self,
        client: OpenAI | None = None,
        model: str = OPENAI_MODEL,
        temperature: float = CLASSIFIER_TEMPERATURE,
        timeout: float = CLASSIFICATION_TIMEOUT_SEC,
    ) -> None:
        self._client = client
        self.model = model
        self.temperature = temperature
        self.timeout = timeout

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=OPENAI_API_KEY or None)
        return self._client

    def classify(self, window_text: str) -> ClassificationResult:
        """Ask the model for ad segments in ``window_text``.

        Raises:
            ClassificationFailedError: If the API call fails.
            ClassificationParseError: If the answer cannot be parsed.
        """
        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_prompt(window_text)},
                ],
                temperature=self.temperature,
                response_format={"type": "json_object"},
                timeout=self.timeout,
            )
        except Exception as e:
            raise ClassificationFailedError(f"Ad classification request failed: {e}") from e

        content = completion.choices[0].message.content
        segments = parse_classifier_response(content)
        usage: Any = completion.usage
        return ClassificationResult(
            segments=segments,
            usage=ClassifierUsage(
                input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            ),
            raw_response=content or "",
        )
