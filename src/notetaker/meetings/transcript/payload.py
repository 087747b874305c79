"""Classification of downloaded Recall.ai transcript payloads.

Recall.ai transcript downloads have been observed in several shapes. Each is
resolved into an explicit TranscriptShape and, where possible, normalized to
the canonical array-of-participants form:

- ARRAY: already a list of participant records
- JSON_STRING: a JSON-encoded list of participant records
- PARTICIPANTS_OBJECT: an object with a "participants" list
- WORDS_OBJECT: a single participant object with a "words" list
- UNRECOGNIZED: anything else, carried forward as-is
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

# Synthetic participant used when the payload is a bare words object
DEFAULT_PARTICIPANT = {
    "id": 1,
    "name": "Speaker",
    "is_host": True,
    "platform": "desktop",
}


class TranscriptShape(str, Enum):
    """Shape a downloaded transcript payload was recognized as."""

    ARRAY = "array"
    JSON_STRING = "json_string"
    PARTICIPANTS_OBJECT = "participants_object"
    WORDS_OBJECT = "words_object"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class TranscriptPayload:
    """A classified transcript payload.

    ``data`` is the canonical list of participant records unless ``shape`` is
    UNRECOGNIZED, in which case it is the raw value exactly as downloaded.
    """

    shape: TranscriptShape
    data: Any

    @property
    def is_recognized(self) -> bool:
        return self.shape != TranscriptShape.UNRECOGNIZED

    @property
    def participants(self) -> list[dict]:
        """Participant records, empty for unrecognized payloads."""
        return self.data if self.is_recognized else []


def parse_transcript_payload(raw: Any) -> TranscriptPayload:
    """Classify a raw payload and normalize it to participant records."""
    if isinstance(raw, list):
        return TranscriptPayload(TranscriptShape.ARRAY, raw)

    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            return TranscriptPayload(TranscriptShape.JSON_STRING, parsed)

    if isinstance(raw, dict):
        if isinstance(raw.get("participants"), list):
            return TranscriptPayload(
                TranscriptShape.PARTICIPANTS_OBJECT, raw["participants"]
            )
        if isinstance(raw.get("words"), list):
            return TranscriptPayload(
                TranscriptShape.WORDS_OBJECT,
                [{"participant": dict(DEFAULT_PARTICIPANT), "words": raw["words"]}],
            )

    logger.warning(
        "transcript.payload_unrecognized",
        payload_type=type(raw).__name__,
    )
    return TranscriptPayload(TranscriptShape.UNRECOGNIZED, raw)
