"""Transcript post-processing -- payload classification and sentence extraction."""

from src.notetaker.meetings.transcript.payload import (
    TranscriptPayload,
    TranscriptShape,
    parse_transcript_payload,
)
from src.notetaker.meetings.transcript.sentences import (
    PAUSE_THRESHOLD_SECONDS,
    extract_sentences,
)

__all__ = [
    "PAUSE_THRESHOLD_SECONDS",
    "TranscriptPayload",
    "TranscriptShape",
    "extract_sentences",
    "parse_transcript_payload",
]
