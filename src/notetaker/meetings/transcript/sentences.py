"""Pause-based sentence extraction from word-level transcripts.

Recall.ai transcripts carry per-word relative timestamps but no punctuation
guarantees. Sentences are approximated per participant by splitting on gaps
between consecutive words that exceed PAUSE_THRESHOLD_SECONDS.

Segments closed by a pause are kept only when they look like a sentence
(longer than MIN_SENTENCE_LENGTH characters or ending in a period), which
drops stray interjections such as "Hi" or "Um". The trailing segment of a
participant is always kept when non-empty.

Participants are processed independently and emitted in payload order;
sentences are not merged across speakers by time.
"""

from __future__ import annotations

from typing import Any

# A gap longer than this between two words ends the current sentence
PAUSE_THRESHOLD_SECONDS = 1.5

MIN_SENTENCE_LENGTH = 3


def extract_sentences(
    participants: Any, pause_threshold: float = PAUSE_THRESHOLD_SECONDS
) -> list[str]:
    """Extract sentences from a canonical array-of-participants payload.

    Args:
        participants: List of participant records, each with a ``words``
            list of ``{text, start_timestamp.relative, end_timestamp.relative}``.
        pause_threshold: Gap in seconds that closes a sentence.

    Returns:
        Flat list of sentence strings, participant order preserved.
    """
    if not isinstance(participants, list):
        return []

    sentences: list[str] = []
    for participant in participants:
        if not isinstance(participant, dict):
            continue
        words = participant.get("words")
        if not isinstance(words, list):
            continue
        sentences.extend(_participant_sentences(words, pause_threshold))

    return sentences


def _participant_sentences(words: list[Any], pause_threshold: float) -> list[str]:
    sentences: list[str] = []
    current = ""
    last_end = 0.0

    for index, word in enumerate(words):
        if not isinstance(word, dict):
            continue
        start = _relative_time(word, "start_timestamp")

        if index > 0 and start - last_end > pause_threshold and current.strip():
            candidate = current.strip()
            if _is_meaningful(candidate):
                sentences.append(candidate)
            current = ""

        text = str(word.get("text") or "")
        current = f"{current} {text}" if current else text
        last_end = _relative_time(word, "end_timestamp") or start

    if current.strip():
        sentences.append(current.strip())
    return sentences


def _is_meaningful(segment: str) -> bool:
    return len(segment) > MIN_SENTENCE_LENGTH or segment.endswith(".")


def _relative_time(word: dict, key: str) -> float:
    """Read ``word[key].relative`` as seconds, 0.0 when absent or invalid."""
    stamp = word.get(key)
    value = stamp.get("relative") if isinstance(stamp, dict) else None
    if value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0
