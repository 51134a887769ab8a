"""
Heuristic scoring of a recognized transcript against the reference text.

Used when the pronunciation assessment service is unavailable and only a
plain transcript could be obtained. No timing or phoneme data is involved,
so the result carries top-level scores only.

Fluency counts whitespace-delimited words, which is a weak signal for
Chinese text (not whitespace-segmented); it is kept deliberately simple.
"""

import re
from typing import Any, Dict

_WHITESPACE = re.compile(r"\s+")


def _strip_whitespace(text: str) -> str:
    return _WHITESPACE.sub("", text)


def _ratio_score(a: int, b: int) -> int:
    larger = max(a, b)
    if larger == 0:
        return 0
    return round(min(a, b) / larger * 100)


def calculate_simple_accuracy(transcript: str, reference: str) -> int:
    """Position-wise character match ratio over the longer text."""
    transcript_chars = _strip_whitespace(transcript)
    reference_chars = _strip_whitespace(reference)

    max_length = max(len(transcript_chars), len(reference_chars))
    if max_length == 0:
        return 0

    matches = sum(1 for t, r in zip(transcript_chars, reference_chars) if t == r)
    return round(matches / max_length * 100)


def calculate_simple_fluency(transcript: str, reference: str) -> int:
    return _ratio_score(len(transcript.split()), len(reference.split()))


def calculate_simple_completeness(transcript: str, reference: str) -> int:
    return _ratio_score(len(_strip_whitespace(transcript)), len(_strip_whitespace(reference)))


def score_transcript(transcript: str, reference: str) -> Dict[str, Any]:
    """Score a transcript, returning the recognition-fallback result shape."""
    return {
        "accuracyScore": calculate_simple_accuracy(transcript, reference),
        "fluencyScore": calculate_simple_fluency(transcript, reference),
        "completenessScore": calculate_simple_completeness(transcript, reference),
        "prosodyScore": 0,
        "confidenceScore": 0,
        "pauseCount": 0,
        "transcript": transcript,
        "words": [],
        "syllables": [],
        "phonemes": [],
    }
