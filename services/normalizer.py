"""
Conversion of the three upstream result shapes into ``EvaluationResult``.

* Assessment service JSON: scores under ``NBest[0]`` (REST "detailed"
  format) or ``NBest[0].PronunciationAssessment`` (SDK format), capitalized
  word/syllable/phoneme fields, timestamps in 100 ns ticks.
* Recognition fallback: four camelCase top-level scores, empty word lists.
* Synthetic fallback: already in the internal snake_case shape.

All functions here are pure.
"""

from typing import Any, Dict, Optional

from models import (
    ErrorType,
    EvaluationResult,
    PhonemeAnalysis,
    ResultSource,
    SyllableAnalysis,
    WordAnalysis,
)
from services.pacing import PacingAnalyzer
from services.pause_analysis import PauseAnalyzer

TICKS_PER_MS = 10_000  # service timestamps are 100 ns ticks


class MalformedResultError(Exception):
    """An upstream result lacks the data needed to build an evaluation."""


def ticks_to_ms(ticks: Optional[float]) -> Optional[float]:
    """Convert a service timestamp to milliseconds, keeping None as None."""
    if ticks is None:
        return None
    return ticks / TICKS_PER_MS


def _scores(node: Dict[str, Any]) -> Dict[str, Any]:
    # SDK output nests the scores one level deeper than the REST output
    return node.get("PronunciationAssessment") or node


def _error_type(value: Optional[str]) -> ErrorType:
    # Prosody-only labels such as MissingBreak or Monotone count as no error
    try:
        return ErrorType(value or "None")
    except ValueError:
        return ErrorType.NONE


def _syllable(raw: Dict[str, Any]) -> SyllableAnalysis:
    return SyllableAnalysis(
        syllable=raw.get("Syllable") or raw.get("Grapheme") or "",
        accuracy_score=_scores(raw).get("AccuracyScore", 0),
        offset_ms=ticks_to_ms(raw.get("Offset")),
        duration_ms=ticks_to_ms(raw.get("Duration")),
    )


def _phoneme(raw: Dict[str, Any]) -> PhonemeAnalysis:
    return PhonemeAnalysis(
        phoneme=raw.get("Phoneme", ""),
        accuracy_score=_scores(raw).get("AccuracyScore", 0),
        offset_ms=ticks_to_ms(raw.get("Offset")),
        duration_ms=ticks_to_ms(raw.get("Duration")),
    )


def _word(raw: Dict[str, Any]) -> WordAnalysis:
    scores = _scores(raw)
    return WordAnalysis(
        word=raw.get("Word", ""),
        accuracy_score=scores.get("AccuracyScore", 0),
        error_type=_error_type(scores.get("ErrorType")),
        syllables=[_syllable(s) for s in raw.get("Syllables") or []],
        phonemes=[_phoneme(p) for p in raw.get("Phonemes") or []],
        offset_ms=ticks_to_ms(raw.get("Offset")),
        duration_ms=ticks_to_ms(raw.get("Duration")),
    )


def normalize_assessment_result(raw: Dict[str, Any]) -> EvaluationResult:
    nbest = raw.get("NBest") or []
    if not nbest:
        raise MalformedResultError("Assessment result has no NBest entries")

    best = nbest[0]
    scores = _scores(best)
    if "AccuracyScore" not in scores:
        raise MalformedResultError("Assessment result has no pronunciation scores")

    words = [_word(w) for w in best.get("Words") or []]
    pauses = PauseAnalyzer().analyze_pauses(words)
    pacing = PacingAnalyzer().analyze_pacing(words)

    return EvaluationResult(
        source=ResultSource.REAL_ASSESSMENT,
        accuracy_score=scores.get("AccuracyScore", 0),
        fluency_score=scores.get("FluencyScore", 0),
        completeness_score=scores.get("CompletenessScore", 0),
        # Absent when the region does not support prosody assessment
        prosody_score=scores.get("ProsodyScore", 0),
        pause_count=pauses.pause_count,
        words=words,
        pauses=pauses,
        pacing=pacing,
        transcript=best.get("Display") or raw.get("DisplayText"),
    )


def normalize_device_result(raw: Dict[str, Any]) -> EvaluationResult:
    score_keys = ("accuracyScore", "fluencyScore", "completenessScore")
    if not any(key in raw for key in score_keys):
        raise MalformedResultError("Recognition result has no scores")

    return EvaluationResult(
        source=ResultSource.DEVICE_FALLBACK,
        accuracy_score=raw.get("accuracyScore", 0),
        fluency_score=raw.get("fluencyScore", 0),
        completeness_score=raw.get("completenessScore", 0),
        prosody_score=raw.get("prosodyScore", 0),
        pause_count=raw.get("pauseCount", 0),
        words=[],
        transcript=raw.get("transcript"),
    )


def normalize_synthetic_result(raw: Dict[str, Any]) -> EvaluationResult:
    return EvaluationResult(source=ResultSource.SYNTHETIC_FALLBACK, **raw)


_NORMALIZERS = {
    ResultSource.REAL_ASSESSMENT: normalize_assessment_result,
    ResultSource.DEVICE_FALLBACK: normalize_device_result,
    ResultSource.SYNTHETIC_FALLBACK: normalize_synthetic_result,
}


def normalize_result(raw: Dict[str, Any], source: ResultSource) -> EvaluationResult:
    """Normalize ``raw`` according to the path that produced it."""
    return _NORMALIZERS[ResultSource(source)](raw)
