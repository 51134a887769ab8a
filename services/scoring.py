from typing import Any, List, Sequence, Tuple

from config import Config

# Fixed labels, one per score dimension, in display order
STRENGTH_LABELS = {
    "accuracy": "Accurate pronunciation",
    "fluency": "Good fluency",
    "completeness": "Complete sentences",
    "prosody": "Natural intonation",
}

IMPROVEMENT_LABELS = {
    "accuracy": "Basic pronunciation accuracy",
    "fluency": "Speaking speed and rhythm",
    "completeness": "Sentence completeness",
    "prosody": "Tones and intonation",
}

# (lower bound, advice) from the highest band down
SCORE_ADVICE_BANDS = [
    (90, "You are close to native level! Try extending your practice to a wider range of topics."),
    (80, "Very good pronunciation. Polishing your tones and intonation a little more will make it perfect."),
    (70, "You have a solid foundation. Keep practicing to raise your overall completeness."),
    (60, "The basics are there, but more practice is needed. Drill tones and core phonemes repeatedly."),
    (0, "Start from the fundamentals. Focus on pronouncing slowly and accurately."),
]


def clamp_score(value: float) -> float:
    """Clamp a score into the [0, 100] range."""
    return max(0.0, min(100.0, float(value)))


def _round(value: float) -> float:
    rounded = round(value, Config.SCORE_PRECISION)
    return int(rounded) if Config.SCORE_PRECISION == 0 else rounded


def calculate_overall_score(accuracy: float, fluency: float, completeness: float, prosody: float) -> float:
    """Unweighted mean of the four sub-scores."""
    scores = [clamp_score(s) for s in (accuracy, fluency, completeness, prosody)]
    return _round(sum(scores) / len(scores))


def calculate_confidence_score(pause_count: int) -> int:
    return max(0, 100 - pause_count * Config.CONFIDENCE_PAUSE_PENALTY)


def analyze_strengths_and_weaknesses(
    accuracy: float, fluency: float, completeness: float, prosody: float
) -> Tuple[List[str], List[str]]:
    scores = {
        "accuracy": accuracy,
        "fluency": fluency,
        "completeness": completeness,
        "prosody": prosody,
    }
    strong_points = []
    improvement_areas = []
    for dimension, score in scores.items():
        if score >= Config.STRENGTH_THRESHOLD:
            strong_points.append(STRENGTH_LABELS[dimension])
        elif score < Config.IMPROVEMENT_THRESHOLD:
            improvement_areas.append(IMPROVEMENT_LABELS[dimension])
    return strong_points, improvement_areas


def generate_score_advice(overall_score: float) -> str:
    for lower_bound, advice in SCORE_ADVICE_BANDS:
        if overall_score >= lower_bound:
            return advice
    # Negative scores never reach here once clamped
    return SCORE_ADVICE_BANDS[-1][1]


def extract_problematic_words(words: Sequence[Any]) -> List[str]:
    """Words scoring under the problematic threshold, in text order.

    Accepts `WordAnalysis` models or plain dicts with `word`/`accuracy_score`.
    """
    problematic = []
    for word in words:
        if isinstance(word, dict):
            text, score = word["word"], word["accuracy_score"]
        else:
            text, score = word.word, word.accuracy_score
        if score < Config.PROBLEMATIC_WORD_THRESHOLD:
            problematic.append(text)
    return problematic


