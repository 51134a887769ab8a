from typing import List, Optional, Sequence, Tuple

from config import Config
from models import PauseAnalysis, WordAnalysis


def word_time_span(word: WordAnalysis) -> Optional[Tuple[float, float]]:
    """(start_ms, end_ms) of a word, or None when it carries no timing.

    Syllable timing is preferred; the word's own offset/duration is used when
    the syllables are untimed.
    """
    timed = [s for s in word.syllables if s.offset_ms is not None and s.duration_ms is not None]
    if timed:
        return timed[0].offset_ms, timed[-1].offset_ms + timed[-1].duration_ms
    if word.offset_ms is not None and word.duration_ms is not None:
        return word.offset_ms, word.offset_ms + word.duration_ms
    return None


class PauseAnalyzer:
    def __init__(self):
        self.pause_threshold_ms = Config.PAUSE_THRESHOLD_MS

    def find_pauses(self, words: Sequence[WordAnalysis]) -> List[float]:
        """Gaps between adjacent timed words that exceed the pause threshold"""
        pauses = []
        for current, following in zip(words, words[1:]):
            current_span = word_time_span(current)
            next_span = word_time_span(following)
            if current_span is None or next_span is None:
                continue
            gap = next_span[0] - current_span[1]
            if gap > self.pause_threshold_ms:
                pauses.append(gap)
        return pauses

    def analyze_pauses(self, words: Sequence[WordAnalysis]) -> PauseAnalysis:
        """Analyze pause patterns between words"""
        timed_words = [w for w in words if word_time_span(w) is not None]
        if len(timed_words) < 2:
            return PauseAnalysis(
                pause_count=0,
                total_pause_ms=0.0,
                average_pause_ms=0.0,
                longest_pause_ms=0.0,
                pause_feedback="Insufficient timing data for pause analysis.",
            )

        pauses = self.find_pauses(list(words))
        pause_count = len(pauses)
        total_pause = sum(pauses)

        # Generate feedback
        if pause_count == 0:
            feedback = "Great! Your speech flows smoothly without long pauses."
        elif pause_count <= 2:
            feedback = "Good fluency with minimal pauses."
        elif pause_count <= 4:
            feedback = "Try to reduce long pauses to improve fluency."
        else:
            feedback = "Your speech has many long pauses. Practice speaking more continuously."

        return PauseAnalysis(
            pause_count=pause_count,
            total_pause_ms=round(total_pause, 2),
            average_pause_ms=round(total_pause / pause_count, 2) if pause_count else 0.0,
            longest_pause_ms=round(max(pauses), 2) if pauses else 0.0,
            pause_feedback=feedback,
        )
