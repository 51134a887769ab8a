from typing import Sequence

from config import Config
from models import PacingAnalysis, WordAnalysis
from services.pause_analysis import word_time_span


class PacingAnalyzer:
    def __init__(self):
        self.slow_threshold = Config.SLOW_CPM_THRESHOLD
        self.fast_threshold = Config.FAST_CPM_THRESHOLD

    def analyze_pacing(self, words: Sequence[WordAnalysis]) -> PacingAnalysis:
        """Analyze speaking pace (characters per minute) over the timed span"""
        spans = [span for span in (word_time_span(w) for w in words) if span is not None]
        if not spans:
            return PacingAnalysis(
                chars_per_minute=0,
                pacing_feedback="Unable to calculate pacing.",
            )

        duration_ms = spans[-1][1] - spans[0][0]
        if duration_ms <= 0:
            return PacingAnalysis(
                chars_per_minute=0,
                pacing_feedback="Unable to calculate pacing.",
            )

        total_chars = sum(len(w.word) for w in words if word_time_span(w) is not None)
        duration_minutes = duration_ms / 60000.0
        cpm = round(total_chars / duration_minutes)

        # Generate feedback
        if cpm < self.slow_threshold:
            feedback = "Your speaking pace is too slow. Try to speak a bit faster."
        elif cpm > self.fast_threshold:
            feedback = "Your speaking pace is too fast. Try to slow down a bit."
        else:
            feedback = "Your speaking pace is appropriate."

        return PacingAnalysis(
            chars_per_minute=cpm,
            pacing_feedback=feedback,
        )
