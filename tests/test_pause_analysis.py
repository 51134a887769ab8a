from models import SyllableAnalysis, WordAnalysis
from services.pacing import PacingAnalyzer
from services.pause_analysis import PauseAnalyzer, word_time_span


def timed_word(text, start_ms, end_ms):
    return WordAnalysis(
        word=text,
        accuracy_score=90,
        syllables=[SyllableAnalysis(syllable=text, accuracy_score=90,
                                    offset_ms=start_ms, duration_ms=end_ms - start_ms)],
    )


def untimed_word(text):
    return WordAnalysis(word=text, accuracy_score=90, syllables=[SyllableAnalysis(syllable=text, accuracy_score=90)])


def test_no_timing_data_gives_zeros():
    analysis = PauseAnalyzer().analyze_pauses([untimed_word("你"), untimed_word("好"), untimed_word("吗")])
    assert analysis.pause_count == 0
    assert analysis.average_pause_ms == 0
    assert analysis.longest_pause_ms == 0


def test_single_timed_word_gives_zeros():
    analysis = PauseAnalyzer().analyze_pauses([timed_word("你", 0, 200)])
    assert (analysis.pause_count, analysis.average_pause_ms, analysis.longest_pause_ms) == (0, 0, 0)


def test_gap_equal_to_threshold_is_not_a_pause():
    analysis = PauseAnalyzer().analyze_pauses([timed_word("你", 0, 200), timed_word("好", 500, 700)])
    assert analysis.pause_count == 0
    assert analysis.pause_feedback.startswith("Great!")


def test_pauses_counted_above_threshold():
    words = [
        timed_word("我", 0, 200),
        timed_word("是", 501, 700),   # 301 ms gap
        timed_word("学", 1200, 1400),  # 500 ms gap
        timed_word("生", 1450, 1600),  # 50 ms gap
    ]
    analysis = PauseAnalyzer().analyze_pauses(words)
    assert analysis.pause_count == 2
    assert analysis.total_pause_ms == 801
    assert analysis.average_pause_ms == 400.5
    assert analysis.longest_pause_ms == 500


def test_pairs_with_untimed_side_are_ignored():
    words = [timed_word("我", 0, 200), untimed_word("是"), timed_word("学", 5000, 5200)]
    assert PauseAnalyzer().analyze_pauses(words).pause_count == 0


def test_word_span_uses_first_and_last_syllable():
    word = WordAnalysis(
        word="你好",
        accuracy_score=90,
        syllables=[
            SyllableAnalysis(syllable="ni3", accuracy_score=90, offset_ms=100, duration_ms=100),
            SyllableAnalysis(syllable="hao3", accuracy_score=90, offset_ms=200, duration_ms=150),
        ],
    )
    assert word_time_span(word) == (100, 350)


def test_word_span_falls_back_to_word_timing():
    word = WordAnalysis(word="你", accuracy_score=90, offset_ms=40, duration_ms=60)
    assert word_time_span(word) == (40, 100)
    assert word_time_span(WordAnalysis(word="你", accuracy_score=90)) is None


def test_many_pauses_feedback():
    words = [timed_word(str(i), i * 1000, i * 1000 + 100) for i in range(7)]
    analysis = PauseAnalyzer().analyze_pauses(words)
    assert analysis.pause_count == 6
    assert "many long pauses" in analysis.pause_feedback


def test_pacing_in_characters_per_minute():
    words = [timed_word("你好", 0, 500), timed_word("世界", 500, 1000)]
    pacing = PacingAnalyzer().analyze_pacing(words)
    assert pacing.chars_per_minute == 240
    assert pacing.pacing_feedback == "Your speaking pace is appropriate."


def test_pacing_slow_speech():
    words = [timed_word("你", 0, 500), timed_word("好", 1500, 2000)]
    pacing = PacingAnalyzer().analyze_pacing(words)
    assert pacing.chars_per_minute == 60
    assert "too slow" in pacing.pacing_feedback


def test_pacing_without_timing():
    pacing = PacingAnalyzer().analyze_pacing([untimed_word("你")])
    assert pacing.chars_per_minute == 0
    assert pacing.pacing_feedback == "Unable to calculate pacing."
