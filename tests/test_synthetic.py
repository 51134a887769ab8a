import random

from models import ResultSource
from services.normalizer import normalize_synthetic_result
from services.synthetic import (
    ERROR_TYPES,
    SyntheticEvaluationGenerator,
    calculate_text_complexity,
)

REFERENCE = "你好，我是学生。"


class MidpointRandom(random.Random):
    """random() always returns 0.5, so every perturbation is zero."""

    def random(self):
        return 0.5


def test_complexity_of_empty_text():
    assert calculate_text_complexity("") == 0


def test_complexity_is_capped():
    text = "学" * 100 + "，" * 10 + "12345"
    assert calculate_text_complexity(text) == 5


def test_complexity_of_short_sentence():
    # 6 characters / 20 + 2 punctuation / 5 + 8 length / 50
    assert abs(calculate_text_complexity(REFERENCE) - 0.86) < 1e-9


def test_seeded_generator_is_reproducible():
    first = SyntheticEvaluationGenerator(random.Random(42)).generate(REFERENCE)
    second = SyntheticEvaluationGenerator(random.Random(42)).generate(REFERENCE)
    assert first == second


def test_unperturbed_scores_follow_complexity():
    raw = SyntheticEvaluationGenerator(MidpointRandom()).generate(REFERENCE)
    assert raw["accuracy_score"] == 81
    assert raw["fluency_score"] == 87
    assert raw["completeness_score"] == 91
    assert raw["prosody_score"] == 82
    assert all(w["error_type"] == "None" for w in raw["words"])


def test_scores_within_perturbation_range():
    for seed in range(20):
        raw = SyntheticEvaluationGenerator(random.Random(seed)).generate(REFERENCE)
        assert 76 <= raw["accuracy_score"] <= 86
        assert 82 <= raw["fluency_score"] <= 92
        assert 86 <= raw["completeness_score"] <= 96
        assert 77 <= raw["prosody_score"] <= 87


def test_one_word_per_chinese_character():
    raw = SyntheticEvaluationGenerator(random.Random(7)).generate(REFERENCE)
    assert [w["word"] for w in raw["words"]] == list("你好我是学生")
    for word in raw["words"]:
        assert [s["syllable"] for s in word["syllables"]] == [word["word"]]
        assert word["phonemes"]


def test_error_type_thresholding():
    for seed in range(20):
        raw = SyntheticEvaluationGenerator(random.Random(seed)).generate("学习中文需要多练习尤其是卷舌音")
        for word in raw["words"]:
            if word["error_type"] == "None":
                assert word["accuracy_score"] >= 80
            else:
                assert word["error_type"] in ERROR_TYPES
                assert word["accuracy_score"] <= 80


def test_known_characters_use_pinyin_phonemes():
    raw = SyntheticEvaluationGenerator(MidpointRandom()).generate("你")
    assert [p["phoneme"] for p in raw["words"][0]["phonemes"]] == ["n", "ǐ"]


def test_normalized_result_is_tagged_synthetic():
    raw = SyntheticEvaluationGenerator(random.Random(3)).generate(REFERENCE)
    result = normalize_synthetic_result(raw)
    assert result.source == ResultSource.SYNTHETIC_FALLBACK
    assert len(result.words) == 6
    for score in (result.accuracy_score, result.fluency_score, result.completeness_score, result.prosody_score):
        assert 0 <= score <= 100
