"""
Synthetic evaluation used when neither the assessment service nor the
recognition fallback produced a result.

Scores are fabricated from the reference text's complexity plus bounded
random noise. All randomness comes from the injected ``random.Random`` so a
seeded generator gives reproducible output.
"""

import random
import re
from typing import Any, Dict, List, Optional

CHINESE_CHAR = re.compile(r"[\u4e00-\u9fff]")
CHINESE_PUNCTUATION = re.compile(r"[。！？，、；：]")
DIGIT = re.compile(r"[0-9]")

MAX_COMPLEXITY = 5

ERROR_TYPES = ["Mispronunciation", "Omission", "Insertion", "UnexpectedBreak"]

# Initial/final split for common characters; anything else is its own phoneme
PINYIN_PHONEMES = {
    "张": ["zh", "āng"], "老": ["l", "ǎo"], "师": ["sh", "ī"], "常": ["ch", "áng"],
    "认": ["r", "èn"], "真": ["zh", "ēn"], "地": ["d", "ì"], "教": ["j", "iào"],
    "我": ["w", "ǒ"], "们": ["m", "én"], "中": ["zh", "ōng"], "文": ["w", "én"],
    "他": ["t", "ā"], "说": ["sh", "uō"], "学": ["x", "ué"], "习": ["x", "í"],
    "需": ["x", "ū"], "要": ["y", "ào"], "多": ["d", "uō"], "练": ["l", "iàn"],
    "尤": ["y", "óu"], "其": ["q", "í"], "是": ["sh", "ì"], "卷": ["j", "uǎn"],
    "舌": ["sh", "é"], "音": ["y", "īn"], "只": ["zh", "ǐ"], "有": ["y", "ǒu"],
    "这": ["zh", "è"], "样": ["y", "àng"], "才": ["c", "ái"], "能": ["n", "éng"],
    "出": ["ch", "ū"], "更": ["g", "èng"], "标": ["b", "iāo"], "准": ["zh", "ǔn"],
    "流": ["l", "iú"], "利": ["l", "ì"], "的": ["d", "e"], "汉": ["h", "àn"],
    "语": ["y", "ǔ"], "当": ["d", "āng"], "前": ["q", "ián"], "全": ["q", "uán"],
    "球": ["q", "iú"], "经": ["j", "īng"], "济": ["j", "ì"], "面": ["m", "iàn"],
    "临": ["l", "ín"], "诸": ["zh", "ū"], "挑": ["t", "iǎo"], "战": ["zh", "àn"],
    "新": ["x", "īn"], "闻": ["w", "én"], "内": ["n", "èi"], "容": ["r", "óng"],
    "广": ["g", "uǎng"], "泛": ["f", "àn"], "包": ["b", "āo"], "括": ["k", "uò"],
    "社": ["sh", "è"], "会": ["h", "uì"], "科": ["k", "ē"], "技": ["j", "ì"],
    "等": ["d", "ěng"], "个": ["g", "è"], "方": ["f", "āng"], "你": ["n", "ǐ"],
    "好": ["h", "ǎo"], "生": ["sh", "ēng"],
}


def calculate_text_complexity(text: str) -> float:
    """Complexity in [0, 5] from character, punctuation, digit and length counts."""
    complexity = 0.0
    complexity += min(2, len(CHINESE_CHAR.findall(text)) / 20)
    complexity += min(1, len(CHINESE_PUNCTUATION.findall(text)) / 5)
    complexity += min(1, len(DIGIT.findall(text)) / 3)
    complexity += min(1, len(text) / 50)
    return min(MAX_COMPLEXITY, complexity)


class SyntheticEvaluationGenerator:
    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def _jitter(self, spread: float) -> float:
        """Uniform noise in [-spread/2, spread/2)."""
        return (self.rng.random() - 0.5) * spread

    def generate(self, text: str) -> Dict[str, Any]:
        """Fabricate a complete evaluation for ``text`` in the internal shape."""
        complexity = calculate_text_complexity(text)

        base_accuracy = max(70, 85 - complexity * 5)
        base_fluency = max(75, 90 - complexity * 3)
        base_completeness = max(80, 95 - len(text) * 0.5)
        base_prosody = max(65, 85 - complexity * 4)

        accuracy_score = round(base_accuracy + self._jitter(10))
        fluency_score = round(base_fluency + self._jitter(10))
        completeness_score = round(base_completeness + self._jitter(10))
        prosody_score = round(base_prosody + self._jitter(10))

        pause_count = len(text) // 20 + self.rng.randint(0, 2)

        return {
            "accuracy_score": accuracy_score,
            "fluency_score": fluency_score,
            "completeness_score": completeness_score,
            "prosody_score": prosody_score,
            "pause_count": pause_count,
            "words": self.generate_word_analysis(text, accuracy_score),
        }

    def generate_word_analysis(self, text: str, base_accuracy: float) -> List[Dict[str, Any]]:
        words = []
        for char in CHINESE_CHAR.findall(text):
            word_score = max(40, min(100, base_accuracy + self._jitter(30)))
            if word_score > 80:
                error_type = "None"
            else:
                error_type = self.rng.choice(ERROR_TYPES)

            words.append({
                "word": char,
                "accuracy_score": round(word_score),
                "error_type": error_type,
                "syllables": [{
                    "syllable": char,
                    "accuracy_score": max(30, word_score + self._jitter(20)),
                }],
                "phonemes": [
                    {"phoneme": phoneme, "accuracy_score": max(20, word_score + self._jitter(25))}
                    for phoneme in PINYIN_PHONEMES.get(char, [char])
                ],
            })
        return words
