import pytest


@pytest.fixture
def azure_result():
    """Detailed REST response for the reference text 你好世界."""
    return {
        "RecognitionStatus": "Success",
        "Offset": 5_000_000,
        "Duration": 13_000_000,
        "DisplayText": "你好世界。",
        "NBest": [{
            "Confidence": 0.93,
            "Display": "你好世界。",
            "AccuracyScore": 90.0,
            "FluencyScore": 80.0,
            "CompletenessScore": 98.0,
            "PronScore": 88.2,
            "Words": [
                {
                    "Word": "你好",
                    "Offset": 5_000_000,
                    "Duration": 4_000_000,
                    "AccuracyScore": 95.0,
                    "ErrorType": "None",
                    "Syllables": [
                        {"Syllable": "ni3", "Grapheme": "你", "AccuracyScore": 94.0,
                         "Offset": 5_000_000, "Duration": 2_000_000},
                        {"Syllable": "hao3", "Grapheme": "好", "AccuracyScore": 96.0,
                         "Offset": 7_000_000, "Duration": 2_000_000},
                    ],
                    "Phonemes": [
                        {"Phoneme": "n", "AccuracyScore": 95.0, "Offset": 5_000_000, "Duration": 1_000_000},
                        {"Phoneme": "i3", "AccuracyScore": 93.0, "Offset": 6_000_000, "Duration": 1_000_000},
                        {"Phoneme": "h", "AccuracyScore": 97.0, "Offset": 7_000_000, "Duration": 1_000_000},
                        {"Phoneme": "ao3", "AccuracyScore": 95.0, "Offset": 8_000_000, "Duration": 1_000_000},
                    ],
                },
                {
                    "Word": "世界",
                    "Offset": 14_000_000,
                    "Duration": 4_000_000,
                    "AccuracyScore": 60.0,
                    "ErrorType": "Mispronunciation",
                    "Syllables": [
                        {"Syllable": "shi4", "Grapheme": "世", "AccuracyScore": 55.0,
                         "Offset": 14_000_000, "Duration": 2_000_000},
                        {"Syllable": "jie4", "Grapheme": "界", "AccuracyScore": 65.0,
                         "Offset": 16_000_000, "Duration": 2_000_000},
                    ],
                    "Phonemes": [],
                },
            ],
        }],
    }


@pytest.fixture
def azure_sdk_result():
    """Same assessment as produced by the Speech SDK, scores nested one level deeper."""
    return {
        "RecognitionStatus": "Success",
        "DisplayText": "你好。",
        "NBest": [{
            "Display": "你好。",
            "PronunciationAssessment": {
                "AccuracyScore": 85.0,
                "FluencyScore": 75.0,
                "CompletenessScore": 100.0,
                "PronScore": 82.0,
            },
            "Words": [
                {"Word": "你", "Offset": 1_000_000, "Duration": 2_000_000,
                 "PronunciationAssessment": {"AccuracyScore": 90.0, "ErrorType": "None"},
                 "Syllables": [{"Syllable": "ni3", "Offset": 1_000_000, "Duration": 2_000_000,
                                "PronunciationAssessment": {"AccuracyScore": 90.0}}]},
                {"Word": "好", "Offset": 3_500_000, "Duration": 2_000_000,
                 "PronunciationAssessment": {"AccuracyScore": 65.0, "ErrorType": "Omission"},
                 "Syllables": [{"Syllable": "hao3", "Offset": 3_500_000, "Duration": 2_000_000,
                                "PronunciationAssessment": {"AccuracyScore": 65.0}}]},
            ],
        }],
    }


@pytest.fixture
def recording(tmp_path):
    path = tmp_path / "recording.wav"
    path.write_bytes(b"RIFF\x24\x00\x00\x00WAVEfmt " + b"\x00" * 2000)
    return str(path)
