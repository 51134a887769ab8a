from datetime import datetime
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, computed_field

from services.scoring import (
    analyze_strengths_and_weaknesses,
    calculate_confidence_score,
    calculate_overall_score,
    clamp_score,
    extract_problematic_words,
    generate_score_advice,
)

Score = Annotated[float, BeforeValidator(clamp_score)]


class ErrorType(str, Enum):
    NONE = "None"
    MISPRONUNCIATION = "Mispronunciation"
    OMISSION = "Omission"
    INSERTION = "Insertion"
    UNEXPECTED_BREAK = "UnexpectedBreak"


class ResultSource(str, Enum):
    """Which evaluation path produced a result."""
    REAL_ASSESSMENT = "real_assessment"
    DEVICE_FALLBACK = "device_fallback"
    SYNTHETIC_FALLBACK = "synthetic_fallback"


class SyllableAnalysis(BaseModel):
    syllable: str
    accuracy_score: Score
    offset_ms: Optional[float] = None
    duration_ms: Optional[float] = None


class PhonemeAnalysis(BaseModel):
    phoneme: str
    accuracy_score: Score
    offset_ms: Optional[float] = None
    duration_ms: Optional[float] = None


class WordAnalysis(BaseModel):
    word: str
    accuracy_score: Score
    error_type: ErrorType = ErrorType.NONE
    syllables: List[SyllableAnalysis] = []
    phonemes: List[PhonemeAnalysis] = []
    offset_ms: Optional[float] = None
    duration_ms: Optional[float] = None


class PauseAnalysis(BaseModel):
    pause_count: int
    total_pause_ms: float
    average_pause_ms: float
    longest_pause_ms: float
    pause_feedback: str


class PacingAnalysis(BaseModel):
    chars_per_minute: int
    pacing_feedback: str


class EvaluationResult(BaseModel):
    """One pronunciation assessment.

    Only the four sub-scores, the pause count and the word list are stored.
    Every other metric is computed from them.
    """
    source: ResultSource
    accuracy_score: Score
    fluency_score: Score
    completeness_score: Score
    prosody_score: Score = 0
    pause_count: int = Field(default=0, ge=0)
    words: List[WordAnalysis] = []
    pauses: Optional[PauseAnalysis] = None
    pacing: Optional[PacingAnalysis] = None
    transcript: Optional[str] = None

    @computed_field
    @property
    def overall_score(self) -> float:
        return calculate_overall_score(
            self.accuracy_score, self.fluency_score, self.completeness_score, self.prosody_score
        )

    @computed_field
    @property
    def confidence_score(self) -> int:
        # A transcript carries no timing, so pauses were never measured
        if self.source == ResultSource.DEVICE_FALLBACK:
            return 0
        return calculate_confidence_score(self.pause_count)

    @computed_field
    @property
    def strong_points(self) -> List[str]:
        return analyze_strengths_and_weaknesses(
            self.accuracy_score, self.fluency_score, self.completeness_score, self.prosody_score
        )[0]

    @computed_field
    @property
    def improvement_areas(self) -> List[str]:
        return analyze_strengths_and_weaknesses(
            self.accuracy_score, self.fluency_score, self.completeness_score, self.prosody_score
        )[1]

    @computed_field
    @property
    def problematic_words(self) -> List[str]:
        return extract_problematic_words(self.words)

    @computed_field
    @property
    def score_advice(self) -> str:
        return generate_score_advice(self.overall_score)


class ShadowingSession(BaseModel):
    """Immutable record of one practice attempt."""
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    user_id: str
    session_id: str
    date: datetime
    skill: str = "accuracy"
    difficulty: str = "intermediate"
    practice_count: int = 1
    study_time: int = 0  # seconds
    text: str
    source: ResultSource
    overall_score: float
    accuracy_score: float
    fluency_score: float
    completeness_score: float
    prosody_score: float
    pause_count: int
    confidence_score: int


class UserProfile(BaseModel):
    user_id: str
    display_name: str = "User"
    email: str = ""
    total_practices: int = 0
    average_score: float = 0
    total_study_time: int = 0  # seconds
    total_sessions: int = 0
    best_score: float = 0
    favorite_texts: List[str] = []
    last_active_date: datetime
    created_at: datetime
    updated_at: datetime


class UserStats(BaseModel):
    total_practices: int
    average_score: float
    total_study_time: int
    total_sessions: int
    best_score: float
    streak_days: int
    weekly_goal: float


class FavoriteScript(BaseModel):
    id: str
    text: str
    title: str = "Untitled"
    created_at: datetime


class FavoriteRequest(BaseModel):
    text: str = Field(..., min_length=1)
    title: Optional[str] = None


class ToggleFavoriteResponse(BaseModel):
    added: bool
    favorite_texts: List[str]


class TextGenerationRequest(BaseModel):
    topic: str = Field(..., min_length=1, max_length=200)


class TextGenerationResponse(BaseModel):
    text: str
    model: Optional[str] = None  # None when a built-in text was used


class EvaluationTaskResponse(BaseModel):
    message: str
    task_id: str
