"""
Evaluation of one practice attempt.

The recording is scored by the first path that succeeds:

1. the pronunciation assessment service,
2. the recognition fallback (transcript + heuristic scores),
3. the synthetic generator, which cannot fail.

Every result carries the ``ResultSource`` of the path that produced it, and
each transition is logged with the request id.
"""

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterator, Optional, Set

import httpx
import redis

from models import EvaluationResult, ShadowingSession
from services.assessment import AssessmentError, PronunciationAssessmentService
from services.fallback_scorer import score_transcript
from services.normalizer import (
    MalformedResultError,
    normalize_assessment_result,
    normalize_device_result,
    normalize_synthetic_result,
)
from services.session_store import SessionStore
from services.synthetic import SyntheticEvaluationGenerator
from services.transcription import TranscriptionError, TranscriptionService


class EvaluationInProgressError(Exception):
    """An evaluation for the same practice session is already running."""


@dataclass
class EvaluationContext:
    """Who is being evaluated; passed explicitly through the pipeline."""
    session_id: str
    user_id: Optional[str] = None
    request_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])


class EvaluationPipeline:
    def __init__(self,
                 assessment_service: Optional[PronunciationAssessmentService] = None,
                 transcription_service: Optional[TranscriptionService] = None,
                 synthetic_generator: Optional[SyntheticEvaluationGenerator] = None,
                 session_store: Optional[SessionStore] = None):
        self.assessment_service = assessment_service or PronunciationAssessmentService()
        self.transcription_service = transcription_service or TranscriptionService()
        self.synthetic_generator = synthetic_generator or SyntheticEvaluationGenerator()
        self.session_store = session_store
        self._in_flight: Set[str] = set()

    @contextmanager
    def _single_flight(self, session_id: str) -> Iterator[None]:
        if session_id in self._in_flight:
            raise EvaluationInProgressError(f"Session {session_id} already has an evaluation in progress")
        self._in_flight.add(session_id)
        try:
            yield
        finally:
            self._in_flight.discard(session_id)

    def is_evaluating(self, session_id: str) -> bool:
        return session_id in self._in_flight

    async def evaluate(self, context: EvaluationContext, audio_path: str, reference_text: str) -> EvaluationResult:
        """Evaluate a stored recording against the reference text.

        Raises EvaluationInProgressError when the session is already being
        evaluated. Cancellation propagates without falling back.
        """
        with self._single_flight(context.session_id):
            result = await self._evaluate_with_fallbacks(context, audio_path, reference_text)
        logging.info(
            f"[{context.request_id}] Evaluation complete: source={result.source.value}, "
            f"overall={result.overall_score}"
        )
        return result

    async def _evaluate_with_fallbacks(self, context: EvaluationContext, audio_path: str,
                                       reference_text: str) -> EvaluationResult:
        request_id = context.request_id
        try:
            return await self.assess(audio_path, reference_text)
        except (AssessmentError, MalformedResultError, httpx.HTTPError, ValueError, OSError) as e:
            logging.warning(f"[{request_id}] Pronunciation assessment failed, falling back to recognition: {e}")

        try:
            return await self.recognize(audio_path, reference_text)
        except (TranscriptionError, MalformedResultError, httpx.HTTPError, ValueError, OSError) as e:
            logging.warning(f"[{request_id}] Recognition fallback failed, using synthetic evaluation: {e}")

        return self.synthesize(reference_text)

    async def assess(self, audio_path: str, reference_text: str) -> EvaluationResult:
        with open(audio_path, "rb") as f:
            audio = f.read()
        raw = await self.assessment_service.assess_with_retry(audio, reference_text)
        return normalize_assessment_result(raw)

    async def recognize(self, audio_path: str, reference_text: str) -> EvaluationResult:
        transcript = await self.transcription_service.transcribe(audio_path)
        return normalize_device_result(score_transcript(transcript, reference_text))

    def synthesize(self, reference_text: str) -> EvaluationResult:
        return normalize_synthetic_result(self.synthetic_generator.generate(reference_text))

    def build_session_record(self, context: EvaluationContext, reference_text: str,
                             result: EvaluationResult, study_time: int = 0) -> ShadowingSession:
        return ShadowingSession(
            user_id=context.user_id,
            session_id=context.session_id,
            date=datetime.now(timezone.utc),
            study_time=study_time,
            text=reference_text,
            source=result.source,
            overall_score=result.overall_score,
            accuracy_score=result.accuracy_score,
            fluency_score=result.fluency_score,
            completeness_score=result.completeness_score,
            prosody_score=result.prosody_score,
            pause_count=result.pause_count,
            confidence_score=result.confidence_score,
        )

    def record_session(self, context: EvaluationContext, reference_text: str,
                       result: EvaluationResult, study_time: int = 0) -> Optional[ShadowingSession]:
        """Persist the attempt for signed-in users; storage failures do not fail the evaluation."""
        if not context.user_id or self.session_store is None:
            return None
        session = self.build_session_record(context, reference_text, result, study_time)
        try:
            return self.session_store.save_session(session)
        except redis.RedisError as e:
            logging.error(f"[{context.request_id}] Failed to save practice session: {e}")
            return None
