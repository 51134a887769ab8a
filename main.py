import asyncio
import logging
import uuid
from typing import List, Optional

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from celery import Celery
from celery.signals import task_revoked

from config import Config
from models import (
    EvaluationTaskResponse,
    FavoriteRequest,
    FavoriteScript,
    ShadowingSession,
    TextGenerationRequest,
    TextGenerationResponse,
    ToggleFavoriteResponse,
    UserProfile,
    UserStats,
)
from services.audio import (
    AudioValidationError,
    discard_recording,
    estimate_study_time,
    recording_file,
    save_recording,
    validate_recording,
)
from services.assessment import PronunciationAssessmentService
from services.pipeline import EvaluationContext, EvaluationPipeline
from services.session_store import create_session_store
from services.text_generator import PracticeTextGenerator

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

app = FastAPI(title="Shadowing Evaluation Service", version="1.0.0")

# Initialize Celery
celery_app = Celery(
    "shadowing_evaluation",
    broker=Config.CELERY_BROKER_URL,
    backend=Config.CELERY_RESULT_BACKEND
)

# Initialize services (the pipeline is used by the Celery task)
session_store = create_session_store()
assessment_service = PronunciationAssessmentService()
evaluation_pipeline = EvaluationPipeline(assessment_service=assessment_service, session_store=session_store)
text_generator = PracticeTextGenerator()


@task_revoked.connect
def discard_revoked_recording(sender=None, request=None, **kwargs):
    """Delete the recording of a cancelled evaluation and free its session."""
    file_path = (getattr(request, "kwargs", None) or {}).get("file_path")
    if file_path:
        discard_recording(file_path)
    task_id = getattr(request, "id", None)
    if task_id:
        session_store.release_evaluation(task_id)


@celery_app.task(name="process_evaluation_task", bind=True)
def process_evaluation_task(self, file_path: str, reference_text: str, session_id: str,
                            user_id: Optional[str] = None, request_id: Optional[str] = None) -> dict:
    """
    Celery task that evaluates one recording. Runs in a worker process.
    The recording is deleted and the session's evaluation slot released
    when the task finishes, whatever the outcome.
    """
    context = EvaluationContext(session_id=session_id, user_id=user_id)
    if request_id:
        context.request_id = request_id
    logging.info(f"[{context.request_id}] Starting evaluation for session {session_id}")

    try:
        with recording_file(file_path):
            study_time = estimate_study_time(file_path)
            result = asyncio.run(evaluation_pipeline.evaluate(context, file_path, reference_text))
        evaluation_pipeline.record_session(context, reference_text, result, study_time)
    finally:
        if self.request.id:
            session_store.release_evaluation(self.request.id)

    logging.info(f"[{context.request_id}] Finished evaluation for session {session_id} ({result.source.value})")
    return result.model_dump(mode="json")


@app.post("/evaluate", response_model=EvaluationTaskResponse)
async def evaluate_recording(file: UploadFile = File(...),
                             reference_text: str = Form(...),
                             session_id: str = Form(...),
                             user_id: Optional[str] = Form(None)):
    """
    Receives a recording and its reference text, stores the recording and
    enqueues the evaluation. One evaluation per practice session at a time.
    """
    request_id = str(uuid.uuid4())[:8]
    logging.info(f"[{request_id}] Received recording {file.filename} for session {session_id}")

    reference_text = reference_text.strip()
    if not reference_text:
        raise HTTPException(status_code=400, detail="Reference text is required")
    if len(reference_text) > Config.MAX_REFERENCE_TEXT_LENGTH:
        raise HTTPException(status_code=400, detail="Reference text too long")

    # The slot is claimed before the first await
    task_id = str(uuid.uuid4())
    if not session_store.claim_evaluation(session_id, task_id):
        raise HTTPException(status_code=409, detail="An evaluation is already in progress for this session")

    file_path = None
    try:
        content = await file.read()
        file_extension = validate_recording(file.filename, content)
        file_path = save_recording(content, file_extension)
        process_evaluation_task.apply_async(
            kwargs={
                "file_path": file_path,
                "reference_text": reference_text,
                "session_id": session_id,
                "user_id": user_id,
                "request_id": request_id,
            },
            task_id=task_id,
        )
    except AudioValidationError as e:
        session_store.release_evaluation(task_id)
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        session_store.release_evaluation(task_id)
        if file_path:
            discard_recording(file_path)
        logging.error(f"[{request_id}] Error enqueuing task: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to start evaluation: {str(e)}")

    logging.info(f"[{request_id}] Enqueued task {task_id} for session {session_id}")
    return EvaluationTaskResponse(message="Evaluation started", task_id=task_id)


@app.get("/status/{task_id}", response_model=dict)
async def get_task_status(task_id: str):
    """
    Check the status of an evaluation task.
    """
    task = celery_app.AsyncResult(task_id)

    if task.state == "PENDING":
        response = {
            "status": "PENDING",
            "message": "Task is pending or not found"
        }
    elif task.state == "STARTED":
        response = {
            "status": "STARTED",
            "message": "Evaluation is in progress"
        }
    elif task.state == "SUCCESS":
        response = {
            "status": "SUCCESS",
            "result": task.result
        }
    elif task.state == "REVOKED":
        response = {
            "status": "REVOKED",
            "message": "Evaluation was cancelled"
        }
    elif task.state == "FAILURE":
        response = {
            "status": "FAILURE",
            "message": str(task.info),
            "traceback": task.traceback
        }
    else:
        response = {
            "status": task.state,
            "message": "Unknown state"
        }
    return response


@app.delete("/tasks/{task_id}")
async def cancel_task(task_id: str):
    """Cancel an evaluation, e.g. when the user leaves the practice screen"""
    celery_app.control.revoke(task_id, terminate=True)
    session_id = session_store.release_evaluation(task_id)
    logging.info(f"Revoked evaluation task {task_id} (session {session_id})")
    return {"status": "REVOKED", "task_id": task_id}


@app.get("/users/{user_id}/sessions", response_model=List[ShadowingSession])
async def list_sessions(user_id: str, limit: int = Config.SESSION_HISTORY_LIMIT):
    return session_store.list_sessions(user_id, limit)


@app.get("/users/{user_id}/profile", response_model=UserProfile)
async def get_profile(user_id: str):
    return session_store.get_profile(user_id)


@app.get("/users/{user_id}/stats", response_model=UserStats)
async def get_stats(user_id: str):
    return session_store.get_user_stats(user_id)


@app.get("/users/{user_id}/favorites", response_model=List[FavoriteScript])
async def list_favorites(user_id: str):
    return session_store.list_favorites(user_id)


@app.post("/users/{user_id}/favorites", response_model=FavoriteScript)
async def add_favorite(user_id: str, request: FavoriteRequest):
    return session_store.add_favorite(user_id, request.text, request.title)


@app.delete("/users/{user_id}/favorites/{favorite_id}")
async def remove_favorite(user_id: str, favorite_id: str):
    if not session_store.remove_favorite(user_id, favorite_id):
        raise HTTPException(status_code=404, detail="Favorite not found")
    return {"status": "deleted", "id": favorite_id}


@app.post("/users/{user_id}/favorites/toggle", response_model=ToggleFavoriteResponse)
async def toggle_favorite(user_id: str, request: FavoriteRequest):
    added = session_store.toggle_favorite_text(user_id, request.text)
    profile = session_store.get_profile(user_id)
    return ToggleFavoriteResponse(added=added, favorite_texts=profile.favorite_texts)


@app.post("/texts/generate", response_model=TextGenerationResponse)
async def generate_text(request: TextGenerationRequest):
    """Generate a practice text for a topic"""
    text, model_name = await asyncio.to_thread(text_generator.generate, request.topic)
    return TextGenerationResponse(text=text, model=model_name)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "Shadowing Evaluation Service is running"}


@app.get("/health/azure")
async def azure_health_check():
    """Check Azure Speech service connectivity"""
    return await assessment_service.check_health()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
