from dotenv import load_dotenv
import os

load_dotenv()

# Configuration class for the application
class Config:
    # Azure pronunciation assessment (primary evaluator)
    AZURE_SPEECH_KEY = os.getenv("AZURE_SPEECH_KEY")
    AZURE_SPEECH_REGION = os.getenv("AZURE_SPEECH_REGION")
    AZURE_SPEECH_LANGUAGE = os.getenv("AZURE_SPEECH_LANGUAGE", "zh-CN")

    # AssemblyAI transcription (recognition fallback)
    ASSEMBLYAI_API_KEY = os.getenv("ASSEMBLYAI_API_KEY")
    TRANSCRIPTION_LANGUAGE = "zh"

    # Gemini (practice text generation)
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
    GEMINI_MODELS = [
        "gemini-2.5-flash",
        "gemini-2.0-flash",
        "gemini-2.0-flash-lite",
        "gemini-1.5-flash-8b",
    ]

    # Network configuration
    UPLOAD_TIMEOUT = 150
    ASSESSMENT_TIMEOUT = 60.0
    MAX_RETRIES = 3
    RETRY_DELAY = 2  # Base delay for exponential backoff
    POLL_MAX_ATTEMPTS = 60

    # File size limits
    MAX_FILE_SIZE = 25 * 1024 * 1024  # 25MB (AssemblyAI limit)

    # Configuration settings
    UPLOAD_DIR = "uploads"
    ALLOWED_EXTENSIONS = {".wav", ".mp3", ".webm", ".ogg", ".m4a"}
    MAX_REFERENCE_TEXT_LENGTH = 1000

    # Analysis thresholds
    PAUSE_THRESHOLD_MS = 300
    PROBLEMATIC_WORD_THRESHOLD = 70
    STRENGTH_THRESHOLD = 80
    IMPROVEMENT_THRESHOLD = 60
    CONFIDENCE_PAUSE_PENALTY = 10
    SCORE_PRECISION = 0
    SLOW_CPM_THRESHOLD = 150  # Chinese characters per minute
    FAST_CPM_THRESHOLD = 280

    # Practice history
    SESSION_HISTORY_LIMIT = 50
    STATS_HISTORY_LIMIT = 100
    WEEKLY_SESSION_GOAL = 5

    CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
    CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/0")

    # Session store and evaluation slots, shared by the API and the workers.
    # "memory://" keeps them in process memory.
    SESSION_STORE_URL = os.getenv("SESSION_STORE_URL", CELERY_BROKER_URL)
    EVALUATION_SLOT_TTL = 300  # seconds; a crashed worker's slot expires
