import logging
import mimetypes
import os
import uuid
import wave
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from config import Config

VALID_MIME_TYPES = [
    "audio/wav", "audio/x-wav", "audio/mpeg", "audio/webm", "audio/ogg", "audio/mp4",
    "video/webm",  # browsers label MediaRecorder output this way
]

# Typical browser Opus recording, 32 kbit/s
COMPRESSED_BYTES_PER_SECOND = 4000

# mimetypes has no entry for these on some platforms
mimetypes.add_type("audio/webm", ".webm")
mimetypes.add_type("audio/mp4", ".m4a")


class AudioValidationError(ValueError):
    """An uploaded recording was rejected before evaluation."""


def validate_recording(filename: Optional[str], content: bytes) -> str:
    """Check an uploaded recording and return its file extension."""
    if not filename:
        raise AudioValidationError("No file provided")

    file_extension = Path(filename).suffix.lower()
    if file_extension not in Config.ALLOWED_EXTENSIONS:
        raise AudioValidationError(f"Unsupported file format. Allowed: {sorted(Config.ALLOWED_EXTENSIONS)}")

    if len(content) == 0:
        raise AudioValidationError("Empty file")
    if len(content) > Config.MAX_FILE_SIZE:
        raise AudioValidationError("File too large")

    mime_type, _ = mimetypes.guess_type(filename)
    if not mime_type or mime_type not in VALID_MIME_TYPES:
        raise AudioValidationError("Invalid or unsupported audio format")

    return file_extension


def save_recording(content: bytes, file_extension: str, upload_dir: Optional[str] = None) -> str:
    """Write a validated recording to the upload directory and return its path."""
    upload_dir = upload_dir or Config.UPLOAD_DIR
    os.makedirs(upload_dir, exist_ok=True)
    file_path = os.path.join(upload_dir, f"{uuid.uuid4()}{file_extension}")
    with open(file_path, "wb") as buffer:
        buffer.write(content)
    return file_path


def discard_recording(file_path: str) -> None:
    if os.path.exists(file_path):
        os.remove(file_path)
        logging.info(f"Removed recording {file_path}")


@contextmanager
def recording_file(file_path: str) -> Iterator[str]:
    """Hold a stored recording for the duration of the block, then delete it.

    The file is removed on every exit path, including errors and cancellation.
    """
    try:
        yield file_path
    finally:
        discard_recording(file_path)


def estimate_study_time(file_path: str) -> int:
    """Recording length in whole seconds.

    WAV files are measured from their header; compressed formats are
    estimated from their size.
    """
    if Path(file_path).suffix.lower() == ".wav":
        try:
            with wave.open(file_path, "rb") as recording:
                return int(recording.getnframes() / recording.getframerate())
        except (wave.Error, EOFError) as e:
            logging.warning(f"Unreadable WAV header in {file_path}: {e}")
    return os.path.getsize(file_path) // COMPRESSED_BYTES_PER_SECOND
