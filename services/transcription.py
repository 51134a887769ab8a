import asyncio
import logging
import os
from typing import Any, Dict, Optional

import httpx

from config import Config


class TranscriptionError(Exception):
    """The recognition fallback could not produce a transcript."""


class TranscriptionService:
    """AssemblyAI speech-to-text, used as the recognition fallback."""

    audio_mime_types = {
        ".mp3": "audio/mpeg",
        ".wav": "audio/wav",
        ".webm": "audio/webm",
        ".ogg": "audio/ogg",
        ".m4a": "audio/mp4",
    }

    def __init__(self,
                 api_key: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 max_retries: int = Config.MAX_RETRIES,
                 poll_interval: float = 1.0):
        self.api_key = api_key if api_key is not None else Config.ASSEMBLYAI_API_KEY
        self.base_url = "https://api.assemblyai.com/v2"
        self.transport = transport
        self.max_retries = max_retries
        self.poll_interval = poll_interval

    def _client(self, timeout) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self.transport, follow_redirects=True)

    async def transcribe(self, file_path: str) -> str:
        """Upload a recording and return its recognized transcript"""
        upload_url = await self.upload_file_with_retry(file_path)
        result = await self.transcribe_audio(upload_url)
        return self.parse_transcription_result(result)

    async def upload_file_with_retry(self, file_path: str) -> str:
        """Upload file with retry logic for network errors"""
        for attempt in range(self.max_retries):
            try:
                return await self.upload_file(file_path)
            except httpx.RequestError as e:
                if attempt == self.max_retries - 1:
                    raise TranscriptionError(f"File upload failed after {self.max_retries} attempts: {str(e)}") from e

                wait_time = Config.RETRY_DELAY ** attempt
                logging.warning(f"Upload attempt {attempt + 1} failed, retrying in {wait_time}s...")
                await asyncio.sleep(wait_time)
        raise TranscriptionError("File upload was not attempted")

    async def upload_file(self, file_path: str) -> str:
        """Upload audio file to AssemblyAI"""
        if not self.api_key:
            raise TranscriptionError("AssemblyAI API key not configured")
        if not os.path.exists(file_path):
            raise TranscriptionError(f"File not found: {file_path}")

        headers = {"authorization": self.api_key}
        file_extension = os.path.splitext(file_path)[1].lower()
        mime_type = self.audio_mime_types.get(file_extension, "application/octet-stream")
        logging.info(f"Uploading file: {file_path} ({os.path.getsize(file_path)} bytes)")

        timeout = httpx.Timeout(connect=30.0, read=120.0, write=120.0, pool=Config.UPLOAD_TIMEOUT)
        try:
            async with self._client(timeout) as client:
                with open(file_path, "rb") as f:
                    files_payload = {"file": (os.path.basename(file_path), f, mime_type)}
                    response = await client.post(f"{self.base_url}/upload", files=files_payload, headers=headers)
        except httpx.TimeoutException as e:
            raise TranscriptionError("Upload timeout - try with a smaller file or check your connection") from e

        if response.status_code == 401:
            raise TranscriptionError("Invalid AssemblyAI API key")
        elif response.status_code == 413:
            raise TranscriptionError("File too large for AssemblyAI")
        elif response.status_code == 429:
            raise TranscriptionError("Rate limit exceeded - please try again later")
        elif response.status_code not in [200, 201]:
            error_text = response.text if response.content else "Unknown error"
            raise TranscriptionError(f"Upload failed: {response.status_code} - {error_text}")

        upload_url = response.json().get("upload_url")
        if not upload_url:
            raise TranscriptionError("No upload URL returned from AssemblyAI")

        logging.info(f"File uploaded successfully: {upload_url}")
        return upload_url

    async def transcribe_audio(self, audio_url: str) -> Dict[str, Any]:
        """Submit audio for transcription and poll for the result."""
        if not self.api_key:
            raise TranscriptionError("AssemblyAI API key not configured")

        headers = {
            "authorization": self.api_key,
            "content-type": "application/json"
        }
        json_data = {"audio_url": audio_url, "language_code": Config.TRANSCRIPTION_LANGUAGE}

        try:
            async with self._client(30.0) as client:
                response = await client.post(f"{self.base_url}/transcript", headers=headers, json=json_data)

                if response.status_code != 200:
                    error_text = response.text if response.content else "Unknown error"
                    raise TranscriptionError(
                        f"Failed to submit transcription job: {response.status_code} - {error_text}"
                    )

                transcript_id = response.json().get("id")
                if not transcript_id:
                    raise TranscriptionError("Failed to get transcript ID from submission response.")

                logging.info(f"Transcription job submitted successfully. Transcript ID: {transcript_id}")
                return await self._poll_transcript(client, transcript_id, headers)
        except httpx.TimeoutException as e:
            raise TranscriptionError("Timeout when submitting transcription job.") from e
        except httpx.HTTPError as e:
            raise TranscriptionError(f"Transcription process failed: {str(e)}") from e

    async def _poll_transcript(self, client: httpx.AsyncClient, transcript_id: str,
                               headers: Dict[str, str]) -> Dict[str, Any]:
        """Poll transcript status until it completes or errors"""
        for _ in range(Config.POLL_MAX_ATTEMPTS):
            response = await client.get(f"{self.base_url}/transcript/{transcript_id}", headers=headers)
            if response.status_code != 200:
                raise TranscriptionError(f"Polling failed: {response.status_code} - {response.text}")

            result = response.json()
            status = result.get("status")

            if status == "completed":
                return result
            elif status == "error":
                raise TranscriptionError(f"Transcription failed: {result.get('error', 'Unknown transcription error')}")
            elif status in ["queued", "processing"]:
                await asyncio.sleep(self.poll_interval)
            else:
                raise TranscriptionError(f"Unknown status: {status}")

        raise TranscriptionError("Transcription timeout - process took too long")

    def parse_transcription_result(self, result: Dict[str, Any]) -> str:
        transcript = (result.get("text") or "").strip()
        if not transcript:
            raise TranscriptionError("No speech recognized in recording")
        return transcript
