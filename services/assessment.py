import asyncio
import base64
import json
import logging
from typing import Any, Dict, Optional

import httpx

from config import Config


class AssessmentError(Exception):
    """The pronunciation assessment service could not produce a result."""


class PronunciationAssessmentService:
    """Client for the Azure speech-to-text REST API with pronunciation assessment."""

    def __init__(self,
                 api_key: Optional[str] = None,
                 region: Optional[str] = None,
                 language: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 max_retries: int = Config.MAX_RETRIES):
        self.api_key = api_key if api_key is not None else Config.AZURE_SPEECH_KEY
        self.region = region if region is not None else Config.AZURE_SPEECH_REGION
        self.language = language or Config.AZURE_SPEECH_LANGUAGE
        self.transport = transport
        self.max_retries = max_retries

    @property
    def endpoint(self) -> str:
        return (
            f"https://{self.region}.stt.speech.microsoft.com"
            "/speech/recognition/conversation/cognitiveservices/v1"
        )

    def build_assessment_header(self, reference_text: str) -> str:
        """Base64 encoded Pronunciation-Assessment header value"""
        params = {
            "ReferenceText": reference_text,
            "GradingSystem": "HundredMark",
            "Granularity": "Phoneme",
            "Dimension": "Comprehensive",
            "EnableMiscue": True,
            "EnableProsodyAssessment": True,
        }
        return base64.b64encode(json.dumps(params, ensure_ascii=False).encode("utf-8")).decode("ascii")

    async def assess_with_retry(self, audio: bytes, reference_text: str) -> Dict[str, Any]:
        """Assess pronunciation with retry logic for network errors"""
        for attempt in range(self.max_retries):
            try:
                return await self.assess(audio, reference_text)
            except httpx.RequestError as e:
                if attempt == self.max_retries - 1:
                    raise AssessmentError(
                        f"Pronunciation assessment failed after {self.max_retries} attempts: {str(e)}"
                    ) from e

                wait_time = Config.RETRY_DELAY ** attempt
                logging.warning(f"Assessment attempt {attempt + 1} failed, retrying in {wait_time}s...")
                await asyncio.sleep(wait_time)
        raise AssessmentError("Pronunciation assessment was not attempted")

    async def assess(self, audio: bytes, reference_text: str) -> Dict[str, Any]:
        """Submit WAV/PCM audio and reference text, returning the raw detailed result"""
        if not self.api_key or not self.region:
            raise AssessmentError("Azure Speech key or region not configured")
        if not audio:
            raise AssessmentError("Empty audio payload")

        headers = {
            "Ocp-Apim-Subscription-Key": self.api_key,
            "Content-Type": "audio/wav; codecs=audio/pcm; samplerate=16000",
            "Accept": "application/json",
            "Pronunciation-Assessment": self.build_assessment_header(reference_text),
        }
        params = {"language": self.language, "format": "detailed"}

        try:
            async with httpx.AsyncClient(timeout=Config.ASSESSMENT_TIMEOUT, transport=self.transport) as client:
                response = await client.post(self.endpoint, params=params, headers=headers, content=audio)
        except httpx.TimeoutException as e:
            raise AssessmentError("Assessment timeout - the speech service took too long") from e

        if response.status_code == 401:
            raise AssessmentError("Invalid Azure Speech key")
        elif response.status_code == 429:
            raise AssessmentError("Rate limit exceeded - please try again later")
        elif response.status_code != 200:
            error_text = response.text if response.content else "Unknown error"
            raise AssessmentError(f"Assessment failed: {response.status_code} - {error_text}")

        result = response.json()
        status = result.get("RecognitionStatus")
        if status != "Success":
            raise AssessmentError(f"Speech not recognized: {status}")

        logging.info(f"Pronunciation assessment completed ({len(result.get('NBest') or [])} candidates)")
        return result

    async def check_health(self) -> Dict[str, str]:
        """Check Azure Speech connectivity with the configured key"""
        if not self.api_key or not self.region:
            return {"status": "error", "message": "Azure Speech key or region not configured"}

        url = f"https://{self.region}.api.cognitive.microsoft.com/sts/v1.0/issueToken"
        headers = {"Ocp-Apim-Subscription-Key": self.api_key}
        try:
            async with httpx.AsyncClient(timeout=10.0, transport=self.transport) as client:
                response = await client.post(url, headers=headers)
        except httpx.ReadError:
            return {"status": "error", "message": "Network connectivity issue"}
        except httpx.TimeoutException:
            return {"status": "error", "message": "Connection timeout"}
        except httpx.HTTPError as e:
            return {"status": "error", "message": f"Health check failed: {str(e)}"}

        if response.status_code == 401:
            return {"status": "error", "message": "Invalid API key"}
        elif response.status_code == 429:
            return {"status": "warning", "message": "Rate limited"}
        elif response.status_code == 200:
            return {"status": "healthy", "message": "Azure Speech is reachable"}
        return {"status": "error", "message": f"Unexpected status: {response.status_code}"}
