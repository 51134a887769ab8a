import logging
import random
from typing import Callable, List, Optional, Tuple

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from config import Config

# Errors that only affect one model; the next model in the list is tried
RECOVERABLE_ERRORS = (
    google_exceptions.ResourceExhausted,
    google_exceptions.TooManyRequests,
    google_exceptions.PermissionDenied,
    google_exceptions.Unauthenticated,
    google_exceptions.ServiceUnavailable,
    google_exceptions.NotFound,
)

FALLBACK_TEXTS = [
    "当前，全球经济面临诸多挑战。各国政府正积极采取措施，以稳定市场信心。预计未来一段时间内，经济走势仍将复杂多变。",
    "今天天气很好，阳光明媚。我决定去公园散步，呼吸新鲜空气。公园里有很多人在锻炼身体，孩子们在草地上玩耍。",
    "学习中文是一件很有趣的事情。通过不断练习，我们可以提高自己的语言水平。每天坚持学习，一定会有很大的进步。",
    "中国有着悠久的历史和灿烂的文化。从古代的四大发明到现代的高科技发展，中国一直在为世界文明做出重要贡献。",
    "健康的生活方式对每个人都很重要。我们应该保持规律的作息时间，均衡饮食，适量运动。这样才能拥有健康的身体。",
]

GENERATION_CONFIG = {
    "temperature": 0.3,
    "top_k": 40,
    "top_p": 0.95,
    "max_output_tokens": 2048,
}


class TextGenerationError(Exception):
    """No model produced a usable practice text."""


class PracticeTextGenerator:
    def __init__(self,
                 api_key: Optional[str] = None,
                 models: Optional[List[str]] = None,
                 model_factory: Callable = genai.GenerativeModel,
                 rng: Optional[random.Random] = None):
        self.api_key = api_key if api_key is not None else Config.GEMINI_API_KEY
        self.models = models or Config.GEMINI_MODELS
        self.model_factory = model_factory
        self.rng = rng or random.Random()
        if self.api_key:
            genai.configure(api_key=self.api_key)

    def build_prompt(self, topic: str) -> str:
        return f"""
        Write a short Chinese (Simplified) passage for pronunciation shadowing practice.

        **Topic:** {topic}

        **Instructions:**
        1. Write 3-4 natural sentences, around 60-100 Chinese characters in total.
        2. Use standard Mandarin punctuation (，。！？).
        3. Use vocabulary suitable for an intermediate learner.
        4. Output only the Chinese passage, without pinyin, translation or commentary.
        """

    def generate_with_models(self, topic: str) -> Tuple[str, str]:
        """Try each configured model in order, returning (text, model name)."""
        if not self.api_key:
            raise TextGenerationError("Gemini API key not configured")

        prompt = self.build_prompt(topic)
        last_error: Optional[Exception] = None
        for model_name in self.models:
            try:
                model = self.model_factory(model_name)
                response = model.generate_content(prompt, generation_config=GENERATION_CONFIG)
                text = (response.text or "").strip()
                if not text:
                    raise TextGenerationError(f"{model_name} returned an empty response")
                logging.info(f"Practice text generated with {model_name}")
                return text, model_name
            except RECOVERABLE_ERRORS as e:
                logging.warning(f"{model_name} unavailable ({type(e).__name__}), trying next model...")
                last_error = e
            except TextGenerationError as e:
                logging.warning(f"{e}, trying next model...")
                last_error = e
            except Exception as e:
                logging.error(f"{model_name} failed with a non-recoverable error: {e}")
                raise TextGenerationError(f"Text generation failed: {str(e)}") from e

        raise TextGenerationError(f"All models failed: {last_error}")

    def generate(self, topic: str) -> Tuple[str, Optional[str]]:
        """Generate a practice text, falling back to a built-in one.

        Returns (text, model name); the model name is None for built-in texts.
        """
        try:
            return self.generate_with_models(topic)
        except TextGenerationError as e:
            logging.warning(f"Using a built-in practice text: {e}")
            return self.rng.choice(FALLBACK_TEXTS), None
