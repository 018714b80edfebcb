from abc import ABC, abstractmethod
import logging

import google.generativeai as genai
from google.generativeai.types import HarmCategory, HarmBlockThreshold # For safety settings
from openai import OpenAI

from settings import Settings

logger = logging.getLogger(__name__)


class LLMProvider(ABC):
    @abstractmethod
    def generate_content(self, prompt: str) -> str:
        """
        Generate a single text completion (non-streaming).
        Args:
            prompt: The full prompt, instructions and input together
        Returns:
            The completion text
        """
        pass


class GeminiProvider(LLMProvider):
    def __init__(self, settings: Settings) -> None:
        self.model_name = settings.gemini_model
        if not settings.gemini_api_key:
            logger.error("GEMINI_API_KEY environment variable not set.")
            raise ValueError("GEMINI_API_KEY environment variable not set.")

        genai.configure(api_key=settings.gemini_api_key)
        self.model = genai.GenerativeModel(self.model_name)

        # Clip titles quoting the transcript can trip the default filters and
        # come back empty.
        self.safety_settings = {
            HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_NONE,
            HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_NONE,
            HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_NONE,
            HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_NONE,
        }

    def generate_content(self, prompt: str) -> str:
        try:
            response = self.model.generate_content(
                prompt,
                safety_settings=self.safety_settings,
            )
            return response.text
        except Exception as e:
            logger.error(f"Gemini request error: {e}")
            if hasattr(e, 'response') and hasattr(e.response, 'prompt_feedback'):
                 if e.response.prompt_feedback.block_reason:
                    raise ValueError(f"Content generation blocked. Reason: {e.response.prompt_feedback.block_reason.name}") from e
            raise


class OpenAIProvider(LLMProvider):
    def __init__(self, settings: Settings):
        self.model_name = settings.openai_model

        if not settings.openai_api_key:
            logger.error("OPENAI_API_KEY environment variable not set.")
            raise ValueError("OPENAI_API_KEY environment variable not set.")
        if not self.model_name:
            logger.error("OPENAI_MODEL environment variable not set.")
            raise ValueError("OPENAI_MODEL environment variable not set.")

        self.llm = OpenAI(api_key=settings.openai_api_key, base_url=settings.openai_base_url)

    def generate_content(self, prompt: str) -> str:
        try:
            response = self.llm.chat.completions.create(
                model=self.model_name,
                messages=[{"role": "user", "content": prompt}],
            )
            return response.choices[0].message.content or ""
        except Exception as e:
            logger.error(f"OpenAI request error: {e}")
            raise


def get_llm_provider(settings: Settings) -> LLMProvider:
    provider_name = settings.llm_provider
    logger.info(f"Initializing LLM provider: {provider_name}")
    if provider_name == "gemini":
        return GeminiProvider(settings)
    elif provider_name == "openai":
        return OpenAIProvider(settings)
    else:
        logger.error(f"Unsupported LLM provider: {provider_name}")
        raise ValueError(f"Unsupported LLM provider: {provider_name}")
