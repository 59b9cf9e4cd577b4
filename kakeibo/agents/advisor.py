"""
Generative Text Advisor

DESIGN DECISION: The LLM is a COMMENTATOR, not a CALCULATOR.

- CAN: Turn pre-computed figures into a readable report or a short tip
- CANNOT: Compute totals, touch the ledger, or decide alerts
- MUST: Degrade to a fixed apology when the model is unavailable

Every figure it sees was produced by the aggregation engine and is
passed in through the prompt builders in kakeibo.agents.prompts.
"""

from abc import ABC, abstractmethod

import google.generativeai as genai
import structlog

from kakeibo.config import GeminiSettings

logger = structlog.get_logger()

ADVISOR_APOLOGY = "AIの分析中にエラーが発生しました。また後で試してね。"


class AdvisorInterface(ABC):

    @abstractmethod
    async def analyze(self, prompt: str) -> str:
        """
        Generate text for a prompt.

        Implementations return ADVISOR_APOLOGY instead of raising.
        """
        pass


class GeminiAdvisor(AdvisorInterface):
    """Advisor backed by Google Gemini."""

    def __init__(self, settings: GeminiSettings):
        self._settings = settings
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    async def analyze(self, prompt: str) -> str:
        try:
            response = await self._model.generate_content_async(prompt)
            text = response.text.strip()
        except Exception as e:
            logger.error("advisor_failed", model=self._settings.model_name, error=str(e))
            return ADVISOR_APOLOGY

        return text or ADVISOR_APOLOGY
