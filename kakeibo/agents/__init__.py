"""AI advisor package."""

from kakeibo.agents.advisor import (
    ADVISOR_APOLOGY,
    AdvisorInterface,
    GeminiAdvisor,
)
from kakeibo.agents.prompts import (
    build_advice_prompt,
    build_analysis_prompt,
)

__all__ = [
    "ADVISOR_APOLOGY",
    "AdvisorInterface",
    "GeminiAdvisor",
    "build_advice_prompt",
    "build_analysis_prompt",
]
