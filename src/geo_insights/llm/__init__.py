"""LLM package initialization."""

from geo_insights.llm.openai_provider import OpenAIProvider
from geo_insights.llm.provider import LLMProvider

__all__ = [
    "LLMProvider",
    "OpenAIProvider",
]
