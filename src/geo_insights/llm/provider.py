"""Abstract base class for LLM providers."""

from abc import ABC, abstractmethod
from typing import Any


class LLMProvider(ABC):
    """Abstract base class for LLM providers.

    The insight provider only needs chat completions; keeping them behind this
    interface lets tests swap in a canned backend.
    """

    @abstractmethod
    def chat(
        self,
        messages: list[dict[str, str]],
        max_tokens: int | None = None,
        temperature: float | None = None,
        json_mode: bool = False,
        **kwargs: Any,
    ) -> str:
        """Generate chat completion from messages.

        Args:
            messages: List of message dicts with 'role' and 'content'.
            max_tokens: Maximum tokens to generate.
            temperature: Sampling temperature.
            json_mode: Ask the backend to return a single JSON object.
            **kwargs: Additional provider-specific parameters.

        Returns:
            Generated chat response.
        """
        pass
