"""OpenAI LLM provider implementation."""

import logging
from typing import Any

from openai import OpenAI

from geo_insights.llm.provider import LLMProvider

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    """OpenAI API provider implementation."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        temperature: float = 0.7,
        timeout_seconds: float | None = None,
        client: OpenAI | None = None,
    ) -> None:
        """Initialize the OpenAI provider.

        Args:
            api_key: OpenAI API key.
            model: Chat model name.
            temperature: Default sampling temperature.
            timeout_seconds: Request timeout passed to the SDK client.
            client: Pre-built SDK client (tests).

        Raises:
            ValueError: If API key is not provided.
        """
        if not api_key and client is None:
            raise ValueError("OpenAI API key is required")

        self.client = client or OpenAI(api_key=api_key, timeout=timeout_seconds)
        self.model = model
        self.temperature = temperature

        logger.info(f"OpenAI provider initialized with model: {self.model}")

    def chat(
        self,
        messages: list[dict[str, str]],
        max_tokens: int | None = None,
        temperature: float | None = None,
        json_mode: bool = False,
        **kwargs: Any,
    ) -> str:
        """Generate chat completion using OpenAI API.

        Args:
            messages: List of message dicts with 'role' and 'content'.
            max_tokens: Maximum tokens to generate.
            temperature: Sampling temperature.
            json_mode: Request a JSON object response format.
            **kwargs: Additional OpenAI-specific parameters.

        Returns:
            Generated chat response.
        """
        temp = temperature if temperature is not None else self.temperature
        if json_mode:
            kwargs.setdefault("response_format", {"type": "json_object"})

        logger.debug(f"Generating chat completion with {len(messages)} messages")

        response = self.client.chat.completions.create(
            model=self.model,
            messages=messages,  # type: ignore
            max_tokens=max_tokens,
            temperature=temp,
            **kwargs,
        )

        content = response.choices[0].message.content or ""
        logger.debug(f"Generated {len(content)} characters")

        return content
