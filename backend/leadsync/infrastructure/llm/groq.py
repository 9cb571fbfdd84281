"""
Groq LLM Provider Implementation
JSON-mode completions for lead analysis
"""
import os
from typing import Optional

from groq import AsyncGroq

from leadsync.infrastructure.llm.base import LLMProvider


class GroqLLMProvider(LLMProvider):
    """
    Groq LLM provider

    Lead analysis favours quality over latency, so the default model is
    llama-3.3-70b-versatile with a low temperature.
    """

    def __init__(self):
        self._client: Optional[AsyncGroq] = None
        self._config: dict = {}
        self._model: str = "llama-3.3-70b-versatile"
        self._temperature: float = 0.3
        self._max_tokens: int = 800

    async def initialize(self, config: dict) -> None:
        """Initialize Groq client with configuration"""
        self._config = config
        api_key = config.get("api_key") or os.getenv("GROQ_API_KEY")

        if not api_key:
            raise ValueError("Groq API key not found in config or environment")

        self._client = AsyncGroq(api_key=api_key)

        self._model = config.get("model") or self._model
        self._temperature = config.get("temperature", self._temperature)
        self._max_tokens = config.get("max_tokens", self._max_tokens)

    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> str:
        if not self._client:
            raise RuntimeError("Groq client not initialized. Call initialize() first.")

        temperature = temperature if temperature is not None else self._temperature
        max_tokens = max_tokens if max_tokens is not None else self._max_tokens

        if not 0.0 <= temperature <= 2.0:
            raise ValueError(f"Temperature must be between 0.0 and 2.0, got {temperature}")

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        request = {
            "model": kwargs.get("model", self._model),
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if kwargs.get("json_mode"):
            request["response_format"] = {"type": "json_object"}

        try:
            completion = await self._client.chat.completions.create(**request)
        except Exception as e:
            raise RuntimeError(f"Groq completion failed: {str(e)}")

        if not completion.choices:
            return ""
        return completion.choices[0].message.content or ""

    async def cleanup(self) -> None:
        """Close the Groq client"""
        if self._client:
            await self._client.close()
            self._client = None

    @property
    def name(self) -> str:
        return "groq"
