"""OpenAI LLM provider."""

from __future__ import annotations

import asyncio
from typing import Any

from depgraph.exceptions import LLMError, ProviderNotAvailableError
from depgraph.llm.base import LLMProvider, LLMResponse, Message


class OpenAIProvider(LLMProvider):
    """Provider for OpenAI and OpenAI-compatible APIs (Ollama, vLLM, etc.)."""

    def __init__(
        self, model: str = "gpt-4o-mini", api_key: str | None = None, base_url: str | None = None
    ) -> None:
        super().__init__(model, api_key, base_url)
        self._async_client = None
        self._client_loop: asyncio.AbstractEventLoop | None = None

    def ensure_available(self) -> None:
        self._sdk()

    @staticmethod
    def _sdk():
        try:
            from openai import AsyncOpenAI
        except ImportError:
            raise ProviderNotAvailableError("openai", "openai")
        return AsyncOpenAI

    def _get_client(self):
        # The async client is bound to the event loop it was created on
        loop = asyncio.get_running_loop()
        if self._async_client is None or self._client_loop is not loop:
            kwargs: dict[str, Any] = {}
            if self.api_key:
                kwargs["api_key"] = self.api_key
            if self.base_url:
                kwargs["base_url"] = self.base_url
            sdk = self._sdk()
            try:
                self._async_client = sdk(**kwargs)
            except Exception as e:
                raise LLMError(f"Cannot create OpenAI client: {e}") from e
            self._client_loop = loop
        return self._async_client

    async def complete(
        self,
        messages: list[Message],
        temperature: float = 0.0,
        max_tokens: int = 1024,
    ) -> LLMResponse:
        client = self._get_client()
        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=[{"role": m.role, "content": m.content} for m in messages],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as e:
            raise LLMError(f"OpenAI request failed: {e}") from e

        choice = response.choices[0]
        usage = {}
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
            }
        return LLMResponse(
            content=choice.message.content or "",
            finish_reason=choice.finish_reason or "",
            usage=usage,
        )
