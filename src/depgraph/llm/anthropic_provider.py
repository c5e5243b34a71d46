"""Anthropic Claude LLM provider."""

from __future__ import annotations

import asyncio
from typing import Any

from depgraph.exceptions import LLMError, ProviderNotAvailableError
from depgraph.llm.base import LLMProvider, LLMResponse, Message


class AnthropicProvider(LLMProvider):
    """Provider for Anthropic's Claude models."""

    def __init__(
        self,
        model: str = "claude-sonnet-4-5-20250929",
        api_key: str | None = None,
        base_url: str | None = None,
    ) -> None:
        super().__init__(model, api_key, base_url)
        self._client = None
        self._client_loop: asyncio.AbstractEventLoop | None = None

    def ensure_available(self) -> None:
        self._sdk()

    @staticmethod
    def _sdk():
        try:
            from anthropic import AsyncAnthropic
        except ImportError:
            raise ProviderNotAvailableError("anthropic", "anthropic")
        return AsyncAnthropic

    def _get_client(self):
        loop = asyncio.get_running_loop()
        if self._client is None or self._client_loop is not loop:
            kwargs: dict[str, Any] = {}
            if self.api_key:
                kwargs["api_key"] = self.api_key
            if self.base_url:
                kwargs["base_url"] = self.base_url
            sdk = self._sdk()
            try:
                self._client = sdk(**kwargs)
            except Exception as e:
                raise LLMError(f"Cannot create Anthropic client: {e}") from e
            self._client_loop = loop
        return self._client

    async def complete(
        self,
        messages: list[Message],
        temperature: float = 0.0,
        max_tokens: int = 1024,
    ) -> LLMResponse:
        client = self._get_client()
        # Anthropic takes the system prompt separately
        system = "\n\n".join(m.content for m in messages if m.role == "system")
        chat = [{"role": m.role, "content": m.content} for m in messages if m.role != "system"]

        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": chat,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if system:
            kwargs["system"] = system

        try:
            response = await client.messages.create(**kwargs)
        except Exception as e:
            raise LLMError(f"Anthropic request failed: {e}") from e

        content = "".join(block.text for block in response.content if block.type == "text")
        return LLMResponse(
            content=content,
            finish_reason=response.stop_reason or "",
            usage={
                "prompt_tokens": response.usage.input_tokens,
                "completion_tokens": response.usage.output_tokens,
            },
        )
