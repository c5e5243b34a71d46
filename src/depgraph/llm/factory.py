"""Factory for creating LLM providers from configuration."""

from __future__ import annotations

from depgraph.config import LLMConfig
from depgraph.exceptions import ConfigError
from depgraph.llm.base import LLMProvider


def create_provider(config: LLMConfig) -> LLMProvider:
    """Create an LLM provider from configuration.

    The SDK import is deferred; call `ensure_available()` on the result to
    check for it up front.

    Raises:
        ConfigError: If the provider is unknown.
    """
    provider = config.provider.lower()

    if provider in ("openai", "local"):
        from depgraph.llm.openai_provider import OpenAIProvider

        return OpenAIProvider(model=config.model, api_key=config.api_key, base_url=config.base_url)
    elif provider == "anthropic":
        from depgraph.llm.anthropic_provider import AnthropicProvider

        return AnthropicProvider(model=config.model, api_key=config.api_key, base_url=config.base_url)
    raise ConfigError(
        f"Unknown LLM provider: '{provider}'. Supported providers: openai, anthropic, local"
    )
