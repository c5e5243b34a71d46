"""LLM provider abstraction and LLM-backed dead code analysis."""

from depgraph.llm.base import LLMProvider, LLMResponse, Message
from depgraph.llm.factory import create_provider

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "Message",
    "create_provider",
]
