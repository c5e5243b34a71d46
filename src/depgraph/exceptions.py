"""Custom exceptions for DepGraph."""


class DepGraphError(Exception):
    """Base exception for all DepGraph errors."""


class ConfigError(DepGraphError):
    """Configuration-related errors."""


class ParserError(DepGraphError):
    """Source parsing errors."""


class GraphError(DepGraphError):
    """Dependency graph errors."""


class IndexingError(DepGraphError):
    """Errors while scanning a project into a graph."""


class LLMError(DepGraphError):
    """LLM provider or analysis errors."""


class EmbeddingError(DepGraphError):
    """Embedding backend errors."""


class ProviderNotAvailableError(LLMError):
    """Raised when an optional provider SDK is not installed."""

    def __init__(self, provider: str, package: str):
        super().__init__(
            f"Provider '{provider}' requires the '{package}' package. "
            f"Install it with: pip install depgraph[{provider}]"
        )
