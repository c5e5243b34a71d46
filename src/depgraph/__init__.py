"""DepGraph - call/reference graph engine for dead code, dependencies and context."""

__version__ = "0.1.0"
