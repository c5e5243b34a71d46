"""Records produced by the parsers: declarations and call sites per file."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class DeclarationKind(str, Enum):
    """Kinds of declarations the graph understands."""

    FUNCTION = "function"
    CLASS = "class"  # classes, structs, interfaces, traits, enums, type aliases
    METHOD = "method"
    VARIABLE = "variable"


class SiteKind(str, Enum):
    """How a name is used at a call site."""

    CALL = "call"
    REFERENCE = "reference"  # bare name read, e.g. a callback or a constant
    IMPORT = "import"


class Declaration(BaseModel):
    """A named declaration with a 1-based inclusive line range."""

    name: str
    kind: DeclarationKind
    file_path: str
    line_start: int
    line_end: int
    exported: bool = False
    signature: str = ""


class CallSite(BaseModel):
    """A use of `callee_name` on `caller_line` of the file."""

    caller_line: int
    callee_name: str
    kind: SiteKind = SiteKind.CALL


class FileParseResult(BaseModel):
    """Everything extracted from a single source file."""

    file_path: str
    language: str
    declarations: list[Declaration] = Field(default_factory=list)
    calls: list[CallSite] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


EXTENSION_LANGUAGE_MAP: dict[str, str] = {
    ".py": "python",
    ".pyi": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".rs": "rust",
}


def detect_language(file_path: str) -> str | None:
    """Detect programming language from file extension."""
    ext = Path(file_path).suffix.lower()
    return EXTENSION_LANGUAGE_MAP.get(ext)
