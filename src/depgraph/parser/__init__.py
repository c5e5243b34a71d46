"""Source parsers producing declaration and call-site records."""

from depgraph.parser.core import collect_files, parse_directory, parse_file
from depgraph.parser.models import (
    CallSite,
    Declaration,
    DeclarationKind,
    FileParseResult,
    SiteKind,
)

__all__ = [
    "CallSite",
    "Declaration",
    "DeclarationKind",
    "FileParseResult",
    "SiteKind",
    "collect_files",
    "parse_directory",
    "parse_file",
]
