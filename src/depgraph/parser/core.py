"""Parser orchestration: picks a parser per file and walks project trees."""

from __future__ import annotations

import fnmatch
import logging
import os
from collections.abc import Callable
from pathlib import Path

from depgraph.config import IndexerConfig
from depgraph.exceptions import ParserError
from depgraph.parser.models import FileParseResult, detect_language

logger = logging.getLogger("depgraph.parser")

ProgressCallback = Callable[[str, int, int], None]


def parse_file(file_path: str, source: str | None = None) -> FileParseResult | None:
    """Parse a single file, auto-detecting its language.

    Returns None if the file's language is not supported.

    - Python: stdlib ast
    - JavaScript, TypeScript, Rust: tree-sitter grammars
    """
    language = detect_language(file_path)
    if not language:
        return None

    if language == "python":
        from depgraph.parser.python_parser import parse_python_file

        return parse_python_file(file_path, source)

    from depgraph.parser.tree_sitter_parser import is_available, parse_tree_sitter_file

    if is_available(language):
        return parse_tree_sitter_file(file_path, language, source)

    logger.debug("No tree-sitter grammar installed for %s, skipping %s", language, file_path)
    return None


def parse_directory(
    root: str | Path,
    config: IndexerConfig | None = None,
    progress_callback: ProgressCallback | None = None,
) -> list[FileParseResult]:
    """Parse all supported source files below `root`.

    A file that cannot be read or parsed is logged and skipped; the scan
    itself never fails because of one bad file.

    Args:
        root: Root directory to scan.
        config: Indexer configuration for exclusion patterns.
        progress_callback: Optional callback(file_path, current, total).

    Returns:
        One FileParseResult per parsed file, with paths relative to root.
    """
    root = Path(root).resolve()
    if config is None:
        config = IndexerConfig()

    files = collect_files(root, config)

    results = []
    total = len(files)
    for i, file_path in enumerate(files):
        rel_path = file_path.relative_to(root).as_posix()
        if progress_callback:
            progress_callback(rel_path, i + 1, total)

        try:
            parsed = _parse_one(file_path, rel_path)
        except ParserError as e:
            logger.warning("Skipping %s: %s", rel_path, e)
            continue
        if parsed is None:
            continue
        for error in parsed.errors:
            logger.warning("Skipping %s: %s", rel_path, error)
        if parsed.errors and not parsed.declarations:
            continue
        results.append(parsed)

    return results


def _parse_one(full_path: Path, rel_path: str) -> FileParseResult | None:
    try:
        source = full_path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise ParserError(f"cannot read file: {e}") from e
    try:
        return parse_file(rel_path, source)
    except (ValueError, RecursionError) as e:
        raise ParserError(str(e)) from e


def collect_files(root: str | Path, config: IndexerConfig | None = None) -> list[Path]:
    """Collect all parseable files, respecting exclusion patterns and .gitignore."""
    root = Path(root).resolve()
    if config is None:
        config = IndexerConfig()

    files = []
    max_size = config.max_file_size_kb * 1024
    all_exclude = config.exclude_patterns + _read_gitignore(root)

    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = os.path.relpath(dirpath, root)

        dirnames[:] = [
            d
            for d in dirnames
            if not _should_exclude(os.path.join(rel_dir, d) if rel_dir != "." else d, all_exclude)
        ]

        for filename in filenames:
            rel_path = os.path.join(rel_dir, filename) if rel_dir != "." else filename
            if _should_exclude(rel_path, all_exclude):
                continue

            lang = detect_language(filename)
            if lang is None:
                continue
            if config.languages and lang not in config.languages:
                continue

            full_path = Path(dirpath) / filename
            try:
                if full_path.stat().st_size > max_size:
                    continue
            except OSError:
                continue

            files.append(full_path)

    return sorted(files)


def _should_exclude(path: str, patterns: list[str]) -> bool:
    """Check if a path or any of its components matches an exclusion pattern."""
    path_parts = Path(path).parts
    for pattern in patterns:
        if fnmatch.fnmatch(path, pattern):
            return True
        for part in path_parts:
            if fnmatch.fnmatch(part, pattern):
                return True
    return False


def _read_gitignore(root: Path) -> list[str]:
    """Read .gitignore patterns from the project root."""
    gitignore = root / ".gitignore"
    if not gitignore.exists():
        return []

    patterns = []
    try:
        for line in gitignore.read_text().splitlines():
            line = line.strip()
            if line and not line.startswith("#") and not line.startswith("!"):
                patterns.append(line.rstrip("/"))
    except OSError as e:
        logger.warning("Could not read %s: %s", gitignore, e)
    return patterns
