"""Python parser built on the stdlib ast module. Always available, no extra deps."""

from __future__ import annotations

import ast
from pathlib import Path

from depgraph.parser.models import (
    CallSite,
    Declaration,
    DeclarationKind,
    FileParseResult,
    SiteKind,
)


def parse_python_file(file_path: str, source: str | None = None) -> FileParseResult:
    """Parse a Python file into declarations and call sites."""
    if source is None:
        source = Path(file_path).read_text(encoding="utf-8", errors="replace")

    result = FileParseResult(file_path=file_path, language="python")

    try:
        tree = ast.parse(source, filename=file_path)
    except SyntaxError as e:
        result.errors.append(f"SyntaxError: {e}")
        return result

    lines = source.splitlines()
    exported = _read_dunder_all(tree)
    _extract_declarations(tree, file_path, lines, exported, result)
    _extract_sites(tree, result)
    return result


def _read_dunder_all(tree: ast.Module) -> set[str]:
    """Names listed in a module-level ``__all__``; these count as exported."""
    names: set[str] = set()
    for node in tree.body:
        if isinstance(node, ast.Assign):
            targets = node.targets
        elif isinstance(node, (ast.AnnAssign, ast.AugAssign)):
            targets = [node.target]
        else:
            continue
        if not any(isinstance(t, ast.Name) and t.id == "__all__" for t in targets):
            continue
        if isinstance(node.value, (ast.List, ast.Tuple)):
            for elt in node.value.elts:
                if isinstance(elt, ast.Constant) and isinstance(elt.value, str):
                    names.add(elt.value)
    return names


def _get_function_signature(
    node: ast.FunctionDef | ast.AsyncFunctionDef, lines: list[str]
) -> str:
    """Extract the ``def ...:`` header from the source lines."""
    start = node.lineno - 1
    sig_lines = []
    for i in range(start, min(start + 10, len(lines))):
        line = lines[i]
        sig_lines.append(line.strip())
        if ":" in line:
            text = "".join(sig_lines)
            if text.count("(") <= text.count(")"):
                break
    sig = " ".join(sig_lines)
    if ":" in sig:
        sig = sig[: sig.rindex(":") + 1]
    return sig


def _class_signature(node: ast.ClassDef) -> str:
    bases = [ast.unparse(b) for b in node.bases]
    if bases:
        return f"class {node.name}({', '.join(bases)}):"
    return f"class {node.name}:"


def _extract_declarations(
    tree: ast.Module | ast.ClassDef,
    file_path: str,
    lines: list[str],
    exported: set[str],
    result: FileParseResult,
    in_class: bool = False,
) -> None:
    """Collect declarations from a module or class body."""
    for node in ast.iter_child_nodes(tree):
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            result.declarations.append(
                Declaration(
                    name=node.name,
                    kind=DeclarationKind.METHOD if in_class else DeclarationKind.FUNCTION,
                    file_path=file_path,
                    line_start=node.lineno,
                    line_end=node.end_lineno or node.lineno,
                    exported=not in_class and node.name in exported,
                    signature=_get_function_signature(node, lines),
                )
            )

        elif isinstance(node, ast.ClassDef):
            result.declarations.append(
                Declaration(
                    name=node.name,
                    kind=DeclarationKind.CLASS,
                    file_path=file_path,
                    line_start=node.lineno,
                    line_end=node.end_lineno or node.lineno,
                    exported=not in_class and node.name in exported,
                    signature=_class_signature(node),
                )
            )
            _extract_declarations(node, file_path, lines, exported, result, in_class=True)

        elif not in_class and isinstance(node, (ast.Assign, ast.AnnAssign)):
            targets = node.targets if isinstance(node, ast.Assign) else [node.target]
            for target in targets:
                if not isinstance(target, ast.Name) or target.id == "__all__":
                    continue
                line = lines[node.lineno - 1].strip() if node.lineno <= len(lines) else ""
                result.declarations.append(
                    Declaration(
                        name=target.id,
                        kind=DeclarationKind.VARIABLE,
                        file_path=file_path,
                        line_start=node.lineno,
                        line_end=node.end_lineno or node.lineno,
                        exported=target.id in exported,
                        signature=line[:120],
                    )
                )


def _extract_sites(tree: ast.Module, result: FileParseResult) -> None:
    """Record calls, bare name reads and imported names with their lines."""
    seen: set[tuple[int, str, SiteKind]] = set()
    call_funcs: set[int] = set()

    def add(line: int, name: str, kind: SiteKind) -> None:
        key = (line, name, kind)
        if name and key not in seen:
            seen.add(key)
            result.calls.append(CallSite(caller_line=line, callee_name=name, kind=kind))

    for node in ast.walk(tree):
        if isinstance(node, ast.Call):
            call_funcs.add(id(node.func))
            add(node.lineno, _callee_name(node.func), SiteKind.CALL)
        elif isinstance(node, ast.ImportFrom):
            for alias in node.names:
                if alias.name != "*":
                    add(node.lineno, alias.name, SiteKind.IMPORT)

    for node in ast.walk(tree):
        if (
            isinstance(node, ast.Name)
            and isinstance(node.ctx, ast.Load)
            and id(node) not in call_funcs
        ):
            add(node.lineno, node.id, SiteKind.REFERENCE)

    result.calls.sort(key=lambda c: c.caller_line)


def _callee_name(node: ast.AST) -> str:
    """The last identifier of a call target: ``a.b.c()`` -> ``c``."""
    if isinstance(node, ast.Name):
        return node.id
    elif isinstance(node, ast.Attribute):
        return node.attr
    elif isinstance(node, ast.Subscript):
        return _callee_name(node.value)
    return ""
