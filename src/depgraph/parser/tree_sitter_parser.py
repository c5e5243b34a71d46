"""Tree-sitter based parser for JavaScript, TypeScript and Rust."""

from __future__ import annotations

import re
from pathlib import Path

from depgraph.parser.models import (
    CallSite,
    Declaration,
    DeclarationKind,
    FileParseResult,
    SiteKind,
)

# language -> (grammar module, function returning the language pointer)
_TS_LANGUAGE_MODULES = {
    "javascript": ("tree_sitter_javascript", "language"),
    "typescript": ("tree_sitter_typescript", "language_typescript"),
    "tsx": ("tree_sitter_typescript", "language_tsx"),
    "rust": ("tree_sitter_rust", "language"),
}

_JS_DECLARATIONS = {
    "function_declaration": DeclarationKind.FUNCTION,
    "generator_function_declaration": DeclarationKind.FUNCTION,
    "class_declaration": DeclarationKind.CLASS,
    "abstract_class_declaration": DeclarationKind.CLASS,
    "interface_declaration": DeclarationKind.CLASS,
    "type_alias_declaration": DeclarationKind.CLASS,
    "enum_declaration": DeclarationKind.CLASS,
    "method_definition": DeclarationKind.METHOD,
}

_RUST_DECLARATIONS = {
    "function_item": DeclarationKind.FUNCTION,
    "function_signature_item": DeclarationKind.FUNCTION,
    "struct_item": DeclarationKind.CLASS,
    "enum_item": DeclarationKind.CLASS,
    "trait_item": DeclarationKind.CLASS,
    "type_item": DeclarationKind.CLASS,
    "const_item": DeclarationKind.VARIABLE,
    "static_item": DeclarationKind.VARIABLE,
}

_FUNCTION_VALUES = ("arrow_function", "function_expression", "function", "generator_function")

_RUST_PATH_ROOTS = {"self", "Self", "crate", "super"}


def is_available(language: str | None = None) -> bool:
    """Check if tree-sitter and the grammar for `language` are importable."""
    try:
        import tree_sitter  # noqa: F401
    except ImportError:
        return False

    if language is None:
        return True

    spec = _TS_LANGUAGE_MODULES.get(language)
    if not spec:
        return False

    try:
        __import__(spec[0])
        return True
    except ImportError:
        return False


def _get_language(lang: str):
    """Get a tree-sitter Language object for the given language."""
    from tree_sitter import Language

    spec = _TS_LANGUAGE_MODULES.get(lang)
    if not spec:
        raise ValueError(f"No tree-sitter grammar for language: {lang}")

    module = __import__(spec[0])
    return Language(getattr(module, spec[1])())


def parse_tree_sitter_file(
    file_path: str, language: str, source: str | None = None
) -> FileParseResult:
    """Parse a file with tree-sitter into declarations and call sites."""
    from tree_sitter import Parser

    if source is None:
        source = Path(file_path).read_text(encoding="utf-8", errors="replace")

    result = FileParseResult(file_path=file_path, language=language)

    try:
        parser = Parser(_get_language(language))
        tree = parser.parse(source.encode("utf-8"))
    except Exception as e:
        result.errors.append(f"tree-sitter parse error: {e}")
        return result

    if language == "rust":
        _walk_rust(tree.root_node, file_path, result)
    else:
        _walk_js(tree.root_node, file_path, result)
    result.calls.sort(key=lambda c: c.caller_line)
    return result


def _text(node) -> str:
    return node.text.decode("utf-8", errors="replace") if node is not None else ""


def _line(node) -> int:
    return node.start_point[0] + 1


def _signature(node) -> str:
    """First line of the declaration, without the opening brace."""
    first = _text(node).split("\n")[0].strip()
    return first.rstrip("{").strip()[:200]


def _declaration(node, name: str, kind: DeclarationKind, file_path: str, exported: bool) -> Declaration:
    return Declaration(
        name=name,
        kind=kind,
        file_path=file_path,
        line_start=node.start_point[0] + 1,
        line_end=node.end_point[0] + 1,
        exported=exported,
        signature=_signature(node),
    )


# ---------------------------------------------------------------------------
# JavaScript / TypeScript
# ---------------------------------------------------------------------------


def _js_is_exported(node) -> bool:
    parent = node.parent
    while parent is not None:
        if parent.type == "export_statement":
            return True
        if parent.type in ("program", "statement_block", "class_body"):
            return False
        parent = parent.parent
    return False


def _walk_js(node, file_path: str, result: FileParseResult, class_exported: bool = False) -> None:
    for child in node.children:
        node_type = child.type

        if node_type in _JS_DECLARATIONS:
            name_node = child.child_by_field_name("name")
            name = _text(name_node)
            kind = _JS_DECLARATIONS[node_type]
            exported = class_exported if kind == DeclarationKind.METHOD else _js_is_exported(child)
            if name:
                result.declarations.append(_declaration(child, name, kind, file_path, exported))
            _walk_js(child, file_path, result,
                     class_exported=exported if kind == DeclarationKind.CLASS else class_exported)
            continue

        if node_type == "variable_declarator":
            name_node = child.child_by_field_name("name")
            value = child.child_by_field_name("value")
            if name_node is not None and name_node.type == "identifier":
                is_function = value is not None and value.type in _FUNCTION_VALUES
                top_level = child.parent is not None and child.parent.parent is not None and (
                    child.parent.parent.type in ("program", "export_statement")
                )
                if is_function or top_level:
                    # The declarator range covers the whole function body
                    result.declarations.append(
                        _declaration(
                            child,
                            _text(name_node),
                            DeclarationKind.FUNCTION if is_function else DeclarationKind.VARIABLE,
                            file_path,
                            _js_is_exported(child),
                        )
                    )

        elif node_type == "call_expression":
            callee = _js_callee(child.child_by_field_name("function"))
            if callee:
                result.calls.append(CallSite(caller_line=_line(child), callee_name=callee))

        elif node_type == "new_expression":
            callee = _js_callee(child.child_by_field_name("constructor"))
            if callee:
                result.calls.append(CallSite(caller_line=_line(child), callee_name=callee))

        elif node_type == "import_specifier":
            name = _text(child.child_by_field_name("name"))
            if name:
                result.calls.append(
                    CallSite(caller_line=_line(child), callee_name=name, kind=SiteKind.IMPORT)
                )

        _walk_js(child, file_path, result, class_exported)


def _js_callee(func) -> str:
    if func is None:
        return ""
    if func.type == "identifier":
        return _text(func)
    if func.type == "member_expression":
        return _text(func.child_by_field_name("property"))
    return ""


# ---------------------------------------------------------------------------
# Rust
# ---------------------------------------------------------------------------


def _rust_is_pub(node) -> bool:
    return any(
        c.type == "visibility_modifier" and _text(c).startswith("pub") for c in node.children
    )


def _walk_rust(node, file_path: str, result: FileParseResult, in_impl: bool = False) -> None:
    for child in node.children:
        node_type = child.type

        if node_type in _RUST_DECLARATIONS:
            name = _text(child.child_by_field_name("name"))
            kind = _RUST_DECLARATIONS[node_type]
            if in_impl and kind == DeclarationKind.FUNCTION:
                kind = DeclarationKind.METHOD
            if name:
                result.declarations.append(
                    _declaration(child, name, kind, file_path, _rust_is_pub(child))
                )
            _walk_rust(child, file_path, result, in_impl=node_type == "trait_item" or in_impl)
            continue

        if node_type == "impl_item":
            _walk_rust(child, file_path, result, in_impl=True)
            continue

        if node_type == "call_expression":
            for name in _rust_callees(child.child_by_field_name("function")):
                result.calls.append(CallSite(caller_line=_line(child), callee_name=name))

        elif node_type == "macro_invocation":
            macro = child.child_by_field_name("macro")
            name = _text(macro).rsplit("::", 1)[-1]
            if name:
                result.calls.append(CallSite(caller_line=_line(child), callee_name=name))

        elif node_type == "use_declaration":
            for name in _rust_use_names(_text(child)):
                result.calls.append(
                    CallSite(caller_line=_line(child), callee_name=name, kind=SiteKind.IMPORT)
                )
            continue

        # Nested functions inside a body are not methods of the impl
        _walk_rust(child, file_path, result, in_impl=in_impl and node_type == "declaration_list")


def _rust_callees(func) -> list[str]:
    """Names a Rust call target resolves to.

    ``foo()`` gives foo, ``self.graph.walk()`` gives walk and graph,
    ``Vec::new()`` gives new and Vec.
    """
    if func is None:
        return []
    if func.type == "identifier":
        return [_text(func)]
    if func.type == "field_expression":
        names = [_text(func.child_by_field_name("field"))]
        value = func.child_by_field_name("value")
        while value is not None and value.type in ("field_expression", "call_expression"):
            if value.type == "field_expression":
                names.append(_text(value.child_by_field_name("field")))
                value = value.child_by_field_name("value")
            else:
                value = value.child_by_field_name("function")
        return [n for n in names if n]
    if func.type == "scoped_identifier":
        full = _text(func)
        names = [full.rsplit("::", 1)[-1]]
        head = full.split("::", 1)[0]
        if head not in _RUST_PATH_ROOTS and head != names[0]:
            names.append(head)
        return names
    if func.type == "generic_function":
        return _rust_callees(func.child_by_field_name("function"))
    return []


_USE_ALIAS = re.compile(r"\s+as\s+\w+$")


def _rust_use_names(text: str) -> list[str]:
    body = text.strip().rstrip(";")
    body = re.sub(r"^(pub(\([^)]*\))?\s+)?use\s+", "", body)
    return _use_tree_names(body)


def _use_tree_names(tree: str) -> list[str]:
    """Leaf names of a use tree: ``a::{b::{c, d}, e as f}`` gives c, d, e."""
    tree = tree.strip()
    if "{" in tree and tree.endswith("}"):
        names = []
        for part in _split_top_level(tree[tree.index("{") + 1: -1]):
            names.extend(_use_tree_names(part))
        return names
    name = _USE_ALIAS.sub("", tree).rsplit("::", 1)[-1].strip()
    if name and name not in _RUST_PATH_ROOTS and name != "*":
        return [name]
    return []


def _split_top_level(text: str) -> list[str]:
    """Split on commas that are not inside braces."""
    parts = []
    depth = 0
    current: list[str] = []
    for ch in text:
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))
    return [p.strip() for p in parts if p.strip()]
