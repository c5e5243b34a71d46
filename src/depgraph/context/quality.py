"""Advisory quality metrics for generated context."""

from __future__ import annotations

import re

from depgraph.context.models import ContextMode, ContextQuality, TokenEstimator
from depgraph.graph.models import CodeNode, NodeKind

HIGH_SN_RATIO = 2.0
MEDIUM_SN_RATIO = 1.0
EXPLOSION_DEPENDENCIES = 100
EXPLOSION_TOKENS = 4000
LARGE_CONTEXT_TOKENS = 2000

_WORD_SPLIT = re.compile(r"[^A-Za-z0-9_]+")

# Language keywords are neither signal nor noise
_KEYWORDS = frozenset({
    "fn", "let", "mut", "pub", "struct", "impl", "if", "else", "for", "while",
    "return", "use", "const", "type", "self", "Self", "true", "false",
    "function", "var", "export", "import", "def", "class", "None", "True", "False",
})

_TYPE_LIKE_MARKERS = ("trait ", "interface ", "impl ", "struct ", "enum ", "type ")
_ACCESSOR_MARKERS = ("get", "set", "is_", "has_")


def signal_noise_ratio(content: str) -> float:
    """Meaningful (3+ char) identifiers per short (1-2 char) identifier."""
    meaningful = 0
    short = 0
    for word in _WORD_SPLIT.split(content):
        if not word or word in _KEYWORDS:
            continue
        if len(word) <= 2:
            short += 1
        else:
            meaningful += 1
    if short > 0:
        return meaningful / short
    return 10.0 if meaningful > 0 else 1.0


def concept_density(nodes: list[CodeNode]) -> float:
    if not nodes:
        return 0.5
    score = 0
    for node in nodes:
        if node.kind == NodeKind.CLASS:
            score += 2
        elif node.kind in (NodeKind.FUNCTION, NodeKind.METHOD):
            sig = node.signature
            if any(marker in sig for marker in _TYPE_LIKE_MARKERS):
                score += 2
            elif any(marker in sig for marker in _ACCESSOR_MARKERS):
                score += 0
            else:
                score += 1
        else:
            score += 1
    return min(score / (len(nodes) * 2), 1.0)


def calculate_quality(
    content: str,
    nodes: list[CodeNode],
    entry_ids: set[int],
    mode: ContextMode,
) -> ContextQuality:
    """Score a context by its S/N ratio, concept density and size."""
    tokens = TokenEstimator.estimate(content)
    sn_ratio = signal_noise_ratio(content)
    total_lines = sum(n.line_count for n in nodes)
    entry_lines = sum(n.line_count for n in nodes if n.id in entry_ids)
    dependency_count = len(nodes)

    if sn_ratio >= HIGH_SN_RATIO:
        level, recommendation = "high", None
    elif sn_ratio >= MEDIUM_SN_RATIO:
        level = "medium"
        recommendation = (
            "Consider using skeleton mode to reduce context size"
            if tokens > LARGE_CONTEXT_TOKENS
            else None
        )
    else:
        level = "low"
        if mode == ContextMode.FULL and total_lines > 100:
            recommendation = (
                "Low S/N ratio detected. Consider: 1) Use skeleton mode, "
                "2) Reduce depth, 3) Use more specific entry point"
            )
        else:
            recommendation = "Low S/N ratio - context contains many short variable names"

    explosion = dependency_count > EXPLOSION_DEPENDENCIES or tokens > EXPLOSION_TOKENS
    if explosion:
        warning = (
            f"Context explosion detected ({dependency_count} deps, ~{tokens} tokens). "
            "Consider: reduce depth or use skeleton mode"
        )
        recommendation = f"{recommendation}. {warning}" if recommendation else warning

    ratio = entry_lines / total_lines if entry_lines and total_lines else 0.0
    if ratio < 0.1 and dependency_count > 10:
        note = (
            "Low signal ratio: entry point code is <10% of context. "
            "Consider more specific entry point"
        )
        recommendation = f"{recommendation}. {note}" if recommendation else note

    return ContextQuality(
        estimated_tokens=tokens,
        sn_ratio=sn_ratio,
        quality_level=level,
        recommendation=recommendation,
        concept_density=concept_density(nodes),
        dependency_count=dependency_count,
        context_explosion_warning=explosion,
        entry_point_ratio=ratio,
    )
