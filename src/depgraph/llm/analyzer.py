"""Dead code analyzers: an LLM-backed one and a rule-based fallback."""

from __future__ import annotations

import asyncio
import json
import logging
import re

from pydantic import ValidationError

from depgraph.analysis.dead_code import (
    AnalysisCategory,
    CodeAnalysis,
    DeadCodeAnalyzer,
)
from depgraph.exceptions import DepGraphError, LLMError
from depgraph.graph.models import CodeNode
from depgraph.llm.base import LLMProvider, Message

logger = logging.getLogger("depgraph.llm")

SYSTEM_PROMPT = (
    "You are a code analysis expert. You decide whether unused declarations "
    "should be deleted or kept. Respond only with a JSON object."
)

_PROMPT_TEMPLATE = """Analyze whether the following unused {kind} should be deleted or kept.

Name: {name}
File: {file_path}
Lines: {line_start}-{line_end}
Exported: {exported}

Context:
{context}

Consider:
1. Could it be called dynamically (reflection, eval, string dispatch, framework hooks)?
2. Is it likely to be used soon (TODO/WIP markers, recent commits)?
3. Is it experimental or under active development?
4. Should it be deleted or kept?

Categories:
- SafeToDelete: old, deprecated or replaced code
- KeepForFuture: recently added, marked TODO/WIP
- Experimental: prototypes, experimental features
- WorkInProgress: active development
- NeedsReview: uncertain, needs a human

Respond ONLY with JSON, no markdown:
{{"should_delete": true, "confidence": 0.95, "reason": "short explanation", "category": "SafeToDelete"}}
"""

_CONFIDENCE_RE = re.compile(r'"confidence"\s*:\s*([0-9]*\.?[0-9]+)')
_REASON_RE = re.compile(r'"reason"\s*:\s*"([^"]*)"')
_DELETE_RE = re.compile(r'"should_delete"\s*:\s*(true|false)', re.IGNORECASE)


def build_prompt(node: CodeNode, context_text: str) -> str:
    return _PROMPT_TEMPLATE.format(
        kind=node.kind.value,
        name=node.name,
        file_path=node.file_path,
        line_start=node.line_start,
        line_end=node.line_end,
        exported=node.exported,
        context=context_text or "(none)",
    )


def _coerce_category(raw: object) -> AnalysisCategory:
    key = re.sub(r"[^a-z]", "", str(raw).lower())
    for category in AnalysisCategory:
        if category.value.lower() == key:
            return category
    return AnalysisCategory.NEEDS_REVIEW


def parse_analysis_response(text: str) -> CodeAnalysis:
    """Parse a model reply into a CodeAnalysis.

    Tolerates prose around the JSON object. When the object is not valid
    JSON, the individual fields are recovered by pattern; if not even the
    verdict can be found, LLMError is raised.
    """
    start, end = text.find("{"), text.rfind("}")
    payload = text[start: end + 1] if start != -1 and end > start else text

    try:
        data = json.loads(payload)
        if not isinstance(data, dict):
            raise ValueError("response is not a JSON object")
        data["category"] = _coerce_category(data.get("category", ""))
        data["confidence"] = min(max(float(data.get("confidence", 0.5)), 0.0), 1.0)
        return CodeAnalysis.model_validate(data)
    except (ValueError, TypeError, ValidationError) as e:
        logger.debug("Analysis response is not clean JSON (%s), recovering fields", e)

    verdict = _DELETE_RE.search(text)
    if verdict is None:
        raise LLMError(f"Malformed analysis response: {text[:200]!r}")
    should_delete = verdict.group(1).lower() == "true"
    confidence = _CONFIDENCE_RE.search(text)
    reason = _REASON_RE.search(text)
    return CodeAnalysis(
        should_delete=should_delete,
        confidence=min(float(confidence.group(1)), 1.0) if confidence else 0.5,
        reason=reason.group(1) if reason else "Failed to parse LLM response",
        category=(
            AnalysisCategory.SAFE_TO_DELETE if should_delete else AnalysisCategory.NEEDS_REVIEW
        ),
    )


class LLMDeadCodeAnalyzer(DeadCodeAnalyzer):
    """Asks an LLM provider for a verdict, one node at a time.

    A batch runs on a single event loop, so the provider's async client is
    created once and reused for every node.
    """

    def __init__(self, provider: LLMProvider, max_tokens: int = 512, temperature: float = 0.0) -> None:
        self.provider = provider
        self.max_tokens = max_tokens
        self.temperature = temperature

    def analyze(self, node: CodeNode, context_text: str) -> CodeAnalysis:
        return asyncio.run(self._analyze(node, context_text))

    def analyze_batch(
        self, items: list[tuple[CodeNode, str]]
    ) -> list[CodeAnalysis | DepGraphError]:
        return asyncio.run(self._analyze_all(items))

    async def _analyze_all(
        self, items: list[tuple[CodeNode, str]]
    ) -> list[CodeAnalysis | DepGraphError]:
        results: list[CodeAnalysis | DepGraphError] = []
        for node, context_text in items:
            try:
                results.append(await self._analyze(node, context_text))
            except DepGraphError as e:
                results.append(e)
        return results

    async def _analyze(self, node: CodeNode, context_text: str) -> CodeAnalysis:
        messages = [
            Message(role="system", content=SYSTEM_PROMPT),
            Message(role="user", content=build_prompt(node, context_text)),
        ]
        response = await self.provider.complete(
            messages, temperature=self.temperature, max_tokens=self.max_tokens
        )
        return parse_analysis_response(response.content)


class RuleBasedAnalyzer(DeadCodeAnalyzer):
    """Offline verdicts from names and context markers.

    Explicit experimental or work-in-progress markers are reported above
    the default override threshold; everything else stays at or below it
    and leaves the local safety level alone.
    """

    def analyze(self, node: CodeNode, context_text: str) -> CodeAnalysis:
        name = node.name.lower()
        if name.startswith(("experimental", "exp_")):
            return CodeAnalysis(
                should_delete=False,
                confidence=0.9,
                reason="Named as experimental",
                category=AnalysisCategory.EXPERIMENTAL,
            )
        if "wip" in name or "todo" in name or re.search(r"\b(TODO|WIP|FIXME)\b", context_text):
            return CodeAnalysis(
                should_delete=False,
                confidence=0.9,
                reason="Marked as work in progress",
                category=AnalysisCategory.WORK_IN_PROGRESS,
            )
        if node.exported:
            return CodeAnalysis(
                should_delete=False,
                confidence=0.3,
                reason="Exported - may be used externally",
                category=AnalysisCategory.NEEDS_REVIEW,
            )
        return CodeAnalysis(
            should_delete=True,
            confidence=0.8,
            reason="Not exported and not used",
            category=AnalysisCategory.SAFE_TO_DELETE,
        )
