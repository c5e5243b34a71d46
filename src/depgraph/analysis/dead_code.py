"""Reachability-based dead code detection with heuristic safety levels."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum

from pydantic import BaseModel, Field

from depgraph.config import DeadCodeConfig
from depgraph.exceptions import DepGraphError
from depgraph.graph.models import CodeGraph, CodeNode

logger = logging.getLogger("depgraph.analysis")


class SafetyLevel(str, Enum):
    """How safe it is to delete an unreached declaration."""

    DEFINITELY_SAFE = "definitely_safe"
    PROBABLY_SAFE = "probably_safe"
    NEEDS_REVIEW = "needs_review"


class AnalysisCategory(str, Enum):
    """Categories an analyzer may assign to a candidate."""

    SAFE_TO_DELETE = "SafeToDelete"
    KEEP_FOR_FUTURE = "KeepForFuture"
    EXPERIMENTAL = "Experimental"
    WORK_IN_PROGRESS = "WorkInProgress"
    NEEDS_REVIEW = "NeedsReview"


class CodeAnalysis(BaseModel):
    """An analyzer's verdict on one candidate."""

    should_delete: bool
    confidence: float = Field(ge=0.0, le=1.0)
    reason: str = ""
    category: AnalysisCategory = AnalysisCategory.NEEDS_REVIEW


class DeadCode(BaseModel):
    """A deletion candidate."""

    node: CodeNode
    safety_level: SafetyLevel
    reason: str
    analysis: CodeAnalysis | None = None


class DeadCodeAnalyzer(ABC):
    """Capability that judges a candidate from its surrounding context."""

    @abstractmethod
    def analyze(self, node: CodeNode, context_text: str) -> CodeAnalysis:
        """Return a verdict for `node`. May raise DepGraphError subclasses."""
        ...

    def analyze_batch(
        self, items: list[tuple[CodeNode, str]]
    ) -> list[CodeAnalysis | DepGraphError]:
        """Verdicts for several nodes, in order.

        A failed node yields its error in place of a verdict.
        """
        results: list[CodeAnalysis | DepGraphError] = []
        for node, context_text in items:
            try:
                results.append(self.analyze(node, context_text))
            except DepGraphError as e:
                results.append(e)
        return results


ContextProvider = Callable[[CodeNode], str]


class DeadCodeClassifier:
    """Finds declarations that nothing targets.

    A node counts as used iff some edge targets it, top-level usages
    included. Entry points are never candidates. Exported nodes are
    skipped unless `include_exported` is set, in which case they are
    reported for review only.
    """

    def __init__(self, config: DeadCodeConfig | None = None) -> None:
        self.config = config or DeadCodeConfig()
        self._entry_points = set(self.config.entry_point_names)

    def is_entry_point(self, node: CodeNode) -> bool:
        """Configured entry-point names, plus dunder methods the runtime invokes."""
        name = node.name
        if name in self._entry_points:
            return True
        return len(name) > 4 and name.startswith("__") and name.endswith("__")

    def classify(self, graph: CodeGraph) -> list[DeadCode]:
        candidates = []
        for node in graph.nodes.values():
            if graph.is_targeted(node.id) or self.is_entry_point(node):
                continue
            if node.exported:
                if self.config.include_exported:
                    candidates.append(
                        DeadCode(
                            node=node,
                            safety_level=SafetyLevel.NEEDS_REVIEW,
                            reason="Exported - may be used externally",
                        )
                    )
                continue
            level, reason = self.assess_safety(node)
            candidates.append(DeadCode(node=node, safety_level=level, reason=reason))
        logger.info("Found %d dead code candidates in %d nodes", len(candidates), graph.node_count)
        return candidates

    def assess_safety(self, node: CodeNode) -> tuple[SafetyLevel, str]:
        """Ordered heuristics: test path, then dynamic-looking name, then safe."""
        path = node.file_path.lower()
        if any(marker in path for marker in self.config.test_path_indicators):
            return SafetyLevel.NEEDS_REVIEW, "Test file - may be used in tests"

        name = node.name.lower()
        if any(marker in name for marker in self.config.dynamic_name_indicators):
            return SafetyLevel.PROBABLY_SAFE, "Possible dynamic call pattern"

        return SafetyLevel.DEFINITELY_SAFE, "Not exported, no references found"

    def refine(
        self,
        candidates: list[DeadCode],
        analyzer: DeadCodeAnalyzer,
        context_provider: ContextProvider | None = None,
        threshold: float | None = None,
    ) -> list[DeadCode]:
        """Let `analyzer` override safety levels it is confident about.

        A verdict only replaces the local level when its confidence is
        strictly above `threshold`. All candidates go to the analyzer as one
        batch; a failed candidate keeps the local result.
        """
        if threshold is None:
            threshold = self.config.llm_confidence_threshold

        refined = []
        items = [
            (item.node, context_provider(item.node) if context_provider else "")
            for item in candidates
        ]
        for item, analysis in zip(candidates, analyzer.analyze_batch(items)):
            if isinstance(analysis, DepGraphError):
                logger.warning(
                    "Analysis failed for %s (%s), keeping local verdict: %s",
                    item.node.name, item.node.location, analysis,
                )
                refined.append(item)
                continue

            if analysis.confidence > threshold:
                level = (
                    SafetyLevel.DEFINITELY_SAFE if analysis.should_delete
                    else SafetyLevel.NEEDS_REVIEW
                )
                refined.append(
                    item.model_copy(
                        update={
                            "safety_level": level,
                            "reason": f"{analysis.reason} "
                                      f"({analysis.category.value}, {analysis.confidence:.2f})",
                            "analysis": analysis,
                        }
                    )
                )
            else:
                refined.append(item.model_copy(update={"analysis": analysis}))
        return refined


def group_by_safety(candidates: list[DeadCode]) -> dict[SafetyLevel, list[DeadCode]]:
    groups: dict[SafetyLevel, list[DeadCode]] = {level: [] for level in SafetyLevel}
    for item in candidates:
        groups[item.safety_level].append(item)
    return groups
