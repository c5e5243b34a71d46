"""Dead code analysis."""

from depgraph.analysis.dead_code import (
    AnalysisCategory,
    CodeAnalysis,
    DeadCode,
    DeadCodeAnalyzer,
    DeadCodeClassifier,
    SafetyLevel,
)
from depgraph.analysis.report import ScanReport, build_report

__all__ = [
    "AnalysisCategory",
    "CodeAnalysis",
    "DeadCode",
    "DeadCodeAnalyzer",
    "DeadCodeClassifier",
    "SafetyLevel",
    "ScanReport",
    "build_report",
]
