"""Shared test fixtures for DepGraph."""

from __future__ import annotations

from pathlib import Path

import pytest

from depgraph.graph.models import CodeGraph, CodeNode, DependencyEdge, EdgeKind, NodeKind


@pytest.fixture
def tmp_project(tmp_path: Path) -> Path:
    """Create a temporary project directory with sample Python files."""
    (tmp_path / "main.py").write_text('''"""Application entry point."""

from utils import helper_function, calculate_total
from models import User, Order


def main():
    user = User("Alice", "alice@example.com")
    order = Order(user, items=["widget", "gadget"])
    amount = calculate_total(order.items)
    return helper_function(amount)


def unused_helper():
    return 42


if __name__ == "__main__":
    main()
''')

    (tmp_path / "utils.py").write_text('''"""Utility functions."""

__all__ = ["helper_function", "calculate_total", "public_api"]

TAX_RATE = 0.08


def helper_function(value):
    return f"${value:.2f}"


def calculate_total(items):
    prices = {"widget": 9.99, "gadget": 24.99}
    subtotal = sum(prices.get(item, 0) for item in items)
    return subtotal + subtotal * TAX_RATE


def validate_email(email):
    return "@" in email


def legacy_formatter(value):
    return str(value)


def eval_expression(text):
    return text


def public_api():
    return helper_function(1.0)
''')

    (tmp_path / "models.py").write_text('''"""Data models."""


class User:
    def __init__(self, name, email):
        self.name = name
        self.email = email

    def is_valid(self):
        from utils import validate_email
        return validate_email(self.email)


class Order:
    def __init__(self, user, items):
        self.user = user
        self.items = items

    def summary(self):
        return f"{len(self.items)} items"
''')

    tests_dir = tmp_path / "tests"
    tests_dir.mkdir()
    (tests_dir / "test_utils.py").write_text('''from utils import calculate_total


def make_items():
    return ["widget"]


def test_calculate_total():
    assert calculate_total(["widget"]) > 0
''')

    return tmp_path


def make_node(name: str, line: int, kind: NodeKind = NodeKind.FUNCTION, **kwargs) -> CodeNode:
    """A node spanning three lines starting at `line`."""
    return CodeNode(
        name=name,
        kind=kind,
        file_path=kwargs.pop("file_path", "chain.py"),
        line_start=line,
        line_end=line + 2,
        **kwargs,
    )


@pytest.fixture
def chain_graph() -> CodeGraph:
    """a -> b -> c -> d -> e, all calls."""
    graph = CodeGraph()
    ids = [graph.add_node(make_node(name, 1 + i * 4)) for i, name in enumerate("abcde")]
    for source, target in zip(ids, ids[1:]):
        graph.add_edge(DependencyEdge(source=source, target=target, kind=EdgeKind.CALLS))
    return graph


@pytest.fixture
def triangle_graph() -> CodeGraph:
    """main -> scan, main -> detect, scan -> detect."""
    graph = CodeGraph()
    main = graph.add_node(make_node("main", 1, file_path="app.py"))
    scan = graph.add_node(make_node("scan", 5, file_path="app.py"))
    detect = graph.add_node(make_node("detect", 1, file_path="detector.py"))
    graph.add_edge(DependencyEdge(source=main, target=scan))
    graph.add_edge(DependencyEdge(source=main, target=detect))
    graph.add_edge(DependencyEdge(source=scan, target=detect))
    return graph


@pytest.fixture
def sample_python_source() -> str:
    """Sample Python source code for parser testing."""
    return '''"""Sample module."""

from typing import List
from pathlib import Path

__all__ = ["BaseProcessor", "run_pipeline"]

CONSTANT_VALUE = 42


class BaseProcessor:
    """Base class for processors."""

    def __init__(self, name: str):
        self.name = name

    def process(self, data: List[str]) -> List[str]:
        return [self._transform(item) for item in data]

    def _transform(self, item: str) -> str:
        return item.strip()


class AdvancedProcessor(BaseProcessor):
    def batch_process(self, batches):
        return [self.process(batch) for batch in batches]


def create_processor(name: str, advanced: bool = False) -> BaseProcessor:
    if advanced:
        return AdvancedProcessor(name)
    return BaseProcessor(name)


def run_pipeline(
    items: List[str],
    processor_name: str = "default",
) -> List[str]:
    processor = create_processor(processor_name)
    return processor.process(items) * CONSTANT_VALUE


run_pipeline(["a"])
'''
