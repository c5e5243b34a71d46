"""Rich-powered console output for DepGraph."""

from __future__ import annotations

from rich.console import Console as RichConsole
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table
from rich.tree import Tree

from depgraph import __version__
from depgraph.analysis.dead_code import DeadCode, SafetyLevel, group_by_safety
from depgraph.analysis.report import ReportSummary
from depgraph.context.models import (
    CallChainResult,
    CallTreeNode,
    ContextQuality,
    DependencyInfo,
)
from depgraph.graph.models import GraphStats
from depgraph.search.graph_search import GraphSearchResult, MatchType

_SAFETY_STYLES = {
    SafetyLevel.DEFINITELY_SAFE: "green",
    SafetyLevel.PROBABLY_SAFE: "yellow",
    SafetyLevel.NEEDS_REVIEW: "red",
}

_QUALITY_STYLES = {"high": "green", "medium": "yellow", "low": "red"}


class Console:
    """Terminal output for DepGraph using Rich."""

    def __init__(self, console: RichConsole | None = None) -> None:
        self.console = console or RichConsole()

    def banner(self) -> None:
        """Show the DepGraph banner."""
        self.console.print(
            Panel(
                f"[bold cyan]DepGraph[/bold cyan] [dim]v{__version__}[/dim]\n"
                "[dim]Dependency graphs, dead code and context for your codebase[/dim]",
                border_style="cyan",
                padding=(1, 2),
            )
        )

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {message}")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]![/yellow] {message}")

    def info(self, message: str) -> None:
        self.console.print(f"[blue]i[/blue] {message}")

    def indexing_progress(self) -> Progress:
        """Create a progress bar for scanning."""
        return Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            console=self.console,
        )

    def show_stats(self, stats: GraphStats) -> None:
        """Display graph statistics in a table."""
        table = Table(title="Dependency Graph Statistics", border_style="cyan")
        table.add_column("Metric", style="bold")
        table.add_column("Count", justify="right", style="cyan")

        table.add_row("Files", str(stats.files))
        table.add_row("Functions/Methods", str(stats.functions))
        table.add_row("Classes", str(stats.classes))
        table.add_row("Total Nodes", str(stats.total_nodes))
        table.add_row("Total Edges", str(stats.total_edges))
        table.add_row("Top-level Usages", str(stats.top_level_usages))
        table.add_row("Components", str(stats.components))
        table.add_row("Recursive Groups", str(stats.recursive_groups))

        if stats.edge_kinds:
            table.add_section()
            for kind, count in sorted(stats.edge_kinds.items(), key=lambda x: -x[1]):
                table.add_row(f"  {kind} edges", str(count))

        self.console.print(table)

    def show_dead_code(self, dead: list[DeadCode], summary: ReportSummary | None = None) -> None:
        """Display dead code candidates grouped by safety level."""
        if not dead:
            self.success("No dead code found")
            return

        for level, items in group_by_safety(dead).items():
            if not items:
                continue
            style = _SAFETY_STYLES[level]
            table = Table(
                title=f"[{style}]{level.value}[/{style}] ({len(items)})",
                border_style=style,
                title_justify="left",
            )
            table.add_column("Name", style="bold", no_wrap=True)
            table.add_column("Kind", style="dim")
            table.add_column("Location", style="cyan")
            table.add_column("Reason")
            for item in items:
                node = item.node
                table.add_row(
                    node.name,
                    node.kind.value,
                    f"{node.file_path}:{node.line_start}-{node.line_end}",
                    item.reason,
                )
            self.console.print(table)

        if summary is not None:
            self.console.print(
                f"\n[bold]{summary.dead_code_count}[/bold] candidates, "
                f"{summary.dead_code_lines} lines "
                f"([cyan]{summary.reduction_percent:.1f}%[/cyan] of functions)"
            )

    def show_dependencies(self, deps: list[DependencyInfo], title: str) -> None:
        if not deps:
            self.warning(f"No results for {title}")
            return
        table = Table(title=title, border_style="cyan")
        table.add_column("Name", style="bold", no_wrap=True)
        table.add_column("Kind", style="dim")
        table.add_column("Location", style="cyan")
        for dep in deps:
            table.add_row(dep.name, dep.node_type, f"{dep.file_path}:{dep.line}")
        self.console.print(table)

    def show_call_chain(self, result: CallChainResult) -> None:
        if not result.found:
            self.warning(f"No call chain from '{result.from_name}' to '{result.to_name}'")
            return
        self.console.print(
            f"[bold]Call chain[/bold] ({len(result.chain) - 1} hops):"
        )
        for i, step in enumerate(result.chain):
            arrow = "  " if i == 0 else "→ "
            self.console.print(
                f"  {arrow}[bold]{step.name}[/bold] [dim]({step.node_type})[/dim] "
                f"at [cyan]{step.file_path}:{step.line}[/cyan]"
            )

    def show_call_tree(self, nodes: list[CallTreeNode], direction: str = "callee") -> None:
        """Render a flattened pre-order call tree."""
        if not nodes:
            self.warning("Symbol not found")
            return
        root = nodes[0]
        label = "calls" if direction in ("callee", "down") else "called by"
        tree = Tree(
            f"[bold cyan]{root.name}[/bold cyan] [dim]({label})[/dim] "
            f"at [cyan]{root.file_path}:{root.line}[/cyan]"
        )
        depth_nodes: dict[int, Tree] = {0: tree}
        for entry in nodes[1:]:
            parent = depth_nodes.get(entry.depth - 1, tree)
            depth_nodes[entry.depth] = parent.add(
                f"[bold]{entry.name}[/bold] [dim]({entry.node_type})[/dim] "
                f"at [cyan]{entry.file_path}:{entry.line}[/cyan]"
            )
        self.console.print(tree)

    def show_search_results(self, results: list[GraphSearchResult], explain: bool = False) -> None:
        """Display search results, optionally with their traces."""
        if not results:
            self.warning("No matches")
            return
        for r in results:
            hit = "[green]hit[/green]" if r.match_type == MatchType.DIRECT_HIT else "[dim]near[/dim]"
            self.console.print(
                f"  {r.score:.3f} {hit} [bold]{r.name}[/bold] "
                f"[dim]({r.node_type}, depth {r.depth})[/dim] "
                f"at [cyan]{r.file_path}:{r.line_start}[/cyan]"
            )
            if explain:
                for step in r.explanation.trace:
                    via = f" via {step.edge} ({step.direction})" if step.edge else ""
                    self.console.print(f"      [dim]{step.reason}: {step.node}{via}[/dim]")

    def show_context_quality(self, quality: ContextQuality, omitted: int = 0) -> None:
        style = _QUALITY_STYLES.get(quality.quality_level, "white")
        lines = [
            f"[bold]Quality:[/bold] [{style}]{quality.quality_level}[/{style}]",
            f"[bold]S/N ratio:[/bold] {quality.sn_ratio:.2f}",
            f"[bold]Concept density:[/bold] {quality.concept_density:.2f}",
            f"[bold]Nodes:[/bold] {quality.dependency_count}",
            f"[bold]Estimated tokens:[/bold] {quality.estimated_tokens}",
            f"[bold]Entry point ratio:[/bold] {quality.entry_point_ratio:.1%}",
        ]
        if omitted:
            lines.append(f"[bold]Omitted (budget):[/bold] {omitted}")
        if quality.recommendation:
            lines.append(f"\n[yellow]{quality.recommendation}[/yellow]")
        self.console.print(
            Panel("\n".join(lines), title="[bold]Context Quality[/bold]", border_style=style)
        )
