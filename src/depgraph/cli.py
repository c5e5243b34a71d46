"""Command-line interface for DepGraph."""

from __future__ import annotations

import functools
import json
import logging
import sys
import time
from pathlib import Path

import click
from rich.logging import RichHandler
from rich.markup import escape

from depgraph import __version__
from depgraph.config import (
    GRAPH_DB_FILE,
    ProjectConfig,
    find_project_root,
    get_depgraph_dir,
    load_config,
    save_config,
    set_config_value,
)
from depgraph.exceptions import DepGraphError
from depgraph.graph.models import CodeGraph
from depgraph.ui.console import Console

console = Console()


def _configure_logging(verbose: bool) -> None:
    logger = logging.getLogger("depgraph")
    logger.handlers.clear()
    handler = RichHandler(console=console.console, show_path=False, rich_tracebacks=verbose)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


def handle_errors(func):
    """Report library errors as a red message and a non-zero exit."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except DepGraphError as e:
            console.error(str(e))
            sys.exit(1)

    return wrapper


def _get_project_root(path: str | None = None) -> Path:
    """Find the project root or error."""
    if path:
        root = Path(path).resolve()
        if not root.exists():
            console.error(f"Path does not exist: {path}")
            sys.exit(1)
        return root

    root = find_project_root()
    if root is None:
        console.error(
            "No DepGraph project found. Run 'depgraph init' first, "
            "or specify a path with --path."
        )
        sys.exit(1)
    return root


def _load_graph(root: Path) -> CodeGraph:
    """Load the stored dependency graph."""
    from depgraph.graph.store import GraphStore

    store = GraphStore(get_depgraph_dir(root) / GRAPH_DB_FILE)
    try:
        graph = store.load()
    finally:
        store.close()
    if graph is None:
        console.error("No graph found. Run 'depgraph init' or 'depgraph scan' first.")
        sys.exit(1)
    return graph


@click.group()
@click.version_option(version=__version__, prog_name="depgraph")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
def main(verbose: bool):
    """DepGraph - dependency graphs, dead code and context for your codebase."""
    _configure_logging(verbose)


@main.command()
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option("--provider", default=None, help="LLM provider (openai, anthropic, local).")
@click.option("--model", default=None, help="LLM model name.")
@handle_errors
def init(path: str | None, provider: str | None, model: str | None):
    """Initialize DepGraph for a repository and build the dependency graph."""
    root = Path(path or ".").resolve()
    if not root.exists():
        console.error(f"Path does not exist: {root}")
        sys.exit(1)

    console.banner()
    console.info(f"Initializing DepGraph for: {root}")

    config = load_config(root)
    config.name = root.name
    config.root_path = str(root)
    if provider:
        config.llm.provider = provider
    if model:
        config.llm.model = model

    save_config(root, config)
    console.success("Configuration saved")

    _do_scan(root, config)


@main.command()
@click.option("--path", "-p", default=None, help="Path to the project root.")
@handle_errors
def scan(path: str | None):
    """Rebuild the dependency graph from scratch."""
    root = _get_project_root(path)
    _do_scan(root, load_config(root))


def _do_scan(root: Path, config: ProjectConfig) -> CodeGraph:
    """Parse the project, build the graph and persist it."""
    from depgraph.graph.builder import GraphBuilder
    from depgraph.graph.store import GraphStore

    builder = GraphBuilder()
    console.info("Scanning and parsing source files...")
    start_time = time.time()

    with console.indexing_progress() as progress:
        task = progress.add_task("Scanning...", total=None)

        def on_progress(file_path: str, current: int, total: int):
            progress.update(
                task, total=total, completed=current,
                description=f"Parsing {file_path}",
            )

        graph = builder.build_from_directory(root, config, on_progress)

    elapsed = time.time() - start_time
    stats = builder.get_stats()
    console.success(f"Scanned {builder.files_parsed} files in {elapsed:.1f}s")
    console.show_stats(stats)

    store = GraphStore(get_depgraph_dir(root) / GRAPH_DB_FILE)
    try:
        store.save(
            graph,
            metadata={
                "stats": stats.model_dump(),
                "root": str(root),
                "built_at": time.time(),
                "unresolved_sites": builder.unresolved_sites,
            },
        )
    finally:
        store.close()

    console.success("Dependency graph saved to .depgraph/")
    return graph


@main.command()
@click.option("--path", "-p", default=None, help="Path to the project root.")
@handle_errors
def status(path: str | None):
    """Show graph statistics."""
    from depgraph.graph.export import graph_stats

    root = _get_project_root(path)
    graph = _load_graph(root)
    console.banner()
    console.info(f"Project: {root.name}")
    console.show_stats(graph_stats(graph))


@main.command()
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON.")
@click.option("--llm", "use_llm", is_flag=True, help="Let the configured LLM review candidates.")
@click.option("--include-exported", is_flag=True, help="Also report unreached exported symbols.")
@handle_errors
def dead(path: str | None, as_json: bool, use_llm: bool, include_exported: bool):
    """List declarations that nothing uses."""
    from depgraph.analysis.dead_code import DeadCodeClassifier
    from depgraph.analysis.report import build_report
    from depgraph.graph.export import find_dead_cycles

    root = _get_project_root(path)
    config = load_config(root)
    graph = _load_graph(root)

    dead_config = config.dead_code.model_copy(
        update={"include_exported": include_exported or config.dead_code.include_exported}
    )
    classifier = DeadCodeClassifier(dead_config)
    candidates = classifier.classify(graph)

    if use_llm and candidates:
        from depgraph.llm.context import ContextCollector

        candidates = classifier.refine(
            candidates, _make_analyzer(config), context_provider=ContextCollector(root)
        )

    report = build_report(graph, candidates)
    if as_json:
        click.echo(report.model_dump_json(indent=2))
        return

    console.show_dead_code(candidates, report.summary)
    cycles = find_dead_cycles(graph, dead_config.entry_point_names)
    if cycles:
        console.warning(f"{len(cycles)} group(s) only reached from inside themselves:")
        for group in cycles:
            names = ", ".join(graph.nodes[nid].name for nid in group)
            console.console.print(f"    [dim]{names}[/dim]")


def _make_analyzer(config: ProjectConfig):
    from depgraph.llm.analyzer import LLMDeadCodeAnalyzer, RuleBasedAnalyzer
    from depgraph.llm.factory import create_provider

    try:
        provider = create_provider(config.llm)
        provider.ensure_available()
    except DepGraphError as e:
        console.warning(f"LLM unavailable ({escape(str(e))}); using rule-based analysis")
        return RuleBasedAnalyzer()
    return LLMDeadCodeAnalyzer(
        provider, max_tokens=config.llm.max_tokens, temperature=config.llm.temperature
    )


@main.command()
@click.argument("name")
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option("--depth", "-d", default=1, help="Levels of dependencies to follow.")
@handle_errors
def deps(name: str, path: str | None, depth: int):
    """Show what a symbol depends on. NAME may be 'Qualifier::name'."""
    from depgraph.context.engine import ContextGenerator

    root = _get_project_root(path)
    generator = ContextGenerator(_load_graph(root), root)
    console.show_dependencies(generator.get_dependencies(name, depth), f"Dependencies of {name}")


@main.command()
@click.argument("name")
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option("--depth", "-d", default=1, help="Levels of dependents to follow.")
@handle_errors
def dependents(name: str, path: str | None, depth: int):
    """Show what depends on a symbol."""
    from depgraph.context.engine import ContextGenerator

    root = _get_project_root(path)
    generator = ContextGenerator(_load_graph(root), root)
    console.show_dependencies(generator.get_dependents(name, depth), f"Dependents of {name}")


@main.command()
@click.argument("from_name")
@click.argument("to_name")
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option("--max-depth", "-d", default=5, help="Maximum number of hops.")
@handle_errors
def chain(from_name: str, to_name: str, path: str | None, max_depth: int):
    """Find the shortest call chain between two symbols."""
    from depgraph.context.engine import ContextGenerator

    root = _get_project_root(path)
    generator = ContextGenerator(_load_graph(root), root)
    console.show_call_chain(generator.get_call_chain(from_name, to_name, max_depth))


@main.command()
@click.argument("name")
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option("--depth", "-d", default=3, help="Maximum tree depth.")
@click.option(
    "--direction",
    type=click.Choice(["callee", "caller", "down", "up"]),
    default="callee",
    help="Follow callees (down) or callers (up).",
)
@handle_errors
def tree(name: str, path: str | None, depth: int, direction: str):
    """Show the call tree rooted at a symbol."""
    from depgraph.context.engine import ContextGenerator

    root = _get_project_root(path)
    generator = ContextGenerator(_load_graph(root), root)
    console.show_call_tree(generator.get_call_tree(name, depth, direction), direction)


@main.command()
@click.argument("entry", required=False)
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option("--query", "-q", default=None, help="Free-text query used when no ENTRY is given.")
@click.option("--depth", "-d", default=None, type=int, help="Dependency depth.")
@click.option("--mode", type=click.Choice(["skeleton", "full"]), default=None)
@click.option("--format", "fmt", type=click.Choice(["standard", "llm_edit"]), default=None)
@click.option("--max-tokens", default=None, type=int, help="Token budget for emitted nodes.")
@click.option("--quality", "show_quality", is_flag=True, help="Show quality figures on stderr.")
@handle_errors
def context(
    entry: str | None,
    path: str | None,
    query: str | None,
    depth: int | None,
    mode: str | None,
    fmt: str | None,
    max_tokens: int | None,
    show_quality: bool,
):
    """Generate context for an entry point. ENTRY may be 'file::name'."""
    from depgraph.context.engine import ContextGenerator
    from depgraph.context.models import ContextFormat, ContextMode

    root = _get_project_root(path)
    ctx_config = load_config(root).context
    generator = ContextGenerator(_load_graph(root), root)

    result = generator.gather_context(
        entry_point=entry,
        query=query,
        depth=ctx_config.depth if depth is None else depth,
        mode=ContextMode(mode or ctx_config.mode),
        fmt=ContextFormat(fmt or ctx_config.format),
        max_tokens=ctx_config.max_tokens if max_tokens is None else max_tokens,
    )
    click.echo(result.content, nl=False)
    if show_quality:
        from rich.console import Console as RichConsole

        Console(RichConsole(stderr=True)).show_context_quality(
            result.quality, result.omitted_count
        )


@main.command()
@click.argument("query")
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option("--top-k", "-k", default=None, type=int, help="Number of seed matches.")
@click.option("--depth", "-d", default=None, type=int, help="Graph expansion depth.")
@click.option("--semantic", is_flag=True, help="Seed with embeddings instead of names.")
@click.option("--no-filter", is_flag=True, help="Keep generic names among neighbours.")
@click.option("--explain", is_flag=True, help="Show how each result was reached.")
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON.")
@handle_errors
def search(
    query: str,
    path: str | None,
    top_k: int | None,
    depth: int | None,
    semantic: bool,
    no_filter: bool,
    explain: bool,
    as_json: bool,
):
    """Search symbols by name and expand through the graph."""
    from depgraph.search.graph_search import GraphSearcher

    root = _get_project_root(path)
    config = load_config(root)
    graph = _load_graph(root)
    searcher = GraphSearcher(graph, config.search, config.traversal)

    if semantic:
        results = _semantic_search(root, config, graph, searcher, query, top_k, depth)
    else:
        results = searcher.search(query, top_k, depth, filter_generic=not no_filter)

    if as_json:
        click.echo(json.dumps([r.model_dump(mode="json") for r in results], indent=2))
    else:
        console.show_search_results(results, explain=explain)


def _semantic_search(root, config, graph, searcher, query, top_k, depth):
    from depgraph.search.embedding_cache import EmbeddingCache
    from depgraph.search.embeddings import create_embedder

    try:
        embedder = create_embedder(config.embedding)
        cache = EmbeddingCache.load_or_build(root, graph, embedder)
    except DepGraphError as e:
        console.warning(f"Embeddings unavailable ({e}); using name search")
        return searcher.search(query, top_k, depth)
    return searcher.search_semantic(query, cache, embedder, top_k, depth)


@main.command()
@click.argument("output", type=click.Path())
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option(
    "--format", "fmt", type=click.Choice(["json", "graphml", "dot"]), default="json",
    help="Output format.",
)
@handle_errors
def export(output: str, path: str | None, fmt: str):
    """Export the dependency graph."""
    from depgraph.graph.export import export_graph

    root = _get_project_root(path)
    written = export_graph(_load_graph(root), output, fmt)
    console.success(f"Exported graph to {written}")


@main.command("config")
@click.argument("action", type=click.Choice(["set", "get", "show"]))
@click.argument("key", required=False)
@click.argument("value", required=False)
@click.option("--path", "-p", default=None, help="Path to the project root.")
@handle_errors
def config_cmd(action: str, key: str | None, value: str | None, path: str | None):
    """Manage DepGraph configuration."""
    root = _get_project_root(path)
    config = load_config(root)

    if action == "show":
        console.console.print_json(json.dumps(config.model_dump(), indent=2))
    elif action == "get":
        if not key:
            console.error("Usage: depgraph config get <key>")
            sys.exit(1)
        data = config.model_dump()
        for part in key.split("."):
            if isinstance(data, dict) and part in data:
                data = data[part]
            else:
                console.error(f"Unknown key: {key}")
                sys.exit(1)
        console.console.print(f"{key} = {data}")
    elif action == "set":
        if not key or value is None:
            console.error("Usage: depgraph config set <key> <value>")
            sys.exit(1)
        try:
            # Try to parse as JSON for non-string values
            try:
                parsed_value = json.loads(value)
            except json.JSONDecodeError:
                parsed_value = value

            config = set_config_value(config, key, parsed_value)
            save_config(root, config)
            console.success(f"Set {key} = {parsed_value}")
        except KeyError:
            console.error(f"Unknown config key: {key}")
            sys.exit(1)


if __name__ == "__main__":
    main()
