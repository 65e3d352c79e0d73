from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import Settings
from .errors import BookmarkGraphError, ConfigError, FormatError
from .graph import GraphConfig, KnowledgeGraph, build_graph
from .graph import formats
from .graph.extract import categorize, extract_domain, extract_tags
from .records import load_bookmarks, load_history, parse_timestamp


app = typer.Typer(add_completion=False, help="Bookmark knowledge graph: domains, folders, tags and similar content.")
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    settings = Settings()
    level = logging.DEBUG if verbose else getattr(logging, str(settings.log_level).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


# Graph options shared by every command that builds a graph.
BOOKMARKS_OPT = typer.Option(None, "--bookmarks", exists=True, dir_okay=False, help="Bookmarks JSON export")
HISTORY_OPT = typer.Option(None, "--history", exists=True, dir_okay=False, help="History JSON export")
DETAIL_OPT = typer.Option(None, "--detail", help="overview, standard or detailed")
MIN_DOMAIN_OPT = typer.Option(None, "--min-domain", help="Bookmarks needed before a domain gets a node")
MAX_PER_DOMAIN_OPT = typer.Option(None, "--max-per-domain", help="Keep at most N most recent bookmarks per domain")
MAX_NODES_OPT = typer.Option(None, "--max-nodes", help="Coarsen detail until the graph fits")
SINCE_OPT = typer.Option(None, "--since", help="Only bookmarks added at or after this ISO date")
DOMAIN_ONLY_OPT = typer.Option(False, "--domain-only", help="Emit only domain nodes")
SIM_THRESHOLD_OPT = typer.Option(None, "--similarity-threshold", help="Jaccard cutoff in [0, 1]")
SIM_SCOPE_OPT = typer.Option(None, "--similarity-scope", help="all or domain")
WORKERS_OPT = typer.Option(None, "--workers", help="Threads for similarity scoring")
NO_TAGS_OPT = typer.Option(False, "--no-tags", help="Skip tag nodes")
NO_CATEGORIES_OPT = typer.Option(False, "--no-categories", help="Skip category nodes")
NO_SIMILARITY_OPT = typer.Option(False, "--no-similarity", help="Skip similarity edges")
NO_FOLDERS_OPT = typer.Option(False, "--no-folders", help="Skip folder nodes")


@app.command()
def build(
    bookmarks: Path | None = BOOKMARKS_OPT,
    history: Path | None = HISTORY_OPT,
    fmt: str = typer.Option("json", "--format", "-f", help="Output format: dot, json, gexf or html"),
    out: Path | None = typer.Option(None, "--out", "-o", help="Write to this file instead of stdout"),
    detail: str | None = DETAIL_OPT,
    min_domain: int | None = MIN_DOMAIN_OPT,
    max_per_domain: int | None = MAX_PER_DOMAIN_OPT,
    max_nodes: int | None = MAX_NODES_OPT,
    since: str | None = SINCE_OPT,
    domain_only: bool = DOMAIN_ONLY_OPT,
    similarity_threshold: float | None = SIM_THRESHOLD_OPT,
    similarity_scope: str | None = SIM_SCOPE_OPT,
    workers: int | None = WORKERS_OPT,
    no_tags: bool = NO_TAGS_OPT,
    no_categories: bool = NO_CATEGORIES_OPT,
    no_similarity: bool = NO_SIMILARITY_OPT,
    no_folders: bool = NO_FOLDERS_OPT,
    split_html: bool = typer.Option(False, "--split-html", help="With --format html, write data to a sibling .data.js file"),
):
    """Build a knowledge graph and render it."""
    config = _config_from_options(
        detail_level=detail,
        min_domain_threshold=min_domain,
        max_bookmarks_per_domain=max_per_domain,
        max_total_nodes=max_nodes,
        since=since,
        domain_only=domain_only,
        similarity_threshold=similarity_threshold,
        similarity_scope=similarity_scope,
        similarity_workers=workers,
        include_tag_edges=not no_tags,
        include_category_edges=not no_categories,
        include_similarity_edges=not no_similarity,
        include_folder_edges=not no_folders,
    )
    try:
        output_format = formats.OutputFormat(fmt.lower())
    except ValueError:
        raise typer.BadParameter(f"Unsupported format {fmt!r}", param_hint="--format") from None
    graph = _build(bookmarks, history, config)

    if split_html:
        if output_format is not formats.OutputFormat.HTML or out is None:
            raise typer.BadParameter("--split-html needs --format html and --out", param_hint="--split-html")
        data_path = out.with_name(f"{out.stem}.data.js")
        data_path.write_text(formats.to_js_data(graph), encoding="utf-8")
        out.write_text(formats.to_html_dynamic(data_path.name), encoding="utf-8")
        console.print(f"Wrote {out} and {data_path}")
    else:
        try:
            text = formats.render(graph, output_format)
        except FormatError as e:
            console.print(str(e), style="red")
            raise typer.Exit(code=2)
        if out is None:
            typer.echo(text, nl=False)
            return
        out.write_text(text, encoding="utf-8")
        console.print(f"Wrote {out}")

    _print_summary(graph)


@app.command()
def stats(
    bookmarks: Path | None = BOOKMARKS_OPT,
    history: Path | None = HISTORY_OPT,
    detail: str | None = DETAIL_OPT,
    min_domain: int | None = MIN_DOMAIN_OPT,
    max_per_domain: int | None = MAX_PER_DOMAIN_OPT,
    max_nodes: int | None = MAX_NODES_OPT,
    since: str | None = SINCE_OPT,
    domain_only: bool = DOMAIN_ONLY_OPT,
    similarity_threshold: float | None = SIM_THRESHOLD_OPT,
    similarity_scope: str | None = SIM_SCOPE_OPT,
    workers: int | None = WORKERS_OPT,
    no_tags: bool = NO_TAGS_OPT,
    no_categories: bool = NO_CATEGORIES_OPT,
    no_similarity: bool = NO_SIMILARITY_OPT,
    no_folders: bool = NO_FOLDERS_OPT,
):
    """Build a graph and print node, edge and skip counts."""
    config = _config_from_options(
        detail_level=detail,
        min_domain_threshold=min_domain,
        max_bookmarks_per_domain=max_per_domain,
        max_total_nodes=max_nodes,
        since=since,
        domain_only=domain_only,
        similarity_threshold=similarity_threshold,
        similarity_scope=similarity_scope,
        similarity_workers=workers,
        include_tag_edges=not no_tags,
        include_category_edges=not no_categories,
        include_similarity_edges=not no_similarity,
        include_folder_edges=not no_folders,
    )
    graph = _build(bookmarks, history, config)
    _print_summary(graph)

    meta = graph.metadata
    table = Table(title="Edges by Kind")
    table.add_column("kind")
    table.add_column("count", justify="right")
    for kind, n in meta.edges_by_kind.items():
        table.add_row(kind, str(n))
    console.print(table)

    if meta.items_skipped:
        t2 = Table(title="Skipped Items")
        t2.add_column("reason")
        t2.add_column("count", justify="right")
        for reason, n in sorted(meta.items_skipped.items()):
            t2.add_row(reason, str(n))
        console.print(t2)



@app.command()
def analyze(
    title: str = typer.Argument(...),
    url: str | None = typer.Option(None, "--url", help="Bookmark URL"),
):
    """Show the domain, tags and category derived for one bookmark."""
    tags = extract_tags(title, url)
    console.print(f"domain: {extract_domain(url) or '-'}", markup=False)
    console.print(f"tags: {', '.join(sorted(tags)) or '-'}", markup=False)
    console.print(f"category: {categorize(title, url, tags)}", markup=False)


def _config_from_options(*, since: str | None = None, **overrides) -> GraphConfig:
    try:
        if since:
            overrides["since"] = parse_timestamp(since)
        return Settings().graph_config(**overrides)
    except ConfigError as e:
        raise typer.BadParameter(str(e)) from e
    except ValueError as e:
        raise typer.BadParameter(f"Invalid --since: {e}", param_hint="--since") from e


def _build(bookmarks: Path | None, history: Path | None, config: GraphConfig) -> KnowledgeGraph:
    if bookmarks is None and history is None:
        raise typer.BadParameter("Provide --bookmarks and/or --history")
    try:
        b = load_bookmarks(bookmarks) if bookmarks is not None else None
        h = load_history(history) if history is not None else None
    except (OSError, ValueError) as e:
        console.print(f"Could not read input: {e}", style="red", markup=False)
        raise typer.Exit(code=2)

    try:
        return build_graph(bookmarks=b, history=h, config=config)
    except BookmarkGraphError as e:
        console.print(str(e), style="red", markup=False)
        raise typer.Exit(code=2)


def _print_summary(graph: KnowledgeGraph) -> None:
    meta = graph.metadata
    table = Table(title="Knowledge Graph")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Nodes", str(meta.total_nodes))
    table.add_row("Edges", str(meta.total_edges))
    for kind, n in meta.nodes_by_kind.items():
        table.add_row(f"  {kind}", str(n))
    table.add_row("Items seen", str(meta.items_seen))
    table.add_row("Items retained", str(meta.items_retained))
    if meta.items_capped:
        table.add_row("Capped by domain limit", str(meta.items_capped))
    detail = meta.detail_level
    if meta.degraded:
        detail = f"{detail} (requested {meta.requested_detail_level})"
    table.add_row("Detail", detail)
    console.print(table)
    if meta.node_cap_exceeded:
        console.print("Graph is still larger than --max-nodes at overview detail.", style="yellow")


if __name__ == "__main__":
    app()
