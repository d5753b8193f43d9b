from __future__ import annotations

import json
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.text import Text

from .config import Settings
from .graph.models import Graph, GraphNode, GraphOptions
from .metadata.provider import JsonFileMetadataProvider
from .service import GraphService


app = typer.Typer(add_completion=False, help="Vault knowledge graph: links, tags, hubs and paths.")
console = Console()
err_console = Console(stderr=True)


@app.callback()
def main(
    ctx: typer.Context,
    vault: str | None = typer.Option(None, "--vault", help="Vault id (directory under VAULTGRAPH_VAULTS_ROOT)"),
    metadata: Path | None = typer.Option(
        None, "--metadata", exists=True, file_okay=True, dir_okay=False, help="Read this metadata.json instead"
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ..."),
):
    """Explore the link/tag graph of an Obsidian vault export."""
    settings = Settings()
    logging.basicConfig(
        level=(log_level or settings.log_level).upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )

    factory = None
    if metadata is not None:
        metadata_path = metadata

        def factory(_vault):
            return JsonFileMetadataProvider(metadata_path)

    try:
        ctx.obj = GraphService(vault_id=vault, settings=settings, provider_factory=factory)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--vault")
    ctx.call_on_close(ctx.obj.close)


def _service(ctx: typer.Context) -> GraphService:
    return ctx.obj


def _options(include_tags: bool, include_orphans: bool, max_nodes: int | None) -> GraphOptions:
    try:
        return GraphOptions(include_tags=include_tags, include_orphans=include_orphans, max_nodes=max_nodes)
    except ValueError as e:
        raise typer.BadParameter(str(e))


def _resolve(svc: GraphService, identifier: str) -> GraphNode:
    node = svc.find_node(identifier)
    if node is None:
        console.print(f"No node matches {identifier!r}.", style="yellow", markup=False)
        raise typer.Exit(code=2)
    return node


def _print_graph(graph: Graph, *, title: str, as_json: bool) -> None:
    if as_json:
        console.print(json.dumps(graph.to_dict(), ensure_ascii=False, indent=2), markup=False)
        return

    nodes = Table(title=f"{title}: {len(graph.nodes)} nodes")
    nodes.add_column("id", justify="right", width=6)
    nodes.add_column("type", width=5)
    nodes.add_column("label")
    nodes.add_column("size", justify="right", width=5)
    nodes.add_column("path")
    for n in graph.nodes:
        nodes.add_row(Text(n.id), Text(n.type.value), Text(n.label), Text(str(n.size)), Text(n.path or ""))
    console.print(nodes)

    by_id = graph.node_by_id
    edges = Table(title=f"{len(graph.edges)} edges")
    edges.add_column("from")
    edges.add_column("to")
    edges.add_column("type", width=5)
    for e in graph.edges:
        edges.add_row(Text(by_id[e.from_id].label), Text(by_id[e.to_id].label), Text(e.type.value))
    console.print(edges)


def _print_nodes(nodes: list[GraphNode], *, title: str) -> None:
    table = Table(title=title)
    table.add_column("#", justify="right", width=4)
    table.add_column("type", width=5)
    table.add_column("label")
    table.add_column("size", justify="right", width=5)
    table.add_column("title")
    for i, n in enumerate(nodes, start=1):
        table.add_row(Text(str(i)), Text(n.type.value), Text(n.label), Text(str(n.size)), Text(n.title))
    console.print(table)


@app.command()
def stats(ctx: typer.Context):
    """Show graph stats for the vault."""
    svc = _service(ctx)
    s = svc.get_graph_stats()

    table = Table(title=f"Vault {svc.vault.id}")
    table.add_column("Metric")
    table.add_column("Value")
    table.add_row("Nodes", str(s.total_nodes))
    table.add_row("Edges", str(s.total_edges))
    table.add_row("Tags", str(s.total_tags))
    table.add_row("Orphans", str(s.orphaned_nodes))
    table.add_row("Avg connections", f"{s.average_connections:.2f}")
    console.print(table)


@app.command()
def export(
    ctx: typer.Context,
    out: Path | None = typer.Option(None, "--out", help="Write JSON here instead of stdout"),
    include_tags: bool = typer.Option(True, "--tags/--no-tags", help="Include tag nodes"),
    include_orphans: bool = typer.Option(True, "--orphans/--no-orphans", help="Include nodes without edges"),
    max_nodes: int | None = typer.Option(None, "--max-nodes", help="Keep only the N most connected nodes"),
):
    """Export the global graph as JSON ({nodes, edges})."""
    graph = _service(ctx).get_global_graph(_options(include_tags, include_orphans, max_nodes))
    payload = json.dumps(graph.to_dict(), ensure_ascii=False, indent=2)

    if out is None:
        console.print(payload, markup=False)
        return

    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(payload + "\n", encoding="utf-8")
    console.print(f"Wrote {len(graph.nodes)} nodes and {len(graph.edges)} edges to {out}")


@app.command()
def local(
    ctx: typer.Context,
    identifier: str = typer.Argument(..., help="Document path, title or file name"),
    depth: int = typer.Option(1, "--depth", help="Hops from the center (0 = only the center)"),
    include_tags: bool = typer.Option(True, "--tags/--no-tags", help="Include tag nodes"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of tables"),
):
    """Show the local graph around one document."""
    if depth < 0:
        raise typer.BadParameter("--depth must be >= 0")

    graph = _service(ctx).get_local_graph(
        identifier, depth=depth, options=_options(include_tags, True, None)
    )
    if graph.is_empty():
        console.print(f"No document matches {identifier!r}.", style="yellow", markup=False)
        raise typer.Exit(code=2)
    _print_graph(graph, title=f"Local graph of {identifier} (depth {depth})", as_json=as_json)


@app.command()
def tag(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Tag, with or without '#'"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of tables"),
):
    """Show a tag, the documents carrying it, and links between them."""
    graph = _service(ctx).filter_by_tag(name)
    if graph.is_empty():
        console.print(f"No tag {name!r} in this vault.", style="yellow", markup=False)
        raise typer.Exit(code=2)
    _print_graph(graph, title=f"Tag {name}", as_json=as_json)


@app.command()
def node(
    ctx: typer.Context,
    identifier: str = typer.Argument(..., help="Node id, label or title"),
):
    """Look up one node."""
    n = _resolve(_service(ctx), identifier)
    console.print(json.dumps(n.to_dict(), ensure_ascii=False, indent=2), markup=False)


@app.command()
def neighbors(
    ctx: typer.Context,
    identifier: str = typer.Argument(..., help="Node id, label or title"),
    depth: int = typer.Option(1, "--depth", help="Hops to follow"),
):
    """List nodes reachable from a node within --depth hops."""
    if depth < 0:
        raise typer.BadParameter("--depth must be >= 0")
    svc = _service(ctx)
    origin = _resolve(svc, identifier)
    _print_nodes(svc.get_node_neighbors(origin.id, depth), title=f"Neighbors of {origin.label} (depth {depth})")


@app.command()
def path(
    ctx: typer.Context,
    source: str = typer.Argument(..., help="Start node id, label or title"),
    target: str = typer.Argument(..., help="End node id, label or title"),
):
    """Shortest path between two nodes (links and tags both count as hops)."""
    svc = _service(ctx)
    a = _resolve(svc, source)
    b = _resolve(svc, target)

    hops = svc.get_path_between_nodes(a.id, b.id)
    if not hops:
        console.print(f"No path between {a.label} and {b.label}.", style="yellow", markup=False)
        raise typer.Exit(code=1)
    console.print(" -> ".join(n.label for n in hops), markup=False)
    console.print(f"{len(hops) - 1} hop(s)")


@app.command()
def hubs(
    ctx: typer.Context,
    limit: int = typer.Option(10, "--limit", help="How many nodes to show"),
):
    """Most connected nodes."""
    if limit < 0:
        raise typer.BadParameter("--limit must be >= 0")
    _print_nodes(_service(ctx).get_most_connected_nodes(limit), title=f"Top {limit} hubs")


@app.command()
def orphans(ctx: typer.Context):
    """Nodes without any link or tag edge."""
    nodes = _service(ctx).get_orphaned_nodes()
    if not nodes:
        console.print("No orphaned nodes.", style="green")
        return
    _print_nodes(nodes, title=f"{len(nodes)} orphaned nodes")


@app.command()
def connectivity(
    ctx: typer.Context,
    identifier: str = typer.Argument(..., help="Node id, label or title"),
):
    """Degree report for one node."""
    svc = _service(ctx)
    n = _resolve(svc, identifier)
    c = svc.analyze_node_connectivity(n.id)

    table = Table(title=f"Connectivity of {n.label}")
    table.add_column("Metric")
    table.add_column("Value")
    table.add_row("In degree", str(c.in_degree))
    table.add_row("Out degree", str(c.out_degree))
    table.add_row("Total degree", str(c.total_degree))
    table.add_row("Tags", Text(", ".join(c.connected_tags)))
    table.add_row("Files", Text(", ".join(c.connected_files)))
    console.print(table)


@app.command()
def serve(
    ctx: typer.Context,
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port"),
):
    """Serve the graph API (FastAPI)."""
    try:
        import uvicorn
    except Exception:
        console.print("Missing web dependencies. Install: `pip install -e '.[web]'`", style="red")
        raise typer.Exit(code=2)

    from .web.server import create_app

    app_ = create_app(service=_service(ctx))
    uvicorn.run(app_, host=host, port=int(port))


if __name__ == "__main__":
    app()
