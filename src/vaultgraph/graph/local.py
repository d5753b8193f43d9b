from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath
from urllib.parse import unquote

from .models import Graph, GraphEdge, GraphNode, NodeType, strip_extension


@dataclass(frozen=True)
class Expansion:
    # Visited node ids in discovery order, origin first.
    visited: list[str]
    edges: list[GraphEdge]


def check_depth(depth: int) -> int:
    depth = int(depth)
    if depth < 0:
        raise ValueError(f"depth must be >= 0, got {depth}")
    return depth


def expand(graph: Graph, origin_id: str, depth: int) -> Expansion:
    """Breadth-first expansion from `origin_id` for `depth` levels.

    Each frontier node contributes its touching edges in source order; an edge
    to an unvisited node adds that node to the next frontier. Afterwards any
    remaining edge whose endpoints were both visited is also recorded, so the
    result is the induced subgraph on the visited set. Edges are deduplicated
    by unordered endpoint pair.

    Edge order: every discovery edge in BFS order, then the remaining edges
    between visited nodes in source edge order.
    """
    depth = check_depth(depth)
    if origin_id not in graph.node_by_id:
        return Expansion(visited=[], edges=[])

    visited = [origin_id]
    seen = {origin_id}
    recorded: list[GraphEdge] = []
    recorded_keys: set[tuple[str, str]] = set()

    def record(edge: GraphEdge) -> None:
        if edge.key not in recorded_keys:
            recorded_keys.add(edge.key)
            recorded.append(edge)

    frontier = [origin_id]
    for _ in range(depth):
        next_frontier: list[str] = []
        for node_id in frontier:
            for edge in graph.incident.get(node_id, ()):
                other = edge.other(node_id)
                if other in seen:
                    continue
                seen.add(other)
                visited.append(other)
                next_frontier.append(other)
                record(edge)
        frontier = next_frontier
        if not frontier:
            break

    if depth > 0:
        for edge in graph.edges:
            if edge.from_id in seen and edge.to_id in seen:
                record(edge)

    return Expansion(visited=visited, edges=recorded)


def resolve_center(graph: Graph, identifier: str) -> GraphNode | None:
    """Find the node a local graph is centered on.

    Tried in order: title == identifier without extension, label == bare file
    name, title == raw identifier, title == decoded identifier without
    extension, title == bare file name.
    """
    raw = identifier.strip()
    if not raw:
        return None

    decoded = unquote(raw)
    stripped_decoded = strip_extension(decoded)
    file_name = PurePosixPath(stripped_decoded).name or stripped_decoded

    strategies = (
        lambda n: n.title == strip_extension(raw),
        lambda n: n.label == file_name,
        lambda n: n.title == raw,
        lambda n: n.title == stripped_decoded,
        lambda n: n.type is NodeType.FILE and n.title == file_name,
    )
    for match in strategies:
        for node in graph.nodes:
            if match(node):
                return node
    return None


def local_graph(graph: Graph, identifier: str, depth: int = 1) -> Graph:
    """Ego-network around the node matching `identifier`, `depth` hops out.

    An unknown identifier yields an empty graph; a negative depth raises.
    """
    depth = check_depth(depth)
    center = resolve_center(graph, identifier)
    if center is None:
        return Graph.empty()

    exp = expand(graph, center.id, depth)
    return graph.subgraph(set(exp.visited), exp.edges)
