"""Read-only queries over a graph snapshot (hubs, orphans, paths, degrees)."""

from __future__ import annotations

from collections import deque
from decimal import ROUND_HALF_UP, Decimal

from .local import expand
from .models import Connectivity, Graph, GraphNode, GraphStats, NodeType, strip_extension


def find_node(graph: Graph, identifier: str) -> GraphNode | None:
    """Match by id, then label, then raw title, then title without extension."""
    by_id = graph.node_by_id.get(identifier)
    if by_id is not None:
        return by_id

    stripped = strip_extension(identifier)
    for match in (
        lambda n: n.label == identifier,
        lambda n: n.title == identifier,
        lambda n: n.title == stripped,
    ):
        node = next((n for n in graph.nodes if match(n)), None)
        if node is not None:
            return node
    return None


def neighbors(graph: Graph, node_id: str, depth: int = 1) -> list[GraphNode]:
    exp = expand(graph, node_id, depth)
    by_id = graph.node_by_id
    return [by_id[nid] for nid in exp.visited[1:]]


def shortest_path(graph: Graph, from_id: str, to_id: str) -> list[GraphNode]:
    """Unweighted shortest path, treating every edge as undirected.

    Returns [] when either node is unknown or no path exists.
    """
    by_id = graph.node_by_id
    if from_id not in by_id or to_id not in by_id:
        return []
    if from_id == to_id:
        return [by_id[from_id]]

    parent: dict[str, str] = {}
    seen = {from_id}
    queue = deque([from_id])

    while queue:
        current = queue.popleft()
        for edge in graph.incident.get(current, ()):
            nxt = edge.other(current)
            if nxt in seen:
                continue
            seen.add(nxt)
            parent[nxt] = current
            if nxt == to_id:
                path = [nxt]
                while path[-1] != from_id:
                    path.append(parent[path[-1]])
                return [by_id[nid] for nid in reversed(path)]
            queue.append(nxt)

    return []


def most_connected(graph: Graph, limit: int = 10) -> list[GraphNode]:
    limit = int(limit)
    if limit < 0:
        raise ValueError(f"limit must be >= 0, got {limit}")
    # Stable sort: equal degrees keep graph order.
    ranked = sorted(graph.nodes, key=lambda n: graph.degree(n.id), reverse=True)
    return ranked[:limit]


def orphans(graph: Graph) -> list[GraphNode]:
    return [n for n in graph.nodes if graph.degree(n.id) == 0]


def tag_nodes(graph: Graph) -> list[GraphNode]:
    return [n for n in graph.nodes if n.type is NodeType.TAG]


def file_nodes(graph: Graph) -> list[GraphNode]:
    return [n for n in graph.nodes if n.type is NodeType.FILE]


def connectivity_of(graph: Graph, node_id: str) -> Connectivity:
    """Degree report for one node.

    In/out degree follow each edge's stored direction (the order it was
    discovered in), while duplicate detection treats A->B and B->A as the
    same edge. A self-loop counts once in each direction.
    """
    by_id = graph.node_by_id
    in_degree = 0
    out_degree = 0
    tags: dict[str, None] = {}
    files: dict[str, None] = {}

    def note(other_id: str) -> None:
        other = by_id.get(other_id)
        if other is None:
            return
        bucket = tags if other.type is NodeType.TAG else files
        bucket[other.label] = None

    for e in graph.incident.get(node_id, ()):
        if e.from_id == node_id:
            out_degree += 1
            note(e.to_id)
        if e.to_id == node_id:
            in_degree += 1
            note(e.from_id)

    return Connectivity(
        in_degree=in_degree,
        out_degree=out_degree,
        connected_tags=list(tags),
        connected_files=list(files),
    )


def graph_stats(graph: Graph) -> GraphStats:
    total_nodes = len(graph.nodes)
    total_edges = len(graph.edges)
    avg = (2 * total_edges / total_nodes) if total_nodes else 0.0
    return GraphStats(
        total_nodes=total_nodes,
        total_edges=total_edges,
        total_tags=len(tag_nodes(graph)),
        orphaned_nodes=len(orphans(graph)),
        average_connections=_round2(avg),
    )


def _round2(value: float) -> float:
    # Half-up on the shortest decimal repr, so 0.125 -> 0.13.
    return float(Decimal(repr(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
