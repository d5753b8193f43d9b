from __future__ import annotations

from .models import Graph, GraphEdge, NodeType


def normalize_tag(tag: str) -> str:
    t = tag.strip()
    return t if t.startswith("#") else "#" + t


def filter_by_tag(graph: Graph, tag: str) -> Graph:
    """The tag node, every node one hop from it, and links among those files."""
    label = normalize_tag(tag)
    tag_node = next((n for n in graph.nodes if n.type is NodeType.TAG and n.label == label), None)
    if tag_node is None:
        return Graph.empty()

    keep = {tag_node.id}
    edges: list[GraphEdge] = []
    keys: set[tuple[str, str]] = set()

    for e in graph.incident.get(tag_node.id, ()):
        keep.add(e.other(tag_node.id))
        if e.key not in keys:
            keys.add(e.key)
            edges.append(e)

    by_id = graph.node_by_id
    for e in graph.edges:
        if e.touches(tag_node.id) or e.from_id not in keep or e.to_id not in keep:
            continue
        if by_id[e.from_id].type is not NodeType.FILE or by_id[e.to_id].type is not NodeType.FILE:
            continue
        if e.key not in keys:
            keys.add(e.key)
            edges.append(e)

    return graph.subgraph(keep, edges)
