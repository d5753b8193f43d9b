from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Any


DOC_EXTENSION = ".md"


class NodeType(str, Enum):
    FILE = "file"
    TAG = "tag"


class EdgeType(str, Enum):
    LINK = "link"
    TAG = "tag"


def strip_extension(path: str) -> str:
    # Only the document extension is canonical; "v1.2" style names stay intact.
    if path.endswith(DOC_EXTENSION):
        return path[: -len(DOC_EXTENSION)]
    return path


def pair_key(a: str, b: str) -> tuple[str, str]:
    # Unordered endpoint pair: A->B and B->A share a key.
    return (a, b) if a <= b else (b, a)


@dataclass(frozen=True)
class GraphNode:
    id: str
    label: str
    title: str
    type: NodeType
    size: int = 0
    path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "title": self.title,
            "type": self.type.value,
            "size": self.size,
        }
        if self.path is not None:
            d["path"] = self.path
        return d


@dataclass(frozen=True)
class GraphEdge:
    from_id: str
    to_id: str
    type: EdgeType

    def touches(self, node_id: str) -> bool:
        return self.from_id == node_id or self.to_id == node_id

    def other(self, node_id: str) -> str:
        return self.to_id if self.from_id == node_id else self.from_id

    @property
    def key(self) -> tuple[str, str]:
        return pair_key(self.from_id, self.to_id)

    def to_dict(self) -> dict[str, Any]:
        return {"from": self.from_id, "to": self.to_id, "type": self.type.value}


@dataclass(frozen=True)
class Graph:
    """Immutable graph snapshot.

    Node ids are only meaningful within one snapshot; they are reassigned on
    every build. Long-lived references should key on (title, type) or use
    `analytics.find_node` against the current snapshot.
    """

    nodes: tuple[GraphNode, ...] = ()
    edges: tuple[GraphEdge, ...] = ()

    @classmethod
    def empty(cls) -> "Graph":
        return cls()

    def is_empty(self) -> bool:
        return not self.nodes

    @cached_property
    def node_by_id(self) -> dict[str, GraphNode]:
        return {n.id: n for n in self.nodes}

    @cached_property
    def incident(self) -> dict[str, list[GraphEdge]]:
        """node id -> touching edges, in source edge order."""
        out: dict[str, list[GraphEdge]] = {n.id: [] for n in self.nodes}
        for e in self.edges:
            out.setdefault(e.from_id, []).append(e)
            if e.to_id != e.from_id:
                out.setdefault(e.to_id, []).append(e)
        return out

    def degree(self, node_id: str) -> int:
        return len(self.incident.get(node_id, ()))

    def subgraph(self, node_ids: set[str], edges: list[GraphEdge]) -> "Graph":
        # Keep source node order.
        return Graph(
            nodes=tuple(n for n in self.nodes if n.id in node_ids),
            edges=tuple(edges),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }


@dataclass(frozen=True)
class GraphOptions:
    include_tags: bool = True
    include_orphans: bool = True
    # None or 0 means no cap.
    max_nodes: int | None = None
    # Extensions to keep, e.g. (".md",). None keeps every record.
    file_types: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        if self.max_nodes is not None and self.max_nodes < 0:
            raise ValueError(f"max_nodes must be >= 0, got {self.max_nodes}")
        if self.file_types is not None:
            norm = tuple(sorted({_norm_ext(x) for x in self.file_types if x.strip()}))
            object.__setattr__(self, "file_types", norm)


def _norm_ext(ext: str) -> str:
    ext = ext.strip().lower()
    return ext if ext.startswith(".") else "." + ext


@dataclass(frozen=True)
class GraphStats:
    total_nodes: int = 0
    total_edges: int = 0
    total_tags: int = 0
    orphaned_nodes: int = 0
    average_connections: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalNodes": self.total_nodes,
            "totalEdges": self.total_edges,
            "totalTags": self.total_tags,
            "orphanedNodes": self.orphaned_nodes,
            "averageConnections": self.average_connections,
        }


@dataclass(frozen=True)
class Connectivity:
    # in/out follow discovery direction even though edge dedup is undirected.
    in_degree: int = 0
    out_degree: int = 0
    connected_tags: list[str] = field(default_factory=list)
    connected_files: list[str] = field(default_factory=list)

    @property
    def total_degree(self) -> int:
        return self.in_degree + self.out_degree

    def to_dict(self) -> dict[str, Any]:
        return {
            "inDegree": self.in_degree,
            "outDegree": self.out_degree,
            "totalDegree": self.total_degree,
            "connectedTags": list(self.connected_tags),
            "connectedFiles": list(self.connected_files),
        }
