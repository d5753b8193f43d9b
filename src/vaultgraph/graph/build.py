from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import PurePosixPath
from typing import Iterable

from ..metadata.records import DocumentRecord
from .models import (
    EdgeType,
    Graph,
    GraphEdge,
    GraphNode,
    GraphOptions,
    NodeType,
    pair_key,
    strip_extension,
)


logger = logging.getLogger(__name__)

ATTACHMENTS_DIR = "Attachments"


class _Builder:
    """Mutable working state for one build; frozen into a Graph at the end."""

    def __init__(self) -> None:
        self.nodes: list[GraphNode] = []
        self.edges: list[GraphEdge] = []
        self._next_id = 0

        # title -> id for File nodes, label -> id for Tag nodes.
        self._files: dict[str, str] = {}
        self._tags: dict[str, str] = {}
        # (type, unordered pair) of every edge added so far.
        self._edge_keys: set[tuple[EdgeType, tuple[str, str]]] = set()

    def _new_id(self) -> str:
        nid = str(self._next_id)
        self._next_id += 1
        return nid

    def file_id(self, title: str) -> str | None:
        return self._files.get(title)

    def add_file(self, *, title: str, label: str, path: str) -> tuple[str, bool]:
        existing = self._files.get(title)
        if existing is not None:
            return existing, False
        nid = self._new_id()
        self.nodes.append(GraphNode(id=nid, label=label, title=title, type=NodeType.FILE, path=path))
        self._files[title] = nid
        return nid, True

    def tag_id(self, tag: str) -> str:
        label = "#" + tag
        tid = self._tags.get(label)
        if tid is None:
            tid = self._new_id()
            self.nodes.append(GraphNode(id=tid, label=label, title=label, type=NodeType.TAG))
            self._tags[label] = tid
        return tid

    def add_edge(self, a: str, b: str, edge_type: EdgeType) -> bool:
        key = (edge_type, pair_key(a, b))
        if key in self._edge_keys:
            return False
        self._edge_keys.add(key)
        self.edges.append(GraphEdge(from_id=a, to_id=b, type=edge_type))
        return True


def build_graph(records: Iterable[DocumentRecord], options: GraphOptions | None = None) -> Graph:
    """Build the vault graph from document metadata.

    Pass 1 creates a File node per record and, when tags are enabled, shared
    Tag nodes with file->tag edges. Pass 2 resolves outbound links and
    backlinks against the File nodes from pass 1. Node sizes are the number of
    edges touching each node and are recomputed after filtering.
    """
    options = options or GraphOptions()
    records = list(records)
    b = _Builder()

    skipped_records = 0
    included: list[tuple[DocumentRecord, str]] = []

    for rec in records:
        if not rec.path:
            skipped_records += 1
            continue
        if not _type_allowed(rec.path, options):
            continue

        title = strip_extension(rec.path)
        label = rec.name or PurePosixPath(title).name or title
        fid, created = b.add_file(title=title, label=label, path=rec.path)
        if not created:
            logger.debug("Duplicate document title %r; merging into node %s", title, fid)
        included.append((rec, fid))

        if options.include_tags:
            for tag in rec.tags:
                b.add_edge(fid, b.tag_id(tag), EdgeType.TAG)

    for rec, fid in included:
        for link in rec.links:
            target = _resolve(b, link.target_path)
            if target is not None:
                b.add_edge(fid, target, EdgeType.LINK)

        # A backlink is an inbound link seen from the target's record.
        for backlink in rec.backlinks:
            source = _resolve(b, backlink.source_path)
            if source is not None:
                b.add_edge(source, fid, EdgeType.LINK)

    if skipped_records:
        logger.warning("Skipped %d metadata records without a path", skipped_records)

    nodes, edges = _apply_filters(b.nodes, b.edges, options)

    logger.debug(
        "Built graph: %d records, %d nodes, %d edges",
        len(records),
        len(nodes),
        len(edges),
    )
    return Graph(nodes=tuple(nodes), edges=tuple(edges))


def is_attachment(path: str) -> bool:
    return ATTACHMENTS_DIR in PurePosixPath(path).parts[:-1]


def _resolve(b: _Builder, path: str) -> str | None:
    if not path or is_attachment(path):
        return None
    return b.file_id(strip_extension(path))


def _type_allowed(path: str, options: GraphOptions) -> bool:
    if options.file_types is None:
        return True
    return PurePosixPath(path).suffix.lower() in options.file_types


def _with_sizes(nodes: list[GraphNode], edges: list[GraphEdge]) -> list[GraphNode]:
    counts: dict[str, int] = {}
    for e in edges:
        counts[e.from_id] = counts.get(e.from_id, 0) + 1
        if e.to_id != e.from_id:
            counts[e.to_id] = counts.get(e.to_id, 0) + 1
    return [replace(n, size=counts.get(n.id, 0)) for n in nodes]


def _apply_filters(
    nodes: list[GraphNode],
    edges: list[GraphEdge],
    options: GraphOptions,
) -> tuple[list[GraphNode], list[GraphEdge]]:
    nodes = _with_sizes(nodes, edges)

    if options.max_nodes and len(nodes) > options.max_nodes:
        # sorted() is stable, so ties keep build order.
        ranked = sorted(nodes, key=lambda n: n.size, reverse=True)[: options.max_nodes]
        keep = {n.id for n in ranked}
        nodes = [n for n in nodes if n.id in keep]
        edges = [e for e in edges if e.from_id in keep and e.to_id in keep]
        nodes = _with_sizes(nodes, edges)

    if not options.include_orphans:
        nodes = [n for n in nodes if n.size > 0]

    return nodes, edges
