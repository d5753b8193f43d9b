"""Vault knowledge graph.

Builds a node/edge graph of documents and tags from per-document metadata and
answers questions about it: local graphs around one note, tag subgraphs, hubs,
orphans and shortest paths. Everything here works on immutable snapshots;
nothing does I/O.
"""
