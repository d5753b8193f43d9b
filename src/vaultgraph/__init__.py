"""vaultgraph: knowledge graph of an Obsidian-style note vault."""
