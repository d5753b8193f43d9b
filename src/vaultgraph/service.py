from __future__ import annotations

import logging
from typing import Any, Callable

from .config import Settings, VaultConfig, vault_config
from .graph import analytics
from .graph.build import build_graph
from .graph.cache import GraphCache
from .graph.local import check_depth, local_graph
from .graph.models import Connectivity, Graph, GraphNode, GraphOptions, GraphStats
from .graph.tags import filter_by_tag
from .metadata.provider import MetadataProvider, MetadataUnavailable, provider_for_vault


logger = logging.getLogger(__name__)

ProviderFactory = Callable[[VaultConfig], MetadataProvider]


class GraphService:
    """Knowledge graph of one vault.

    Each instance owns its vault selection, metadata provider and graph cache,
    so several vaults can be served side by side. Metadata failures never
    propagate: queries see the last good graph for the vault, or an empty one.
    """

    def __init__(
        self,
        *,
        vault_id: str | None = None,
        settings: Settings | None = None,
        provider_factory: ProviderFactory | None = None,
        cache: GraphCache | None = None,
    ):
        self.settings = settings or Settings()
        self._provider_factory = provider_factory or (lambda v: provider_for_vault(v, self.settings))
        self.cache = cache or GraphCache(
            ttl_s=self.settings.cache_ttl_s,
            build_timeout_s=self.settings.build_timeout_s,
        )
        self.vault = vault_config(vault_id, self.settings)
        self.provider = self._provider_factory(self.vault)

    # Graphs

    def get_global_graph(self, options: GraphOptions | None = None) -> Graph:
        options = options or GraphOptions()
        try:
            return self.cache.get(options, lambda: self._build(options))
        except MetadataUnavailable as e:
            previous = self.cache.peek(options)
            if previous is not None:
                logger.warning("Metadata unavailable for vault %s (%s); using last good graph", self.vault.id, e)
                return previous
            logger.warning("Metadata unavailable for vault %s (%s); returning empty graph", self.vault.id, e)
            return Graph.empty()

    def get_local_graph(self, identifier: str, *, depth: int = 1, options: GraphOptions | None = None) -> Graph:
        depth = check_depth(depth)
        return local_graph(self.get_global_graph(options), identifier, depth)

    def filter_by_tag(self, tag: str, options: GraphOptions | None = None) -> Graph:
        return filter_by_tag(self.get_global_graph(options), tag)

    def get_graph_stats(self) -> GraphStats:
        return analytics.graph_stats(self.get_global_graph())

    # Queries

    def find_node(self, identifier: str) -> GraphNode | None:
        return analytics.find_node(self.get_global_graph(), identifier)

    def get_node_neighbors(self, node_id: str, depth: int = 1) -> list[GraphNode]:
        return analytics.neighbors(self.get_global_graph(), node_id, depth)

    def get_path_between_nodes(self, from_id: str, to_id: str) -> list[GraphNode]:
        return analytics.shortest_path(self.get_global_graph(), from_id, to_id)

    def get_most_connected_nodes(self, limit: int = 10) -> list[GraphNode]:
        return analytics.most_connected(self.get_global_graph(), limit)

    def get_all_tag_nodes(self) -> list[GraphNode]:
        return analytics.tag_nodes(self.get_global_graph())

    def get_all_file_nodes(self) -> list[GraphNode]:
        return analytics.file_nodes(self.get_global_graph())

    def get_orphaned_nodes(self) -> list[GraphNode]:
        return analytics.orphans(self.get_global_graph())

    def analyze_node_connectivity(self, node_id: str) -> Connectivity:
        return analytics.connectivity_of(self.get_global_graph(), node_id)

    # Cache and vault management

    def refresh_cache(self) -> None:
        self.cache.invalidate()

    def get_cache_stats(self) -> dict[str, Any]:
        return {
            "vaultId": self.vault.id,
            **self.get_graph_stats().to_dict(),
            "cache": self.cache.stats(),
        }

    def switch_vault(self, vault_id: str) -> None:
        vault = vault_config(vault_id, self.settings)
        provider = self._provider_factory(vault)
        self.vault = vault
        self.provider = provider
        # Builds started against the old provider carry the old generation and
        # are dropped on publish.
        self.cache.clear()
        logger.info("Switched to vault %s", vault.id)

    def current_vault(self) -> dict[str, str]:
        return {"id": self.vault.id, "path": str(self.vault.path)}

    def close(self) -> None:
        self.cache.close()

    def _build(self, options: GraphOptions) -> Graph:
        try:
            records = self.provider.get_metadata()
        except MetadataUnavailable:
            raise
        except Exception as e:
            raise MetadataUnavailable(f"Metadata provider failed: {e}") from e

        if not records:
            logger.info("Vault %s has no metadata records", self.vault.id)
            return Graph.empty()
        return build_graph(records, options)
