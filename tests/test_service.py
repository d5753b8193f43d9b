import unittest

from vaultgraph.config import Settings
from vaultgraph.graph.models import GraphOptions
from vaultgraph.metadata.provider import MetadataUnavailable, StaticMetadataProvider
from vaultgraph.service import GraphService

from sample_vault import SAMPLE_METADATA, SCENARIO_METADATA


class FlakyProvider:
    def __init__(self, rows, exc=MetadataUnavailable):
        self.inner = StaticMetadataProvider(rows)
        self.exc = exc
        self.failing = False
        self.calls = 0

    def get_metadata(self):
        self.calls += 1
        if self.failing:
            raise self.exc("metadata source is down")
        return self.inner.get_metadata()


def make_service(providers, vault_id="Demo"):
    settings = Settings(vaults_root="/vaults", default_vault="Demo", metadata_base_url="", cache_ttl_s=300)
    return GraphService(vault_id=vault_id, settings=settings, provider_factory=lambda v: providers[v.id])


class TestGraphService(unittest.TestCase):
    def setUp(self):
        self.provider = FlakyProvider(SAMPLE_METADATA)
        self.svc = make_service({"Demo": self.provider, "Other": StaticMetadataProvider(SCENARIO_METADATA)})
        self.addCleanup(self.svc.close)

    def test_global_graph_is_cached(self):
        g1 = self.svc.get_global_graph()
        g2 = self.svc.get_global_graph()
        self.assertIs(g1, g2)
        self.assertEqual(self.provider.calls, 1)

    def test_options_are_cached_separately(self):
        full = self.svc.get_global_graph()
        files = self.svc.get_global_graph(GraphOptions(include_tags=False))
        self.assertEqual(len(full.nodes), 12)
        self.assertEqual(len(files.nodes), 5)
        self.assertEqual(self.provider.calls, 2)

    def test_queries(self):
        self.assertEqual(len(self.svc.get_local_graph("Welcome", depth=1).nodes), 5)
        self.assertEqual(len(self.svc.filter_by_tag("intro").nodes), 3)
        self.assertEqual(self.svc.get_graph_stats().average_connections, 1.83)
        self.assertEqual(self.svc.find_node("Abilities").id, "3")
        self.assertEqual(len(self.svc.get_node_neighbors("0")), 4)
        self.assertEqual(len(self.svc.get_path_between_nodes("1", "9")), 4)
        self.assertEqual(self.svc.get_most_connected_nodes(1)[0].label, "Graph-Test")
        self.assertEqual(len(self.svc.get_all_tag_nodes()), 7)
        self.assertEqual(len(self.svc.get_all_file_nodes()), 5)
        self.assertEqual([n.label for n in self.svc.get_orphaned_nodes()], ["Lonely"])
        self.assertEqual(self.svc.analyze_node_connectivity("0").total_degree, 4)

    def test_negative_depth_raises(self):
        with self.assertRaises(ValueError):
            self.svc.get_local_graph("Welcome", depth=-1)

    def test_refresh_rebuilds(self):
        self.svc.get_global_graph()
        self.svc.refresh_cache()
        self.svc.get_global_graph()
        self.assertEqual(self.provider.calls, 2)

    def test_failure_serves_last_good_graph(self):
        good = self.svc.get_global_graph()
        self.svc.refresh_cache()
        self.provider.failing = True
        with self.assertLogs("vaultgraph.service", level="WARNING"):
            again = self.svc.get_global_graph()
        self.assertIs(again, good)

    def test_failure_without_history_is_empty(self):
        self.provider.failing = True
        with self.assertLogs("vaultgraph.service", level="WARNING"):
            self.assertTrue(self.svc.get_global_graph().is_empty())
        self.assertEqual(self.svc.get_graph_stats().total_nodes, 0)

    def test_unexpected_provider_errors_degrade(self):
        provider = FlakyProvider(SAMPLE_METADATA, exc=RuntimeError)
        provider.failing = True
        svc = make_service({"Demo": provider})
        self.addCleanup(svc.close)
        with self.assertLogs("vaultgraph.service", level="WARNING"):
            self.assertTrue(svc.get_global_graph().is_empty())

    def test_empty_vault(self):
        svc = make_service({"Demo": StaticMetadataProvider([])})
        self.addCleanup(svc.close)
        self.assertTrue(svc.get_global_graph().is_empty())
        self.assertEqual(svc.get_most_connected_nodes(), [])
        self.assertEqual(
            svc.get_graph_stats().to_dict(),
            {"totalNodes": 0, "totalEdges": 0, "totalTags": 0, "orphanedNodes": 0, "averageConnections": 0.0},
        )

    def test_switch_vault(self):
        self.svc.get_global_graph()
        self.svc.switch_vault("Other")
        self.assertEqual(self.svc.current_vault()["id"], "Other")
        labels = {n.label for n in self.svc.get_global_graph().nodes}
        self.assertEqual(labels, {"A", "B", "#x"})

    def test_failure_after_switch_does_not_leak_previous_vault(self):
        flaky = FlakyProvider(SCENARIO_METADATA)
        flaky.failing = True
        svc = make_service({"Demo": self.provider, "Other": flaky})
        self.addCleanup(svc.close)
        svc.get_global_graph()
        svc.switch_vault("Other")
        with self.assertLogs("vaultgraph.service", level="WARNING"):
            self.assertTrue(svc.get_global_graph().is_empty())

    def test_cache_stats(self):
        self.svc.get_global_graph()
        stats = self.svc.get_cache_stats()
        self.assertEqual(stats["vaultId"], "Demo")
        self.assertEqual(stats["totalNodes"], 12)
        self.assertEqual(stats["cache"]["entries"], 1)

    def test_current_vault(self):
        self.assertEqual(self.svc.current_vault()["id"], "Demo")


if __name__ == "__main__":
    unittest.main()
