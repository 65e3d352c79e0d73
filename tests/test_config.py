import os
import unittest
from unittest import mock

from bookmarkgraph.config import Settings
from bookmarkgraph.errors import ConfigError
from bookmarkgraph.graph import DetailLevel


class TestSettings(unittest.TestCase):
    def test_defaults(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            cfg = Settings().graph_config()
        self.assertIs(cfg.detail_level, DetailLevel.STANDARD)
        self.assertEqual(cfg.min_domain_threshold, 2)
        self.assertIsNone(cfg.max_total_nodes)
        self.assertAlmostEqual(cfg.similarity_threshold, 0.3)

    def test_reads_environment(self):
        env = {
            "BOOKMARKGRAPH_DETAIL_LEVEL": "detailed",
            "BOOKMARKGRAPH_MIN_DOMAIN_THRESHOLD": "3",
            "BOOKMARKGRAPH_MAX_PER_DOMAIN": "10",
            "BOOKMARKGRAPH_MAX_TOTAL_NODES": "500",
            "BOOKMARKGRAPH_SIMILARITY_THRESHOLD": "0.5",
            "BOOKMARKGRAPH_SIMILARITY_WORKERS": "4",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            cfg = Settings().graph_config()
        self.assertIs(cfg.detail_level, DetailLevel.DETAILED)
        self.assertEqual(cfg.min_domain_threshold, 3)
        self.assertEqual(cfg.max_bookmarks_per_domain, 10)
        self.assertEqual(cfg.max_total_nodes, 500)
        self.assertEqual(cfg.similarity_threshold, 0.5)
        self.assertEqual(cfg.similarity_workers, 4)

    def test_overrides_win_and_none_is_ignored(self):
        s = Settings(detail_level="detailed", min_domain_threshold="5")
        cfg = s.graph_config(detail_level="overview", min_domain_threshold=None, domain_only=True)
        self.assertIs(cfg.detail_level, DetailLevel.OVERVIEW)
        self.assertEqual(cfg.min_domain_threshold, 5)
        self.assertTrue(cfg.domain_only)

    def test_bad_values_raise_config_error(self):
        with self.assertRaises(ConfigError):
            Settings(min_domain_threshold="two").graph_config()
        with self.assertRaises(ConfigError):
            Settings(similarity_threshold="high").graph_config()
        with self.assertRaises(ConfigError):
            Settings(similarity_threshold="2.0").graph_config()
        with self.assertRaises(ConfigError):
            Settings().graph_config(no_such_option=1)


if __name__ == "__main__":
    unittest.main()
