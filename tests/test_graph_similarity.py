import unittest

from bookmarkgraph.graph.similarity import batched, candidate_pairs, similar_pairs


TAGS = [
    frozenset({"rust", "cli"}),
    frozenset({"rust", "graph"}),
    frozenset({"python", "cli"}),
    frozenset({"cooking"}),
    frozenset(),
]


class TestSimilarity(unittest.TestCase):
    def test_candidates_share_a_tag_when_threshold_positive(self):
        pairs = candidate_pairs(TAGS, threshold=0.1)
        self.assertEqual(pairs, [(0, 1), (0, 2)])

    def test_zero_threshold_considers_every_pair(self):
        pairs = candidate_pairs(TAGS, threshold=0.0)
        self.assertEqual(len(pairs), 10)

    def test_groups_restrict_pairing(self):
        pairs = candidate_pairs(TAGS, groups=[[0, 2], [1, 3]], threshold=0.1)
        self.assertEqual(pairs, [(0, 2)])

    def test_scores_and_threshold(self):
        hits = similar_pairs(TAGS, threshold=0.3)
        self.assertEqual([(i, j) for i, j, _ in hits], [(0, 1), (0, 2)])
        for _, _, score in hits:
            self.assertAlmostEqual(score, 1 / 3)

        self.assertEqual(similar_pairs(TAGS, threshold=0.5), [])

    def test_parallel_matches_sequential(self):
        tags = [frozenset({f"t{i % 7}", f"t{i % 5}", "shared"}) for i in range(60)]
        seq = similar_pairs(tags, threshold=0.2, workers=1)
        par = similar_pairs(tags, threshold=0.2, workers=4, batch_size=16)
        self.assertEqual(seq, par)
        self.assertTrue(seq)

    def test_batched(self):
        self.assertEqual(list(batched([(0, 1), (0, 2), (1, 2)], 2)), [[(0, 1), (0, 2)], [(1, 2)]])
        self.assertEqual(list(batched([], 3)), [])


if __name__ == "__main__":
    unittest.main()
