import unittest

from bookmarkgraph.graph.extract import (
    UNCATEGORIZED,
    categorize,
    extract_domain,
    extract_tags,
    jaccard_similarity,
    normalize_url,
    slugify,
)


class TestExtractTags(unittest.TestCase):
    def test_title_and_url_segments(self):
        tags = extract_tags("Rust CLI tools", "https://github.com/rust-lang/rust/issues/123")
        self.assertEqual(tags, {"rust", "cli", "tools", "rust-lang", "issues"})

    def test_drops_short_tokens_and_stop_words(self):
        tags = extract_tags("How to do it in Go", None)
        self.assertEqual(tags, set())

    def test_strips_file_extension_from_segments(self):
        tags = extract_tags("", "https://example.com/guides/setup.html")
        self.assertEqual(tags, {"guides", "setup"})

    def test_empty_input_is_empty_set(self):
        self.assertEqual(extract_tags("", None), set())


class TestExtractDomain(unittest.TestCase):
    def test_strips_www_and_lowercases(self):
        self.assertEqual(extract_domain("https://www.GitHub.com/x"), "github.com")

    def test_malformed_urls_yield_none(self):
        self.assertIsNone(extract_domain("not a url"))
        self.assertIsNone(extract_domain("http://[::1"))
        self.assertIsNone(extract_domain(None))
        self.assertIsNone(extract_domain(""))


class TestCategorize(unittest.TestCase):
    def test_first_matching_rule_wins(self):
        # "python" (Development) outranks "learn" (Education).
        self.assertEqual(categorize("Learn Python the hard way"), "Development")

    def test_keyword_groups(self):
        self.assertEqual(categorize("Deep learning course"), "Education")
        self.assertEqual(categorize("BBC News front"), "News")
        self.assertEqual(categorize("Buy cheap shoes"), "Shopping")
        self.assertEqual(categorize("Intro", "https://github.com/a"), "Development")

    def test_tags_take_part_in_matching(self):
        self.assertEqual(categorize("Untitled", None, {"terraform"}), "Cloud & DevOps")

    def test_plural_keywords_match(self):
        self.assertEqual(categorize("Free courses online"), "Education")

    def test_no_match(self):
        self.assertEqual(categorize("Grandma's recipes"), UNCATEGORIZED)


class TestJaccard(unittest.TestCase):
    def test_overlap(self):
        self.assertAlmostEqual(jaccard_similarity({"rust", "cli"}, {"rust", "graph"}), 1 / 3)

    def test_symmetric_and_bounded(self):
        a, b = {"a", "b", "c"}, {"b", "c", "d", "e"}
        self.assertEqual(jaccard_similarity(a, b), jaccard_similarity(b, a))
        self.assertTrue(0.0 <= jaccard_similarity(a, b) <= 1.0)
        self.assertEqual(jaccard_similarity(a, a), 1.0)

    def test_empty_sets_score_zero(self):
        self.assertEqual(jaccard_similarity(set(), set()), 0.0)


class TestNormalize(unittest.TestCase):
    def test_normalize_url(self):
        self.assertEqual(normalize_url("HTTPS://GitHub.com/a/#frag"), "https://github.com/a")
        self.assertEqual(normalize_url("https://example.com/"), "https://example.com")
        self.assertEqual(normalize_url("https://example.com/p?q=1"), "https://example.com/p?q=1")

    def test_slugify(self):
        self.assertEqual(slugify("AI & ML"), "ai-ml")
        self.assertEqual(slugify("&&"), "unnamed")


if __name__ == "__main__":
    unittest.main()
