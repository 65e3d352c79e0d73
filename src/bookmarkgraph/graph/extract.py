from __future__ import annotations

import re
from urllib.parse import unquote, urlsplit, urlunsplit

# Title tokens: runs of Unicode letters/digits.
_TOKEN_RE = re.compile(r"[^\W_]+")

_STOP = {
    "a",
    "about",
    "all",
    "an",
    "and",
    "are",
    "at",
    "be",
    "both",
    "but",
    "by",
    "can",
    "com",
    "could",
    "default",
    "did",
    "do",
    "does",
    "each",
    "every",
    "few",
    "for",
    "from",
    "had",
    "has",
    "have",
    "her",
    "him",
    "his",
    "home",
    "how",
    "html",
    "http",
    "https",
    "if",
    "in",
    "index",
    "io",
    "is",
    "it",
    "its",
    "just",
    "may",
    "me",
    "might",
    "more",
    "most",
    "my",
    "net",
    "new",
    "no",
    "not",
    "of",
    "on",
    "or",
    "org",
    "other",
    "our",
    "out",
    "page",
    "should",
    "site",
    "so",
    "some",
    "such",
    "than",
    "that",
    "the",
    "their",
    "them",
    "this",
    "to",
    "too",
    "up",
    "us",
    "very",
    "was",
    "web",
    "welcome",
    "what",
    "when",
    "where",
    "which",
    "who",
    "will",
    "with",
    "would",
    "www",
    "your",
}

UNCATEGORIZED = "Uncategorized"

# Priority order matters: the first rule with a matching keyword wins.
CATEGORY_RULES: tuple[tuple[str, frozenset[str]], ...] = (
    (
        "Development",
        frozenset(
            {
                "github", "gitlab", "stackoverflow", "rust", "python", "javascript",
                "typescript", "golang", "java", "code", "programming", "developer", "api",
                "docker", "kubernetes", "npm", "crates", "pypi", "docs.rs", "dev.to",
                "compiler", "debug", "framework", "library", "sdk", "cli", "terminal",
            }
        ),
    ),
    (
        "AI & ML",
        frozenset(
            {
                "openai", "chatgpt", "huggingface", "tensorflow", "pytorch",
                "machine-learning", "deep-learning", "llm", "gpt", "claude", "gemini",
                "artificial-intelligence", "neural", "model", "training", "dataset",
                "copilot",
            }
        ),
    ),
    (
        "Cloud & DevOps",
        frozenset(
            {
                "aws", "azure", "gcloud", "cloud", "heroku", "vercel", "netlify",
                "terraform", "ansible", "jenkins", "ci/cd", "devops", "infrastructure",
                "deploy", "container", "serverless",
            }
        ),
    ),
    (
        "News",
        frozenset(
            {
                "news", "bbc", "cnn", "reuters", "nytimes", "medium", "blog", "article",
                "press", "journal", "magazine", "podcast",
            }
        ),
    ),
    (
        "Social",
        frozenset(
            {
                "twitter", "facebook", "linkedin", "reddit", "instagram", "youtube",
                "tiktok", "discord", "slack", "mastodon", "threads",
            }
        ),
    ),
    (
        "Shopping",
        frozenset(
            {
                "amazon", "ebay", "shop", "store", "buy", "price", "product", "cart",
                "checkout", "deal", "sale",
            }
        ),
    ),
    (
        "Finance",
        frozenset(
            {
                "bank", "finance", "invest", "stock", "crypto", "bitcoin", "trading",
                "portfolio", "payment", "paypal", "stripe",
            }
        ),
    ),
    (
        "Education",
        frozenset(
            {
                "learn", "course", "tutorial", "university", "edu", "academy", "school",
                "lecture", "study", "research", "paper", "arxiv", "scholar", "coursera",
                "udemy",
            }
        ),
    ),
    (
        "Design",
        frozenset(
            {
                "figma", "dribbble", "behance", "design", "ui", "ux", "css", "tailwind",
                "font", "icon", "color", "layout", "sketch",
            }
        ),
    ),
    (
        "Reference",
        frozenset(
            {
                "wikipedia", "docs", "documentation", "reference", "manual", "guide",
                "spec", "standard", "rfc", "mdn",
            }
        ),
    ),
)


def extract_tags(title: str, url: str | None = None, *, min_chars: int = 3) -> set[str]:
    """Return the tag set for a bookmark.

    Title words are split on non-alphanumeric boundaries; URL path segments
    contribute whole segments (minus a file extension) unless purely numeric.
    """
    tags: set[str] = set()
    for tok in _TOKEN_RE.findall((title or "").lower()):
        if len(tok) < min_chars or tok in _STOP:
            continue
        tags.add(tok)

    for seg in _path_segments(url):
        seg = seg.split(".", 1)[0]
        if len(seg) < min_chars or seg in _STOP or seg.isdigit():
            continue
        tags.add(seg)

    return tags


def extract_domain(url: str | None) -> str | None:
    """Hostname of a URL, lower-cased and without a leading "www."."""
    if not url:
        return None
    try:
        host = urlsplit(url.strip()).hostname
    except ValueError:
        return None
    if not host:
        return None
    host = host.lower()
    if host.startswith("www."):
        host = host[4:]
    return host or None


def categorize(title: str, url: str | None = None, tags: set[str] | frozenset[str] | None = None) -> str:
    text = " ".join([(title or "").lower(), (url or "").lower(), *sorted(tags or ())])
    words = set(_TOKEN_RE.findall(text))
    # Tolerate simple plurals ("courses", "stocks").
    words |= {w[:-1] for w in words if len(w) > 3 and w.endswith("s")}

    for category, keywords in CATEGORY_RULES:
        for kw in keywords:
            if kw.isalnum():
                if kw in words:
                    return category
            elif kw in text:
                return category
    return UNCATEGORIZED


def jaccard_similarity(tags_a: set[str] | frozenset[str], tags_b: set[str] | frozenset[str]) -> float:
    union = len(tags_a | tags_b)
    if union == 0:
        return 0.0
    return len(tags_a & tags_b) / union


def normalize_url(url: str) -> str:
    """Stable identity for a URL: lower-case scheme/host, no fragment, no trailing slash."""
    raw = url.strip()
    try:
        parts = urlsplit(raw)
    except ValueError:
        return raw
    path = parts.path.rstrip("/") if parts.path != "/" else ""
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, parts.query, ""))


def slugify(name: str) -> str:
    return "-".join(_TOKEN_RE.findall(name.lower())) or "unnamed"


def _path_segments(url: str | None) -> list[str]:
    if not url:
        return []
    try:
        path = urlsplit(url.strip()).path
    except ValueError:
        return []
    return [unquote(s).lower() for s in path.split("/") if s]
