from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any

from dotenv import load_dotenv

from .errors import ConfigError
from .graph.config import DEFAULT_SIMILARITY_THRESHOLD, GraphConfig


load_dotenv()


def _env(name: str, default: str | None = None):
    return field(default_factory=lambda: os.getenv(name, default))


@dataclass(frozen=True)
class Settings:
    # Graph shape
    detail_level: str = _env("BOOKMARKGRAPH_DETAIL_LEVEL", "standard")
    min_domain_threshold: str = _env("BOOKMARKGRAPH_MIN_DOMAIN_THRESHOLD", "2")
    max_per_domain: str | None = _env("BOOKMARKGRAPH_MAX_PER_DOMAIN")
    max_total_nodes: str | None = _env("BOOKMARKGRAPH_MAX_TOTAL_NODES")

    # Similarity
    similarity_threshold: str = _env("BOOKMARKGRAPH_SIMILARITY_THRESHOLD", str(DEFAULT_SIMILARITY_THRESHOLD))
    similarity_workers: str = _env("BOOKMARKGRAPH_SIMILARITY_WORKERS", "1")

    log_level: str = _env("BOOKMARKGRAPH_LOG_LEVEL", "INFO")

    def graph_config(self, **overrides: Any) -> GraphConfig:
        """Resolve env values into a GraphConfig; explicit non-None overrides win."""
        values: dict[str, Any] = {
            "detail_level": self.detail_level,
            "min_domain_threshold": _to_int("min_domain_threshold", self.min_domain_threshold),
            "max_bookmarks_per_domain": _to_int("max_per_domain", self.max_per_domain),
            "max_total_nodes": _to_int("max_total_nodes", self.max_total_nodes),
            "similarity_threshold": _to_float("similarity_threshold", self.similarity_threshold),
            "similarity_workers": _to_int("similarity_workers", self.similarity_workers),
        }
        values = {k: v for k, v in values.items() if v is not None}
        values.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return GraphConfig(**values)
        except TypeError as e:
            raise ConfigError("overrides", str(e)) from e


def _to_int(name: str, raw: str | None) -> int | None:
    if raw is None or not str(raw).strip():
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        raise ConfigError(name, f"{raw!r} is not an integer") from None


def _to_float(name: str, raw: str | None) -> float | None:
    if raw is None or not str(raw).strip():
        return None
    try:
        return float(str(raw).strip())
    except ValueError:
        raise ConfigError(name, f"{raw!r} is not a number") from None
