from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from ..errors import ConfigError


DEFAULT_SIMILARITY_THRESHOLD = 0.3


class DetailLevel(str, Enum):
    OVERVIEW = "overview"
    STANDARD = "standard"
    DETAILED = "detailed"

    def coarser(self) -> "DetailLevel":
        if self is DetailLevel.DETAILED:
            return DetailLevel.STANDARD
        return DetailLevel.OVERVIEW


class SimilarityScope(str, Enum):
    ALL = "all"
    DOMAIN = "domain"


@dataclass(frozen=True)
class GraphConfig:
    """Fully resolved options for one GraphBuilder run.

    Validation happens at construction, so an invalid config never reaches
    ingestion.
    """

    detail_level: DetailLevel = DetailLevel.STANDARD
    min_domain_threshold: int = 2
    max_bookmarks_per_domain: int | None = None
    max_total_nodes: int | None = None
    since: datetime | None = None
    domain_only: bool = False

    include_domain_edges: bool = True
    include_folder_edges: bool = True
    include_tag_edges: bool = True
    include_category_edges: bool = True
    include_similarity_edges: bool = True

    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    similarity_scope: SimilarityScope = SimilarityScope.ALL
    min_tag_threshold: int = 1
    similarity_workers: int = 1
    similarity_batch_size: int = 2048

    def __post_init__(self) -> None:
        # Accept plain strings from CLI/env layers.
        object.__setattr__(self, "detail_level", _coerce(DetailLevel, self.detail_level, "detail_level"))
        object.__setattr__(
            self, "similarity_scope", _coerce(SimilarityScope, self.similarity_scope, "similarity_scope")
        )
        self.validate()

    def validate(self) -> None:
        if not 0.0 <= float(self.similarity_threshold) <= 1.0:
            raise ConfigError("similarity_threshold", f"{self.similarity_threshold} is outside [0, 1]")
        _require_positive("min_domain_threshold", self.min_domain_threshold)
        _require_positive("min_tag_threshold", self.min_tag_threshold)
        _require_positive("similarity_workers", self.similarity_workers)
        _require_positive("similarity_batch_size", self.similarity_batch_size)
        if self.max_bookmarks_per_domain is not None:
            _require_positive("max_bookmarks_per_domain", self.max_bookmarks_per_domain)
        if self.max_total_nodes is not None:
            _require_positive("max_total_nodes", self.max_total_nodes)
        if self.since is not None and not isinstance(self.since, datetime):
            raise ConfigError("since", f"expected a datetime, got {type(self.since).__name__}")


def _coerce(enum_cls, value, field: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        choices = ", ".join(m.value for m in enum_cls)
        raise ConfigError(field, f"{value!r} (choose one of: {choices})") from None


def _require_positive(field: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(field, f"{value!r} must be an integer >= 1")
