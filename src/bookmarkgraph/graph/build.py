from __future__ import annotations

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Iterable, Sequence

from ..errors import ItemSkipped, SkipReason
from ..records import Bookmark, HistoryEntry
from .config import DetailLevel, GraphConfig, SimilarityScope
from .extract import categorize, extract_domain, extract_tags, normalize_url, slugify
from .model import EdgeKind, GraphEdge, GraphMetadata, GraphNode, KnowledgeGraph, NodeKind
from .similarity import similar_pairs


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestItem:
    """One bookmark or history record in the shape the pipeline works on."""

    key: str
    title: str
    url: str | None
    folder: str | None
    created_at: datetime | None
    position: int
    source: str = "bookmark"
    record_id: str | None = None
    visit_count: int | None = None

    @property
    def node_id(self) -> str:
        return f"bookmark:{self.key}"

    @classmethod
    def from_bookmark(cls, b: Bookmark, position: int) -> "IngestItem":
        return cls(
            key=_item_key(b.url, b.id, b.title),
            title=(b.title or "").strip(),
            url=(b.url or "").strip() or None,
            folder=(b.folder or "").strip() or None,
            created_at=b.created_at,
            position=position,
            source="bookmark",
            record_id=b.id,
        )

    @classmethod
    def from_history(cls, h: HistoryEntry, position: int) -> "IngestItem":
        return cls(
            key=_item_key(h.url, None, h.title),
            title=(h.title or "").strip(),
            url=(h.url or "").strip() or None,
            folder=None,
            created_at=h.last_visit,
            position=position,
            source="history",
            visit_count=max(0, int(h.visit_count or 0)),
        )


class _Accumulator:
    """Ordered node/edge collections plus the lookups used for node reuse."""

    def __init__(self) -> None:
        self.nodes: list[GraphNode] = []
        self.edges: list[GraphEdge] = []
        self._nodes_by_id: dict[str, GraphNode] = {}
        self._edge_keys: set[tuple[str, str, EdgeKind]] = set()

    def add_node(self, node: GraphNode) -> GraphNode:
        existing = self._nodes_by_id.get(node.id)
        if existing is not None:
            return existing
        self._nodes_by_id[node.id] = node
        self.nodes.append(node)
        return node

    def add_edge(self, edge: GraphEdge) -> None:
        if edge.source not in self._nodes_by_id or edge.target not in self._nodes_by_id:
            raise ValueError(f"Edge {edge.source} -> {edge.target} references a node that was not added")
        if edge.key in self._edge_keys:
            return
        self._edge_keys.add(edge.key)
        self.edges.append(edge)


@dataclass
class _IngestStats:
    seen: int = 0
    retained: int = 0
    capped: int = 0
    unresolved_domains: int = 0
    node_cap_exceeded: bool = False
    skipped: Counter[str] = field(default_factory=Counter)


class GraphBuilder:
    """Single-use assembly pipeline: create, ingest once, discard.

    All entry points funnel into `ingest_items`, so bookmarks, history and the
    combination share one set of filtering, capping and derivation rules.
    """

    def __init__(self, config: GraphConfig | None = None):
        self.config = config or GraphConfig()
        self._consumed = False

    def from_bookmarks(self, bookmarks: Sequence[Bookmark]) -> KnowledgeGraph:
        return self.ingest_items(IngestItem.from_bookmark(b, i) for i, b in enumerate(bookmarks))

    def from_history(self, history: Sequence[HistoryEntry]) -> KnowledgeGraph:
        return self.ingest_items(IngestItem.from_history(h, i) for i, h in enumerate(history))

    def from_both(self, bookmarks: Sequence[Bookmark], history: Sequence[HistoryEntry]) -> KnowledgeGraph:
        items = [IngestItem.from_bookmark(b, i) for i, b in enumerate(bookmarks)]
        offset = len(items)
        items.extend(IngestItem.from_history(h, offset + i) for i, h in enumerate(history))
        return self.ingest_items(items)

    def ingest_items(self, items: Iterable[IngestItem]) -> KnowledgeGraph:
        if self._consumed:
            raise RuntimeError("GraphBuilder is single-use; create a new builder per graph")
        self._consumed = True

        stats = _IngestStats()
        kept = self._filter(items, stats)
        domains = {item.key: extract_domain(item.url) for item in kept}
        stats.unresolved_domains = sum(1 for item in kept if item.url and domains[item.key] is None)

        retained = self._apply_domain_cap(kept, domains, stats)
        stats.retained = len(retained)

        requested = self.config.detail_level
        level = requested
        while True:
            acc, bookmarks, tag_sets = self._assemble(retained, domains, level)
            cap = self.config.max_total_nodes
            if cap is None or len(acc.nodes) <= cap:
                break
            if level is DetailLevel.OVERVIEW:
                stats.node_cap_exceeded = True
                logger.warning(
                    "Overview graph still has %d nodes (max_total_nodes=%d); returning it as is",
                    len(acc.nodes),
                    cap,
                )
                break
            logger.info(
                "Graph has %d nodes at %s detail (max_total_nodes=%d); retrying at %s",
                len(acc.nodes),
                level.value,
                cap,
                level.coarser().value,
            )
            level = level.coarser()

        # Similarity adds no nodes, so it runs once at the level that fits.
        if bookmarks and self.config.include_similarity_edges:
            self._add_similarity_edges(acc, bookmarks, tag_sets)

        graph = self._finalize(acc, level, stats)
        logger.info(
            "Built graph: %d nodes, %d edges (%d items seen, %d retained, %d skipped)",
            graph.metadata.total_nodes,
            graph.metadata.total_edges,
            stats.seen,
            stats.retained,
            sum(stats.skipped.values()),
        )
        return graph

    # --- Pipeline stages ---

    def _filter(self, items: Iterable[IngestItem], stats: _IngestStats) -> list[IngestItem]:
        kept: dict[str, IngestItem] = {}
        for item in items:
            stats.seen += 1
            try:
                self._check_item(item, kept)
            except ItemSkipped as e:
                if e.reason is SkipReason.DUPLICATE and item.source == "history":
                    # Repeat visits fold into the first record for that URL.
                    kept[item.key] = _merge_visit(kept[item.key], item)
                    stats.skipped["merged"] += 1
                    continue
                stats.skipped[e.reason.value] += 1
                logger.debug("%s", e)
                continue
            kept[item.key] = item
        return list(kept.values())

    def _check_item(self, item: IngestItem, kept: dict[str, IngestItem]) -> None:
        if not item.url and not item.title:
            raise ItemSkipped(SkipReason.MISSING_IDENTITY, item.record_id)

        since = self.config.since
        if since is not None:
            if item.created_at is None:
                raise ItemSkipped(SkipReason.UNDATED, item.key)
            if _as_utc(item.created_at) < _as_utc(since):
                raise ItemSkipped(SkipReason.BEFORE_SINCE, item.key)

        if item.key in kept:
            raise ItemSkipped(SkipReason.DUPLICATE, item.key)

    def _apply_domain_cap(
        self,
        items: list[IngestItem],
        domains: dict[str, str | None],
        stats: _IngestStats,
    ) -> list[IngestItem]:
        limit = self.config.max_bookmarks_per_domain
        if limit is None:
            return items

        by_domain: dict[str, list[IngestItem]] = defaultdict(list)
        for item in items:
            d = domains[item.key]
            if d is not None:
                by_domain[d].append(item)

        dropped: set[str] = set()
        for domain, group in by_domain.items():
            if len(group) <= limit:
                continue
            # Most recently added first; undated last; input order breaks ties.
            ranked = sorted(group, key=_recency_key)
            for item in ranked[limit:]:
                dropped.add(item.key)
            logger.debug("Domain %s capped at %d of %d bookmarks", domain, limit, len(group))

        stats.capped = len(dropped)
        return [item for item in items if item.key not in dropped]

    def _assemble(
        self,
        items: list[IngestItem],
        domains: dict[str, str | None],
        level: DetailLevel,
    ) -> tuple[_Accumulator, list[GraphNode], list[frozenset[str]]]:
        cfg = self.config
        acc = _Accumulator()

        show_bookmarks = level is not DetailLevel.OVERVIEW and not cfg.domain_only
        show_folders = cfg.include_folder_edges and not cfg.domain_only

        domain_counts = Counter(domains[item.key] for item in items if domains[item.key] is not None)
        folder_counts: Counter[str] = Counter()
        if show_folders:
            for item in items:
                for prefix in _folder_prefixes(item.folder):
                    folder_counts[prefix] += 1

        tag_sets: list[frozenset[str]] = []
        categories: list[str] = []
        if show_bookmarks:
            tag_sets = [frozenset(extract_tags(item.title, item.url)) for item in items]
            categories = [categorize(item.title, item.url, tags) for item, tags in zip(items, tag_sets)]

        bookmarks: list[GraphNode] = []
        for idx, item in enumerate(items):
            domain = domains[item.key]
            bookmark = None
            if show_bookmarks:
                bookmark = acc.add_node(_bookmark_node(item, domain, tag_sets[idx], categories[idx]))
                bookmarks.append(bookmark)

            if domain is not None and domain_counts[domain] >= cfg.min_domain_threshold:
                dnode = acc.add_node(
                    GraphNode(
                        id=f"domain:{domain}",
                        kind=NodeKind.DOMAIN,
                        label=domain,
                        attributes={"hostname": domain, "bookmark_count": domain_counts[domain]},
                    )
                )
                if bookmark is not None and cfg.include_domain_edges:
                    acc.add_edge(GraphEdge(bookmark.id, dnode.id, EdgeKind.BELONGS_TO_DOMAIN))

            if show_folders and item.folder:
                innermost = self._add_folder_chain(acc, item.folder, folder_counts)
                if bookmark is not None and innermost is not None:
                    acc.add_edge(GraphEdge(bookmark.id, innermost.id, EdgeKind.IN_FOLDER))

        if bookmarks:
            self._add_tag_and_category_edges(acc, bookmarks, tag_sets, categories, level)
        return acc, bookmarks, tag_sets

    def _add_folder_chain(self, acc: _Accumulator, folder: str, counts: Counter[str]) -> GraphNode | None:
        parent: GraphNode | None = None
        for depth, prefix in enumerate(_folder_prefixes(folder)):
            name = prefix.rsplit("/", 1)[-1]
            node = acc.add_node(
                GraphNode(
                    id=f"folder:{prefix}",
                    kind=NodeKind.FOLDER,
                    label=name,
                    attributes={"path": prefix, "name": name, "depth": depth, "bookmark_count": counts[prefix]},
                )
            )
            if parent is not None:
                acc.add_edge(GraphEdge(node.id, parent.id, EdgeKind.IN_FOLDER))
            parent = node
        return parent

    def _add_tag_and_category_edges(
        self,
        acc: _Accumulator,
        bookmarks: list[GraphNode],
        tag_sets: list[frozenset[str]],
        categories: list[str],
        level: DetailLevel,
    ) -> None:
        cfg = self.config
        tag_counts = Counter(tag for tags in tag_sets for tag in tags)
        category_counts = Counter(categories)
        # Standard detail only materializes tags that actually connect bookmarks.
        tag_floor = cfg.min_tag_threshold
        if level is DetailLevel.STANDARD:
            tag_floor = max(2, tag_floor)

        for bookmark, tags, category in zip(bookmarks, tag_sets, categories):
            if cfg.include_tag_edges:
                for tag in sorted(tags):
                    if tag_counts[tag] < tag_floor:
                        continue
                    tnode = acc.add_node(
                        GraphNode(
                            id=f"tag:{tag}",
                            kind=NodeKind.TAG,
                            label=f"#{tag}",
                            attributes={"token": tag, "bookmark_count": tag_counts[tag]},
                        )
                    )
                    acc.add_edge(GraphEdge(bookmark.id, tnode.id, EdgeKind.HAS_TAG))

            if cfg.include_category_edges:
                cnode = acc.add_node(
                    GraphNode(
                        id=f"category:{slugify(category)}",
                        kind=NodeKind.CATEGORY,
                        label=category,
                        attributes={"name": category, "bookmark_count": category_counts[category]},
                    )
                )
                acc.add_edge(GraphEdge(bookmark.id, cnode.id, EdgeKind.IN_CATEGORY))

    def _add_similarity_edges(
        self,
        acc: _Accumulator,
        bookmarks: list[GraphNode],
        tag_sets: list[frozenset[str]],
    ) -> None:
        cfg = self.config
        groups = None
        if cfg.similarity_scope is SimilarityScope.DOMAIN:
            by_domain: dict[str, list[int]] = defaultdict(list)
            for idx, bookmark in enumerate(bookmarks):
                d = bookmark.attributes.get("domain")
                if d:
                    by_domain[d].append(idx)
            groups = list(by_domain.values())

        hits = similar_pairs(
            tag_sets,
            threshold=cfg.similarity_threshold,
            groups=groups,
            workers=cfg.similarity_workers,
            batch_size=cfg.similarity_batch_size,
        )
        for i, j, score in hits:
            acc.add_edge(GraphEdge(bookmarks[i].id, bookmarks[j].id, EdgeKind.SIMILAR_CONTENT, weight=score))
        logger.debug("Similarity: %d edges at threshold %.2f", len(hits), cfg.similarity_threshold)

    def _finalize(self, acc: _Accumulator, level: DetailLevel, stats: _IngestStats) -> KnowledgeGraph:
        nodes_by_kind = {k.value: 0 for k in NodeKind}
        for n in acc.nodes:
            nodes_by_kind[n.kind.value] += 1
        edges_by_kind = {k.value: 0 for k in EdgeKind}
        for e in acc.edges:
            edges_by_kind[e.kind.value] += 1

        metadata = GraphMetadata(
            total_nodes=len(acc.nodes),
            total_edges=len(acc.edges),
            nodes_by_kind=nodes_by_kind,
            edges_by_kind=edges_by_kind,
            generated_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
            detail_level=level.value,
            requested_detail_level=self.config.detail_level.value,
            items_seen=stats.seen,
            items_retained=stats.retained,
            items_capped=stats.capped,
            items_skipped=dict(stats.skipped),
            unresolved_domains=stats.unresolved_domains,
            node_cap_exceeded=stats.node_cap_exceeded,
        )
        return KnowledgeGraph(nodes=list(acc.nodes), edges=list(acc.edges), metadata=metadata)


def build_graph(
    *,
    bookmarks: Sequence[Bookmark] | None = None,
    history: Sequence[HistoryEntry] | None = None,
    config: GraphConfig | None = None,
) -> KnowledgeGraph:
    """Build a knowledge graph from bookmarks, history, or both."""
    builder = GraphBuilder(config)
    if bookmarks is not None and history is not None:
        return builder.from_both(bookmarks, history)
    if history is not None:
        return builder.from_history(history)
    return builder.from_bookmarks(bookmarks or [])


def _item_key(url: str | None, record_id: str | None, title: str | None) -> str:
    if url and url.strip():
        return normalize_url(url)
    if record_id:
        return f"id:{record_id}"
    return f"title:{(title or '').strip().lower()}"


def _bookmark_node(item: IngestItem, domain: str | None, tags: frozenset[str], category: str) -> GraphNode:
    attrs: dict[str, Any] = {
        "url": item.url,
        "folder": item.folder,
        "created_at": (item.created_at.isoformat() if item.created_at else None),
        "domain": domain,
        "source": item.source,
        "record_id": item.record_id,
        "tags": sorted(tags),
        "category": category,
    }
    if item.visit_count is not None:
        attrs["visit_count"] = item.visit_count
    return GraphNode(
        id=item.node_id,
        kind=NodeKind.BOOKMARK,
        label=item.title or item.url or item.key,
        attributes=attrs,
    )


def _folder_prefixes(folder: str | None) -> list[str]:
    parts = [p.strip() for p in (folder or "").split("/") if p.strip()]
    return ["/".join(parts[: i + 1]) for i in range(len(parts))]


def _merge_visit(prev: IngestItem, dup: IngestItem) -> IngestItem:
    visits = (prev.visit_count or 0) + (dup.visit_count or 0)
    created = prev.created_at
    if prev.source == "history" and dup.created_at is not None:
        if created is None or _as_utc(dup.created_at) > _as_utc(created):
            created = dup.created_at
    return replace(prev, visit_count=visits, created_at=created)


def _recency_key(item: IngestItem) -> tuple[int, float, int]:
    if item.created_at is None:
        return (1, 0.0, item.position)
    return (0, -_as_utc(item.created_at).timestamp(), item.position)


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt
