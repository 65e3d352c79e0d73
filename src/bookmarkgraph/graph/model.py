from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class NodeKind(str, Enum):
    BOOKMARK = "bookmark"
    DOMAIN = "domain"
    FOLDER = "folder"
    TAG = "tag"
    CATEGORY = "category"


class EdgeKind(str, Enum):
    BELONGS_TO_DOMAIN = "belongs_to_domain"
    IN_FOLDER = "in_folder"
    # Declared for renderers; the builder links same-domain bookmarks through
    # their Domain node instead.
    SAME_DOMAIN = "same_domain"
    HAS_TAG = "has_tag"
    IN_CATEGORY = "in_category"
    SIMILAR_CONTENT = "similar_content"


@dataclass(frozen=True)
class GraphNode:
    id: str
    kind: NodeKind
    label: str
    attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def size(self) -> int:
        for key in ("bookmark_count", "visit_count"):
            v = self.attributes.get(key)
            if isinstance(v, int) and v > 0:
                return v
        return 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "label": self.label,
            "size": self.size,
            "attributes": dict(self.attributes),
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "GraphNode":
        return cls(
            id=str(d["id"]),
            kind=NodeKind(d["kind"]),
            label=str(d.get("label") or ""),
            attributes=dict(d.get("attributes") or {}),
        )


@dataclass(frozen=True)
class GraphEdge:
    source: str
    target: str
    kind: EdgeKind
    weight: float = 1.0

    @property
    def key(self) -> tuple[str, str, EdgeKind]:
        return (self.source, self.target, self.kind)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "kind": self.kind.value,
            "weight": self.weight,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "GraphEdge":
        return cls(
            source=str(d["source"]),
            target=str(d["target"]),
            kind=EdgeKind(d["kind"]),
            weight=float(d.get("weight", 1.0)),
        )


@dataclass(frozen=True)
class GraphMetadata:
    total_nodes: int
    total_edges: int
    nodes_by_kind: dict[str, int]
    edges_by_kind: dict[str, int]
    generated_at: str
    detail_level: str
    requested_detail_level: str
    items_seen: int = 0
    items_retained: int = 0
    items_capped: int = 0
    items_skipped: dict[str, int] = field(default_factory=dict)
    unresolved_domains: int = 0
    node_cap_exceeded: bool = False

    @property
    def bookmark_count(self) -> int:
        return self.nodes_by_kind.get(NodeKind.BOOKMARK.value, 0)

    @property
    def domain_count(self) -> int:
        return self.nodes_by_kind.get(NodeKind.DOMAIN.value, 0)

    @property
    def folder_count(self) -> int:
        return self.nodes_by_kind.get(NodeKind.FOLDER.value, 0)

    @property
    def tag_count(self) -> int:
        return self.nodes_by_kind.get(NodeKind.TAG.value, 0)

    @property
    def category_count(self) -> int:
        return self.nodes_by_kind.get(NodeKind.CATEGORY.value, 0)

    @property
    def degraded(self) -> bool:
        return self.detail_level != self.requested_detail_level

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_nodes": self.total_nodes,
            "total_edges": self.total_edges,
            "nodes_by_kind": dict(self.nodes_by_kind),
            "edges_by_kind": dict(self.edges_by_kind),
            "bookmark_count": self.bookmark_count,
            "domain_count": self.domain_count,
            "folder_count": self.folder_count,
            "tag_count": self.tag_count,
            "category_count": self.category_count,
            "generated_at": self.generated_at,
            "detail_level": self.detail_level,
            "requested_detail_level": self.requested_detail_level,
            "items_seen": self.items_seen,
            "items_retained": self.items_retained,
            "items_capped": self.items_capped,
            "items_skipped": dict(self.items_skipped),
            "unresolved_domains": self.unresolved_domains,
            "node_cap_exceeded": self.node_cap_exceeded,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "GraphMetadata":
        return cls(
            total_nodes=int(d["total_nodes"]),
            total_edges=int(d["total_edges"]),
            nodes_by_kind={str(k): int(v) for k, v in (d.get("nodes_by_kind") or {}).items()},
            edges_by_kind={str(k): int(v) for k, v in (d.get("edges_by_kind") or {}).items()},
            generated_at=str(d.get("generated_at") or ""),
            detail_level=str(d.get("detail_level") or ""),
            requested_detail_level=str(d.get("requested_detail_level") or d.get("detail_level") or ""),
            items_seen=int(d.get("items_seen") or 0),
            items_retained=int(d.get("items_retained") or 0),
            items_capped=int(d.get("items_capped") or 0),
            items_skipped={str(k): int(v) for k, v in (d.get("items_skipped") or {}).items()},
            unresolved_domains=int(d.get("unresolved_domains") or 0),
            node_cap_exceeded=bool(d.get("node_cap_exceeded", False)),
        )


@dataclass
class KnowledgeGraph:
    nodes: list[GraphNode]
    edges: list[GraphEdge]
    metadata: GraphMetadata

    def node_ids(self) -> set[str]:
        return {n.id for n in self.nodes}

    def get_node(self, node_id: str) -> GraphNode | None:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def nodes_of(self, kind: NodeKind) -> list[GraphNode]:
        return [n for n in self.nodes if n.kind is kind]

    def edges_of(self, kind: EdgeKind) -> list[GraphEdge]:
        return [e for e in self.edges if e.kind is kind]
