"""Knowledge-graph construction over bookmarks and browsing history.

Records are linked through shared domains, folder hierarchy, extracted tags,
categories and tag-set similarity. Everything is heuristic and offline, so a
graph of a few thousand bookmarks builds in well under a second.
"""

from .build import GraphBuilder, IngestItem, build_graph
from .config import DetailLevel, GraphConfig, SimilarityScope
from .model import EdgeKind, GraphEdge, GraphMetadata, GraphNode, KnowledgeGraph, NodeKind

__all__ = [
    "DetailLevel",
    "EdgeKind",
    "GraphBuilder",
    "GraphConfig",
    "GraphEdge",
    "GraphMetadata",
    "GraphNode",
    "IngestItem",
    "KnowledgeGraph",
    "NodeKind",
    "SimilarityScope",
    "build_graph",
]
