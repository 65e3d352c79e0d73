"""Renderers turning a KnowledgeGraph into DOT, JSON, GEXF or HTML text.

Every renderer is pure and total over structurally valid graphs: nodes and
edges are emitted in graph order, so identical graphs render identically.
"""

from __future__ import annotations

import json
import re
import xml.etree.ElementTree as ET
from enum import Enum
from pathlib import Path
from typing import Any
from xml.dom import minidom

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..errors import FormatError
from .model import EdgeKind, GraphEdge, GraphMetadata, GraphNode, KnowledgeGraph, NodeKind


class OutputFormat(str, Enum):
    DOT = "dot"
    JSON = "json"
    GEXF = "gexf"
    HTML = "html"


# (DOT fill colour, DOT shape, HTML colour, HTML radius, legend label)
NODE_STYLES: dict[NodeKind, tuple[str, str, str, int, str]] = {
    NodeKind.BOOKMARK: ("lightblue", "box", "#4fc3f7", 5, "Bookmarks"),
    NodeKind.DOMAIN: ("lightgreen", "ellipse", "#81c784", 10, "Domains"),
    NodeKind.FOLDER: ("lightyellow", "folder", "#fff176", 8, "Folders"),
    NodeKind.TAG: ("lightsalmon", "diamond", "#ff8a65", 7, "Tags"),
    NodeKind.CATEGORY: ("plum", "octagon", "#ce93d8", 12, "Categories"),
}

# (DOT attributes, HTML colour)
EDGE_STYLES: dict[EdgeKind, tuple[str, str]] = {
    EdgeKind.BELONGS_TO_DOMAIN: ("color=blue, penwidth=2", "#42a5f5"),
    EdgeKind.IN_FOLDER: ("color=green, penwidth=1", "#66bb6a"),
    EdgeKind.SAME_DOMAIN: ("color=gray, penwidth=0.5, style=dashed", "#78909c"),
    EdgeKind.HAS_TAG: ("color=orange, penwidth=1, style=dotted", "#ffa726"),
    EdgeKind.IN_CATEGORY: ("color=purple, penwidth=1.5", "#ab47bc"),
    EdgeKind.SIMILAR_CONTENT: ("color=red, penwidth=0.5, style=dashed", "#ef5350"),
}

GEXF_NS = "http://www.gexf.net/1.2draft"

# Code points XML 1.0 cannot carry, even escaped.
_XML_ILLEGAL = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")

# Node attribute columns declared in GEXF output: (id, title, source key).
_GEXF_NODE_ATTRS = (
    ("0", "kind", None),
    ("1", "url", "url"),
    ("2", "domain", "domain"),
    ("3", "folder", "folder"),
    ("4", "category", "category"),
    ("5", "size", None),
)

_TEMPLATES = Path(__file__).resolve().parent / "templates"
_env = Environment(
    loader=FileSystemLoader(str(_TEMPLATES)),
    autoescape=select_autoescape(["html"]),
    keep_trailing_newline=True,
)


def render(graph: KnowledgeGraph, fmt: OutputFormat | str) -> str:
    try:
        fmt = OutputFormat(str(getattr(fmt, "value", fmt)).lower())
    except ValueError:
        choices = ", ".join(f.value for f in OutputFormat)
        raise FormatError(f"Unsupported format: {fmt!r} (choose one of: {choices})") from None

    if fmt is OutputFormat.DOT:
        return to_dot(graph)
    if fmt is OutputFormat.JSON:
        return to_json(graph)
    if fmt is OutputFormat.GEXF:
        return to_gexf(graph)
    return to_html(graph)


# --- DOT ---


def to_dot(graph: KnowledgeGraph) -> str:
    lines = [
        "digraph BookmarkKnowledgeGraph {",
        "    rankdir=LR;",
        "    node [shape=box];",
        "",
    ]
    for node in graph.nodes:
        color, shape, _, _, _ = NODE_STYLES[node.kind]
        lines.append(
            f'    "{_dot_id(node.id)}" [label="{_dot_label(node.label)}", '
            f"fillcolor={color}, style=filled, shape={shape}];"
        )

    lines.append("")
    for edge in graph.edges:
        style, _ = EDGE_STYLES[edge.kind]
        if edge.kind is EdgeKind.SIMILAR_CONTENT:
            style = f'{style}, label="{edge.weight:.2f}"'
        lines.append(f'    "{_dot_id(edge.source)}" -> "{_dot_id(edge.target)}" [{style}];')

    lines.append("}")
    return "\n".join(lines) + "\n"


def _dot_id(s: str) -> str:
    return _xml_text(s).replace("\\", "\\\\").replace('"', '\\"').replace("\n", " ")


def _dot_label(s: str) -> str:
    out = _xml_text(s).replace("\\", "\\\\").replace('"', '\\"')
    for ch in "|{}<>":
        out = out.replace(ch, "\\" + ch)
    return out.replace("\n", " ")


# --- JSON ---


def graph_to_dict(graph: KnowledgeGraph) -> dict[str, Any]:
    return {
        "nodes": [n.to_dict() for n in graph.nodes],
        "edges": [e.to_dict() for e in graph.edges],
        "metadata": graph.metadata.to_dict(),
    }


def to_json(graph: KnowledgeGraph, *, indent: int | None = 2) -> str:
    return json.dumps(graph_to_dict(graph), indent=indent, ensure_ascii=False)


def from_json(text: str) -> KnowledgeGraph:
    """Parse output of `to_json` back into a KnowledgeGraph."""
    try:
        data = json.loads(text)
        return KnowledgeGraph(
            nodes=[GraphNode.from_dict(n) for n in data["nodes"]],
            edges=[GraphEdge.from_dict(e) for e in data["edges"]],
            metadata=GraphMetadata.from_dict(data["metadata"]),
        )
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise FormatError(f"Not a knowledge graph JSON document: {e}") from e


# --- GEXF ---


def to_gexf(graph: KnowledgeGraph) -> str:
    root = ET.Element("gexf", xmlns=GEXF_NS, version="1.2")
    meta = ET.SubElement(root, "meta", lastmodifieddate=graph.metadata.generated_at[:10])
    ET.SubElement(meta, "creator").text = "bookmark-graph"
    ET.SubElement(meta, "description").text = "Bookmark knowledge graph"

    g = ET.SubElement(root, "graph", mode="static", defaultedgetype="directed")

    node_attrs = ET.SubElement(g, "attributes", **{"class": "node"})
    for attr_id, title, _ in _GEXF_NODE_ATTRS:
        attr_type = "integer" if title == "size" else "string"
        ET.SubElement(node_attrs, "attribute", id=attr_id, title=title, type=attr_type)

    edge_attrs = ET.SubElement(g, "attributes", **{"class": "edge"})
    ET.SubElement(edge_attrs, "attribute", id="0", title="kind", type="string")

    nodes = ET.SubElement(g, "nodes")
    for node in graph.nodes:
        el = ET.SubElement(nodes, "node", id=_xml_text(node.id), label=_xml_text(node.label))
        values = ET.SubElement(el, "attvalues")
        for attr_id, title, key in _GEXF_NODE_ATTRS:
            if title == "kind":
                value: Any = node.kind.value
            elif title == "size":
                value = node.size
            else:
                value = node.attributes.get(key)
            if value is None:
                continue
            ET.SubElement(values, "attvalue", **{"for": attr_id, "value": _xml_text(str(value))})

    edges = ET.SubElement(g, "edges")
    for idx, edge in enumerate(graph.edges):
        el = ET.SubElement(
            edges,
            "edge",
            id=str(idx),
            source=_xml_text(edge.source),
            target=_xml_text(edge.target),
            weight=repr(float(edge.weight)),
            label=edge.kind.value,
        )
        values = ET.SubElement(el, "attvalues")
        ET.SubElement(values, "attvalue", **{"for": "0", "value": edge.kind.value})

    return minidom.parseString(ET.tostring(root, encoding="unicode")).toprettyxml(indent="  ")


def _xml_text(s: str) -> str:
    return _XML_ILLEGAL.sub("\ufffd", s)


# --- HTML ---


def to_html(
    graph: KnowledgeGraph,
    *,
    title: str = "Bookmark Knowledge Graph",
    charge: int = -120,
    distance: int = 80,
) -> str:
    """Self-contained page: D3 force layout with the graph embedded as JSON."""
    template = _env.get_template("graph.html")
    return template.render(
        title=title,
        graph_json=_script_safe(to_json(graph, indent=None)),
        data_src=None,
        charge=int(charge),
        distance=int(distance),
        **_html_styles(),
    )


def to_js_data(graph: KnowledgeGraph) -> str:
    """Graph payload as a script assigning `window.graphData`."""
    return (
        "// Bookmark Knowledge Graph Data\n"
        f"window.graphData = {_script_safe(to_json(graph, indent=None))};\n"
    )


def to_html_dynamic(
    data_filename: str,
    *,
    title: str = "Bookmark Knowledge Graph",
    charge: int = -120,
    distance: int = 80,
) -> str:
    """Same page as `to_html`, loading its data from a sibling `to_js_data` file."""
    template = _env.get_template("graph.html")
    return template.render(
        title=title,
        graph_json=None,
        data_src=Path(data_filename).name,
        charge=int(charge),
        distance=int(distance),
        **_html_styles(),
    )


def _html_styles() -> dict[str, Any]:
    return {
        "node_kinds": [
            {"kind": kind.value, "color": color, "radius": radius, "legend": legend}
            for kind, (_, _, color, radius, legend) in NODE_STYLES.items()
        ],
        "edge_colors": {kind.value: color for kind, (_, color) in EDGE_STYLES.items()},
    }


def _script_safe(payload: str) -> str:
    # Keep "</script>" and HTML comment openers inside string literals from ending the block.
    return payload.replace("</", "<\\/").replace("<!--", "<\\!--")
