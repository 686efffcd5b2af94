# casemap/domain/services/layout.py
# Pure domain services: everything about auto-layout except the layered
# drawing itself, which is delegated to a LayeredLayoutPort.
from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from casemap.domain.models import GraphData, GraphEdge, GraphNode
from casemap.domain.services.normalization import LEGAL_COLOR, LIEN_COLOR, STRUCTURAL_COLOR

NODE_WIDTH = 280.0
BASE_NODE_HEIGHT = 80.0
LINE_HEIGHT = 16.0
MAX_CHARS_PER_LINE = 35
CIRCLE_SIZE = 180.0
ASSET_TYPES: frozenset[str] = frozenset({"asset_pool", "asset"})

EDGE_SEP = 80.0
MARGIN_X = 60.0
MARGIN_Y = 60.0

# Lower number = higher tier. Used as a hint for initial ordering only.
TYPE_RANK: Mapping[str, int] = MappingProxyType(
    {
        "court": 0,
        "sponsor": 0,
        "holdco": 1,
        "parent": 1,
        "admin_agent": 1,
        "opco": 2,
        "debtor": 2,
        "term_loan": 3,
        "revolver": 3,
        "bond": 3,
        "dip_facility": 3,
        "restricted_sub": 4,
        "non_guarantor_sub": 4,
        "subsidiary": 4,
        "ad_hoc_group": 4,
        "participating_lenders": 5,
        "excluded_lenders": 5,
        "unsub": 5,
        "interco_loan": 6,
        "asset_pool": 6,
        "asset": 6,
        "clo": 7,
    }
)
SINK_RANK = 8


@dataclass(frozen=True)
class Spacing:
    rank_sep: float
    node_sep: float


@dataclass(frozen=True)
class NodeBox:
    id: str
    width: float
    height: float


@dataclass(frozen=True)
class LayoutEdge:
    source: str
    target: str
    weight: int
    minlen: int


@dataclass(frozen=True)
class LayeredLayoutRequest:
    """Input for the layered drawing engine; nodes are in rank-priority order."""

    nodes: tuple[NodeBox, ...]
    edges: tuple[LayoutEdge, ...]
    rank_sep: float
    node_sep: float
    edge_sep: float = EDGE_SEP
    margin_x: float = MARGIN_X
    margin_y: float = MARGIN_Y


def density(graph: GraphData) -> float:
    if not graph.nodes:
        return 0.0
    return len(graph.edges) / len(graph.nodes)


def spacing_for(graph: GraphData) -> Spacing:
    """Denser graphs get more room between ranks and between siblings."""
    d = density(graph)
    if d > 3:
        return Spacing(rank_sep=220.0, node_sep=140.0)
    if d > 2:
        return Spacing(rank_sep=200.0, node_sep=120.0)
    return Spacing(rank_sep=180.0, node_sep=100.0)


def rank_priority(node_type: str) -> int:
    return TYPE_RANK.get(node_type, SINK_RANK)


def estimate_node_height(notes: str) -> float:
    """Base height plus one line-height per wrapped line of non-empty notes lines."""
    lines = [line for line in notes.split("\n") if line]
    wrapped = sum(max(1, math.ceil(len(line) / MAX_CHARS_PER_LINE)) for line in lines)
    return BASE_NODE_HEIGHT + wrapped * LINE_HEIGHT


def node_box(node: GraphNode) -> NodeBox:
    if node.type in ASSET_TYPES:
        return NodeBox(id=node.id, width=CIRCLE_SIZE, height=CIRCLE_SIZE)
    return NodeBox(id=node.id, width=NODE_WIDTH, height=estimate_node_height(node.notes))


def edge_weighting(edge: GraphEdge) -> tuple[int, int]:
    """(weight, minlen) by edge category.

    Structural edges pull their endpoints onto adjacent ranks; legal-dispute
    edges are weak and keep at least one rank between their endpoints.
    """
    if edge.color == STRUCTURAL_COLOR:
        return 4, 1
    if edge.color == LIEN_COLOR:
        return 3, 2
    if edge.color == LEGAL_COLOR:
        return 1, 2
    return 2, 2


def build_layout_request(graph: GraphData) -> LayeredLayoutRequest:
    """
    Describe the graph to the layered drawing engine.

    - nodes are stably sorted by type rank priority
    - only the first edge of each ordered (source, target) pair takes part
    - self-edges and edges with a missing endpoint are skipped
    """
    ordered = sorted(graph.nodes, key=lambda n: rank_priority(n.type))
    boxes = tuple(node_box(n) for n in ordered)
    known = {b.id for b in boxes}

    seen_pairs: set[tuple[str, str]] = set()
    edges: list[LayoutEdge] = []
    for e in graph.edges:
        if e.source not in known or e.target not in known or e.source == e.target:
            continue
        pair = (e.source, e.target)
        if pair in seen_pairs:
            continue
        seen_pairs.add(pair)
        weight, minlen = edge_weighting(e)
        edges.append(LayoutEdge(source=e.source, target=e.target, weight=weight, minlen=minlen))

    sp = spacing_for(graph)
    return LayeredLayoutRequest(
        nodes=boxes, edges=tuple(edges), rank_sep=sp.rank_sep, node_sep=sp.node_sep
    )


def apply_positions(
    graph: GraphData, centers: Mapping[str, tuple[float, float]]
) -> GraphData:
    """Convert engine centers into top-left coordinates (box/circle centered on the point)."""
    nodes = []
    for n in graph.nodes:
        box = node_box(n)
        cx, cy = centers[n.id]
        nodes.append(n.moved_to(cx - box.width / 2, cy - box.height / 2))
    return GraphData(case_name=graph.case_name, nodes=tuple(nodes), edges=graph.edges)
