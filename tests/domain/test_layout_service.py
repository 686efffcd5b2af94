from casemap.domain.models import GraphData, GraphEdge, GraphNode
from casemap.domain.services.layout import (
    BASE_NODE_HEIGHT,
    CIRCLE_SIZE,
    LINE_HEIGHT,
    NODE_WIDTH,
    SINK_RANK,
    apply_positions,
    build_layout_request,
    density,
    edge_weighting,
    estimate_node_height,
    node_box,
    rank_priority,
    spacing_for,
)
from casemap.domain.services.normalization import CASH_COLOR, LEGAL_COLOR, LIEN_COLOR, STRUCTURAL_COLOR


def _node(nid: str, type_: str = "opco", notes: str = "") -> GraphNode:
    return GraphNode(id=nid, label=nid, type=type_, notes=notes, color="#000000")


def _edge(eid: str, s: str, t: str, color: str = STRUCTURAL_COLOR) -> GraphEdge:
    return GraphEdge(id=eid, source=s, target=t, label="", style="solid", color=color)


def _graph(n_nodes: int, n_edges: int) -> GraphData:
    nodes = tuple(_node(f"n{i}") for i in range(n_nodes))
    edges = tuple(_edge(f"e{i}", "n0", "n1") for i in range(n_edges))
    return GraphData(case_name="c", nodes=nodes, edges=edges)


def test_density_tiers():
    assert density(GraphData.empty()) == 0.0
    assert spacing_for(_graph(2, 2)).rank_sep == 180.0
    assert spacing_for(_graph(2, 5)).node_sep == 120.0
    wide = spacing_for(_graph(2, 7))
    assert (wide.rank_sep, wide.node_sep) == (220.0, 140.0)


def test_rank_priority_table():
    assert rank_priority("court") == 0
    assert rank_priority("holdco") < rank_priority("opco") < rank_priority("term_loan")
    assert rank_priority("clo") == 7
    assert rank_priority("something else") == SINK_RANK


def test_node_height_from_notes():
    assert estimate_node_height("") == BASE_NODE_HEIGHT
    assert estimate_node_height("short") == BASE_NODE_HEIGHT + LINE_HEIGHT
    # 36 chars wraps onto two lines; the blank line is ignored
    notes = "x" * 36 + "\n\n" + "y" * 10
    assert estimate_node_height(notes) == BASE_NODE_HEIGHT + 3 * LINE_HEIGHT


def test_asset_nodes_are_square():
    box = node_box(_node("a", "asset_pool", notes="long\nnotes\nhere"))
    assert (box.width, box.height) == (CIRCLE_SIZE, CIRCLE_SIZE)
    assert node_box(_node("b")).width == NODE_WIDTH


def test_edge_weighting_by_category():
    assert edge_weighting(_edge("e", "a", "b", STRUCTURAL_COLOR)) == (4, 1)
    assert edge_weighting(_edge("e", "a", "b", LIEN_COLOR)) == (3, 2)
    assert edge_weighting(_edge("e", "a", "b", LEGAL_COLOR)) == (1, 2)
    assert edge_weighting(_edge("e", "a", "b", CASH_COLOR)) == (2, 2)


def test_request_sorts_nodes_and_dedupes_edges():
    graph = GraphData(
        case_name="c",
        nodes=(_node("loan", "term_loan"), _node("x", "mystery"), _node("court", "court")),
        edges=(
            _edge("e1", "court", "loan"),
            _edge("e2", "court", "loan", LEGAL_COLOR),
            _edge("e3", "loan", "loan"),
            _edge("e4", "loan", "ghost"),
            _edge("e5", "loan", "court", LIEN_COLOR),
        ),
    )
    req = build_layout_request(graph)
    assert [b.id for b in req.nodes] == ["court", "loan", "x"]
    assert [(e.source, e.target, e.weight) for e in req.edges] == [
        ("court", "loan", 4),
        ("loan", "court", 3),
    ]


def test_apply_positions_centers_boxes():
    graph = GraphData(case_name="c", nodes=(_node("a"), _node("p", "asset")))
    out = apply_positions(graph, {"a": (500.0, 300.0), "p": (100.0, 100.0)})
    a, p = out.nodes
    assert (a.x, a.y) == (500.0 - NODE_WIDTH / 2, 300.0 - BASE_NODE_HEIGHT / 2)
    assert (p.x, p.y) == (100.0 - CIRCLE_SIZE / 2, 100.0 - CIRCLE_SIZE / 2)
    assert out.edges == graph.edges
