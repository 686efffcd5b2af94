# casemap/application/use_cases/layout_graph.py
from __future__ import annotations

from loguru import logger

from casemap.application.ports.layered_layout_port import LayeredLayoutPort
from casemap.domain.models import GraphData
from casemap.domain.services.layout import apply_positions, build_layout_request


class LayoutGraph:
    """
    Auto-layout use case: size nodes, weight edges, delegate the layered
    drawing to the engine port and write top-left coordinates back.
    Pure function of the input graph; raises LayoutError only if the engine does.
    """

    def __init__(self, engine: LayeredLayoutPort) -> None:
        self.engine = engine

    def execute(self, graph: GraphData) -> GraphData:
        if not graph.nodes:
            return graph
        request = build_layout_request(graph)
        centers = self.engine.compute(request)
        logger.debug(
            "laid out {} nodes / {} layout edges (rank_sep={}, node_sep={})",
            len(request.nodes),
            len(request.edges),
            request.rank_sep,
            request.node_sep,
        )
        return apply_positions(graph, centers)
