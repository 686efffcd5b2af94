"""Layered graph drawing on networkx (dagre-style pipeline).

Stages: greedy cycle breaking -> network-simplex ranking -> long-edge
dummies -> barycenter crossing reduction -> constrained coordinate
assignment. Every stage iterates in node/edge insertion order, so the
output is a pure function of the request.
"""

from __future__ import annotations

from collections.abc import Hashable, Mapping
from dataclasses import dataclass

import networkx as nx
from loguru import logger

from casemap.application.ports.layered_layout_port import LayeredLayoutPort
from casemap.domain.errors import LayoutError
from casemap.domain.services.layout import LayeredLayoutRequest

_RANK_ROOT = ("__rank_root__",)


def _dummy(u: Hashable, v: Hashable, k: int) -> tuple:
    return ("__dummy__", u, v, k)


def _is_dummy(n: Hashable) -> bool:
    return isinstance(n, tuple) and len(n) == 4 and n[0] == "__dummy__"


# ---------- stage 1: cycle breaking ----------


def greedy_feedback_arcs(g: nx.DiGraph) -> list[tuple[Hashable, Hashable]]:
    """Eades-Lin-Smyth greedy feedback arc set, weighted by edge ``weight``."""
    work = g.copy()
    left: list[Hashable] = []
    right: list[Hashable] = []
    while len(work):
        changed = True
        while changed:
            changed = False
            sinks = [n for n in work if work.out_degree(n) == 0]
            for n in sinks:
                right.append(n)
                work.remove_node(n)
            sources = [n for n in work if work.in_degree(n) == 0]
            for n in sources:
                left.append(n)
                work.remove_node(n)
            changed = bool(sinks or sources)
        if len(work):
            best = max(
                work,
                key=lambda n: work.out_degree(n, weight="weight")
                - work.in_degree(n, weight="weight"),
            )
            left.append(best)
            work.remove_node(best)
    position = {n: i for i, n in enumerate(left + right[::-1])}
    return [(u, v) for u, v in g.edges() if position[u] > position[v]]


def make_acyclic(g: nx.DiGraph) -> nx.DiGraph:
    """Reverse the greedy feedback arcs; a reversed edge merges into an existing one."""
    feedback = set(greedy_feedback_arcs(g))
    dag = nx.DiGraph()
    dag.add_nodes_from(g.nodes(data=True))
    for u, v, data in g.edges(data=True):
        if (u, v) in feedback:
            u, v = v, u
        if dag.has_edge(u, v):
            dag[u][v]["weight"] += data["weight"]
            dag[u][v]["minlen"] = max(dag[u][v]["minlen"], data["minlen"])
        else:
            dag.add_edge(u, v, weight=data["weight"], minlen=data["minlen"])
    return dag


# ---------- stage 2: ranking ----------


def assign_ranks(dag: nx.DiGraph) -> dict[Hashable, int]:
    """Minimize sum(weight * length) subject to length >= minlen.

    The dual of that LP is a min-cost flow: node demand = weighted in-degree
    minus weighted out-degree, edge cost = -minlen. Network simplex solves it;
    ranks are then the least potentials satisfying every constraint, with
    equality on edges that carry flow (complementary slackness).
    """
    flow_net = nx.DiGraph()
    for n in dag:
        demand = dag.in_degree(n, weight="weight") - dag.out_degree(n, weight="weight")
        flow_net.add_node(n, demand=demand)
    for u, v, data in dag.edges(data=True):
        flow_net.add_edge(u, v, weight=-data["minlen"])
    _, flow = nx.network_simplex(flow_net)

    constraints = nx.DiGraph()
    for n in dag:
        constraints.add_edge(_RANK_ROOT, n, weight=0)
    for u, v, data in dag.edges(data=True):
        constraints.add_edge(u, v, weight=-data["minlen"])
        if flow[u][v] > 0:
            constraints.add_edge(v, u, weight=data["minlen"])
    dist = nx.single_source_bellman_ford_path_length(constraints, _RANK_ROOT)
    return {n: -int(dist[n]) for n in dag}


# ---------- stage 3: layering with dummies ----------


def build_layered_graph(dag: nx.DiGraph, ranks: Mapping[Hashable, int]) -> nx.DiGraph:
    layered = nx.DiGraph()
    for n, data in dag.nodes(data=True):
        layered.add_node(n, rank=ranks[n], width=data["width"], height=data["height"])
    for u, v, data in dag.edges(data=True):
        prev = u
        for k, r in enumerate(range(ranks[u] + 1, ranks[v])):
            d = _dummy(u, v, k)
            layered.add_node(d, rank=r, width=0.0, height=0.0)
            layered.add_edge(prev, d, weight=data["weight"])
            prev = d
        layered.add_edge(prev, v, weight=data["weight"])
    return layered


def initial_order(layered: nx.DiGraph) -> list[list[Hashable]]:
    """DFS from nodes in rank order; each node is appended to its layer on first visit."""
    max_rank = max(r for _, r in layered.nodes(data="rank"))
    layers: list[list[Hashable]] = [[] for _ in range(max_rank + 1)]
    visited: set[Hashable] = set()
    starts = sorted(layered.nodes, key=lambda n: layered.nodes[n]["rank"])
    for start in starts:
        stack = [start]
        while stack:
            n = stack.pop()
            if n in visited:
                continue
            visited.add(n)
            layers[layered.nodes[n]["rank"]].append(n)
            stack.extend(reversed(list(layered.successors(n))))
    return layers


# ---------- stage 4: crossing reduction ----------


def count_crossings(layered: nx.DiGraph, layers: list[list[Hashable]]) -> int:
    total = 0
    for upper, lower in zip(layers, layers[1:]):
        pos_u = {n: i for i, n in enumerate(upper)}
        pos_l = {n: i for i, n in enumerate(lower)}
        segs = [(pos_u[u], pos_l[v]) for u in upper for v in layered.successors(u) if v in pos_l]
        for i, (a1, b1) in enumerate(segs):
            for a2, b2 in segs[i + 1 :]:
                if (a1 - a2) * (b1 - b2) < 0:
                    total += 1
    return total


def _reorder_layer(
    layer: list[Hashable], fixed_pos: Mapping[Hashable, int], neighbours
) -> list[Hashable]:
    """Sort nodes with neighbours by barycenter; nodes without keep their slot."""
    movable: list[tuple[float, int, Hashable]] = []
    for i, n in enumerate(layer):
        adj = [fixed_pos[m] for m in neighbours(n) if m in fixed_pos]
        if adj:
            movable.append((sum(adj) / len(adj), i, n))
    if not movable:
        return list(layer)
    moved = iter(n for _, _, n in sorted(movable, key=lambda t: (t[0], t[1])))
    movable_set = {n for _, _, n in movable}
    return [next(moved) if n in movable_set else n for n in layer]


def minimize_crossings(
    layered: nx.DiGraph, layers: list[list[Hashable]], max_sweeps: int, stall_limit: int
) -> list[list[Hashable]]:
    best = [list(layer) for layer in layers]
    best_cc = count_crossings(layered, best)
    current = [list(layer) for layer in best]
    stalled = 0
    for sweep in range(max_sweeps):
        if best_cc == 0 or stalled >= stall_limit:
            break
        if sweep % 2 == 0:
            for r in range(1, len(current)):
                fixed = {n: i for i, n in enumerate(current[r - 1])}
                current[r] = _reorder_layer(current[r], fixed, layered.predecessors)
        else:
            for r in range(len(current) - 2, -1, -1):
                fixed = {n: i for i, n in enumerate(current[r + 1])}
                current[r] = _reorder_layer(current[r], fixed, layered.successors)
        cc = count_crossings(layered, current)
        if cc < best_cc:
            best, best_cc, stalled = [list(layer) for layer in current], cc, 0
        else:
            stalled += 1
    return best


# ---------- stage 5: coordinates ----------


def _pava(values: list[float]) -> list[float]:
    """Least-squares non-decreasing fit (pool adjacent violators)."""
    blocks: list[tuple[float, int]] = []
    for v in values:
        blocks.append((v, 1))
        while len(blocks) > 1 and blocks[-2][0] > blocks[-1][0]:
            m2, c2 = blocks.pop()
            m1, c1 = blocks.pop()
            blocks.append(((m1 * c1 + m2 * c2) / (c1 + c2), c1 + c2))
    out: list[float] = []
    for mean, count in blocks:
        out.extend([mean] * count)
    return out


@dataclass
class _Placer:
    layered: nx.DiGraph
    node_sep: float
    edge_sep: float

    def gap(self, a: Hashable, b: Hashable) -> float:
        wa = self.layered.nodes[a]["width"]
        wb = self.layered.nodes[b]["width"]
        pad_a = self.edge_sep if _is_dummy(a) else self.node_sep
        pad_b = self.edge_sep if _is_dummy(b) else self.node_sep
        return (wa + wb) / 2 + (pad_a + pad_b) / 2

    def offsets(self, layer: list[Hashable]) -> list[float]:
        acc = [0.0]
        for a, b in zip(layer, layer[1:]):
            acc.append(acc[-1] + self.gap(a, b))
        return acc

    def fit(self, layer: list[Hashable], targets: list[float]) -> list[float]:
        """Closest placement to ``targets`` that keeps order and minimum gaps."""
        offs = self.offsets(layer)
        shifted = _pava([t - o for t, o in zip(targets, offs)])
        return [s + o for s, o in zip(shifted, offs)]

    def target(self, n: Hashable, x: Mapping[Hashable, float], direction: str) -> float:
        g = self.layered
        pairs = []
        if direction in ("down", "both"):
            pairs += [(x[p], g[p][n]["weight"]) for p in g.predecessors(n)]
        if direction in ("up", "both"):
            pairs += [(x[s], g[n][s]["weight"]) for s in g.successors(n)]
        if not pairs:
            return x[n]
        total = sum(w for _, w in pairs)
        return sum(px * w for px, w in pairs) / total


def assign_x(
    layered: nx.DiGraph,
    layers: list[list[Hashable]],
    node_sep: float,
    edge_sep: float,
    sweeps: int,
) -> dict[Hashable, float]:
    placer = _Placer(layered, node_sep, edge_sep)
    x: dict[Hashable, float] = {}
    for layer in layers:
        for n, off in zip(layer, placer.offsets(layer)):
            x[n] = off

    def relax(order: range, direction: str) -> None:
        for r in order:
            layer = layers[r]
            targets = [placer.target(n, x, direction) for n in layer]
            for n, nx_ in zip(layer, placer.fit(layer, targets)):
                x[n] = nx_

    for _ in range(sweeps):
        relax(range(1, len(layers)), "down")
        relax(range(len(layers) - 2, -1, -1), "up")
    relax(range(len(layers)), "both")
    return x


def assign_y(layered: nx.DiGraph, layers: list[list[Hashable]], rank_sep: float) -> list[float]:
    heights = [max((layered.nodes[n]["height"] for n in layer), default=0.0) for layer in layers]
    ys: list[float] = []
    for r, h in enumerate(heights):
        if r == 0:
            ys.append(h / 2)
        else:
            ys.append(ys[-1] + heights[r - 1] / 2 + rank_sep + h / 2)
    return ys


@dataclass
class NetworkXLayeredLayoutAdapter(LayeredLayoutPort):
    """Layered drawing engine; returns node centers in drawing coordinates."""

    max_order_sweeps: int = 24
    stall_limit: int = 4
    position_sweeps: int = 8

    def _build_graph(self, request: LayeredLayoutRequest) -> nx.DiGraph:
        g = nx.DiGraph()
        for box in request.nodes:
            g.add_node(box.id, width=box.width, height=box.height)
        for e in request.edges:
            if e.source == e.target or e.source not in g or e.target not in g:
                continue
            if g.has_edge(e.source, e.target):
                continue
            g.add_edge(e.source, e.target, weight=e.weight, minlen=max(1, e.minlen))
        return g

    def compute(self, request: LayeredLayoutRequest) -> dict[str, tuple[float, float]]:
        if not request.nodes:
            return {}
        try:
            g = self._build_graph(request)
            dag = make_acyclic(g)
            ranks = assign_ranks(dag)
            layered = build_layered_graph(dag, ranks)
            layers = minimize_crossings(
                layered, initial_order(layered), self.max_order_sweeps, self.stall_limit
            )
            xs = assign_x(
                layered, layers, request.node_sep, request.edge_sep, self.position_sweeps
            )
            ys = assign_y(layered, layers, request.rank_sep)
        except nx.NetworkXException as ex:
            raise LayoutError(f"layered layout failed: {ex}") from ex

        left = min(xs[n] - layered.nodes[n]["width"] / 2 for n in layered)
        top = min(ys[layered.nodes[n]["rank"]] - layered.nodes[n]["height"] / 2 for n in layered)
        dx = request.margin_x - left
        dy = request.margin_y - top
        logger.debug(
            "layered layout: {} nodes, {} ranks, {} dummies",
            g.number_of_nodes(),
            len(layers),
            layered.number_of_nodes() - g.number_of_nodes(),
        )
        return {
            str(n): (xs[n] + dx, ys[layered.nodes[n]["rank"]] + dy)
            for n in g.nodes
        }
