# casemap/domain/services/normalization.py
# Pure domain services: coerce untrusted model JSON into the strict schema.
# Nothing in here raises on malformed input.
from __future__ import annotations

from collections.abc import Mapping, Sequence
from types import MappingProxyType
from typing import Any

from casemap.domain.models import (
    FIGURE_CATEGORIES,
    SECTION_KEYS,
    CaseAnalysis,
    Citation,
    DebtFacility,
    Evidence,
    GraphData,
    GraphEdge,
    GraphNode,
    KeyFigure,
)
from casemap.domain.services.citations import build_citations, strip_citation_tags

DEFAULT_NODE_COLOR = "#64748b"

NODE_TYPE_COLORS: Mapping[str, str] = MappingProxyType(
    {
        "opco": "#f59e0b",
        "holdco": "#d97706",
        "sponsor": "#8b5cf6",
        "term_loan": "#3b82f6",
        "revolver": "#06b6d4",
        "bond": "#6366f1",
        "unsub": "#ef4444",
        "restricted_sub": "#f97316",
        "non_guarantor_sub": "#fb923c",
        "admin_agent": "#64748b",
        "ad_hoc_group": "#ec4899",
        "excluded_lenders": "#dc2626",
        "participating_lenders": "#22c55e",
        "clo": "#0ea5e9",
        "asset_pool": "#10b981",
        "interco_loan": "#a855f7",
        "dip_facility": "#14b8a6",
        "court": "#78716c",
        "debtor": "#f59e0b",
        "creditor": "#3b82f6",
        "asset": "#10b981",
        "equity": "#8b5cf6",
        "guarantor": "#ec4899",
        "lender": "#06b6d4",
        "subsidiary": "#f97316",
        "parent": "#6366f1",
    }
)

# Categorical edge colors.
STRUCTURAL_COLOR = "#94a3b8"
LIEN_COLOR = "#3b82f6"
CASH_COLOR = "#22c55e"
CLAIM_COLOR = "#ef4444"
TRANSACTION_COLOR = "#f59e0b"
LEGAL_COLOR = "#8b5cf6"
EDGE_COLORS: frozenset[str] = frozenset(
    {STRUCTURAL_COLOR, LIEN_COLOR, CASH_COLOR, CLAIM_COLOR, TRANSACTION_COLOR, LEGAL_COLOR}
)

FALLBACK_NODE_ID = "n1"
FALLBACK_NODE_TYPE = "entity"
FALLBACK_NODE_NOTES = "Extracted from PDF"
DEFAULT_CASE_NAME = "Case"


def color_for_type(node_type: str) -> str:
    return NODE_TYPE_COLORS.get(node_type.lower(), DEFAULT_NODE_COLOR)


# ---------- total coercion helpers ----------


def coerce_str(value: Any, default: str = "") -> str:
    """Stringify like a JSON consumer would; None (missing/null) becomes ``default``."""
    if value is None:
        return default
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def first_present(raw: Mapping[str, Any], *keys: str) -> Any:
    """Value of the first key that is present and not null."""
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def as_list(value: Any) -> list[Any]:
    return list(value) if isinstance(value, list | tuple) else []


# ---------- graph ----------


def _coerce_node(raw: Mapping[str, Any]) -> GraphNode:
    node_type = coerce_str(raw.get("type"), FALLBACK_NODE_TYPE)
    return GraphNode(
        id=coerce_str(raw.get("id")),
        label=coerce_str(first_present(raw, "label", "name")),
        type=node_type,
        notes=coerce_str(raw.get("notes")),
        color=color_for_type(node_type),
    )


def _coerce_edge(raw: Mapping[str, Any]) -> GraphEdge:
    color = coerce_str(raw.get("color"), STRUCTURAL_COLOR).lower()
    return GraphEdge(
        id=coerce_str(raw.get("id")),
        source=coerce_str(first_present(raw, "source", "from")),
        target=coerce_str(first_present(raw, "target", "to")),
        label=coerce_str(raw.get("label")),
        style="dashed" if raw.get("style") == "dashed" else "solid",
        color=color if color in EDGE_COLORS else STRUCTURAL_COLOR,
    )


def _unique_edge_id(candidate: str, taken: set[str]) -> str:
    if candidate and candidate not in taken:
        return candidate
    n = len(taken) + 1
    while f"e{n}" in taken:
        n += 1
    return f"e{n}"


def normalize_extraction(raw: Any) -> GraphData:
    """Coerce a model's graph JSON into GraphData.

    - nodes without id or label are dropped; a repeated id keeps the first node
    - node color is always recomputed from the type
    - edges without both endpoints, or pointing at a node that did not
      survive, are dropped before the fallback node is synthesized
    - missing/duplicate edge ids are replaced with deterministic ``e<n>`` ids
    - an empty node set is replaced by one node standing for the case itself
    """
    data = as_mapping(raw)
    case_name = coerce_str(first_present(data, "caseName", "case_name"), DEFAULT_CASE_NAME)

    nodes: list[GraphNode] = []
    node_ids: set[str] = set()
    for item in as_list(data.get("nodes")):
        node = _coerce_node(as_mapping(item))
        if node.id and node.label and node.id not in node_ids:
            node_ids.add(node.id)
            nodes.append(node)

    edges: list[GraphEdge] = []
    edge_ids: set[str] = set()
    for item in as_list(data.get("edges")):
        edge = _coerce_edge(as_mapping(item))
        if not (edge.source and edge.target):
            continue
        if edge.source not in node_ids or edge.target not in node_ids:
            continue
        edge_id = _unique_edge_id(edge.id, edge_ids)
        edge_ids.add(edge_id)
        edges.append(
            GraphEdge(
                id=edge_id,
                source=edge.source,
                target=edge.target,
                label=edge.label,
                style=edge.style,
                color=edge.color,
            )
        )

    if not nodes:
        nodes.append(
            GraphNode(
                id=FALLBACK_NODE_ID,
                label=case_name,
                type=FALLBACK_NODE_TYPE,
                notes=FALLBACK_NODE_NOTES,
                color=color_for_type(FALLBACK_NODE_TYPE),
            )
        )

    return GraphData(case_name=case_name, nodes=tuple(nodes), edges=tuple(edges))


# ---------- brief ----------


def _coerce_key_figure(raw: Mapping[str, Any]) -> KeyFigure:
    category = coerce_str(raw.get("category"))
    return KeyFigure(
        label=coerce_str(raw.get("label")),
        value=coerce_str(raw.get("value")),
        category=category if category in FIGURE_CATEGORIES else "other",  # type: ignore[arg-type]
    )


def _coerce_debt_facility(raw: Mapping[str, Any]) -> DebtFacility:
    return DebtFacility(
        name=coerce_str(raw.get("name")),
        amount=coerce_str(raw.get("amount")),
        lien_position=coerce_str(raw.get("lienPosition")),
        agent=coerce_str(raw.get("agent")),
        notes=coerce_str(raw.get("notes")),
    )


def parse_analysis(
    raw: Any,
    chunk_map: Mapping[int, str] | None = None,
    evidence: Mapping[str, Sequence[Evidence]] | None = None,
) -> CaseAnalysis:
    """Turn the brief model's JSON into a CaseAnalysis with per-section citations."""
    data = as_mapping(raw)
    chunk_map = chunk_map or {}
    evidence = evidence or {}

    sections: dict[str, str] = {}
    citations: dict[str, tuple[Citation, ...]] = {}
    for key in SECTION_KEYS:
        raw_text = coerce_str(data.get(key))
        sections[key] = strip_citation_tags(raw_text)
        cites = build_citations(raw_text, chunk_map, evidence.get(key, ()))
        if cites:
            citations[key] = tuple(cites)

    figures = tuple(
        f
        for f in (_coerce_key_figure(as_mapping(x)) for x in as_list(data.get("keyFigures")))
        if f.label and f.value
    )
    debt_stack = tuple(
        d
        for d in (_coerce_debt_facility(as_mapping(x)) for x in as_list(data.get("debtStack")))
        if d.name and d.amount
    )
    return CaseAnalysis(
        sections=sections, key_figures=figures, debt_stack=debt_stack, citations=citations
    )
