# casemap/application/prompts.py
# System prompts for the two model calls. Wording is tunable; the JSON
# shapes they request are what the normalizer and brief parser accept.
from __future__ import annotations

import json

from casemap.domain.models import SECTION_KEYS, GraphData
from casemap.domain.services.normalization import NODE_TYPE_COLORS

EXTRACTION_SYSTEM_PROMPT = (
    "You map the structure of corporate restructurings and liability-management "
    "transactions from court filings and credit documents.\n"
    "Return ONE JSON object with keys:\n"
    '  "caseName": short case name,\n'
    '  "nodes": [{"id", "label", "type", "notes"}],\n'
    '  "edges": [{"id", "source", "target", "label", "style", "color"}].\n'
    f"Node types: {', '.join(sorted(NODE_TYPE_COLORS))}, or other.\n"
    "Put key facts (amounts, dates, lien priority) in notes, one fact per line.\n"
    'Edge style is "solid" or "dashed" (dashed for contested or contingent links).\n'
    "Edge color encodes the relationship: #94a3b8 ownership/structural, "
    "#3b82f6 lien/security, #22c55e cash flow, #ef4444 claim, "
    "#f59e0b transaction step, #8b5cf6 litigation.\n"
    "Use only facts stated in the document."
)

BRIEF_SYSTEM_PROMPT = (
    "You are a restructuring analyst writing a case brief for a law-school seminar.\n"
    "Return ONE JSON object with string fields "
    f"{', '.join(SECTION_KEYS)}, "
    'plus "keyFigures": [{"label", "value", "category"}] with category one of '
    "amount, party, date, term, other, and "
    '"debtStack": [{"name", "amount", "lienPosition", "agent", "notes"}].\n'
    "buccolaTake is a short, opinionated assessment of the deal.\n"
    "When a sentence relies on a source excerpt, cite it inline as [CHUNK <id>] "
    "using only ids that appear in the provided sources."
)


def graph_summary(graph: GraphData) -> str:
    """Compact JSON view of the normalized graph for the brief model."""
    return json.dumps(
        {
            "caseName": graph.case_name,
            "nodes": [
                {"id": n.id, "label": n.label, "type": n.type, "notes": n.notes}
                for n in graph.nodes
            ],
            "edges": [
                {"id": e.id, "source": e.source, "target": e.target, "label": e.label}
                for e in graph.edges
            ],
        },
        ensure_ascii=False,
    )


def build_brief_user_prompt(graph: GraphData, source_context: str, section_hints: str) -> str:
    parts = [f"Case graph:\n{graph_summary(graph)}"]
    if source_context:
        parts.append(f"Source excerpts:\n{source_context}")
    if section_hints:
        parts.append(f"Section relevance hints:\n{section_hints}")
    return "\n\n".join(parts)
