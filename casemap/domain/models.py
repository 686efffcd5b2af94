# casemap/domain/models.py
# Domain models must be pure (no I/O, no external libs)
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Literal

EdgeStyle = Literal["solid", "dashed"]
FigureCategory = Literal["amount", "party", "date", "term", "other"]

# Brief sections in the order the brief presents them.
SECTION_KEYS: tuple[str, ...] = (
    "overview",
    "capitalStructure",
    "distressTrigger",
    "transactionMechanics",
    "keyContractTerms",
    "legalDisputes",
    "courtRuling",
    "outcomeSignificance",
    "buccolaTake",
)

FIGURE_CATEGORIES: frozenset[str] = frozenset({"amount", "party", "date", "term", "other"})


@dataclass(frozen=True)
class Chunk:
    """Bounded excerpt of the source document with a stable sequential id."""

    id: int
    text: str


@dataclass(frozen=True)
class EmbeddedChunk:
    id: int
    text: str
    embedding: tuple[float, ...]

    @classmethod
    def from_chunk(cls, chunk: Chunk, embedding: list[float] | tuple[float, ...]) -> EmbeddedChunk:
        return cls(id=chunk.id, text=chunk.text, embedding=tuple(float(x) for x in embedding))


@dataclass(frozen=True)
class Evidence:
    """A chunk paired with its cosine similarity against a section query."""

    chunk: EmbeddedChunk
    score: float


@dataclass(frozen=True)
class Citation:
    """Citation reference for a brief section."""

    chunk_id: int
    text: str
    score: float


@dataclass(frozen=True)
class GraphNode:
    """
    Immutable diagram node.

    - id:     unique within a graph
    - type:   domain category (opco, term_loan, asset_pool, ...), drives color and rank
    - notes:  newline-delimited fact lines, drives the node height in layout
    - x, y:   top-left corner; (0, 0) until the graph is laid out
    """

    id: str
    label: str
    type: str
    notes: str
    color: str
    x: float = 0.0
    y: float = 0.0

    def moved_to(self, x: float, y: float) -> GraphNode:
        return replace(self, x=x, y=y)


@dataclass(frozen=True)
class GraphEdge:
    id: str
    source: str
    target: str
    label: str
    style: EdgeStyle
    color: str


@dataclass(frozen=True)
class GraphData:
    """Root aggregate: case name plus ordered nodes and edges (multigraph)."""

    case_name: str
    nodes: tuple[GraphNode, ...] = ()
    edges: tuple[GraphEdge, ...] = ()

    def node_index(self) -> Mapping[str, GraphNode]:
        return {n.id: n for n in self.nodes}

    @staticmethod
    def empty() -> GraphData:
        return GraphData(case_name="")

    def to_dict(self) -> dict:
        return {
            "caseName": self.case_name,
            "nodes": [
                {
                    "id": n.id,
                    "label": n.label,
                    "type": n.type,
                    "notes": n.notes,
                    "x": n.x,
                    "y": n.y,
                    "color": n.color,
                }
                for n in self.nodes
            ],
            "edges": [
                {
                    "id": e.id,
                    "source": e.source,
                    "target": e.target,
                    "label": e.label,
                    "style": e.style,
                    "color": e.color,
                }
                for e in self.edges
            ],
        }


@dataclass(frozen=True)
class KeyFigure:
    label: str
    value: str
    category: FigureCategory = "other"


@dataclass(frozen=True)
class DebtFacility:
    name: str
    amount: str
    lien_position: str = ""
    agent: str = ""
    notes: str = ""


@dataclass(frozen=True)
class CaseAnalysis:
    """Narrative brief: cleaned section texts, key figures, debt stack, citations."""

    sections: Mapping[str, str] = field(default_factory=dict)
    key_figures: tuple[KeyFigure, ...] = ()
    debt_stack: tuple[DebtFacility, ...] = ()
    citations: Mapping[str, tuple[Citation, ...]] = field(default_factory=dict)

    @staticmethod
    def empty() -> CaseAnalysis:
        return CaseAnalysis(sections={key: "" for key in SECTION_KEYS})

    def section(self, key: str) -> str:
        return self.sections.get(key, "")

    def to_dict(self) -> dict:
        out: dict = {key: self.section(key) for key in SECTION_KEYS}
        out["keyFigures"] = [
            {"label": f.label, "value": f.value, "category": f.category} for f in self.key_figures
        ]
        out["debtStack"] = [
            {
                "name": d.name,
                "amount": d.amount,
                "lienPosition": d.lien_position,
                "agent": d.agent,
                "notes": d.notes,
            }
            for d in self.debt_stack
        ]
        out["citations"] = {
            key: [{"chunkId": c.chunk_id, "text": c.text, "score": c.score} for c in cites]
            for key, cites in self.citations.items()
        }
        return out
