# casemap/domain/services/retrieval.py
# Pure domain services: no I/O, deterministic, no external libraries.
from __future__ import annotations

from collections.abc import Mapping, Sequence
from types import MappingProxyType

from casemap.domain.models import EmbeddedChunk, Evidence
from casemap.domain.similarity import cosine

DEFAULT_TOP_K = 3

# Canned retrieval query per brief section.
SECTION_QUERIES: Mapping[str, str] = MappingProxyType(
    {
        "overview": (
            "company overview business operations equity sponsor acquisition purchase price"
        ),
        "capitalStructure": (
            "debt capital structure term loan revolver bonds lien secured collateral agent"
            " sacred rights covenants"
        ),
        "distressTrigger": (
            "financial distress deteriorating performance covenant breach liquidity shortfall"
            " maturity wall EBITDA"
        ),
        "transactionMechanics": (
            "transaction LME drop down double dip up-tier exchange amendment super senior"
            " non-pro-rata"
        ),
        "keyContractTerms": (
            "sacred rights J. Crew blocker Serta blocker omni-blocker grace period internally"
            " generated funds required lender unanimous consent"
        ),
        "legalDisputes": (
            "lawsuit claim breach good faith fair dealing fraudulent conveyance integrated"
            " transaction doctrine"
        ),
        "courtRuling": "court held ruling opinion dismissed survived motion judgment dicta",
        "outcomeSignificance": (
            "outcome significance settlement bankruptcy filing forum selection market impact"
        ),
        "buccolaTake": "key insight analysis creative aggressive structure criticism",
    }
)


def get_section_query_texts() -> dict[str, str]:
    """Return a mutable copy of the section -> query mapping."""
    return dict(SECTION_QUERIES)


def retrieve_top_k(
    query_embedding: Sequence[float],
    chunks: Sequence[EmbeddedChunk],
    k: int = DEFAULT_TOP_K,
) -> list[Evidence]:
    """
    Rank chunks by cosine similarity to the query, best first.

    - sorted() is stable, so equal scores keep the original chunk order
    - returns min(k, len(chunks)) items; k <= 0 yields []
    """
    if k <= 0:
        return []
    scored = [Evidence(chunk=c, score=cosine(query_embedding, c.embedding)) for c in chunks]
    scored = sorted(scored, key=lambda ev: ev.score, reverse=True)
    return scored[:k]


def retrieve_for_all_sections(
    section_embeddings: Mapping[str, Sequence[float]],
    chunks: Sequence[EmbeddedChunk],
    top_k: int = DEFAULT_TOP_K,
) -> dict[str, list[Evidence]]:
    """Apply retrieve_top_k independently per section (no shared state)."""
    return {
        key: retrieve_top_k(embedding, chunks, top_k)
        for key, embedding in section_embeddings.items()
    }


def build_source_context(
    evidence: Mapping[str, Sequence[Evidence]],
) -> tuple[str, dict[int, str]]:
    """Render every evidence chunk once as ``[CHUNK <id>]`` blocks.

    Returns:
        (context string for the brief prompt, chunk id -> text for the chunks included)
    """
    chunk_map: dict[int, str] = {}
    for results in evidence.values():
        for ev in results:
            chunk_map.setdefault(ev.chunk.id, ev.chunk.text)
    blocks = [f"[CHUNK {cid}]\n{text}" for cid, text in chunk_map.items()]
    return "\n\n---\n\n".join(blocks), chunk_map


def build_section_hints(evidence: Mapping[str, Sequence[Evidence]]) -> str:
    lines = []
    for section, results in evidence.items():
        ids = [str(ev.chunk.id) for ev in results]
        if ids:
            lines.append(f"{section}: most relevant chunks → [{', '.join(ids)}]")
    return "\n".join(lines)
