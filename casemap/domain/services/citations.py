# casemap/domain/services/citations.py
# Pure domain services: no I/O, deterministic, no external libraries.
from __future__ import annotations

import re
from collections.abc import Mapping, Sequence

from casemap.domain.models import Citation, Evidence

CITATION_MARKER = re.compile(r"\[CHUNK\s+(\d+)\]")
_MARKER_WITH_LEADING_SPACE = re.compile(r"\s*\[CHUNK\s+\d+\]")

# Confidence placeholder for a chunk the model cited but retrieval did not rank.
DEFAULT_INLINE_SCORE = 0.5
MAX_TOP_UP = 3


def extract_citation_ids(text: str) -> list[int]:
    """Marker ids in order of first appearance, deduplicated."""
    ids = (int(m.group(1)) for m in CITATION_MARKER.finditer(text))
    return list(dict.fromkeys(ids))


def strip_citation_tags(text: str) -> str:
    """Remove every ``[CHUNK n]`` marker together with the whitespace before it."""
    return _MARKER_WITH_LEADING_SPACE.sub("", text).strip()


def build_citations(
    text: str,
    chunk_map: Mapping[int, str],
    section_evidence: Sequence[Evidence],
    max_top_up: int = MAX_TOP_UP,
) -> list[Citation]:
    """Merge inline model citations with retrieval-ranked evidence.

    Inline ids that resolve in ``chunk_map`` come first and are never
    truncated; evidence then tops the list up to ``max_top_up`` entries.
    No chunk id appears twice.
    """
    score_by_id: dict[int, float] = {}
    for ev in section_evidence:
        score_by_id.setdefault(ev.chunk.id, ev.score)

    citations: list[Citation] = []
    seen: set[int] = set()

    for cid in extract_citation_ids(text):
        if cid in chunk_map and cid not in seen:
            seen.add(cid)
            score = score_by_id.get(cid, DEFAULT_INLINE_SCORE)
            citations.append(Citation(chunk_id=cid, text=chunk_map[cid], score=score))

    for ev in section_evidence:
        if len(citations) >= max_top_up:
            break
        if ev.chunk.id not in seen:
            seen.add(ev.chunk.id)
            citations.append(Citation(chunk_id=ev.chunk.id, text=ev.chunk.text, score=ev.score))

    return citations
