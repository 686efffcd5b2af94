# casemap/application/dto/analysis_dto.py
from __future__ import annotations

from dataclasses import dataclass, field

from casemap.domain.models import CaseAnalysis, GraphData


@dataclass(frozen=True)
class AnalyzeDocumentRequest:
    """
    DTO for one document-processing run.

    - path: PDF (or .txt) to analyze
    - use_rag: retrieve evidence and build citations; False skips embedding entirely
    - top_k: evidence chunks per brief section
    - max_extract_chars: document text budget for the extraction model
    """

    path: str
    use_rag: bool = True
    top_k: int = 3
    max_extract_chars: int = 120_000


@dataclass(frozen=True)
class CaseResult:
    """Positioned graph plus brief; warnings list every degraded step."""

    graph: GraphData
    analysis: CaseAnalysis
    chunks: int = 0
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "graph": self.graph.to_dict(),
            "analysis": self.analysis.to_dict(),
            "chunks": self.chunks,
            "warnings": list(self.warnings),
        }
