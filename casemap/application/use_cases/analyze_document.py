# casemap/application/use_cases/analyze_document.py
from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass, field

from loguru import logger

from casemap.application.dto.analysis_dto import AnalyzeDocumentRequest, CaseResult
from casemap.application.ports.document_loader_port import DocumentLoaderPort
from casemap.application.ports.embedding_port import EmbeddingPort
from casemap.application.ports.llm_port import ChatMessage, LLMPort
from casemap.application.ports.telemetry_port import TelemetryPort
from casemap.application.prompts import (
    BRIEF_SYSTEM_PROMPT,
    EXTRACTION_SYSTEM_PROMPT,
    build_brief_user_prompt,
)
from casemap.application.use_cases.layout_graph import LayoutGraph
from casemap.domain.errors import (
    DocumentError,
    DomainError,
    EmbeddingError,
    ExtractionError,
    LayoutError,
    LLMError,
    ValidationError,
)
from casemap.domain.models import CaseAnalysis, Chunk, EmbeddedChunk, Evidence
from casemap.domain.services.chunking import chunk_text
from casemap.domain.services.normalization import normalize_extraction, parse_analysis
from casemap.domain.services.retrieval import (
    build_section_hints,
    build_source_context,
    get_section_query_texts,
    retrieve_for_all_sections,
)
from casemap.domain.types import RawObject, Result

DEFAULT_EMBEDDING_BATCH = 2048


def embed_in_batches(
    embedding: EmbeddingPort, texts: Sequence[str], batch_size: int = DEFAULT_EMBEDDING_BATCH
) -> list[list[float]]:
    """Embed ``texts`` in consecutive batches; the i-th vector belongs to the i-th text."""
    if batch_size <= 0:
        raise EmbeddingError("batch_size must be > 0")
    vectors: list[list[float]] = []
    for start in range(0, len(texts), batch_size):
        batch = list(texts[start : start + batch_size])
        out = embedding.embed_texts(batch)
        if len(out) != len(batch):
            raise EmbeddingError(
                f"embedding backend returned {len(out)} vectors for {len(batch)} texts"
            )
        vectors.extend(out)
    return vectors


def parse_json_object(text: str) -> RawObject:
    """Decode a model reply that must be a single JSON object."""
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


@dataclass
class _Evidence:
    """Retrieval artifacts for one run; all empty when RAG is off or degraded."""

    by_section: dict[str, list[Evidence]] = field(default_factory=dict)
    source_context: str = ""
    chunk_map: dict[int, str] = field(default_factory=dict)
    section_hints: str = ""


class AnalyzeDocument:
    """
    Application Use-Case for one document-processing run:
    load -> chunk -> (optional) retrieve evidence -> extract graph ->
    normalize -> layout -> brief -> citations.

    OCR and extraction failures abort the run. Retrieval and brief failures
    degrade: the run still returns the positioned graph, with a warning.
    """

    def __init__(
        self,
        loader: DocumentLoaderPort,
        llm: LLMPort,
        layout: LayoutGraph,
        embedding: EmbeddingPort | None = None,
        telemetry: TelemetryPort | None = None,
        embedding_batch_size: int = DEFAULT_EMBEDDING_BATCH,
        llm_max_tokens: int = 4096,
    ) -> None:
        self.loader = loader
        self.llm = llm
        self.layout = layout
        self.embedding = embedding
        self.telemetry = telemetry
        self.embedding_batch_size = embedding_batch_size
        self.llm_max_tokens = llm_max_tokens

    def execute(self, req: AnalyzeDocumentRequest) -> Result[CaseResult, DomainError]:
        result = self._run(req)
        self._incr("casemap.runs.total", {"status": "ok" if result.ok else "error"})
        if result.error is not None:
            logger.error("analysis of {} failed: {}", req.path, result.error)
        return result

    def _run(self, req: AnalyzeDocumentRequest) -> Result[CaseResult, DomainError]:
        # 1) Validate
        if not req.path or not req.path.strip():
            return Result.failure(ValidationError("path must not be empty"))
        if req.top_k <= 0:
            return Result.failure(ValidationError("top_k must be > 0"))

        # 2) Load (OCR)
        try:
            doc = self.loader.load(req.path)
        except DomainError as ex:
            return Result.failure(ex)
        except Exception as ex:
            return Result.failure(DocumentError(f"document load failed: {ex}"))
        if not doc.text or not doc.text.strip():
            return Result.failure(ValidationError("No text found in PDF."))
        logger.info("loaded {} ({} chars)", req.path, len(doc.text))

        # 3) Chunk
        chunks = chunk_text(doc.text)
        self._observe("casemap.chunks.count", len(chunks))

        # 4) Retrieve evidence (degraded mode on failure)
        warnings: list[str] = []
        evidence = _Evidence()
        if req.use_rag and self.embedding is not None and chunks:
            try:
                evidence = self._retrieve(chunks, req.top_k)
            except Exception as ex:
                logger.warning("RAG unavailable, continuing without citations: {}", ex)
                warnings.append(f"Source citations unavailable: {ex}")
                self._incr("casemap.rag.degraded.total", {})

        # 5) Extract graph
        try:
            raw_graph = self._chat_json(
                EXTRACTION_SYSTEM_PROMPT, doc.text[: req.max_extract_chars]
            )
        except LLMError as ex:
            return Result.failure(ExtractionError(f"graph extraction failed: {ex}"))
        except ValueError as ex:
            return Result.failure(ExtractionError(f"graph extraction returned invalid JSON: {ex}"))

        # 6) Normalize + layout
        graph = normalize_extraction(raw_graph)
        try:
            graph = self.layout.execute(graph)
        except LayoutError as ex:
            return Result.failure(ex)
        self._observe("casemap.graph.nodes", len(graph.nodes))
        self._observe("casemap.graph.edges", len(graph.edges))
        logger.info(
            "graph '{}': {} nodes, {} edges", graph.case_name, len(graph.nodes), len(graph.edges)
        )

        # 7) Brief (degraded mode on failure)
        analysis = CaseAnalysis.empty()
        try:
            raw_brief = self._chat_json(
                BRIEF_SYSTEM_PROMPT,
                build_brief_user_prompt(graph, evidence.source_context, evidence.section_hints),
            )
            analysis = parse_analysis(raw_brief, evidence.chunk_map, evidence.by_section)
        except (LLMError, ValueError) as ex:
            logger.warning("brief generation failed, returning graph only: {}", ex)
            warnings.append(f"Brief unavailable: {ex}")

        return Result.success(
            CaseResult(graph=graph, analysis=analysis, chunks=len(chunks), warnings=warnings)
        )

    def _retrieve(self, chunks: Sequence[Chunk], top_k: int) -> _Evidence:
        assert self.embedding is not None
        queries = get_section_query_texts()
        texts = [c.text for c in chunks] + list(queries.values())
        vectors = embed_in_batches(self.embedding, texts, self.embedding_batch_size)

        embedded = [EmbeddedChunk.from_chunk(c, v) for c, v in zip(chunks, vectors)]
        section_vectors = dict(zip(queries.keys(), vectors[len(chunks) :]))
        try:
            by_section = retrieve_for_all_sections(section_vectors, embedded, top_k)
        except ValueError as ex:
            raise EmbeddingError(f"query and chunk vectors differ in length: {ex}") from ex
        context, chunk_map = build_source_context(by_section)
        logger.debug("retrieved evidence for {} sections", len(by_section))
        return _Evidence(
            by_section=by_section,
            source_context=context,
            chunk_map=chunk_map,
            section_hints=build_section_hints(by_section),
        )

    def _chat_json(self, system: str, user: str) -> RawObject:
        """Raises LLMError on transport failure, ValueError on a non-object reply."""
        messages = [
            ChatMessage(role="system", content=system),
            ChatMessage(role="user", content=user),
        ]
        resp = self.llm.chat(messages, max_tokens=self.llm_max_tokens, json_mode=True)
        logger.debug(
            "model reply: finish_reason={}, tokens={}", resp.finish_reason, resp.usage_tokens
        )
        if resp.finish_reason == "length":
            logger.warning("model reply hit max_tokens={} and may be truncated", self.llm_max_tokens)
        if not resp.text.strip():
            raise ValueError("empty model response")
        return parse_json_object(resp.text)

    def _incr(self, name: str, tags: dict) -> None:
        if self.telemetry is not None:
            self.telemetry.incr(name, tags)

    def _observe(self, name: str, value: float) -> None:
        if self.telemetry is not None:
            self.telemetry.observe(name, value, {})
