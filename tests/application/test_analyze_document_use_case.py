"""Tests for the AnalyzeDocument use case with hand-written fakes."""

import json
from collections.abc import Sequence

import pytest
from loguru import logger

from casemap.application.dto.analysis_dto import AnalyzeDocumentRequest
from casemap.application.ports.document_loader_port import DocumentPayload
from casemap.application.ports.llm_port import ChatMessage, LLMResponse
from casemap.application.use_cases.analyze_document import (
    AnalyzeDocument,
    embed_in_batches,
    parse_json_object,
)
from casemap.application.use_cases.layout_graph import LayoutGraph
from casemap.domain.errors import (
    DocumentError,
    EmbeddingError,
    ExtractionError,
    LLMError,
    OCRTimeoutError,
    ValidationError,
)
from casemap.domain.models import SECTION_KEYS
from casemap.infrastructure.layout.networkx_layered import NetworkXLayeredLayoutAdapter

DOC = "\n\n".join(
    [
        "Serta Simmons Bedding is a mattress maker owned by Advent.",
        "In 2020 a majority of term lenders exchanged into super-priority debt.",
        "The excluded lenders sued in New York.",
    ]
)

GRAPH_JSON = {
    "caseName": "Serta",
    "nodes": [
        {"id": "advent", "label": "Advent", "type": "sponsor"},
        {"id": "serta", "label": "Serta Simmons", "type": "opco", "notes": "Mattresses"},
        {"id": "tl", "label": "Term Loan", "type": "term_loan"},
    ],
    "edges": [
        {"source": "advent", "target": "serta", "label": "owns"},
        {"source": "tl", "target": "serta", "color": "#3b82f6"},
    ],
}

BRIEF_JSON = {
    "overview": "Serta makes mattresses [CHUNK 0].",
    "courtRuling": "The court sided with Serta.",
    "keyFigures": [{"label": "Exchange", "value": "$1.3bn", "category": "amount"}],
    "debtStack": [{"name": "Super-priority", "amount": "$200m"}],
}


class FakeLoader:
    def __init__(self, text: str = DOC, error: Exception | None = None) -> None:
        self.text = text
        self.error = error

    def load(self, path: str) -> DocumentPayload:
        if self.error is not None:
            raise self.error
        return DocumentPayload(text=self.text, source_path=path)


class FakeLLM:
    """Answers the extraction call first, then the brief call."""

    def __init__(self, replies: Sequence[str | Exception]) -> None:
        self.replies = list(replies)
        self.calls: list[tuple[list[ChatMessage], bool]] = []

    def chat(
        self,
        messages: Sequence[ChatMessage],
        temperature: float = 0.2,
        max_tokens: int = 4096,
        json_mode: bool = False,
    ) -> LLMResponse:
        self.calls.append((list(messages), json_mode))
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return LLMResponse(text=reply)


class FakeEmbedding:
    """Vector per text: 'mattress' texts point one way, everything else the other."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.batches: list[int] = []

    def embed_texts(self, texts: Sequence[str]) -> list[list[float]]:
        if self.fail:
            raise EmbeddingError("quota exceeded")
        self.batches.append(len(texts))
        return [[1.0, 0.0] if "mattress" in t else [0.0, 1.0] for t in texts]


class FakeTelemetry:
    def __init__(self) -> None:
        self.counters: list[tuple[str, dict]] = []
        self.values: dict[str, float] = {}

    def incr(self, name: str, tags: dict | None = None) -> None:
        self.counters.append((name, tags or {}))

    def observe(self, name: str, value: float, tags: dict | None = None) -> None:
        self.values[name] = value


def _uc(llm, loader=None, embedding=None, telemetry=None, **kw) -> AnalyzeDocument:
    return AnalyzeDocument(
        loader=loader or FakeLoader(),
        llm=llm,
        layout=LayoutGraph(NetworkXLayeredLayoutAdapter()),
        embedding=embedding,
        telemetry=telemetry,
        **kw,
    )


class TestAnalyzeDocument:
    def test_full_run_with_citations(self) -> None:
        llm = FakeLLM([json.dumps(GRAPH_JSON), json.dumps(BRIEF_JSON)])
        embedding = FakeEmbedding()
        telemetry = FakeTelemetry()
        result = _uc(llm, embedding=embedding, telemetry=telemetry).execute(
            AnalyzeDocumentRequest(path="serta.pdf")
        )

        assert result.ok and result.value is not None
        case = result.value
        assert case.warnings == []
        assert case.chunks == 1
        assert case.graph.case_name == "Serta"
        assert len(case.graph.nodes) == 3
        assert all(n.x >= 0 and n.y >= 0 for n in case.graph.nodes)
        assert case.analysis.section("overview") == "Serta makes mattresses."
        assert [c.chunk_id for c in case.analysis.citations["overview"]] == [0]
        assert case.analysis.key_figures[0].value == "$1.3bn"

        # one chunk + 9 section queries in a single batch
        assert embedding.batches == [1 + len(SECTION_KEYS)]
        # both calls use JSON mode; the brief prompt carries the tagged source excerpt
        assert [json_mode for _, json_mode in llm.calls] == [True, True]
        brief_user = llm.calls[1][0][1].content
        assert "[CHUNK 0]" in brief_user
        assert "most relevant chunks" in brief_user

        assert ("casemap.runs.total", {"status": "ok"}) in telemetry.counters
        assert telemetry.values["casemap.graph.nodes"] == 3

    def test_rag_failure_degrades_to_brief_without_sources(self) -> None:
        llm = FakeLLM([json.dumps(GRAPH_JSON), json.dumps(BRIEF_JSON)])
        telemetry = FakeTelemetry()
        result = _uc(llm, embedding=FakeEmbedding(fail=True), telemetry=telemetry).execute(
            AnalyzeDocumentRequest(path="serta.pdf")
        )

        assert result.ok and result.value is not None
        assert any("quota exceeded" in w for w in result.value.warnings)
        # [CHUNK 0] cannot resolve without a chunk map, but is still stripped
        assert result.value.analysis.section("overview") == "Serta makes mattresses."
        assert result.value.analysis.citations == {}
        assert ("casemap.rag.degraded.total", {}) in telemetry.counters
        assert "[CHUNK" not in llm.calls[1][0][1].content

    def test_mixed_vector_lengths_degrade_rag(self) -> None:
        class MixedDims:
            """Chunks get 2-d vectors, section queries 3-d ones."""

            def embed_texts(self, texts):
                return [[1.0, 0.0]] + [[1.0, 0.0, 0.0]] * (len(texts) - 1)

        llm = FakeLLM([json.dumps(GRAPH_JSON), json.dumps(BRIEF_JSON)])
        result = _uc(llm, embedding=MixedDims()).execute(AnalyzeDocumentRequest(path="serta.pdf"))

        assert result.ok and result.value is not None
        assert any("differ in length" in w for w in result.value.warnings)
        assert result.value.analysis.citations == {}

    def test_truncated_reply_is_logged(self) -> None:
        class CutOffLLM(FakeLLM):
            def chat(self, messages, temperature=0.2, max_tokens=4096, json_mode=False):
                resp = super().chat(messages, temperature, max_tokens, json_mode)
                return LLMResponse(text=resp.text, finish_reason="length", usage_tokens=max_tokens)

        records: list = []
        sink_id = logger.add(records.append, level="WARNING")
        try:
            llm = CutOffLLM([json.dumps(GRAPH_JSON), json.dumps(BRIEF_JSON)])
            result = _uc(llm, llm_max_tokens=512).execute(AnalyzeDocumentRequest(path="serta.pdf"))
        finally:
            logger.remove(sink_id)

        assert result.ok
        assert sum("max_tokens=512" in str(r) for r in records) == 2

    def test_no_rag_skips_embedding(self) -> None:
        embedding = FakeEmbedding()
        llm = FakeLLM([json.dumps(GRAPH_JSON), json.dumps(BRIEF_JSON)])
        result = _uc(llm, embedding=embedding).execute(
            AnalyzeDocumentRequest(path="serta.pdf", use_rag=False)
        )
        assert result.ok
        assert embedding.batches == []

    def test_extraction_failure_aborts(self) -> None:
        telemetry = FakeTelemetry()
        result = _uc(FakeLLM([LLMError("timeout")]), telemetry=telemetry).execute(
            AnalyzeDocumentRequest(path="serta.pdf")
        )
        assert not result.ok
        assert isinstance(result.error, ExtractionError)
        assert ("casemap.runs.total", {"status": "error"}) in telemetry.counters

    @pytest.mark.parametrize("reply", ["not json", "[1, 2]", "   "])
    def test_extraction_non_object_aborts(self, reply: str) -> None:
        result = _uc(FakeLLM([reply])).execute(AnalyzeDocumentRequest(path="serta.pdf"))
        assert isinstance(result.error, ExtractionError)

    def test_brief_failure_keeps_graph(self) -> None:
        llm = FakeLLM([json.dumps(GRAPH_JSON), "oops, not json"])
        result = _uc(llm).execute(AnalyzeDocumentRequest(path="serta.pdf"))

        assert result.ok and result.value is not None
        assert len(result.value.graph.nodes) == 3
        assert all(result.value.analysis.section(k) == "" for k in SECTION_KEYS)
        assert any(w.startswith("Brief unavailable") for w in result.value.warnings)

    def test_extraction_text_is_truncated(self) -> None:
        llm = FakeLLM([json.dumps(GRAPH_JSON), json.dumps(BRIEF_JSON)])
        _uc(llm).execute(AnalyzeDocumentRequest(path="serta.pdf", max_extract_chars=20))
        assert llm.calls[0][0][1].content == DOC[:20]

    def test_empty_document(self) -> None:
        result = _uc(FakeLLM([]), loader=FakeLoader(text="  \n ")).execute(
            AnalyzeDocumentRequest(path="blank.pdf")
        )
        assert isinstance(result.error, ValidationError)
        assert str(result.error) == "No text found in PDF."

    def test_ocr_errors_are_surfaced(self) -> None:
        timeout = OCRTimeoutError(job_id="j", attempts=60)
        result = _uc(FakeLLM([]), loader=FakeLoader(error=timeout)).execute(
            AnalyzeDocumentRequest(path="x.pdf")
        )
        assert result.error is timeout

        result = _uc(FakeLLM([]), loader=FakeLoader(error=OSError("disk"))).execute(
            AnalyzeDocumentRequest(path="x.pdf")
        )
        assert isinstance(result.error, DocumentError)

    def test_validation(self) -> None:
        uc = _uc(FakeLLM([]))
        assert isinstance(uc.execute(AnalyzeDocumentRequest(path=" ")).error, ValidationError)
        assert isinstance(
            uc.execute(AnalyzeDocumentRequest(path="x.pdf", top_k=0)).error, ValidationError
        )


class TestHelpers:
    def test_embed_in_batches_preserves_order(self) -> None:
        class Recorder:
            def __init__(self) -> None:
                self.sizes: list[int] = []

            def embed_texts(self, texts):
                self.sizes.append(len(texts))
                return [[float(t)] for t in texts]

        rec = Recorder()
        vectors = embed_in_batches(rec, [str(i) for i in range(5)], batch_size=2)
        assert rec.sizes == [2, 2, 1]
        assert vectors == [[0.0], [1.0], [2.0], [3.0], [4.0]]

    def test_embed_in_batches_count_mismatch(self) -> None:
        class Short:
            def embed_texts(self, texts):
                return [[1.0]]

        with pytest.raises(EmbeddingError):
            embed_in_batches(Short(), ["a", "b"], batch_size=10)

    def test_parse_json_object(self) -> None:
        assert parse_json_object('{"a": 1}') == {"a": 1}
        with pytest.raises(ValueError):
            parse_json_object("[1]")
