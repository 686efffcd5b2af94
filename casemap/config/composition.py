from casemap.application.ports.clock_port import ClockPort
from casemap.application.ports.document_loader_port import DocumentLoaderPort
from casemap.application.ports.embedding_port import EmbeddingPort
from casemap.application.ports.layered_layout_port import LayeredLayoutPort
from casemap.application.ports.llm_port import LLMPort
from casemap.application.ports.telemetry_port import TelemetryPort
from casemap.application.use_cases.analyze_document import AnalyzeDocument
from casemap.application.use_cases.layout_graph import LayoutGraph
from casemap.config.settings import AppSettings
from casemap.domain.errors import ValidationError
from casemap.domain.models import GraphData
from casemap.infrastructure.embeddings.hf_sentence_transformers import HFEmbeddingAdapter
from casemap.infrastructure.embeddings.openai_embedding_adapter import OpenAIEmbeddingAdapter
from casemap.infrastructure.layout.networkx_layered import NetworkXLayeredLayoutAdapter
from casemap.infrastructure.llm.openai_chat_adapter import OpenAIChatAdapter
from casemap.infrastructure.parsing.llamaparse_adapter import LlamaParseAdapter
from casemap.infrastructure.parsing.pdf_text_extractor import PDFTextExtractorAdapter
from casemap.infrastructure.telemetry.otel_adapter import OpenTelemetryAdapter, OtelConfig
from casemap.infrastructure.time.system_clock import SystemClock

DEFAULT_EMBEDDING_MODELS = {
    "openai": "text-embedding-3-small",
    "sentence-transformers": "sentence-transformers/all-MiniLM-L6-v2",
}


def build_clock() -> ClockPort:
    """Real clock; tests inject a FakeClock instead."""
    return SystemClock()


def build_embedding(settings: AppSettings) -> EmbeddingPort:
    backend = settings.embedding_backend
    if backend not in DEFAULT_EMBEDDING_MODELS:
        raise ValidationError(f"unknown EMBEDDING_BACKEND '{backend}'")
    model = settings.embedding_model or DEFAULT_EMBEDDING_MODELS[backend]
    if backend == "sentence-transformers":
        return HFEmbeddingAdapter(
            model_name=model,
            device=settings.embedding_device,
        )
    return OpenAIEmbeddingAdapter(
        api_key=settings.openai_api_key,
        model=model,
        base_url=settings.llm_base_url or None,
    )


def build_llm(settings: AppSettings) -> LLMPort:
    return OpenAIChatAdapter(
        api_key=settings.openai_api_key,
        model=settings.llm_model,
        base_url=settings.llm_base_url or None,
    )


def build_document_loader(settings: AppSettings, backend: str | None = None) -> DocumentLoaderPort:
    """OCR backend from settings unless ``backend`` overrides it ("llamaparse" | "pypdf")."""
    backend = (backend or settings.ocr_backend).lower()
    if backend == "pypdf":
        return PDFTextExtractorAdapter()
    if backend == "llamaparse":
        return LlamaParseAdapter(
            api_key=settings.llama_cloud_api_key,
            clock=build_clock(),
            base_url=settings.llama_parse_url,
            max_attempts=settings.ocr_max_attempts,
            poll_interval_s=settings.ocr_poll_interval_s,
        )
    raise ValidationError(f"unknown OCR backend '{backend}'")


def build_layout_engine() -> LayeredLayoutPort:
    return NetworkXLayeredLayoutAdapter()


def build_layout_use_case() -> LayoutGraph:
    return LayoutGraph(engine=build_layout_engine())


def auto_layout(graph: GraphData) -> GraphData:
    """Position every node of ``graph``; returns it unchanged when it has no nodes."""
    return build_layout_use_case().execute(graph)


def build_telemetry(settings: AppSettings) -> TelemetryPort | None:
    """OpenTelemetry adapter, or None when TELEMETRY_ENABLED=false."""
    if not settings.telemetry_enabled:
        return None
    cfg = OtelConfig(
        service_name="casemap",
        otlp_endpoint=settings.otlp_endpoint or None,
        environment=settings.telemetry_environment,
        enable_console=False,
    )
    return OpenTelemetryAdapter(cfg)


def build_analyze_use_case(
    settings: AppSettings | None = None,
    with_rag: bool = True,
    ocr_backend: str | None = None,
) -> AnalyzeDocument:
    """Build AnalyzeDocument.

    Args:
        with_rag: If False, no embedding adapter is wired and the brief has no citations.
        ocr_backend: Override OCR_BACKEND ("llamaparse" | "pypdf").
    """
    settings = settings or AppSettings()
    return AnalyzeDocument(
        loader=build_document_loader(settings, ocr_backend),
        llm=build_llm(settings),
        layout=build_layout_use_case(),
        embedding=build_embedding(settings) if with_rag else None,
        telemetry=build_telemetry(settings),
        embedding_batch_size=settings.embedding_batch_size,
        llm_max_tokens=settings.llm_max_tokens,
    )
