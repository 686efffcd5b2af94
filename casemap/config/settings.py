"""Application settings with environment-driven configuration."""

import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class AppSettings:
    """Application settings loaded from environment variables.

    This is the ONLY place where environment variables are read.
    All other layers receive settings via dependency injection.
    """

    # ===== LLM Configuration =====
    openai_api_key: str = field(default_factory=lambda: os.getenv("OPENAI_API_KEY", ""))
    llm_base_url: str = field(default_factory=lambda: os.getenv("LLM_BASE_URL", ""))
    # Empty = api.openai.com; set for any OpenAI-compatible server
    llm_model: str = field(default_factory=lambda: os.getenv("LLM_MODEL", "gpt-4o"))
    llm_max_tokens: int = field(default_factory=lambda: int(os.getenv("LLM_MAX_TOKENS", "4096")))

    # ===== Embedding Configuration =====
    embedding_backend: str = field(
        default_factory=lambda: os.getenv("EMBEDDING_BACKEND", "openai").lower()
    )
    # Supported: "openai" | "sentence-transformers"
    embedding_model: str = field(default_factory=lambda: os.getenv("EMBEDDING_MODEL", ""))
    # Empty: per-backend default (see config.composition)
    embedding_device: str = field(default_factory=lambda: os.getenv("EMBEDDING_DEVICE", "cpu"))
    # Supported: "cpu" | "cuda" | "mps" (sentence-transformers only)
    embedding_batch_size: int = field(
        default_factory=lambda: int(os.getenv("EMBEDDING_BATCH_SIZE", "2048"))
    )

    # ===== OCR Configuration =====
    ocr_backend: str = field(default_factory=lambda: os.getenv("OCR_BACKEND", "llamaparse").lower())
    # Supported: "llamaparse" | "pypdf"
    llama_cloud_api_key: str = field(default_factory=lambda: os.getenv("LLAMA_CLOUD_API_KEY", ""))
    llama_parse_url: str = field(
        default_factory=lambda: os.getenv(
            "LLAMA_PARSE_URL", "https://api.cloud.llamaindex.ai/api/parsing"
        )
    )
    ocr_max_attempts: int = field(default_factory=lambda: int(os.getenv("OCR_MAX_ATTEMPTS", "60")))
    ocr_poll_interval_s: float = field(
        default_factory=lambda: float(os.getenv("OCR_POLL_INTERVAL_S", "2.0"))
    )

    # ===== Pipeline Configuration =====
    rag_top_k: int = field(default_factory=lambda: int(os.getenv("RAG_TOP_K", "3")))
    extract_max_chars: int = field(
        default_factory=lambda: int(os.getenv("EXTRACT_MAX_CHARS", "120000"))
    )

    # ===== Telemetry Configuration =====
    telemetry_enabled: bool = field(
        default_factory=lambda: os.getenv("TELEMETRY_ENABLED", "true").lower() == "true"
    )
    otlp_endpoint: str = field(default_factory=lambda: os.getenv("OTLP_ENDPOINT", ""))
    # Empty string = no OTLP export
    telemetry_environment: str = field(
        default_factory=lambda: os.getenv("TELEMETRY_ENVIRONMENT", "production")
    )
