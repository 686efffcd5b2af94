"""Application ports package.

Re-exports every port so callers can import from one place.
"""

from casemap.application.ports.clock_port import ClockPort
from casemap.application.ports.document_loader_port import DocumentLoaderPort, DocumentPayload
from casemap.application.ports.embedding_port import EmbeddingPort
from casemap.application.ports.layered_layout_port import LayeredLayoutPort
from casemap.application.ports.llm_port import ChatMessage, LLMPort, LLMResponse
from casemap.application.ports.telemetry_port import TelemetryPort

__all__ = [
    "ClockPort",
    "DocumentLoaderPort",
    "DocumentPayload",
    "EmbeddingPort",
    "LayeredLayoutPort",
    "LLMPort",
    "ChatMessage",
    "LLMResponse",
    "TelemetryPort",
]
